"""
依赖注入模块

提供 FastAPI 依赖项（从 app.state 取运行时组件）。
"""

from fastapi import HTTPException, Request, WebSocket, status

from ..service import MonitorService


def _service_from_state(state) -> MonitorService:
    service = getattr(state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Monitor service not initialised"
        )
    return service


async def get_service(request: Request) -> MonitorService:
    """获取监控服务（HTTP）"""
    return _service_from_state(request.app.state)


async def get_ws_service(websocket: WebSocket) -> MonitorService:
    """获取监控服务（WebSocket）"""
    return _service_from_state(websocket.app.state)
