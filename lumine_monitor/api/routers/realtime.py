"""
实时推送通道

连接后立即收到当前快照，之后每轮完成收到 statusUpdate；
客户端发送 forceCheck 可手动触发一轮探测。
"""

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ...service import MonitorService
from ..dependencies import get_ws_service

logger = logging.getLogger(__name__)

router = APIRouter()


def is_force_check(raw: str) -> bool:
    """识别 forceCheck 指令（纯文本或 {"event": "forceCheck"}）"""
    text = raw.strip()
    if text == "forceCheck":
        return True
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False
    return isinstance(payload, dict) and payload.get("event") == "forceCheck"


@router.websocket("/ws/status")
async def status_ws(websocket: WebSocket, service: MonitorService = Depends(get_ws_service)):
    broadcaster = service.broadcaster
    try:
        await broadcaster.connect(websocket)
        while True:
            raw = await websocket.receive_text()
            if is_force_check(raw):
                service.scheduler.trigger()
            else:
                logger.debug(f"Ignoring unknown observer message: {raw[:100]!r}")
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.disconnect(websocket)
