"""
输出端（Sink）

核心聚合逻辑只依赖两个能力接口：
- BroadcastSink: 每轮完成后发布快照
- NotificationSink: 主站恢复在线时发送通知
"""

import asyncio
import logging
from typing import Optional, Protocol, Set

import httpx
from fastapi import WebSocket

from .config import NotificationConfig
from .models import AggregateSnapshot

logger = logging.getLogger(__name__)


class BroadcastSink(Protocol):
    async def publish(self, snapshot: AggregateSnapshot) -> None:
        ...


class NotificationSink(Protocol):
    async def notify_recovery(self, title: str, message: str) -> None:
        ...


# =============================================================================
# 广播
# =============================================================================

def status_update_message(snapshot: AggregateSnapshot) -> dict:
    """WebSocket 推送消息体"""
    return {"event": "statusUpdate", "data": snapshot.model_dump(mode="json")}


class WebSocketBroadcaster:
    """
    WebSocket 广播器

    保存最近一次发布的快照：
    - publish 时推送给所有连接，发送失败或超时的连接直接移除
    - 新连接建立后立即收到当前快照，之后才加入广播集合
    """

    def __init__(self, send_timeout_ms: int = 2000):
        self.send_timeout = send_timeout_ms / 1000
        self._connections: Set[WebSocket] = set()
        self._latest: Optional[AggregateSnapshot] = None
        self._lock = asyncio.Lock()

    @property
    def latest(self) -> Optional[AggregateSnapshot]:
        return self._latest

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def prime(self, snapshot: AggregateSnapshot):
        """设置首轮探测前的初始视图"""
        if self._latest is None:
            self._latest = snapshot

    async def _send(self, websocket: WebSocket, message: dict):
        # 不读取数据的观察者不能拖住探测周期
        await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        # 持锁发送初始快照再加入集合，保证观察者收到的快照按周期递增
        async with self._lock:
            if self._latest is not None:
                await self._send(websocket, status_update_message(self._latest))
            self._connections.add(websocket)
        logger.debug(f"Observer connected ({len(self._connections)} total)")

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._connections.discard(websocket)
        logger.debug(f"Observer disconnected ({len(self._connections)} total)")

    async def publish(self, snapshot: AggregateSnapshot) -> None:
        async with self._lock:
            self._latest = snapshot
            connections = list(self._connections)

        if not connections:
            return

        message = status_update_message(snapshot)
        results = await asyncio.gather(
            *(self._send(ws, message) for ws in connections),
            return_exceptions=True
        )

        dead = [ws for ws, result in zip(connections, results) if isinstance(result, Exception)]
        if dead:
            logger.warning(f"Dropping {len(dead)} observer(s) after failed or timed-out delivery")
            async with self._lock:
                for ws in dead:
                    self._connections.discard(ws)


# =============================================================================
# 通知
# =============================================================================

class LogNotifier:
    """将恢复通知写入日志（默认实现）"""

    async def notify_recovery(self, title: str, message: str) -> None:
        logger.info(f"[{title}] {message}")


class WebhookNotifier:
    """
    Webhook 通知

    以 JSON 形式 POST {"title", "message"}，非 2xx 时抛出异常（由调用方吞掉）。
    """

    def __init__(
        self,
        url: str,
        timeout_ms: int = 5000,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.timeout = timeout_ms / 1000
        self._transport = transport

    async def notify_recovery(self, title: str, message: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.url, json={"title": title, "message": message})
            response.raise_for_status()


def build_notifier(config: NotificationConfig) -> Optional[NotificationSink]:
    """按配置选择通知实现；关闭时返回 None"""
    if not config.enabled:
        return None
    if config.webhook_url:
        return WebhookNotifier(str(config.webhook_url), timeout_ms=config.timeout_ms)
    return LogNotifier()
