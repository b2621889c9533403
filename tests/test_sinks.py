"""
测试输出端：WebSocket 广播器与通知实现
"""

import asyncio
import json
import logging
import time

import httpx
import pytest

from conftest import StalledWebSocket
from lumine_monitor.models import AggregateSnapshot, RegionStatus
from lumine_monitor.sinks import LogNotifier, WebhookNotifier, WebSocketBroadcaster


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


class SlowFirstSendWebSocket(FakeWebSocket):
    """第一次发送（初始快照）较慢"""

    def __init__(self):
        super().__init__()
        self.sending = asyncio.Event()

    async def send_json(self, data):
        if not self.sent and not self.sending.is_set():
            self.sending.set()
            await asyncio.sleep(0.05)
        await super().send_json(data)


def _snapshot(cycle: int) -> AggregateSnapshot:
    return AggregateSnapshot(cycle=cycle, regions={"EU": RegionStatus(checks=cycle)})


class TestWebSocketBroadcaster:

    @pytest.mark.asyncio
    async def test_new_observer_gets_current_snapshot(self):
        broadcaster = WebSocketBroadcaster()
        broadcaster.prime(_snapshot(0))
        ws = FakeWebSocket()

        await broadcaster.connect(ws)

        assert ws.accepted is True
        assert ws.sent[0]["event"] == "statusUpdate"
        assert ws.sent[0]["data"]["cycle"] == 0

    @pytest.mark.asyncio
    async def test_prime_does_not_override_published(self):
        broadcaster = WebSocketBroadcaster()
        await broadcaster.publish(_snapshot(3))
        broadcaster.prime(_snapshot(0))
        assert broadcaster.latest.cycle == 3

    @pytest.mark.asyncio
    async def test_publish_reaches_all_and_drops_failed(self):
        broadcaster = WebSocketBroadcaster()
        good, bad = FakeWebSocket(), FakeWebSocket()
        await broadcaster.connect(good)
        await broadcaster.connect(bad)
        bad.fail = True

        await broadcaster.publish(_snapshot(1))

        assert good.sent[-1]["data"]["regions"]["EU"]["checks"] == 1
        assert broadcaster.connection_count == 1
        assert broadcaster.latest.cycle == 1

    @pytest.mark.asyncio
    async def test_stalled_observer_is_dropped_without_blocking_publish(self):
        broadcaster = WebSocketBroadcaster(send_timeout_ms=50)
        good, stalled = FakeWebSocket(), StalledWebSocket()
        await broadcaster.connect(good)
        await broadcaster.connect(stalled)

        started = time.monotonic()
        await asyncio.wait_for(broadcaster.publish(_snapshot(1)), timeout=1.0)

        assert time.monotonic() - started < 1.0
        assert good.sent[-1]["data"]["cycle"] == 1
        assert broadcaster.connection_count == 1

        await broadcaster.publish(_snapshot(2))
        assert good.sent[-1]["data"]["cycle"] == 2

    @pytest.mark.asyncio
    async def test_stalled_observer_is_not_added_on_connect(self):
        broadcaster = WebSocketBroadcaster(send_timeout_ms=50)
        broadcaster.prime(_snapshot(0))

        with pytest.raises(asyncio.TimeoutError):
            await broadcaster.connect(StalledWebSocket())

        assert broadcaster.connection_count == 0

    @pytest.mark.asyncio
    async def test_initial_snapshot_never_arrives_after_newer_cycle(self):
        broadcaster = WebSocketBroadcaster()
        broadcaster.prime(_snapshot(0))
        ws = SlowFirstSendWebSocket()

        connecting = asyncio.create_task(broadcaster.connect(ws))
        await ws.sending.wait()
        await broadcaster.publish(_snapshot(1))
        await connecting

        assert [m["data"]["cycle"] for m in ws.sent] == [0, 1]

    @pytest.mark.asyncio
    async def test_disconnect(self):
        broadcaster = WebSocketBroadcaster()
        ws = FakeWebSocket()
        await broadcaster.connect(ws)
        await broadcaster.disconnect(ws)
        await broadcaster.publish(_snapshot(1))
        assert ws.sent == []


class TestNotifiers:

    @pytest.mark.asyncio
    async def test_log_notifier(self, caplog):
        with caplog.at_level(logging.INFO, logger="lumine_monitor.sinks"):
            await LogNotifier().notify_recovery("Lumine Proxy", "Main site is back online!")
        assert "Main site is back online!" in caplog.text

    @pytest.mark.asyncio
    async def test_webhook_posts_json(self):
        received = []

        def handler(request: httpx.Request):
            received.append((request.method, str(request.url), json.loads(request.content)))
            return httpx.Response(204)

        notifier = WebhookNotifier(
            "https://hooks.example.com/lumine",
            transport=httpx.MockTransport(handler),
        )
        await notifier.notify_recovery("Lumine Proxy", "Main site is back online!")

        assert received == [(
            "POST",
            "https://hooks.example.com/lumine",
            {"title": "Lumine Proxy", "message": "Main site is back online!"},
        )]

    @pytest.mark.asyncio
    async def test_webhook_raises_on_error_status(self):
        notifier = WebhookNotifier(
            "https://hooks.example.com/lumine",
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await notifier.notify_recovery("t", "m")
