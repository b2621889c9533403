"""
测试公共组件

- FakeProber: 按 URL 预置探测结果，可选阻塞点
- RecordingBroadcaster / RecordingNotifier: 记录调用
- StalledWebSocket: 不读取数据的观察者
"""

import asyncio
from collections import defaultdict
from typing import Dict, List, Optional

import pytest

from lumine_monitor.aggregator import Aggregator
from lumine_monitor.models import AggregateSnapshot, ProbeResult

MAIN_URL = "https://main.test/"
REGIONS = {
    "AS": "http://as.test:1456/healthz",
    "NA": "http://na.test:1456/healthz",
    "EU": "http://eu.test:1456/healthz",
}


class FakeProber:
    """按 URL 依次返回预置结果；队列耗尽后返回 default"""

    def __init__(self, default: ProbeResult = ProbeResult(True, 10)):
        self.default = default
        self.scripts: Dict[str, List[ProbeResult]] = defaultdict(list)
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def script(self, url: str, *results: ProbeResult):
        self.scripts[url].extend(results)

    def gate(self, url: str) -> asyncio.Event:
        """之后对该 URL 的探测会阻塞到 event.set()"""
        event = asyncio.Event()
        self.gates[url] = event
        return event

    async def probe(self, url: str) -> ProbeResult:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            gate = self.gates.get(url)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            if self.scripts[url]:
                return self.scripts[url].pop(0)
            return self.default
        finally:
            self.in_flight -= 1


class RecordingBroadcaster:
    def __init__(self):
        self.published: List[AggregateSnapshot] = []
        self.event = asyncio.Event()

    async def publish(self, snapshot: AggregateSnapshot) -> None:
        self.published.append(snapshot)
        self.event.set()


class FailingBroadcaster:
    async def publish(self, snapshot: AggregateSnapshot) -> None:
        raise ConnectionError("observer channel closed")


class StalledWebSocket:
    """接受连接后不再读取数据：send_json 永远挂起"""

    def __init__(self):
        self.accepted = False
        self._never = asyncio.Event()

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        await self._never.wait()


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    async def notify_recovery(self, title: str, message: str) -> None:
        self.calls.append((title, message))


class FailingNotifier:
    async def notify_recovery(self, title: str, message: str) -> None:
        raise RuntimeError("notification daemon unavailable")


def make_aggregator(
    prober: Optional[FakeProber] = None,
    broadcaster=None,
    notifier=None,
    regions: Optional[Dict[str, str]] = None
) -> Aggregator:
    return Aggregator(
        main_url=MAIN_URL,
        regions=REGIONS if regions is None else regions,
        prober=prober or FakeProber(),
        broadcaster=broadcaster or RecordingBroadcaster(),
        notifier=notifier,
    )


@pytest.fixture
def prober():
    return FakeProber()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def notifier():
    return RecordingNotifier()
