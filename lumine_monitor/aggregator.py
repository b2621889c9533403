"""
聚合器

持有主站与各区域节点的状态，执行一轮探测：
并发探测 → 逐个更新状态 / 检测变化 → 全部完成后发布快照。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from .event_detector import detect_main_transition, detect_region_transition
from .event_log import EventLog
from .models import AggregateSnapshot, MainStatus, ProbeResult, RegionStatus
from .prober import Prober
from .sinks import BroadcastSink, NotificationSink

logger = logging.getLogger(__name__)


class Aggregator:
    """
    探测周期执行者

    所有状态（main / regions / event_log）只在 run_cycle 内、持锁修改，
    因此定时触发与手动触发的周期不会交错。
    """

    def __init__(
        self,
        main_url: str,
        regions: Dict[str, str],
        prober: Prober,
        broadcaster: BroadcastSink,
        notifier: Optional[NotificationSink] = None,
        event_log: Optional[EventLog] = None,
        notification_title: str = "Lumine Proxy",
        notification_message: str = "Main site is back online!"
    ):
        self.main_url = main_url
        self.region_urls = dict(regions)
        self.prober = prober
        self.broadcaster = broadcaster
        self.notifier = notifier
        self.event_log = event_log if event_log is not None else EventLog()
        self.notification_title = notification_title
        self.notification_message = notification_message

        self.main = MainStatus()
        self.regions: Dict[str, RegionStatus] = {code: RegionStatus() for code in self.region_urls}

        self.cycles_completed = 0
        self.last_snapshot: Optional[AggregateSnapshot] = None

        self._lock = asyncio.Lock()
        self._notify_tasks: Set[asyncio.Task] = set()

    @property
    def cycle_in_flight(self) -> bool:
        return self._lock.locked()

    def snapshot(self) -> AggregateSnapshot:
        """当前状态的深拷贝视图"""
        return AggregateSnapshot(
            cycle=self.cycles_completed,
            main=self.main.model_copy(),
            regions={code: state.model_copy() for code, state in self.regions.items()},
            logs=self.event_log.entries(),
        )

    async def run_cycle(self) -> AggregateSnapshot:
        """
        执行一轮探测

        已有周期在执行时，会等待其结束后再开始（串行化）。

        Returns:
            本轮发布的快照
        """
        async with self._lock:
            await asyncio.gather(
                self._check_main(),
                *(self._check_region(code, url) for code, url in self.region_urls.items())
            )

            self.cycles_completed += 1
            snapshot = self.snapshot()
            self.last_snapshot = snapshot

            logger.debug(
                f"Cycle {snapshot.cycle} complete: main={'up' if snapshot.main.online else 'down'}, "
                f"regions up={sum(1 for r in snapshot.regions.values() if r.online)}/{len(snapshot.regions)}"
            )

            try:
                await self.broadcaster.publish(snapshot)
            except Exception as e:
                logger.warning(f"Failed to publish snapshot for cycle {snapshot.cycle}: {e}")

            return snapshot

    async def _safe_probe(self, url: str) -> ProbeResult:
        try:
            return await self.prober.probe(url)
        except Exception as e:
            logger.error(f"Prober raised for {url}, treating as unreachable: {e}", exc_info=True)
            return ProbeResult(False, 0)

    async def _check_main(self):
        result = await self._safe_probe(self.main_url)
        self.apply_main_result(result)

    async def _check_region(self, region: str, url: str):
        result = await self._safe_probe(url)
        self.apply_region_result(region, result)

    def apply_main_result(self, result: ProbeResult):
        """更新主站状态；恢复在线时触发通知"""
        event = detect_main_transition(self.main, result.reachable)
        if event:
            self.event_log.add(event["message"], event["severity"])
            if result.reachable:
                self._spawn_notification()

        self.main = MainStatus(
            online=result.reachable,
            response_time_ms=result.latency_ms,
            last_check_at=datetime.now(timezone.utc),
        )

    def apply_region_result(self, region: str, result: ProbeResult):
        """更新单个区域节点状态"""
        state = self.regions[region]
        event = detect_region_transition(region, state, result.reachable)
        if event:
            self.event_log.add(event["message"], event["severity"])

        state.record(result.reachable, result.latency_ms)

    # =========================================================================
    # 通知（fire-and-forget）
    # =========================================================================

    def _spawn_notification(self):
        if self.notifier is None:
            return
        task = asyncio.create_task(self._notify())
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)

    async def _notify(self):
        try:
            await self.notifier.notify_recovery(self.notification_title, self.notification_message)
        except Exception as e:
            logger.warning(f"Recovery notification failed: {e}")

    async def flush_notifications(self):
        """等待尚未完成的通知任务"""
        if self._notify_tasks:
            await asyncio.gather(*list(self._notify_tasks), return_exceptions=True)
