"""
调度器

启动时立即执行一轮，之后按固定周期执行；另提供手动触发入口。
"""

import asyncio
import logging
import time
from typing import Optional, Set

from .aggregator import Aggregator

logger = logging.getLogger(__name__)


class Scheduler:
    """
    周期驱动 + 手动触发

    手动触发时若已有周期在执行，则合并（忽略本次触发），
    正在执行的周期完成后会发布最新结果。
    """

    def __init__(self, aggregator: Aggregator, interval_ms: int = 10000):
        self.aggregator = aggregator
        self.interval_ms = interval_ms
        self._task: Optional[asyncio.Task] = None
        self._trigger_tasks: Set[asyncio.Task] = set()

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self):
        """
        运行调度循环

        每个周期结束后睡眠 (interval - 本轮耗时)，保持固定节奏。
        """
        logger.info(
            f"Starting scheduler (interval={self.interval_ms}ms, "
            f"regions={len(self.aggregator.region_urls)})"
        )

        while True:
            started = time.monotonic()
            try:
                await self.aggregator.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Scheduler cycle error: {e}", exc_info=True)

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    async def force_check(self) -> bool:
        """
        手动触发一轮探测

        Returns:
            True 表示执行了新的一轮；False 表示已有周期在执行，本次被合并
        """
        if self.aggregator.cycle_in_flight:
            logger.info("Manual check coalesced: a cycle is already in flight")
            return False

        logger.info("Manual check requested")
        await self.aggregator.run_cycle()
        return True

    def trigger(self) -> asyncio.Task:
        """非阻塞版本的 force_check（WebSocket 通道使用）"""
        task = asyncio.create_task(self.force_check())
        self._trigger_tasks.add(task)
        task.add_done_callback(self._trigger_tasks.discard)
        return task

    def start(self) -> asyncio.Task:
        """在后台启动调度循环"""
        if not self.running:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        """停止调度循环并等待手动触发的周期结束"""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._trigger_tasks:
            await asyncio.gather(*list(self._trigger_tasks), return_exceptions=True)

        logger.info("Scheduler stopped")
