"""
组件装配

按配置创建 Prober / Aggregator / Broadcaster / Notifier / Scheduler。
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .aggregator import Aggregator
from .config import AppConfig
from .prober import Prober
from .scheduler import Scheduler
from .sinks import NotificationSink, WebSocketBroadcaster, build_notifier

logger = logging.getLogger(__name__)


@dataclass
class MonitorService:
    """运行时组件集合（进程内唯一所有者）"""
    aggregator: Aggregator
    scheduler: Scheduler
    broadcaster: WebSocketBroadcaster
    notifier: Optional[NotificationSink] = None

    async def shutdown(self):
        await self.scheduler.stop()
        await self.aggregator.flush_notifications()


def build_service(config: AppConfig, prober: Optional[Prober] = None) -> MonitorService:
    """
    装配监控服务

    Args:
        config: 应用配置
        prober: 可选的探测器（测试时注入）
    """
    monitor = config.monitor
    broadcaster = WebSocketBroadcaster(send_timeout_ms=config.api.ws_send_timeout_ms)
    notifier = build_notifier(config.notifications)

    aggregator = Aggregator(
        main_url=str(monitor.main_url),
        regions=monitor.region_urls(),
        prober=prober or Prober(timeout_ms=monitor.timeout_ms),
        broadcaster=broadcaster,
        notifier=notifier,
        notification_title=config.notifications.title,
        notification_message=config.notifications.message,
    )
    broadcaster.prime(aggregator.snapshot())

    scheduler = Scheduler(aggregator, interval_ms=monitor.interval_ms)

    logger.info(
        f"Monitoring {monitor.main_url} and {len(monitor.regions)} region(s): "
        f"{', '.join(monitor.regions) or '-'}"
    )

    return MonitorService(
        aggregator=aggregator,
        scheduler=scheduler,
        broadcaster=broadcaster,
        notifier=notifier,
    )
