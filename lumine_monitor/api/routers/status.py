"""
状态 API

提供最新快照、事件日志查询与手动触发。
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from ...models import AggregateSnapshot, CheckResponse, LogEntry
from ...service import MonitorService
from ..dependencies import get_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["status"])


def current_snapshot(service: MonitorService) -> AggregateSnapshot:
    """最近一次发布的快照；尚未发布时返回初始视图"""
    return service.broadcaster.latest or service.aggregator.snapshot()


@router.get("/status", response_model=AggregateSnapshot)
async def get_status(service: MonitorService = Depends(get_service)):
    """
    获取最新聚合快照

    只返回已完成周期的结果，不会出现两轮数据混合。
    """
    return current_snapshot(service)


@router.get("/logs", response_model=List[LogEntry])
async def list_logs(
    limit: int = Query(10, ge=1, le=10, description="返回数量限制"),
    service: MonitorService = Depends(get_service)
):
    """获取事件日志（最新在前）"""
    return current_snapshot(service).logs[:limit]


@router.post("/check", response_model=CheckResponse)
async def force_check(service: MonitorService = Depends(get_service)):
    """
    手动触发一轮探测

    已有周期在执行时不会重复执行，triggered=false。
    """
    triggered = await service.scheduler.force_check()
    return CheckResponse(triggered=triggered, snapshot=current_snapshot(service))
