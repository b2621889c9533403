"""
事件检测模块

检测主站 / 区域节点的在线状态变化（ONLINE ⇄ OFFLINE）。
首次探测（UNKNOWN → X）没有可比较的上一状态，不产生事件。
"""

import logging
from typing import Dict, Optional

from .models import MainStatus, RegionStatus

logger = logging.getLogger(__name__)


def detect_main_transition(prev: MainStatus, current_online: bool) -> Optional[Dict[str, str]]:
    """
    检测主站状态变化

    Args:
        prev: 本次探测前的主站状态
        current_online: 本次探测是否在线

    Returns:
        {"message", "severity"}；无变化或首次探测时返回 None
    """
    if prev.last_check_at is None or prev.online == current_online:
        return None

    if current_online:
        logger.info("Main system came back online")
    else:
        logger.warning("Main system went offline")

    state = "ONLINE" if current_online else "OFFLINE"
    return {
        "message": f"Main system transitioned to {state}",
        "severity": "success" if current_online else "error",
    }


def detect_region_transition(
    region: str,
    prev: RegionStatus,
    current_online: bool
) -> Optional[Dict[str, str]]:
    """检测区域节点状态变化（checks == 0 视为首次探测）"""
    if prev.checks == 0 or prev.online == current_online:
        return None

    if current_online:
        logger.info(f"Region {region} came back online")
    else:
        logger.warning(f"Region {region} went offline")

    return {
        "message": f"{region} node is now {'Operational' if current_online else 'Down'}",
        "severity": "success" if current_online else "error",
    }
