"""
数据模型定义

包括：
- 端点状态（主站 / 区域节点，探测周期内可变）
- 事件日志条目
- 聚合快照（发布时不可变，跨边界传递的唯一状态）
"""

from datetime import datetime
from typing import Dict, List, Literal, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


Severity = Literal["info", "success", "error"]


class ProbeResult(NamedTuple):
    """单次探测结果"""
    reachable: bool
    latency_ms: int


# =============================================================================
# 端点状态
# =============================================================================

class MainStatus(BaseModel):
    """主站状态"""
    online: bool = False
    response_time_ms: int = 0
    last_check_at: Optional[datetime] = None  # None 表示尚未探测（UNKNOWN）


class RegionStatus(BaseModel):
    """区域节点状态（含累计计数）"""
    online: bool = False
    response_time_ms: int = 0
    checks: int = 0
    successes: int = 0
    uptime_pct: float = 0.0

    def record(self, online: bool, response_time_ms: int):
        """
        记录一次探测结果

        可用率每次都由累计值重新计算，不做增量修正。
        """
        self.online = online
        self.response_time_ms = response_time_ms
        self.checks += 1
        if online:
            self.successes += 1
        self.uptime_pct = compute_uptime(self.successes, self.checks)


def compute_uptime(successes: int, checks: int) -> float:
    """successes / checks * 100，保留一位小数；未探测时为 0"""
    if checks <= 0:
        return 0.0
    return round(successes / checks * 100, 1)


# =============================================================================
# 事件日志 & 快照
# =============================================================================

class LogEntry(BaseModel):
    """事件日志条目"""
    model_config = ConfigDict(frozen=True)

    id: int
    timestamp: datetime
    message: str
    severity: Severity = "info"


class AggregateSnapshot(BaseModel):
    """一轮探测完成后的聚合快照"""
    model_config = ConfigDict(frozen=True)

    cycle: int = 0
    main: MainStatus = Field(default_factory=MainStatus)
    regions: Dict[str, RegionStatus] = Field(default_factory=dict)
    logs: List[LogEntry] = Field(default_factory=list)


class CheckResponse(BaseModel):
    """POST /api/check 响应"""
    triggered: bool
    snapshot: AggregateSnapshot
