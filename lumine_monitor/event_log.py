"""
事件日志

固定容量、最新在前的事件序列。
"""

import time
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List

from .models import LogEntry, Severity

LOG_CAPACITY = 10


class EventLog:
    """
    有界事件日志

    - append: 插入到头部，超出容量时丢弃最旧的一条
    - id 基于毫秒时间戳，同一进程内严格递增
    """

    def __init__(self, capacity: int = LOG_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._last_id = 0

    def next_id(self) -> int:
        """生成下一个 id（毫秒时间戳，冲突时 +1）"""
        candidate = time.time_ns() // 1_000_000
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def append(self, entry: LogEntry):
        if entry.id <= self._last_id:
            raise ValueError(f"log id {entry.id} is not greater than last id {self._last_id}")
        self._last_id = entry.id
        self._entries.appendleft(entry)

    def add(self, message: str, severity: Severity = "info") -> LogEntry:
        """构造条目并追加"""
        entry = LogEntry(
            id=self.next_id(),
            timestamp=datetime.now(timezone.utc),
            message=message,
            severity=severity,
        )
        self.append(entry)
        return entry

    def entries(self) -> List[LogEntry]:
        """最新在前的副本"""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
