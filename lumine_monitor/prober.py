"""
探测模块

对单个 URL 发起一次带超时的 HTTP GET，返回可达性与延迟。
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from .models import ProbeResult

logger = logging.getLogger(__name__)

UNREACHABLE = ProbeResult(False, 0)


class Prober:
    """
    HTTP 探测器

    - 2xx 视为可达，其余状态码（含 3xx，不跟随重定向）视为不可达
    - 超时 / 网络错误 / 非 2xx 统一返回 (False, 0)
    - 不重试，不修改任何共享状态，可并发调用
    """

    def __init__(
        self,
        timeout_ms: int = 5000,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout_ms = timeout_ms
        self._transport = transport

    @property
    def timeout(self) -> float:
        """超时时间（秒）"""
        return self.timeout_ms / 1000

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=False
        ) as client:
            return await client.get(url)

    async def probe(self, url: str) -> ProbeResult:
        """
        探测单个端点

        Args:
            url: 探测地址

        Returns:
            ProbeResult(reachable, latency_ms)
        """
        start = time.perf_counter()
        try:
            # httpx 的超时按阶段计算，这里再约束一次总时长
            response = await asyncio.wait_for(self._get(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Probe timed out after {self.timeout_ms}ms: {url}")
            return UNREACHABLE
        except httpx.HTTPError as e:
            logger.debug(f"Probe failed for {url}: {e!r}")
            return UNREACHABLE
        except Exception as e:
            logger.debug(f"Probe error for {url}: {e!r}", exc_info=True)
            return UNREACHABLE

        latency_ms = int((time.perf_counter() - start) * 1000)

        if not 200 <= response.status_code < 300:
            logger.debug(f"Probe got HTTP {response.status_code} from {url}")
            return UNREACHABLE

        return ProbeResult(True, latency_ms)
