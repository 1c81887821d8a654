"""Simulated trade-history endpoint of a rate-limited exchange.

Stands in for a real exchange client: adds network latency, fails a
configurable fraction of requests and, when a quota is given, rejects
requests beyond it the way an exchange bans an IP that exceeds its limit.
"""

import asyncio
import logging
import random
import time
from typing import Any, Dict, List, Optional

from ratepipe.domain.exceptions import RateLimitExceededError, TransientFetchError
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.domain.models.common import JobId
from ratepipe.infrastructure.resilience.rate_limiter import SlidingWindowQuota

logger = logging.getLogger(__name__)

DEFAULT_LATENCY_MS = 250
SYMBOLS = ("BTC/USDT", "ETH/USDT", "ADA/USDT", "ETH/BTC", "ADA/BTC")


class SimulatedExchangeClient(RemoteFetcher):
    """In-process fake of a trade-history API."""

    name = "simulated"

    def __init__(
        self,
        latency_ms: int = DEFAULT_LATENCY_MS,
        failure_rate: float = 0.0,
        quota: Optional[SlidingWindowQuota] = None,
        seed: Optional[int] = None,
    ):
        if latency_ms < 0:
            raise ValueError("latency_ms must be >= 0")
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.latency_ms = latency_ms
        self.failure_rate = failure_rate
        self.quota = quota
        self.requests_made = 0
        self._random = random.Random(seed)
        logger.info(
            f"SimulatedExchangeClient initialized: latency={latency_ms}ms, "
            f"failure_rate={failure_rate}, quota={'on' if quota else 'off'}"
        )

    async def fetch(self, job_id: JobId) -> Dict[str, Any]:
        self.requests_made += 1
        if self.quota is not None and not self.quota.try_acquire():
            raise RateLimitExceededError(
                f"Request weight exceeded for job {job_id}",
                job_id=job_id,
                retry_after_s=self.quota.wait_time(),
            )
        # Draw before sleeping so results do not depend on completion order.
        fails = self._random.random() < self.failure_rate
        trades = self._make_trades()
        await asyncio.sleep(self.latency_ms / 1000.0)
        if fails:
            raise TransientFetchError(f"Simulated upstream error for job {job_id}", job_id=job_id)
        return {"job_id": job_id, "trades": trades, "fetched_at": time.time()}

    def _make_trades(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": self._random.randint(1, 10**9),
                "symbol": self._random.choice(SYMBOLS),
                "price": round(self._random.uniform(0.01, 50000.0), 2),
                "quantity": round(self._random.uniform(0.001, 10.0), 4),
            }
            for _ in range(self._random.randint(0, 3))
        ]
