"""Builds the RemoteFetcher for a configured exchange name."""

import logging
from typing import Any, Optional

from ratepipe.domain.events.pipeline_events import EventHandler
from ratepipe.domain.exceptions import UnsupportedExchangeError
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.infrastructure.exchange.simulated_exchange import DEFAULT_LATENCY_MS, SimulatedExchangeClient
from ratepipe.infrastructure.resilience.api_retry import RetryingFetcher
from ratepipe.infrastructure.resilience.rate_limiter import SlidingWindowQuota

logger = logging.getLogger(__name__)

SUPPORTED_EXCHANGES = ("simulated",)


def make_fetcher(
    exchange: str = "simulated",
    latency_ms: int = DEFAULT_LATENCY_MS,
    failure_rate: float = 0.0,
    seed: Optional[int] = None,
    quota_requests: Optional[int] = None,
    quota_window_s: Optional[float] = None,
    max_retries: int = 0,
    initial_backoff_s: float = 0.5,
    on_event: Optional[EventHandler] = None,
    **unused: Any,
) -> RemoteFetcher:
    """Makes a fetcher for the given exchange.

    Args:
        exchange: Exchange name; only 'simulated' is available.
        latency_ms: Simulated per-request latency.
        failure_rate: Fraction of requests that fail.
        seed: Seed for reproducible failures and payloads.
        quota_requests: Server-side quota size; no quota when None.
        quota_window_s: Server-side quota window.
        max_retries: Wraps the client in a RetryingFetcher when > 0.
        initial_backoff_s: First retry delay.
        on_event: Receives retry events.

    Raises:
        UnsupportedExchangeError: For any other exchange name.
    """
    name = (exchange or "").strip().lower()
    if name not in SUPPORTED_EXCHANGES:
        raise UnsupportedExchangeError(exchange)
    if unused:
        logger.debug(f"Ignoring exchange options not used by '{name}': {sorted(unused)}")

    quota = None
    if quota_requests and quota_window_s:
        quota = SlidingWindowQuota(max_requests=int(quota_requests), window_seconds=float(quota_window_s))

    fetcher: RemoteFetcher = SimulatedExchangeClient(
        latency_ms=int(latency_ms),
        failure_rate=float(failure_rate),
        quota=quota,
        seed=seed,
    )
    if max_retries and max_retries > 0:
        fetcher = RetryingFetcher(
            fetcher,
            max_retries=int(max_retries),
            initial_backoff_s=float(initial_backoff_s),
            on_event=on_event,
        )
    return fetcher
