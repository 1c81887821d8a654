"""API Resilience Implementations.

Contains the flow-control side of talking to a rate-limited API: the kill
switch, the bounded request queue, the batch-paced dispatcher, the sliding
window quota and retries with exponential backoff.
Bounded Context: API Resilience
"""

from ratepipe.infrastructure.resilience.kill_switch import KillSwitch
from ratepipe.infrastructure.resilience.bounded_queue import BoundedQueue
from ratepipe.infrastructure.resilience.batch_dispatcher import BatchDispatcher
from ratepipe.infrastructure.resilience.rate_limiter import SlidingWindowQuota
from ratepipe.infrastructure.resilience.api_retry import RetryingFetcher

__all__ = [
    "KillSwitch",
    "BoundedQueue",
    "BatchDispatcher",
    "SlidingWindowQuota",
    "RetryingFetcher",
]
