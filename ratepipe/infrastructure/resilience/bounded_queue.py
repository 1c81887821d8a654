"""Bounded FIFO buffer of pending jobs with backpressure.

The producer blocks (or is rejected) when the queue is full; the consumer
blocks while it is empty. Both waits end early when the kill switch fires.
Every check-then-mutate sequence below runs without an ``await`` in
between, which makes it atomic on the event loop.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, List

from ratepipe.domain.exceptions import ConfigurationError
from ratepipe.domain.models.common import Batch, EnqueueStatus, Job
from ratepipe.domain.models.pipeline import OverflowPolicy
from ratepipe.infrastructure.resilience.kill_switch import KillSwitch

logger = logging.getLogger(__name__)


class BoundedQueue:
    """Holds at most ``capacity`` unconsumed jobs."""

    def __init__(
        self,
        capacity: int,
        kill_switch: KillSwitch,
        overflow_policy: str = OverflowPolicy.BLOCK,
    ):
        """Initializes the queue.

        Args:
            capacity: Maximum number of queued jobs (> 0).
            kill_switch: Shared cancellation token observed by every wait.
            overflow_policy: 'block' to suspend producers at capacity,
                'reject' to refuse the job immediately.
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ConfigurationError("queue_capacity", capacity, "must be > 0")
        if overflow_policy not in OverflowPolicy.ALL:
            raise ConfigurationError(
                "overflow_policy", overflow_policy, f"must be one of {OverflowPolicy.ALL}"
            )
        self._capacity = capacity
        self._kill_switch = kill_switch
        self._overflow_policy = overflow_policy
        self._items: Deque[Job] = deque()
        self._not_empty = asyncio.Event()
        self._not_full = asyncio.Event()
        self._not_full.set()
        logger.debug(f"BoundedQueue initialized: capacity={capacity}, overflow={overflow_policy}")

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def depth(self) -> int:
        """Current number of queued jobs (monitoring only)."""
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def is_full(self) -> bool:
        return len(self._items) >= self._capacity

    def is_empty(self) -> bool:
        return not self._items

    async def enqueue(self, job: Job) -> EnqueueStatus:
        """Appends a job, waiting for space if the queue is full.

        Returns:
            ACCEPTED once inserted, CANCELLED if the kill switch fired first
            (the job is not inserted), REJECTED if the queue is full and the
            overflow policy is 'reject'.
        """
        while True:
            if self._kill_switch.is_fired():
                return EnqueueStatus.CANCELLED
            if len(self._items) < self._capacity:
                self._items.append(job)
                self._not_empty.set()
                if len(self._items) >= self._capacity:
                    self._not_full.clear()
                return EnqueueStatus.ACCEPTED
            if self._overflow_policy == OverflowPolicy.REJECT:
                logger.debug(f"Queue full ({self._capacity}); rejecting job {job.job_id}")
                return EnqueueStatus.REJECTED
            logger.debug(f"Queue full ({self._capacity}); producer waiting for space.")
            await self._wait_for(self._not_full)

    async def dequeue_batch(self, max_n: int) -> Batch:
        """Removes between 1 and ``max_n`` jobs in FIFO order.

        Blocks while the queue is empty. Jobs still queued after the kill
        switch fires are handed out so they can drain.

        Returns:
            The batch, or an empty list if the queue is empty and the kill
            switch has fired.
        """
        if isinstance(max_n, bool) or not isinstance(max_n, int) or max_n <= 0:
            raise ConfigurationError("batch_size", max_n, "must be > 0")
        while True:
            if self._items:
                count = min(max_n, len(self._items))
                batch = [self._items.popleft() for _ in range(count)]
                if not self._items:
                    self._not_empty.clear()
                self._not_full.set()
                return batch
            if self._kill_switch.is_fired():
                return []
            await self._wait_for(self._not_empty)

    def drain_nowait(self) -> List[Job]:
        """Removes and returns every queued job without waiting."""
        drained = list(self._items)
        self._items.clear()
        self._not_empty.clear()
        self._not_full.set()
        return drained

    async def _wait_for(self, condition: asyncio.Event) -> None:
        """Waits until ``condition`` is set or the kill switch fires."""
        if condition.is_set() or self._kill_switch.is_fired():
            # Yield anyway so a spinning caller cannot starve the loop.
            await asyncio.sleep(0)
            return
        condition_waiter = asyncio.ensure_future(condition.wait())
        kill_waiter = asyncio.ensure_future(self._kill_switch.wait())
        try:
            await asyncio.wait(
                {condition_waiter, kill_waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            condition_waiter.cancel()
            kill_waiter.cancel()

    def __repr__(self) -> str:
        return f"<BoundedQueue depth={len(self._items)}/{self._capacity}>"
