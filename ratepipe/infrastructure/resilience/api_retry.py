"""Fetcher decorator that retries failed fetches.

Implements exponential backoff for transient errors and quota rejections.
Retry policy belongs to the fetch capability, never to the dispatcher:
the dispatcher sees one call per job that either returns or raises.
"""

import asyncio
import logging
from typing import Any, Optional, Tuple, Type

from ratepipe.domain.events.pipeline_events import DomainEvent, EventHandler, RetryScheduled
from ratepipe.domain.exceptions import (
    MaxRetryError,
    RateLimitExceededError,
    TransientFetchError,
)
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.domain.models.common import JobId

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    TransientFetchError,
    RateLimitExceededError,
    asyncio.TimeoutError,
    ConnectionError,
)


class RetryingFetcher(RemoteFetcher):
    """Wraps a RemoteFetcher with retries and exponential backoff."""

    def __init__(
        self,
        fetcher: RemoteFetcher,
        max_retries: int = 3,
        initial_backoff_s: float = 0.5,
        backoff_factor: float = 2.0,
        retryable_exceptions: Tuple[Type[Exception], ...] = RETRYABLE_EXCEPTIONS,
        on_event: Optional[EventHandler] = None,
    ):
        """Initializes the RetryingFetcher.

        Args:
            fetcher: The fetcher whose failures should be retried.
            max_retries: Maximum number of retry attempts after the first call.
            initial_backoff_s: Initial delay in seconds for the first retry.
            backoff_factor: Multiplier for the backoff delay (e.g., 2 for exponential).
            retryable_exceptions: Exception types worth another attempt.
            on_event: Receives RetryScheduled events.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.fetcher = fetcher
        self.name = getattr(fetcher, "name", type(fetcher).__name__)
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.retryable_exceptions = retryable_exceptions
        self._on_event = on_event

        logger.info(
            f"RetryingFetcher initialized for '{self.name}': max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}"
        )

    async def fetch(self, job_id: JobId) -> Any:
        """Fetches ``job_id``, retrying retryable errors with backoff.

        Raises:
            MaxRetryError: If every attempt failed with a retryable error.
            Exception: Any non-retryable error, on the attempt it occurs.
        """
        current_backoff = self.initial_backoff_s
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                return await self.fetcher.fetch(job_id)
            except self.retryable_exceptions as e:
                last_exception = e
                if attempt >= self.max_retries:
                    break
                delay = max(current_backoff, getattr(e, "retry_after_s", 0.0) or 0.0)
                logger.warning(
                    f"Retryable error fetching {job_id} from {self.name} on attempt "
                    f"{attempt + 1}/{self.max_retries + 1}: {type(e).__name__}. Waiting {delay:.2f}s..."
                )
                self._dispatch_event(RetryScheduled(
                    fetcher=self.name,
                    job_id=job_id,
                    attempt_number=attempt + 1,
                    delay_seconds=delay,
                    error_type=type(e).__name__,
                ))
                await asyncio.sleep(delay)
                current_backoff *= self.backoff_factor

        logger.error(f"Max retries ({self.max_retries}) reached for {job_id}. Last error: {last_exception}")
        raise MaxRetryError(last_exception, self.max_retries, job_id=job_id)

    async def close(self) -> None:
        await self.fetcher.close()

    def _dispatch_event(self, event: DomainEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)
        else:
            logger.debug(f"EVENT: {event}")
