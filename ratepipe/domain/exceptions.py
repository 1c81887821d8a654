"""Exception hierarchy for the admission pipeline.

Fetch errors are raised by fetch adapters and never escape the dispatcher:
they are turned into failure-tagged Results. Configuration and state errors
are fatal to the caller.
"""

from typing import Optional


class RatePipeError(Exception):
    """Base class for all ratepipe errors."""


class ConfigurationError(RatePipeError):
    """Raised when pipeline options are invalid (e.g., batch_size <= 0)."""

    def __init__(self, option: str, value: object, reason: str):
        self.option = option
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for '{option}': {value!r} ({reason})")


class PipelineStateError(RatePipeError):
    """Raised on an illegal pipeline lifecycle transition."""


class FetchError(RatePipeError):
    """Base class for errors raised by a remote fetch."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        self.job_id = job_id
        super().__init__(message)


class TransientFetchError(FetchError):
    """A fetch failure worth retrying (timeouts, 5xx-style errors)."""


class RateLimitExceededError(FetchError):
    """The remote service rejected a request because its quota was exceeded."""

    def __init__(self, message: str, job_id: Optional[str] = None, retry_after_s: float = 0.0):
        self.retry_after_s = retry_after_s
        super().__init__(message, job_id=job_id)


class MaxRetryError(FetchError):
    """Exception raised when max retries are exceeded."""

    def __init__(self, original_exception: Exception, attempts: int, job_id: Optional[str] = None):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(
            f"Max retries ({attempts}) exceeded. Last error: {original_exception}",
            job_id=job_id,
        )


class UnsupportedExchangeError(RatePipeError):
    """Raised when no fetch adapter exists for the requested exchange."""

    def __init__(self, exchange: str):
        self.exchange = exchange
        super().__init__(f"Unsupported exchange: {exchange!r}")
