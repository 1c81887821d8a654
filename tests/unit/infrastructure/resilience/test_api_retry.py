import pytest

from ratepipe.domain.events.pipeline_events import RetryScheduled
from ratepipe.domain.exceptions import MaxRetryError, RateLimitExceededError, TransientFetchError
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.infrastructure.monitoring.event_recorder import EventRecorder
from ratepipe.infrastructure.resilience.api_retry import RetryingFetcher


class FlakyFetcher(RemoteFetcher):
    name = "flaky"

    def __init__(self, errors):
        self.errors = list(errors)
        self.attempts = 0
        self.closed = False

    async def fetch(self, job_id):
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return {"job_id": job_id, "attempt": self.attempts}

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_retries_transient_errors_until_success():
    inner = FlakyFetcher([TransientFetchError("502"), RateLimitExceededError("429")])
    recorder = EventRecorder()
    fetcher = RetryingFetcher(inner, max_retries=3, initial_backoff_s=0.0, on_event=recorder)

    payload = await fetcher.fetch("job-1")

    assert payload == {"job_id": "job-1", "attempt": 3}
    retries = recorder.of_type(RetryScheduled)
    assert [event.attempt_number for event in retries] == [1, 2]
    assert [event.error_type for event in retries] == ["TransientFetchError", "RateLimitExceededError"]
    assert retries[0].fetcher == "flaky"


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately():
    inner = FlakyFetcher([ValueError("bad symbol")])
    fetcher = RetryingFetcher(inner, max_retries=3, initial_backoff_s=0.0)

    with pytest.raises(ValueError, match="bad symbol"):
        await fetcher.fetch("job-1")
    assert inner.attempts == 1


@pytest.mark.asyncio
async def test_exhausted_retries_raise_max_retry_error():
    inner = FlakyFetcher([TransientFetchError("502")] * 5)
    fetcher = RetryingFetcher(inner, max_retries=2, initial_backoff_s=0.0)

    with pytest.raises(MaxRetryError) as excinfo:
        await fetcher.fetch("job-9")

    assert inner.attempts == 3
    assert excinfo.value.attempts == 2
    assert excinfo.value.job_id == "job-9"
    assert isinstance(excinfo.value.original_exception, TransientFetchError)


@pytest.mark.asyncio
async def test_backoff_grows_and_respects_retry_after(mocker):
    sleep = mocker.patch("ratepipe.infrastructure.resilience.api_retry.asyncio.sleep", new=mocker.AsyncMock())
    inner = FlakyFetcher([
        TransientFetchError("502"),
        TransientFetchError("502"),
        RateLimitExceededError("429", retry_after_s=10.0),
    ])
    fetcher = RetryingFetcher(inner, max_retries=3, initial_backoff_s=1.0, backoff_factor=2.0)

    await fetcher.fetch("job-1")

    assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0, 10.0]


@pytest.mark.asyncio
async def test_close_is_forwarded():
    inner = FlakyFetcher([])
    await RetryingFetcher(inner).close()
    assert inner.closed is True


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        RetryingFetcher(FlakyFetcher([]), max_retries=-1)
