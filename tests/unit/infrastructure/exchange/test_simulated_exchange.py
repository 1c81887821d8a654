import pytest

from ratepipe.domain.exceptions import RateLimitExceededError, TransientFetchError, UnsupportedExchangeError
from ratepipe.infrastructure.exchange.factory import make_fetcher
from ratepipe.infrastructure.exchange.simulated_exchange import SimulatedExchangeClient
from ratepipe.infrastructure.resilience.api_retry import RetryingFetcher
from ratepipe.infrastructure.resilience.rate_limiter import SlidingWindowQuota


@pytest.mark.asyncio
async def test_fetch_returns_trade_payload():
    client = SimulatedExchangeClient(latency_ms=0, seed=1)

    payload = await client.fetch("job-1")

    assert payload["job_id"] == "job-1"
    assert isinstance(payload["trades"], list)
    assert "fetched_at" in payload
    assert client.requests_made == 1


@pytest.mark.asyncio
async def test_failure_rate_one_always_fails():
    client = SimulatedExchangeClient(latency_ms=0, failure_rate=1.0)

    with pytest.raises(TransientFetchError) as exc_info:
        await client.fetch("job-1")
    assert exc_info.value.job_id == "job-1"


@pytest.mark.asyncio
async def test_quota_rejects_requests_beyond_limit():
    client = SimulatedExchangeClient(latency_ms=0, quota=SlidingWindowQuota(max_requests=2, window_seconds=60.0))

    await client.fetch("a")
    await client.fetch("b")
    with pytest.raises(RateLimitExceededError) as exc_info:
        await client.fetch("c")

    assert exc_info.value.retry_after_s > 0
    assert client.quota.rejected == 1


@pytest.mark.asyncio
async def test_same_seed_gives_same_trades():
    first = await SimulatedExchangeClient(latency_ms=0, seed=42).fetch("a")
    second = await SimulatedExchangeClient(latency_ms=0, seed=42).fetch("a")
    assert first["trades"] == second["trades"]


@pytest.mark.parametrize("kwargs", [{"latency_ms": -1}, {"failure_rate": 1.5}])
def test_invalid_client_options(kwargs):
    with pytest.raises(ValueError):
        SimulatedExchangeClient(**kwargs)


def test_make_fetcher_unsupported_exchange():
    with pytest.raises(UnsupportedExchangeError) as exc_info:
        make_fetcher(exchange="binance")
    assert exc_info.value.exchange == "binance"


def test_make_fetcher_wraps_with_retries_and_quota():
    fetcher = make_fetcher(latency_ms=0, quota_requests=5, quota_window_s=5.0, max_retries=2)

    assert isinstance(fetcher, RetryingFetcher)
    assert fetcher.max_retries == 2
    assert isinstance(fetcher.fetcher, SimulatedExchangeClient)
    assert fetcher.fetcher.quota.max_requests == 5


def test_make_fetcher_plain_client_by_default():
    fetcher = make_fetcher(exchange="Simulated", latency_ms=0, unknown_option=1)
    assert isinstance(fetcher, SimulatedExchangeClient)
    assert fetcher.quota is None
