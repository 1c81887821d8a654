import asyncio
import time
from typing import Dict, List, Optional

import pytest
from typer.testing import CliRunner

from ratepipe import main
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.domain.models.common import Job, JobId
from ratepipe.infrastructure.config.settings import clear_test_config
from ratepipe.infrastructure.resilience.kill_switch import KillSwitch


class ScriptedFetcher(RemoteFetcher):
    """RemoteFetcher double with per-job latency and failures.

    Records call order, start times, completion order and the peak number
    of concurrent calls.
    """

    name = "scripted"

    def __init__(
        self,
        delays: Optional[Dict[str, float]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        default_delay: float = 0.0,
    ):
        self.delays = delays or {}
        self.failures = failures or {}
        self.default_delay = default_delay
        self.calls: List[str] = []
        self.call_times: List[float] = []
        self.completed: List[str] = []
        self.completion_times: List[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch(self, job_id: JobId):
        self.calls.append(job_id)
        self.call_times.append(time.monotonic())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(job_id, self.default_delay))
            if job_id in self.failures:
                raise self.failures[job_id]
            return {"job_id": job_id}
        finally:
            self.in_flight -= 1
            self.completed.append(job_id)
            self.completion_times.append(time.monotonic())

    async def close(self) -> None:
        self.closed = True


def make_jobs(count: int, prefix: str = "job") -> List[Job]:
    return [Job(job_id=JobId(f"{prefix}-{index}")) for index in range(count)]


@pytest.fixture
def scripted_fetcher():
    """A ScriptedFetcher with no latency and no failures."""
    return ScriptedFetcher()


@pytest.fixture
def kill_switch():
    return KillSwitch()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_configuration():
    """Clears test config overrides and the cached CLI container around each test."""
    clear_test_config()
    main.reset_dependencies()
    yield
    clear_test_config()
    main.reset_dependencies()
