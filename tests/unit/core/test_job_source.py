import asyncio
import uuid

import pytest

from ratepipe.core.services.job_source import JobSource, uuid_ids
from ratepipe.domain.models.pipeline import OverflowPolicy
from ratepipe.infrastructure.resilience.bounded_queue import BoundedQueue


def test_uuid_ids_are_unique_uuid4_strings():
    ids = uuid_ids()
    first, second = next(ids), next(ids)
    assert first != second
    assert uuid.UUID(first).version == 4


@pytest.mark.asyncio
async def test_publishes_finite_source_in_order(kill_switch):
    queue = BoundedQueue(10, kill_switch)
    source = JobSource(queue, kill_switch, id_source=["a", "b", "c"])

    produced = await asyncio.wait_for(source.run(), timeout=1.0)

    assert produced == 3
    assert source.exhausted is True
    assert [job.job_id for job in await queue.dequeue_batch(10)] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_stops_after_max_jobs(kill_switch):
    queue = BoundedQueue(10, kill_switch)
    source = JobSource(queue, kill_switch, max_jobs=4)

    assert await asyncio.wait_for(source.run(), timeout=1.0) == 4
    assert queue.depth == 4
    assert source.exhausted is True


@pytest.mark.asyncio
async def test_fired_switch_prevents_any_production(kill_switch):
    queue = BoundedQueue(10, kill_switch)
    kill_switch.fire()
    source = JobSource(queue, kill_switch)

    assert await source.run() == 0
    assert queue.is_empty()
    assert source.exhausted is False


@pytest.mark.asyncio
async def test_backpressure_holds_source_until_kill(kill_switch):
    queue = BoundedQueue(3, kill_switch)
    source = JobSource(queue, kill_switch)

    task = asyncio.create_task(source.run())
    await asyncio.sleep(0.05)
    assert not task.done()
    assert queue.depth == 3

    kill_switch.fire()
    assert await asyncio.wait_for(task, timeout=1.0) == 3
    assert queue.depth == 3


@pytest.mark.asyncio
async def test_rejected_jobs_are_counted_not_queued(kill_switch):
    queue = BoundedQueue(2, kill_switch, overflow_policy=OverflowPolicy.REJECT)
    source = JobSource(queue, kill_switch, id_source=["a", "b", "c", "d"])

    await source.run()

    assert source.produced == 2
    assert source.rejected == 2
    assert [job.job_id for job in await queue.dequeue_batch(5)] == ["a", "b"]


@pytest.mark.asyncio
async def test_production_interval_paces_enqueues(kill_switch):
    queue = BoundedQueue(10, kill_switch)
    source = JobSource(queue, kill_switch, production_interval_ms=30)

    task = asyncio.create_task(source.run())
    await asyncio.sleep(0.1)
    kill_switch.fire()
    produced = await asyncio.wait_for(task, timeout=1.0)

    assert 2 <= produced <= 5
