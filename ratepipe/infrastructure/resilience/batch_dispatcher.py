"""Rate-limited batch dispatcher.

Drains the bounded queue in batches of at most ``batch_size`` jobs, fetches
each batch concurrently, waits for the whole batch, emits the Results in the
batch's job order and then waits out ``cooldown`` before the next batch.
Request volume is therefore at most ``batch_size`` per cooldown window.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from ratepipe.domain.events.pipeline_events import (
    BatchCompleted,
    BatchDispatched,
    CooldownStarted,
    DomainEvent,
    EventHandler,
    FetchFailed,
    JobsDropped,
)
from ratepipe.domain.exceptions import ConfigurationError
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.domain.interfaces.result_sink import ResultSink
from ratepipe.domain.models.common import Batch, FetchFailure, FetchSuccess, Job, Result
from ratepipe.domain.models.pipeline import PipelineStats
from ratepipe.infrastructure.resilience.bounded_queue import BoundedQueue
from ratepipe.infrastructure.resilience.kill_switch import KillSwitch

logger = logging.getLogger(__name__)


def _log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


class BatchDispatcher:
    """Consumes the queue one batch per cooldown window."""

    def __init__(
        self,
        queue: BoundedQueue,
        fetcher: RemoteFetcher,
        sink: ResultSink,
        kill_switch: KillSwitch,
        batch_size: int,
        cooldown_ms: int,
        drain_on_stop: bool = True,
        stats: Optional[PipelineStats] = None,
        on_event: Optional[EventHandler] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the dispatcher.

        Args:
            queue: Source of pending jobs.
            fetcher: Remote fetch capability called once per job.
            sink: Receives Results in emission order.
            kill_switch: Shared cancellation token.
            batch_size: Maximum jobs per batch and maximum concurrent fetches.
            cooldown_ms: Pause between the end of one batch and the next acquire.
            drain_on_stop: When True, jobs still queued after the kill switch
                fires are dispatched; when False they are dropped and reported.
            stats: Counters shared with the owning pipeline.
            on_event: Receives domain events; defaults to DEBUG logging.
            clock: Monotonic time source.
        """
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
            raise ConfigurationError("batch_size", batch_size, "must be > 0")
        if isinstance(cooldown_ms, bool) or not isinstance(cooldown_ms, int) or cooldown_ms < 0:
            raise ConfigurationError("cooldown_ms", cooldown_ms, "must be >= 0")
        self.queue = queue
        self.fetcher = fetcher
        self.sink = sink
        self.kill_switch = kill_switch
        self.batch_size = batch_size
        self.cooldown_s = cooldown_ms / 1000.0
        self.drain_on_stop = drain_on_stop
        self.stats = stats if stats is not None else PipelineStats()
        self.dropped_jobs: List[Job] = []
        self._on_event = on_event or _log_event
        self._clock = clock
        self._batch_number = 0
        # Batch being fetched or emitted, and how many of its Results reached the sink.
        self._in_flight: Batch = []
        self._emitted = 0
        # Bounds in-flight fetches; a batch never exceeds batch_size anyway.
        self._semaphore = asyncio.Semaphore(batch_size)
        logger.info(
            f"BatchDispatcher initialized: batch_size={batch_size}, "
            f"cooldown={self.cooldown_s:.3f}s, drain_on_stop={drain_on_stop}"
        )

    async def run(self) -> None:
        """Acquire, fan out, join, emit, cool down; until stopped and drained."""
        logger.info("Dispatcher loop started.")
        while True:
            if self.kill_switch.is_fired() and not self.drain_on_stop:
                self._drop_remaining()
                break

            batch = await self.queue.dequeue_batch(self.batch_size)
            if not batch:
                # Only returned once the kill switch fired and the queue is empty.
                break

            await self.dispatch_batch(batch)

            if self.kill_switch.is_fired() and self.queue.is_empty():
                break
            await self._cool_down()

        logger.info(
            f"Dispatcher loop stopped after {self._batch_number} batches "
            f"({len(self.dropped_jobs)} jobs dropped)."
        )

    async def dispatch_batch(self, batch: Batch) -> List[Result]:
        """Fetches every job of ``batch`` concurrently and emits the Results in order.

        A failing fetch yields a failure-tagged Result; the batch always
        produces exactly one Result per job.
        """
        self._batch_number += 1
        batch_number = self._batch_number
        self._in_flight = list(batch)
        self._emitted = 0
        self.stats.batches_dispatched += 1
        self.stats.batch_sizes.append(len(batch))
        self.stats.batch_start_times.append(self._clock())
        self._dispatch_event(BatchDispatched(
            batch_number=batch_number,
            job_ids=[job.job_id for job in batch],
            queue_depth=self.queue.depth,
        ))
        logger.debug(f"Dispatching batch #{batch_number} with {len(batch)} jobs.")

        started = time.perf_counter()
        slots: List[Optional[Result]] = [None] * len(batch)
        await asyncio.gather(*(
            self._fetch_into(slots, position, job, batch_number)
            for position, job in enumerate(batch)
        ))
        latency_ms = (time.perf_counter() - started) * 1000

        results: List[Result] = [result for result in slots if result is not None]
        for result in results:
            await self.sink.emit(result)
            self._emitted += 1
            if result.ok:
                self.stats.results_succeeded += 1
            else:
                self.stats.results_failed += 1

        self._in_flight = []
        self._emitted = 0

        failed = sum(1 for result in results if not result.ok)
        self._dispatch_event(BatchCompleted(
            batch_number=batch_number,
            succeeded=len(results) - failed,
            failed=failed,
            latency_ms=latency_ms,
        ))
        logger.info(
            f"Batch #{batch_number} done: {len(results) - failed} ok, {failed} failed "
            f"in {latency_ms:.0f}ms."
        )
        return results

    async def _fetch_into(self, slots: List[Optional[Result]], position: int, job: Job, batch_number: int) -> None:
        async with self._semaphore:
            started = time.perf_counter()
            try:
                payload = await self.fetcher.fetch(job.job_id)
                outcome = FetchSuccess(payload=payload)
            except Exception as e:
                logger.warning(f"Fetch failed for job {job.job_id}: {type(e).__name__}: {e}")
                outcome = FetchFailure.from_exception(e)
                self._dispatch_event(FetchFailed(
                    job_id=job.job_id,
                    batch_number=batch_number,
                    error_type=outcome.error_type,
                    error_message=outcome.error_message,
                ))
            slots[position] = Result(
                job_id=job.job_id,
                outcome=outcome,
                batch_number=batch_number,
                position=position,
                latency_ms=(time.perf_counter() - started) * 1000,
            )

    async def _cool_down(self) -> None:
        if self.cooldown_s <= 0:
            await asyncio.sleep(0)
            return
        self._dispatch_event(CooldownStarted(batch_number=self._batch_number, seconds=self.cooldown_s))
        deadline = self._clock() + self.cooldown_s
        fired = await self.kill_switch.sleep(self.cooldown_s)
        if fired and self.drain_on_stop and not self.queue.is_empty():
            # Draining still counts against the remote quota.
            remaining = deadline - self._clock()
            if remaining > 0:
                logger.debug(f"Draining {self.queue.depth} jobs after {remaining:.3f}s of cooldown.")
                await asyncio.sleep(remaining)

    def drop_pending(self, reason: Optional[str] = None) -> List[Job]:
        """Drops every admitted job that has no Result yet.

        Covers the part of the current batch not yet emitted and everything
        still queued. Call it once the dispatcher loop has been cancelled or
        has failed; while the loop runs, those jobs are still owned by it.

        Returns:
            The jobs dropped by this call, in admission order.
        """
        unfinished = self._in_flight[self._emitted:]
        self._in_flight = []
        self._emitted = 0
        dropped = unfinished + self.queue.drain_nowait()
        if dropped:
            logger.warning(
                f"Dropping {len(dropped)} jobs without Results "
                f"({len(unfinished)} from batch #{self._batch_number}, {len(dropped) - len(unfinished)} queued)."
            )
            self._record_dropped(dropped, reason)
        return dropped

    def _drop_remaining(self) -> None:
        dropped = self.queue.drain_nowait()
        if not dropped:
            return
        logger.warning(f"Dropping {len(dropped)} queued jobs: kill switch fired and drain is disabled.")
        self._record_dropped(dropped, None)

    def _record_dropped(self, dropped: List[Job], reason: Optional[str]) -> None:
        self.dropped_jobs.extend(dropped)
        self.stats.jobs_dropped += len(dropped)
        self._dispatch_event(JobsDropped(
            job_ids=[job.job_id for job in dropped],
            reason=reason or self.kill_switch.reason or "kill switch fired",
        ))

    def _dispatch_event(self, event: DomainEvent) -> None:
        try:
            self._on_event(event)
        except Exception as e:
            logger.error(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)
