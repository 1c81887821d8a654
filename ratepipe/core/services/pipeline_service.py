"""Request pipeline: owns the queue, source, dispatcher and kill switch.

Everything is constructed once per pipeline and passed by reference into
the two long-running tasks; there is no module-level state. The lifecycle
is IDLE -> RUNNING -> DRAINING -> STOPPED.
"""

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from ratepipe.core.services.job_source import JobSource
from ratepipe.domain.events.pipeline_events import (
    DomainEvent,
    EventHandler,
    KillSwitchFired,
    PipelineStateChanged,
)
from ratepipe.domain.exceptions import PipelineStateError
from ratepipe.domain.interfaces.fetcher import RemoteFetcher
from ratepipe.domain.interfaces.result_sink import ResultSink
from ratepipe.domain.models.common import Job, PipelineState
from ratepipe.domain.models.pipeline import PipelineConfig, PipelineStats
from ratepipe.infrastructure.resilience.batch_dispatcher import BatchDispatcher
from ratepipe.infrastructure.resilience.bounded_queue import BoundedQueue
from ratepipe.infrastructure.resilience.kill_switch import KillSwitch

logger = logging.getLogger(__name__)

SOURCE_EXHAUSTED = "source exhausted"

_TRANSITIONS: Dict[PipelineState, FrozenSet[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.RUNNING, PipelineState.STOPPED}),
    PipelineState.RUNNING: frozenset({PipelineState.DRAINING, PipelineState.STOPPED}),
    PipelineState.DRAINING: frozenset({PipelineState.STOPPED}),
    PipelineState.STOPPED: frozenset(),
}


class RequestPipeline:
    """Rate-limited admission pipeline with an explicit start/stop lifecycle."""

    def __init__(
        self,
        config: PipelineConfig,
        fetcher: RemoteFetcher,
        sink: ResultSink,
        id_source: Optional[Iterable[str]] = None,
        kill_switch: Optional[KillSwitch] = None,
        on_event: Optional[EventHandler] = None,
        max_jobs: Optional[int] = None,
    ):
        """Builds the pipeline components.

        Args:
            config: Quota and buffering parameters; validated here.
            fetcher: Remote fetch capability.
            sink: Receives Results in batch order; closed when the pipeline stops.
            id_source: Job identifiers; endless UUID4s when None. When a
                finite source runs out, the pipeline drains and stops.
            kill_switch: Shared cancellation token; a new one when None.
            on_event: Receives domain events from every component.
            max_jobs: Stop producing after this many accepted jobs.

        Raises:
            ConfigurationError: If ``config`` is invalid.
        """
        config.validate()
        self.config = config
        self.fetcher = fetcher
        self.sink = sink
        self.kill_switch = kill_switch or KillSwitch()
        self._on_event = on_event
        self._stats = PipelineStats()
        self._state = PipelineState.IDLE
        self._source_task: Optional[asyncio.Task] = None
        self._dispatcher_task: Optional[asyncio.Task] = None
        self._forced = False
        self._finish_task: Optional[asyncio.Task] = None

        self.queue = BoundedQueue(
            capacity=config.queue_capacity,
            kill_switch=self.kill_switch,
            overflow_policy=config.overflow_policy,
        )
        self.source = JobSource(
            queue=self.queue,
            kill_switch=self.kill_switch,
            id_source=id_source,
            production_interval_ms=config.production_interval_ms,
            max_jobs=max_jobs,
        )
        self.dispatcher = BatchDispatcher(
            queue=self.queue,
            fetcher=fetcher,
            sink=sink,
            kill_switch=self.kill_switch,
            batch_size=config.batch_size,
            cooldown_ms=config.cooldown_ms,
            drain_on_stop=config.drain_on_stop,
            stats=self._stats,
            on_event=self._dispatch_event,
        )
        self.kill_switch.add_listener(self._on_kill)
        logger.info(f"RequestPipeline initialized: {config}")

    # --- Observation ---

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def stats(self) -> PipelineStats:
        self._stats.jobs_produced = self.source.produced
        self._stats.jobs_rejected = self.source.rejected
        return self._stats

    @property
    def dropped_jobs(self) -> List[Job]:
        """Jobs discarded at shutdown when draining is disabled."""
        return list(self.dispatcher.dropped_jobs)

    # --- Lifecycle ---

    async def start(self) -> None:
        """Spawns the source and dispatcher tasks.

        Raises:
            PipelineStateError: If the pipeline was already started.
        """
        if self._state != PipelineState.IDLE:
            raise PipelineStateError(f"Cannot start a pipeline in state '{self._state.value}'")
        self._set_state(PipelineState.RUNNING)
        self._source_task = asyncio.create_task(self._run_source(), name="ratepipe-source")
        self._dispatcher_task = asyncio.create_task(self._run_dispatcher(), name="ratepipe-dispatcher")
        if self.kill_switch.is_fired():
            self._set_state(PipelineState.DRAINING)

    def kill(self, reason: str = "kill requested") -> bool:
        """Fires the kill switch. Returns False if it had already fired."""
        return self.kill_switch.fire(reason)

    async def wait(self) -> PipelineStats:
        """Waits for both tasks to finish, then closes the sink.

        Returns:
            The run's statistics.

        Raises:
            PipelineStateError: If the pipeline was never started.
            Exception: The first error raised by the source or dispatcher.
        """
        if self._source_task is None or self._dispatcher_task is None:
            if self._state == PipelineState.STOPPED:
                return self.stats
            raise PipelineStateError("Pipeline has not been started")

        outcomes = await asyncio.gather(self._source_task, self._dispatcher_task, return_exceptions=True)
        await self._finish()

        for outcome in outcomes:
            if isinstance(outcome, asyncio.CancelledError) and self._forced:
                continue
            if isinstance(outcome, BaseException):
                raise outcome
        return self.stats

    async def stop(self, timeout: Optional[float] = None, reason: str = "stop requested") -> PipelineStats:
        """Fires the kill switch and waits for in-flight work to finish.

        Args:
            timeout: Seconds to wait for a graceful drain before the tasks
                are cancelled. Waits indefinitely when None.
            reason: Recorded on the kill switch.
        """
        if self._state == PipelineState.IDLE:
            self.kill(reason)
            await self._finish()
            return self.stats
        self.kill(reason)
        if timeout is not None and self._state != PipelineState.STOPPED:
            tasks = {self._source_task, self._dispatcher_task}
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.error(f"Pipeline did not drain within {timeout}s; cancelling {len(pending)} task(s).")
                self._forced = True
                for task in pending:
                    task.cancel()
                await asyncio.wait(pending)
                self.dispatcher.drop_pending(f"stop timed out after {timeout}s")
        return await self.wait()

    async def run(self, duration: Optional[float] = None) -> PipelineStats:
        """Starts the pipeline and waits for it to stop.

        Args:
            duration: Fire the kill switch after this many seconds. When
                None the run ends only when the source is exhausted or the
                switch is fired elsewhere.
        """
        await self.start()
        timer: Optional[asyncio.Task] = None
        if duration is not None:
            timer = asyncio.create_task(self._kill_after(duration))
        try:
            return await self.wait()
        finally:
            if timer is not None:
                timer.cancel()

    async def __aenter__(self) -> "RequestPipeline":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.kill(f"context exited with {exc_type.__name__}")
        await self.stop()

    # --- Internals ---

    async def _run_source(self) -> None:
        try:
            await self.source.run()
        except Exception as e:
            logger.error(f"Job source failed: {e}", exc_info=True)
            self.kill("job source failed")
            raise
        if self.source.exhausted:
            self.kill(SOURCE_EXHAUSTED)

    async def _run_dispatcher(self) -> None:
        try:
            await self.dispatcher.run()
        except Exception as e:
            logger.error(f"Dispatcher failed: {e}", exc_info=True)
            self.kill("dispatcher failed")
            self.dispatcher.drop_pending("dispatcher failed")
            raise

    async def _finish(self) -> None:
        """Closes the sink and enters STOPPED exactly once, however many callers wait."""
        if self._finish_task is None:
            self._finish_task = asyncio.ensure_future(self._close_and_stop())
        await self._finish_task

    async def _close_and_stop(self) -> None:
        await self.sink.close()
        self._set_state(PipelineState.STOPPED)
        stats = self.stats
        logger.info(
            f"Pipeline stopped: {stats.jobs_produced} jobs produced, "
            f"{stats.batches_dispatched} batches, {stats.results_total} results "
            f"({stats.results_failed} failed), {stats.jobs_dropped} dropped."
        )

    async def _kill_after(self, duration: float) -> None:
        if not await self.kill_switch.sleep(duration):
            self.kill("duration elapsed")

    def _on_kill(self, reason: Optional[str]) -> None:
        self._dispatch_event(KillSwitchFired(reason=reason))
        if self._state == PipelineState.RUNNING:
            self._set_state(PipelineState.DRAINING)

    def _set_state(self, new_state: PipelineState) -> None:
        if new_state == self._state:
            return
        if new_state not in _TRANSITIONS[self._state]:
            raise PipelineStateError(
                f"Illegal transition {self._state.value} -> {new_state.value}"
            )
        previous, self._state = self._state, new_state
        logger.info(f"Pipeline state: {previous.value} -> {new_state.value}")
        self._dispatch_event(PipelineStateChanged(previous=previous.value, current=new_state.value))

    def _dispatch_event(self, event: DomainEvent) -> None:
        if self._on_event is None:
            logger.debug(f"EVENT: {event}")
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.error(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)
