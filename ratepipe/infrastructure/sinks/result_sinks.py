"""Concrete Result sinks.

None of these adds a hidden buffering limit. ChannelSink is the only one
that can push back on the dispatcher, and only through its explicit
``capacity``.
"""

import asyncio
import inspect
import logging
from typing import Any, AsyncIterator, Callable, List, Optional, Sequence

from ratepipe.domain.interfaces.result_sink import ResultSink
from ratepipe.domain.models.common import Result

logger = logging.getLogger(__name__)


class CollectingSink(ResultSink):
    """Accumulates every Result in memory, in emission order."""

    def __init__(self) -> None:
        self.results: List[Result] = []
        self.closed = False

    async def emit(self, result: Result) -> None:
        self.results.append(result)

    async def close(self) -> None:
        self.closed = True

    @property
    def job_ids(self) -> List[str]:
        return [result.job_id for result in self.results]

    def __len__(self) -> int:
        return len(self.results)


class CallbackSink(ResultSink):
    """Hands each Result to a callable, awaiting it if it is a coroutine function."""

    def __init__(self, callback: Callable[[Result], Any]):
        self._callback = callback

    async def emit(self, result: Result) -> None:
        outcome = self._callback(result)
        if inspect.isawaitable(outcome):
            await outcome


class ChannelSink(ResultSink):
    """Exposes Results as an async stream backed by an ``asyncio.Queue``.

    ``capacity`` is the only buffering limit: when set, a slow consumer
    blocks ``emit`` and therefore the dispatcher. ``None`` means unbounded.
    """

    _CLOSED = object()

    def __init__(self, capacity: Optional[int] = None):
        if capacity is not None and capacity <= 0:
            raise ValueError("capacity must be > 0 or None for unbounded")
        self.capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity or 0)
        self._closed = False

    async def emit(self, result: Result) -> None:
        if self._closed:
            raise RuntimeError("Cannot emit to a closed ChannelSink")
        await self._queue.put(result)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug(f"ChannelSink closing with {self._queue.qsize()} undelivered results.")
        await self._queue.put(self._CLOSED)

    async def receive(self) -> Optional[Result]:
        """Returns the next Result, or None once the channel is closed and empty."""
        item = await self._queue.get()
        if item is self._CLOSED:
            # Leave the marker for any other reader.
            self._queue.put_nowait(self._CLOSED)
            return None
        return item

    def __aiter__(self) -> AsyncIterator[Result]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Result]:
        while True:
            result = await self.receive()
            if result is None:
                return
            yield result


class FanOutSink(ResultSink):
    """Forwards every Result to several sinks, in the order given."""

    def __init__(self, sinks: Sequence[ResultSink]):
        self.sinks = list(sinks)

    async def emit(self, result: Result) -> None:
        for sink in self.sinks:
            await sink.emit(result)

    async def close(self) -> None:
        for sink in self.sinks:
            await sink.close()
