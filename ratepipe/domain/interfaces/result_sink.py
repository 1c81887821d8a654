"""Interface for the consumer of pipeline Results.

The dispatcher emits Results in batch order; a sink must not impose an
implicit buffering limit of its own. Sinks that can apply backpressure must
say so through an explicit capacity.
"""

import abc

from ratepipe.domain.models.common import Result


class ResultSink(abc.ABC):
    """Abstract Base Class for Result consumers."""

    @abc.abstractmethod
    async def emit(self, result: Result) -> None:
        """Accepts the next Result in emission order.

        Args:
            result: The Result to hand downstream.
        """
        pass

    async def close(self) -> None:
        """Signals that no further Results will be emitted."""
        pass
