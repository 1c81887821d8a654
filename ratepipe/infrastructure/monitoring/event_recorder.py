"""Records domain events for logging and run summaries."""

import logging
from collections import Counter
from typing import List, Optional, Type, TypeVar

from ratepipe.domain.events.pipeline_events import DomainEvent

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=DomainEvent)


class EventRecorder:
    """Event handler that logs each event and keeps them for inspection.

    Pass the instance itself as ``on_event``.
    """

    def __init__(self, keep_events: bool = True, max_events: Optional[int] = 10_000):
        self.keep_events = keep_events
        self.max_events = max_events
        self.events: List[DomainEvent] = []
        self.counts: Counter = Counter()

    def __call__(self, event: DomainEvent) -> None:
        name = type(event).__name__
        self.counts[name] += 1
        logger.debug(f"EVENT: {event}")
        if self.keep_events and (self.max_events is None or len(self.events) < self.max_events):
            self.events.append(event)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [event for event in self.events if isinstance(event, event_type)]

    def count(self, event_type: Type[DomainEvent]) -> int:
        return self.counts[event_type.__name__]
