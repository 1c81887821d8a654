"""Domain Event definitions.

Represents significant occurrences in the pipeline (batches, failures,
state changes) that monitoring code may react to.
"""

from ratepipe.domain.events.pipeline_events import (
    DomainEvent,
    EventHandler,
    PipelineStateChanged,
    KillSwitchFired,
    BatchDispatched,
    BatchCompleted,
    FetchFailed,
    CooldownStarted,
    JobsDropped,
    RetryScheduled,
)

__all__ = [
    "DomainEvent",
    "EventHandler",
    "PipelineStateChanged",
    "KillSwitchFired",
    "BatchDispatched",
    "BatchCompleted",
    "FetchFailed",
    "CooldownStarted",
    "JobsDropped",
    "RetryScheduled",
]
