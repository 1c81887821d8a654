"""Domain Events emitted by the pipeline and its fetch adapters."""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""


EventHandler = Callable[[DomainEvent], None]

# --- Lifecycle ---

@dataclass
class PipelineStateChanged(DomainEvent):
    """Event triggered on every pipeline state transition."""
    previous: str
    current: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class KillSwitchFired(DomainEvent):
    """Event triggered the first time the kill switch fires."""
    reason: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

# --- Dispatch ---

@dataclass
class BatchDispatched(DomainEvent):
    """Event triggered when a batch is acquired and fan-out begins."""
    batch_number: int
    job_ids: List[str]
    queue_depth: int
    timestamp: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return len(self.job_ids)


@dataclass
class BatchCompleted(DomainEvent):
    """Event triggered once every Result of a batch has been emitted."""
    batch_number: int
    succeeded: int
    failed: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class FetchFailed(DomainEvent):
    """Event triggered when a single fetch raises."""
    job_id: str
    batch_number: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CooldownStarted(DomainEvent):
    """Event triggered when the dispatcher starts waiting out the quota window."""
    batch_number: int
    seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class JobsDropped(DomainEvent):
    """Event triggered when queued jobs are discarded at shutdown."""
    job_ids: List[str]
    reason: str
    timestamp: float = field(default_factory=time.time)

# --- Fetch resilience ---

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed fetch."""
    fetcher: str
    job_id: str
    attempt_number: int
    delay_seconds: float
    error_type: str = ""
    timestamp: float = field(default_factory=time.time)
