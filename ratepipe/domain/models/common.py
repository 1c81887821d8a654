"""Defines the Value Objects that flow through the pipeline.

Jobs go in, Results come out. Both are immutable once created.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, NewType, Optional, Union

# === Core Value Objects ===

JobId = NewType("JobId", str)  # Opaque identifier of one unit of work


def new_job_id() -> JobId:
    """Returns a fresh random identifier (UUID4)."""
    return JobId(str(uuid.uuid4()))


@dataclass(frozen=True)
class Job:
    """One unit of work to submit to the remote service."""
    job_id: JobId
    created_at: float = field(default_factory=time.time)


# A Batch is an ordered, non-empty slice of the queue; it is never persisted.
Batch = List[Job]

# === Outcomes ===

@dataclass(frozen=True)
class FetchSuccess:
    """Outcome of a fetch that returned a payload."""
    payload: Any


@dataclass(frozen=True)
class FetchFailure:
    """Outcome of a fetch that raised."""
    error_type: str
    error_message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FetchFailure":
        return cls(error_type=type(exc).__name__, error_message=str(exc))


Outcome = Union[FetchSuccess, FetchFailure]


@dataclass(frozen=True)
class Result:
    """The outcome of executing one Job, tagged with its identifier.

    ``batch_number`` and ``position`` record where the Job sat when it was
    dispatched, so consumers can check ordering without extra bookkeeping.
    """
    job_id: JobId
    outcome: Outcome
    batch_number: int = 0
    position: int = 0
    latency_ms: Optional[float] = None

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, FetchSuccess)

    @property
    def payload(self) -> Any:
        return self.outcome.payload if isinstance(self.outcome, FetchSuccess) else None

    @property
    def error(self) -> Optional[FetchFailure]:
        return self.outcome if isinstance(self.outcome, FetchFailure) else None


# === Flow control ===

class EnqueueStatus(str, Enum):
    """What happened to a Job handed to the bounded queue."""
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"  # kill switch fired, Job not inserted
    REJECTED = "rejected"    # queue full under the 'reject' overflow policy


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
