"""Pipeline configuration and run statistics.

PipelineConfig is validated on construction: an invalid quota rejects
pipeline startup rather than surfacing later as a stall.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from ratepipe.domain.exceptions import ConfigurationError

# Binance-style defaults: 5 requests, then a 5 second window.
DEFAULT_BATCH_SIZE = 5
DEFAULT_COOLDOWN_MS = 5000
DEFAULT_QUEUE_CAPACITY = 100
DEFAULT_PRODUCTION_INTERVAL_MS = 0


class OverflowPolicy:
    """How enqueue behaves when the queue is at capacity."""
    BLOCK = "block"
    REJECT = "reject"

    ALL = (BLOCK, REJECT)


@dataclass(frozen=True)
class PipelineConfig:
    """Static quota and buffering parameters of a pipeline."""
    batch_size: int = DEFAULT_BATCH_SIZE
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    production_interval_ms: int = DEFAULT_PRODUCTION_INTERVAL_MS
    overflow_policy: str = OverflowPolicy.BLOCK
    drain_on_stop: bool = True

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raises ConfigurationError for the first invalid option found."""
        _require_int("batch_size", self.batch_size, minimum=1)
        _require_int("cooldown_ms", self.cooldown_ms, minimum=0)
        _require_int("queue_capacity", self.queue_capacity, minimum=1)
        _require_int("production_interval_ms", self.production_interval_ms, minimum=0)
        if self.overflow_policy not in OverflowPolicy.ALL:
            raise ConfigurationError(
                "overflow_policy", self.overflow_policy, f"must be one of {OverflowPolicy.ALL}"
            )

    @property
    def cooldown_s(self) -> float:
        return self.cooldown_ms / 1000.0

    @property
    def production_interval_s(self) -> float:
        return self.production_interval_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _require_int(option: str, value: Any, minimum: int) -> None:
    # bool is an int subclass; True must not pass as batch_size=1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(option, value, "must be an integer")
    if value < minimum:
        comparison = "> 0" if minimum == 1 else f">= {minimum}"
        raise ConfigurationError(option, value, f"must be {comparison}")


@dataclass
class PipelineStats:
    """Counters collected over one pipeline run."""
    jobs_produced: int = 0
    jobs_rejected: int = 0
    batches_dispatched: int = 0
    results_succeeded: int = 0
    results_failed: int = 0
    jobs_dropped: int = 0
    batch_sizes: List[int] = field(default_factory=list)
    batch_start_times: List[float] = field(default_factory=list)  # time.monotonic()

    @property
    def results_total(self) -> int:
        return self.results_succeeded + self.results_failed

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["results_total"] = self.results_total
        return data
