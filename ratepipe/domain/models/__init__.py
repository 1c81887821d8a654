"""Domain models: jobs, results and pipeline configuration."""

from ratepipe.domain.models.common import (
    JobId,
    Job,
    Batch,
    FetchSuccess,
    FetchFailure,
    Outcome,
    Result,
    EnqueueStatus,
    PipelineState,
)
from ratepipe.domain.models.pipeline import (
    PipelineConfig,
    PipelineStats,
    OverflowPolicy,
)

__all__ = [
    "JobId",
    "Job",
    "Batch",
    "FetchSuccess",
    "FetchFailure",
    "Outcome",
    "Result",
    "EnqueueStatus",
    "PipelineState",
    "PipelineConfig",
    "PipelineStats",
    "OverflowPolicy",
]
