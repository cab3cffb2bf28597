from patchrun.src.models.step import (
    StepKind,
    StepStatus,
    FailureReason,
    PipelineState,
    StepConfig,
    PipelineConfig,
    StepResult,
    ExecutionResult,
    PipelineResult,
)

__all__ = [
    "StepKind",
    "StepStatus",
    "FailureReason",
    "PipelineState",
    "StepConfig",
    "PipelineConfig",
    "StepResult",
    "ExecutionResult",
    "PipelineResult",
]
