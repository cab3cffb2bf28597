from patchrun.src.services.executor import run_command, execute_step
from patchrun.src.services.sequencer import execute_pipeline, WorkingTreeTransaction
from patchrun.src.services.catalog import build_catalog, get_pipeline, describe_pipeline
from patchrun.src.services.errors import (
    PatchRunError,
    PipelineConfigError,
    UnknownPipelineError,
    ExecutionFailure,
    ValidationFailure,
    RestoreFailure,
)

__all__ = [
    "run_command",
    "execute_step",
    "execute_pipeline",
    "WorkingTreeTransaction",
    "build_catalog",
    "get_pipeline",
    "describe_pipeline",
    "PatchRunError",
    "PipelineConfigError",
    "UnknownPipelineError",
    "ExecutionFailure",
    "ValidationFailure",
    "RestoreFailure",
]
