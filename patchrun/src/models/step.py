"""
Step and pipeline models.
"""

from pydantic import BaseModel, ConfigDict, model_validator
from typing import List, Optional, Tuple
from datetime import datetime
from enum import Enum
from pathlib import Path

class StepKind(str, Enum):
    VALIDATE = "validate"
    MUTATE = "mutate"
    EXECUTE = "execute"
    RESTORE = "restore"

class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class FailureReason(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_WORKING_DIRECTORY = "invalid_working_directory"
    NON_ZERO_EXIT = "non_zero_exit"
    TIMED_OUT = "timed_out"
    LAUNCH_FAILED = "launch_failed"

class PipelineState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    MUTATING = "mutating"
    EXECUTING = "executing"
    RESTORING = "restoring"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

# Phase entered when a step of the given kind starts
KIND_TO_STATE = {
    StepKind.VALIDATE: PipelineState.VALIDATING,
    StepKind.MUTATE: PipelineState.MUTATING,
    StepKind.EXECUTE: PipelineState.EXECUTING,
    StepKind.RESTORE: PipelineState.RESTORING,
}

class StepConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    program: str
    args: Tuple[str, ...] = ()
    cwd: Path
    kind: StepKind = StepKind.EXECUTE
    must_run: bool = False
    timeout: Optional[float] = None

    @property
    def command(self) -> List[str]:
        return [self.program, *self.args]

class PipelineConfig(BaseModel):
    """
    An ordered list of steps whose last step is the must-run restore step.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    steps: Tuple[StepConfig, ...]

    @model_validator(mode="after")
    def check_steps(self) -> "PipelineConfig":
        if not self.steps:
            raise ValueError(f"Pipeline '{self.name}' must have at least one step")

        seen = set()
        for step in self.steps:
            if step.name in seen:
                raise ValueError(
                    f"Pipeline '{self.name}' has duplicate step name '{step.name}'"
                )
            seen.add(step.name)

        must_run = [step.name for step in self.steps if step.must_run]
        if len(must_run) != 1:
            raise ValueError(
                f"Pipeline '{self.name}' must have exactly one must-run step, "
                f"found {len(must_run)}"
            )
        if not self.steps[-1].must_run:
            raise ValueError(
                f"Pipeline '{self.name}' must-run step '{must_run[0]}' must be the last step"
            )
        return self

    @property
    def body(self) -> Tuple[StepConfig, ...]:
        return self.steps[:-1]

    @property
    def restore_step(self) -> StepConfig:
        return self.steps[-1]

class StepResult(BaseModel):
    step_order: int
    name: str
    status: StepStatus
    exit_code: Optional[int] = None
    reason: Optional[FailureReason] = None
    error_type: Optional[str] = None
    error: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == StepStatus.SUCCEEDED

    @property
    def diagnostics(self) -> str:
        """Best available output for explaining a failure."""
        for text in (self.stderr, self.stdout, self.error):
            if text and text.strip():
                return text.strip()
        return ""

# Outcome of running one command
ExecutionResult = StepResult

class PipelineResult(BaseModel):
    pipeline: str
    results: List[StepResult] = []
    restore: Optional[StepResult] = None
    state: PipelineState = PipelineState.IDLE
    warnings: List[str] = []

    @property
    def failed_step(self) -> Optional[StepResult]:
        for result in self.results:
            if not result.success:
                return result
        return None

    @property
    def success(self) -> bool:
        return self.failed_step is None

    @property
    def restore_failed(self) -> bool:
        return self.restore is not None and not self.restore.success

    @property
    def exit_code(self) -> int:
        failed = self.failed_step
        if failed is None:
            return 0
        # Signals show up as negative codes and can't be propagated as-is
        if failed.reason == FailureReason.NON_ZERO_EXIT and failed.exit_code is not None and 0 < failed.exit_code < 256:
            return failed.exit_code
        return 1
