"""
Pipeline sequencer - runs steps in order and always restores the working tree.
"""

import logging
from typing import Callable, Optional

from patchrun.src.models.step import (
    KIND_TO_STATE,
    PipelineConfig,
    PipelineResult,
    PipelineState,
    StepConfig,
    StepKind,
    StepResult,
)
from patchrun.src.services.errors import ExecutionFailure, RestoreFailure, ValidationFailure
from patchrun.src.services.executor import execute_step

logger = logging.getLogger(__name__)

StepExecutor = Callable[[StepConfig, int], StepResult]

def failure_type(step: StepConfig) -> type:
    """Error class reported when the given step fails."""
    if step.must_run:
        return RestoreFailure
    if step.kind == StepKind.VALIDATE:
        return ValidationFailure
    return ExecutionFailure

def _classify(step: StepConfig, result: StepResult) -> StepResult:
    if result.success:
        return result
    return result.model_copy(update={"error_type": failure_type(step).__name__})

class WorkingTreeTransaction:
    """
    Context manager tying the restore step to a pipeline invocation.

    The restore step runs when the block exits, whether the body finished,
    stopped at a failed step, or raised.
    """

    def __init__(self, restore_step: StepConfig, executor: StepExecutor, step_order: int):
        self.restore_step = restore_step
        self.executor = executor
        self.step_order = step_order
        self.result: Optional[StepResult] = None

    def __enter__(self) -> "WorkingTreeTransaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            logger.error(f"Pipeline body raised {exc_type.__name__}, restoring before re-raising")
        logger.info(f"Restoring working tree with step '{self.restore_step.name}'")
        result = self.executor(self.restore_step, self.step_order)
        self.result = _classify(self.restore_step, result)
        # Never suppress an exception from the body
        return False

def execute_pipeline(
    pipeline: PipelineConfig,
    executor: StepExecutor = execute_step,
) -> PipelineResult:
    """
    Execute a pipeline.
    Stops at the first failed body step; the restore step runs regardless.
    """
    result = PipelineResult(pipeline=pipeline.name)
    state = PipelineState.IDLE
    body = pipeline.body

    logger.info(f"Starting pipeline '{pipeline.name}' with {len(pipeline.steps)} steps")

    with WorkingTreeTransaction(pipeline.restore_step, executor, len(body)) as transaction:
        for i, step in enumerate(body):
            next_state = KIND_TO_STATE[step.kind]
            if next_state != state:
                logger.debug(f"Pipeline '{pipeline.name}': {state.value} -> {next_state.value}")
                state = next_state

            step_result = _classify(step, executor(step, i))
            result.results.append(step_result)

            if not step_result.success:
                skipped = [s.name for s in body[i + 1:]]
                if skipped:
                    logger.info(f"Skipping steps after failure: {', '.join(skipped)}")
                break  # Stop on first failure

        logger.debug(f"Pipeline '{pipeline.name}': {state.value} -> {PipelineState.RESTORING.value}")

    result.restore = transaction.result

    if result.restore_failed:
        message = (
            f"Restore step '{result.restore.name}' failed: {result.restore.error}. "
            "The working tree may still contain changes and must be cleaned up manually."
        )
        logger.warning(message)
        result.warnings.append(message)

    result.state = PipelineState.SUCCEEDED if result.success else PipelineState.FAILED
    logger.info(f"Pipeline '{pipeline.name}' finished with status: {result.state.value}")
    return result
