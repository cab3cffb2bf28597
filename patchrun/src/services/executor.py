"""
Command executor - runs pipeline steps as local processes.
"""

import errno
import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from patchrun.src.models.step import FailureReason, StepConfig, StepResult, StepStatus
from patchrun.src.services.errors import ExecutionFailure

logger = logging.getLogger(__name__)

# Launch errors meaning the program path does not lead to something runnable
MISSING_PROGRAM_ERRNOS = (errno.ENOENT, errno.EACCES, errno.ENOTDIR)

@dataclass
class CommandOutput:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

def run_command(
    program: str,
    args: Sequence[str],
    cwd: Path,
    timeout: Optional[float] = None,
    capture_output: bool = True,
) -> CommandOutput:
    """
    Run a command synchronously in the given working directory.
    Raises ExecutionFailure unless the command exits with status 0.
    """
    cwd = Path(cwd)
    if not cwd.is_dir():
        raise ExecutionFailure(
            FailureReason.INVALID_WORKING_DIRECTORY,
            f"Working directory does not exist: {cwd}",
        )

    command = [program, *args]
    logger.debug(f"Running {command} in {cwd}")

    try:
        completed = subprocess.run(
            command,
            cwd=cwd,
            capture_output=capture_output,
            text=True,
            timeout=timeout,
        )
    except OSError as e:
        if e.errno in MISSING_PROGRAM_ERRNOS:
            raise ExecutionFailure(
                FailureReason.NOT_FOUND,
                f"Program not found or not executable: {program} ({e.strerror})",
            )
        raise ExecutionFailure(
            FailureReason.LAUNCH_FAILED,
            f"Could not start {program}: {e.strerror or e}",
        )
    except subprocess.TimeoutExpired as e:
        raise ExecutionFailure(
            FailureReason.TIMED_OUT,
            f"{program} timed out after {timeout}s",
            stdout=_as_text(e.stdout),
            stderr=_as_text(e.stderr),
        )

    output = CommandOutput(
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )

    if output.exit_code != 0:
        raise ExecutionFailure(
            FailureReason.NON_ZERO_EXIT,
            f"{program} exited with status {output.exit_code}",
            status=output.exit_code,
            stdout=output.stdout,
            stderr=output.stderr,
        )

    return output

def execute_step(
    step: StepConfig,
    step_order: int = 0,
    capture_output: bool = True,
) -> StepResult:
    """
    Execute a single pipeline step.
    Failures are recorded on the returned result, never raised.
    """
    started_at = datetime.utcnow()
    logger.info(f"Executing step {step_order}: {step.name} ({' '.join(step.command)})")

    try:
        output = run_command(
            step.program,
            step.args,
            step.cwd,
            timeout=step.timeout,
            capture_output=capture_output,
        )
    except ExecutionFailure as e:
        logger.error(f"Step {step_order} ({step.name}) failed: {e}")
        return StepResult(
            step_order=step_order,
            name=step.name,
            status=StepStatus.FAILED,
            exit_code=e.status,
            reason=e.reason,
            error_type=type(e).__name__,
            error=str(e),
            stdout=e.stdout,
            stderr=e.stderr,
            started_at=started_at,
            finished_at=datetime.utcnow(),
        )

    logger.info(f"Step {step_order} ({step.name}) succeeded")
    return StepResult(
        step_order=step_order,
        name=step.name,
        status=StepStatus.SUCCEEDED,
        exit_code=output.exit_code,
        stdout=output.stdout,
        stderr=output.stderr,
        started_at=started_at,
        finished_at=datetime.utcnow(),
    )

def _as_text(data) -> str:
    # TimeoutExpired carries bytes even when text=True was requested
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
