"""
Error types raised while defining and running pipelines.
"""

from typing import Optional

from patchrun.src.models.step import FailureReason

class PatchRunError(Exception):
    """Base class for all patchrun errors."""
    pass

class PipelineConfigError(PatchRunError):
    """Raised when a pipeline definition is invalid."""
    pass

class UnknownPipelineError(PatchRunError, KeyError):
    """Raised when a pipeline name is not in the catalog."""

    def __init__(self, name: str, available=()):
        self.name = name
        self.available = sorted(available)
        super().__init__(name)

    def __str__(self):
        choices = ", ".join(self.available) or "none"
        return f"Unknown pipeline '{self.name}' (available: {choices})"

class ExecutionFailure(PatchRunError):
    """Raised when an external command could not run or exited nonzero."""

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        status: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.reason = reason
        self.status = status
        self.stdout = stdout
        self.stderr = stderr

    @classmethod
    def from_failure(cls, failure: "ExecutionFailure") -> "ExecutionFailure":
        """Re-type an existing failure, keeping its details."""
        return cls(
            failure.reason,
            str(failure),
            status=failure.status,
            stdout=failure.stdout,
            stderr=failure.stderr,
        )

class ValidationFailure(ExecutionFailure):
    """The patch does not apply cleanly; the tree was not mutated."""
    pass

class RestoreFailure(ExecutionFailure):
    """The restore step failed; the working tree may still be dirty."""
    pass
