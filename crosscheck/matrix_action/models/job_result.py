"""Models for job execution results."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from crosscheck.matrix_action.models.matrix import JobSpec

JobStatus = Literal["pending", "running", "succeeded", "failed", "errored"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "failed", "errored"})


class JobResult(BaseModel):
    """Outcome of executing a single job."""

    model_config = ConfigDict(frozen=True)

    job: JobSpec = Field(..., description="Job this result belongs to")
    status: JobStatus = Field(default="pending", description="Job status")
    exit_code: int | None = Field(default=None, description="Command exit code")
    reason: str | None = Field(
        default=None, description="Why the job errored, when status is errored"
    )
    output_ref: str | None = Field(
        default=None, description="Reference to captured output (path or URL)"
    )
    duration: float = Field(default=0.0, description="Execution time in seconds")

    @property
    def is_terminal(self) -> bool:
        """Whether the job has reached a final status."""
        return self.status in TERMINAL_STATUSES
