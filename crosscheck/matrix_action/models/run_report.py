"""Models for the aggregated outcome of a run."""

from typing import Literal

from pydantic import BaseModel, Field

from crosscheck.matrix_action.models.job_result import JobResult

RunStatus = Literal["skipped", "succeeded", "failed", "aborted"]


class RunReport(BaseModel):
    """Ordered summary of every job result produced for one event."""

    pipeline: str = Field(..., description="Pipeline name")
    status: RunStatus = Field(..., description="Overall run status")
    results: list[JobResult] = Field(
        default_factory=list, description="Job results in expansion order"
    )
    message: str | None = Field(
        default=None, description="Skip or abort details"
    )

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.status == "succeeded")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "failed")

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status == "errored")

    def to_record(self) -> dict[str, object]:
        """Structured record emitted to the report sink."""
        return {
            "pipeline": self.pipeline,
            "status": self.status,
            "message": self.message,
            "total": len(self.results),
            "passed": self.passed,
            "failed": self.failed,
            "errors": self.errors,
            "jobs": [
                {
                    "index": r.job.index,
                    "values": dict(r.job.values),
                    "status": r.status,
                    "exit_code": r.exit_code,
                    "reason": r.reason,
                    "duration": r.duration,
                    "output_ref": r.output_ref,
                }
                for r in self.results
            ],
        }
