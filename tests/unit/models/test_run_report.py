"""Tests for run report models."""

from crosscheck.matrix_action.models.job_result import JobResult
from crosscheck.matrix_action.models.matrix import JobSpec
from crosscheck.matrix_action.models.run_report import RunReport


def _result(index: int, toolchain: str, status: str) -> JobResult:
    job = JobSpec(
        index=index,
        values={"toolchain": toolchain, "platform": "linux"},
        command=f"cargo +{toolchain} check",
        platform="linux",
    )
    return JobResult(job=job, status=status)  # type: ignore[arg-type]


def test_run_report_counts() -> None:
    """RunReport counts results by status."""
    report = RunReport(
        pipeline="check",
        status="failed",
        results=[
            _result(0, "stable", "succeeded"),
            _result(1, "beta", "failed"),
            _result(2, "nightly", "errored"),
        ],
    )
    assert report.passed == 1
    assert report.failed == 1
    assert report.errors == 1


def test_run_report_to_record() -> None:
    """to_record lists every job with its axis values and status."""
    result = JobResult(
        job=JobSpec(
            index=0,
            values={"toolchain": "stable", "platform": "linux"},
            command="cargo check",
            platform="linux",
        ),
        status="succeeded",
        exit_code=0,
        output_ref="/tmp/out.log",
        duration=1.5,
    )
    report = RunReport(pipeline="check", status="succeeded", results=[result])

    record = report.to_record()

    assert record["pipeline"] == "check"
    assert record["status"] == "succeeded"
    assert record["total"] == 1
    assert record["passed"] == 1
    assert record["jobs"] == [
        {
            "index": 0,
            "values": {"toolchain": "stable", "platform": "linux"},
            "status": "succeeded",
            "exit_code": 0,
            "reason": None,
            "duration": 1.5,
            "output_ref": "/tmp/out.log",
        }
    ]


def test_run_report_skipped_has_no_jobs() -> None:
    """A skipped report carries a message and no jobs."""
    report = RunReport(pipeline="check", status="skipped", message="not labeled")
    record = report.to_record()
    assert record["total"] == 0
    assert record["jobs"] == []
    assert record["message"] == "not labeled"
