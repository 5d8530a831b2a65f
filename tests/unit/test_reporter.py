"""Tests for report output."""

import json
import logging
from pathlib import Path

import pytest

from crosscheck.matrix_action.models.job_result import JobResult
from crosscheck.matrix_action.models.matrix import JobSpec
from crosscheck.matrix_action.models.run_report import RunReport
from crosscheck.matrix_action.reporter import (
    build_output,
    log_summary,
    overall_status,
    write_output,
)


def _report(name: str, status: str) -> RunReport:
    return RunReport(pipeline=name, status=status)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        (["skipped"], "skipped"),
        (["skipped", "succeeded"], "succeeded"),
        (["succeeded", "failed", "skipped"], "failed"),
        (["failed", "aborted"], "aborted"),
        ([], "skipped"),
    ],
)
def test_overall_status(statuses: list[str], expected: str) -> None:
    """The worst pipeline status wins."""
    reports = [_report(f"p{i}", s) for i, s in enumerate(statuses)]
    assert overall_status(reports) == expected


def test_build_output() -> None:
    """build_output wraps pipeline records with the overall status."""
    output = build_output([_report("a", "succeeded"), _report("b", "skipped")])

    assert output["status"] == "succeeded"
    pipelines = output["pipelines"]
    assert isinstance(pipelines, list)
    assert [p["pipeline"] for p in pipelines] == ["a", "b"]


def test_write_output(tmp_path: Path) -> None:
    """write_output writes JSON, creating parent directories."""
    path = tmp_path / "reports" / "matrix.json"

    write_output({"status": "failed", "pipelines": []}, path)

    assert json.loads(path.read_text()) == {"status": "failed", "pipelines": []}


def test_log_summary(caplog: pytest.LogCaptureFixture) -> None:
    """log_summary marks succeeded and failed jobs."""
    jobs = [
        JobSpec(index=i, values={"toolchain": t}, command="c", platform="linux")
        for i, t in enumerate(["stable", "nightly"])
    ]
    report = RunReport(
        pipeline="check",
        status="failed",
        results=[
            JobResult(job=jobs[0], status="succeeded", duration=1.0),
            JobResult(job=jobs[1], status="errored", reason="cancelled"),
        ],
    )

    with caplog.at_level(logging.INFO):
        log_summary(report)

    assert "✓ (stable): succeeded (1.00s)" in caplog.text
    assert "✗ (nightly): errored" in caplog.text
    assert "Reason: cancelled" in caplog.text
