"""Emit run reports as log summaries and structured JSON."""

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from crosscheck.matrix_action.models.run_report import RunReport

logger = logging.getLogger(__name__)


def log_summary(report: RunReport) -> None:
    """Log one line per job, marking failures."""
    logger.info("=" * 80)
    logger.info(f"Pipeline {report.pipeline}: {report.status}")
    logger.info("=" * 80)

    if report.message:
        logger.info(f"  {report.message}")

    for result in report.results:
        job = result.job
        if result.status == "succeeded":
            logger.info(f"✓ {job.label}: {result.status} ({result.duration:.2f}s)")
            if result.output_ref:  # pragma: no cover
                logger.info(f"  Output: {result.output_ref}")
        else:
            logger.error(f"✗ {job.label}: {result.status}")
            if result.reason:
                logger.error(f"  Reason: {result.reason}")
            if result.output_ref:  # pragma: no cover
                logger.error(f"  Output: {result.output_ref}")


def build_output(reports: Sequence[RunReport]) -> dict[str, object]:
    """Combine reports into the document written to the report sink."""
    return {
        "status": overall_status(reports),
        "pipelines": [report.to_record() for report in reports],
    }


def overall_status(reports: Sequence[RunReport]) -> str:
    """Worst status across reports; skipped only if every pipeline skipped."""
    statuses = {report.status for report in reports}
    for status in ("aborted", "failed", "succeeded"):
        if status in statuses:
            return status
    return "skipped"


def write_output(output: dict[str, object], output_path: Path) -> None:
    """Write the report document to a file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(output, indent=2))
    logger.info(f"Report written to {output_path}")
