"""Aggregate job results into a run report."""

import logging
from collections.abc import Sequence

from crosscheck.matrix_action.errors import AggregationError
from crosscheck.matrix_action.models.job_result import JobResult
from crosscheck.matrix_action.models.run_report import RunReport

logger = logging.getLogger(__name__)


def aggregate(results: Sequence[JobResult], pipeline: str = "matrix") -> RunReport:
    """Combine job results into an overall run status.

    The run succeeded only if every job succeeded. Results are reported in
    expansion order whatever order they arrive in.

    Args:
        results: Terminal job results of one run
        pipeline: Pipeline name recorded on the report

    Returns:
        Run report with results sorted by job index

    Raises:
        AggregationError: If there are no results, or a job is not terminal

    """
    if not results:
        raise AggregationError(f"No job results to aggregate for {pipeline}")

    pending = [r.job.label for r in results if not r.is_terminal]
    if pending:
        raise AggregationError(
            f"Jobs have not finished: {', '.join(pending)}"
        )

    ordered = sorted(results, key=lambda r: r.job.index)
    succeeded = all(r.status == "succeeded" for r in ordered)
    status = "succeeded" if succeeded else "failed"
    logger.info(
        f"Pipeline {pipeline}: {status} "
        f"({sum(1 for r in ordered if r.status == 'succeeded')}/{len(ordered)} passed)"
    )
    return RunReport(pipeline=pipeline, status=status, results=ordered)
