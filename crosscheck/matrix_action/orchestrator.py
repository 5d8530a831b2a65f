"""Matrix orchestrator coordinating trigger evaluation, expansion and execution."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Literal

from crosscheck.matrix_action.aggregator import aggregate
from crosscheck.matrix_action.errors import ConfigurationError
from crosscheck.matrix_action.executor import JobExecutor
from crosscheck.matrix_action.expander import expand_pipeline
from crosscheck.matrix_action.models.job_result import JobResult
from crosscheck.matrix_action.models.matrix import JobSpec
from crosscheck.matrix_action.models.pipeline_config import PipelineConfig
from crosscheck.matrix_action.models.run_report import RunReport
from crosscheck.matrix_action.models.trigger import Event
from crosscheck.matrix_action.providers.base import EnvironmentProvider
from crosscheck.matrix_action.trigger import evaluate

logger = logging.getLogger(__name__)

RunState = Literal[
    "idle",
    "evaluating",
    "skipped",
    "expanding",
    "executing",
    "aggregating",
    "reported",
    "aborted",
]

DEFAULT_MAX_PARALLEL = 8

CANCELLED_REASON = "cancelled"


class MatrixOrchestrator:
    """Runs one pipeline's matrix for one event.

    State moves ``idle -> evaluating -> skipped`` when the trigger does not
    fire, otherwise ``expanding -> executing -> aggregating -> reported``.
    A configuration error ends in ``aborted``.
    """

    def __init__(
        self,
        pipeline: PipelineConfig,
        provider: EnvironmentProvider,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
    ) -> None:
        """Initialize orchestrator for a pipeline and provider."""
        self.pipeline = pipeline
        self.executor = JobExecutor(provider)
        self.max_parallel = pipeline.max_parallel or max_parallel
        self.state: RunState = "idle"
        self.results: list[JobResult] = []
        self._tasks: list[asyncio.Task[JobResult]] = []
        self._cancel_requested = False

    async def run(self, event: Event | Mapping[str, object] | None) -> RunReport:
        """Evaluate, expand, execute and aggregate one run.

        Raises:
            ConfigurationError: If the matrix or command template is invalid

        """
        name = self.pipeline.name
        self.state = "evaluating"
        if not evaluate(self.pipeline.trigger, event):
            logger.info(f"Pipeline {name}: trigger condition not met, skipping")
            self.state = "skipped"
            return RunReport(
                pipeline=name, status="skipped", message="Trigger condition not met"
            )

        self.state = "expanding"
        try:
            jobs = expand_pipeline(self.pipeline)
        except ConfigurationError as e:
            logger.error(f"Pipeline {name}: invalid configuration: {e}")
            self.state = "aborted"
            raise
        logger.info(f"Pipeline {name}: expanded {len(jobs)} jobs")

        self.state = "executing"
        self.results = [JobResult(job=job) for job in jobs]
        semaphore = asyncio.Semaphore(self.max_parallel)
        self._tasks = [
            asyncio.create_task(
                self._run_job(job, semaphore), name=f"{name}{job.label}"
            )
            for job in jobs
        ]
        if self._cancel_requested:
            self.cancel()

        outcomes = await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info(f"Pipeline {name}: execution completed")

        self.state = "aggregating"
        for job, outcome in zip(jobs, outcomes, strict=True):
            self.results[job.index] = self._process_outcome(job, outcome)

        report = aggregate(self.results, name)
        self.state = "reported"
        return report

    def cancel(self) -> int:
        """Cancel every job that has not finished yet.

        Cancelled jobs are reported as errored with reason ``cancelled``.

        Returns:
            Number of jobs that were cancelled

        """
        self._cancel_requested = True
        cancelled = 0
        for task in self._tasks:
            if not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.info(f"Pipeline {self.pipeline.name}: cancelled {cancelled} jobs")
        return cancelled

    async def _run_job(self, job: JobSpec, semaphore: asyncio.Semaphore) -> JobResult:
        async with semaphore:
            self.results[job.index] = self.results[job.index].model_copy(
                update={"status": "running"}
            )
            logger.info(f"Starting job {job.label}: {job.command}")
            result = await self.executor.execute(job)
            self.results[job.index] = result
            return result

    def _process_outcome(
        self, job: JobSpec, outcome: JobResult | BaseException
    ) -> JobResult:
        """Turn a gathered outcome into a terminal result for the job."""
        if isinstance(outcome, JobResult):
            logger.info(f"Job result: {job.label} = {outcome.status}")
            return outcome
        if isinstance(outcome, asyncio.CancelledError):
            logger.info(f"Job result: {job.label} = errored (cancelled)")
            return JobResult(job=job, status="errored", reason=CANCELLED_REASON)
        logger.error(
            f"Job execution error: {type(outcome).__name__}: {outcome}",
            exc_info=outcome,
        )
        return JobResult(job=job, status="errored", reason=str(outcome))


class RunCoordinator:
    """Starts pipeline runs and supersedes older runs for the same change."""

    def __init__(
        self,
        provider: EnvironmentProvider,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
    ) -> None:
        """Initialize coordinator with the provider shared by all runs."""
        self.provider = provider
        self.max_parallel = max_parallel
        self._active: dict[tuple[str, str], MatrixOrchestrator] = {}

    async def submit(
        self, pipeline: PipelineConfig, event: Event | Mapping[str, object] | None
    ) -> RunReport:
        """Run a pipeline for an event, cancelling the run it supersedes.

        Raises:
            ConfigurationError: If the pipeline configuration is invalid

        """
        orchestrator = MatrixOrchestrator(pipeline, self.provider, self.max_parallel)
        key = self._key(pipeline, event)
        if key is not None:
            previous = self._active.get(key)
            if previous is not None:
                logger.info(
                    f"Pipeline {pipeline.name}: change {key[1]} superseded, "
                    "cancelling previous run"
                )
                previous.cancel()
            self._active[key] = orchestrator

        try:
            return await orchestrator.run(event)
        finally:
            if key is not None and self._active.get(key) is orchestrator:
                del self._active[key]

    async def run_all(
        self,
        pipelines: Sequence[PipelineConfig],
        event: Event | Mapping[str, object] | None,
    ) -> list[RunReport]:
        """Run several independent pipelines for the same event.

        A pipeline with invalid configuration is reported as aborted without
        affecting the others.
        """
        outcomes = await asyncio.gather(
            *(self.submit(pipeline, event) for pipeline in pipelines),
            return_exceptions=True,
        )

        reports: list[RunReport] = []
        for pipeline, outcome in zip(pipelines, outcomes, strict=True):
            if isinstance(outcome, RunReport):
                reports.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(f"Pipeline {pipeline.name} aborted: {outcome}")
                reports.append(
                    RunReport(
                        pipeline=pipeline.name, status="aborted", message=str(outcome)
                    )
                )
            else:
                raise outcome
        return reports

    def _key(
        self, pipeline: PipelineConfig, event: Event | Mapping[str, object] | None
    ) -> tuple[str, str] | None:
        change_id: object = None
        if isinstance(event, Event):
            change_id = event.change_id
        elif isinstance(event, Mapping):
            change_id = event.get("change_id")
        if change_id is None:
            return None
        return (pipeline.name, str(change_id))
