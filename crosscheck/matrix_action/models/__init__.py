"""Data models for triggers, matrices, results and configuration."""

from crosscheck.matrix_action.models.job_result import JobResult, JobStatus
from crosscheck.matrix_action.models.matrix import Axis, JobSpec
from crosscheck.matrix_action.models.pipeline_config import (
    GitHubConfig,
    LocalConfig,
    MatrixConfig,
    PipelineConfig,
    PipelineFile,
)
from crosscheck.matrix_action.models.run_report import RunReport, RunStatus
from crosscheck.matrix_action.models.trigger import Event, TriggerCondition

__all__ = [
    "Axis",
    "Event",
    "GitHubConfig",
    "JobResult",
    "JobSpec",
    "JobStatus",
    "LocalConfig",
    "MatrixConfig",
    "PipelineConfig",
    "PipelineFile",
    "RunReport",
    "RunStatus",
    "TriggerCondition",
]
