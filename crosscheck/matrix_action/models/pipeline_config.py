"""Configuration models for pipelines and execution providers."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crosscheck.matrix_action.models.matrix import Axis, matrix_value
from crosscheck.matrix_action.models.trigger import TriggerCondition


class MatrixConfig(BaseModel):
    """Axes of the matrix plus optional cell adjustments."""

    model_config = ConfigDict(frozen=True)

    axes: tuple[Axis, ...] = Field(
        default_factory=tuple, description="Axes in declaration order"
    )
    exclude: tuple[dict[str, str], ...] = Field(
        default_factory=tuple,
        description="Partial cells removed from the cross-product",
    )
    include: tuple[dict[str, str], ...] = Field(
        default_factory=tuple,
        description="Extra cells appended after the cross-product",
    )

    @field_validator("exclude", "include", mode="before")
    @classmethod
    def _stringify_cells(cls, value: object) -> object:
        if isinstance(value, list | tuple):
            return tuple(
                {str(k): matrix_value(v) for k, v in cell.items()}
                if isinstance(cell, dict)
                else cell
                for cell in value
            )
        return value


class PipelineConfig(BaseModel):
    """A single gated matrix pipeline."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Pipeline name")
    trigger: TriggerCondition = Field(
        default_factory=TriggerCondition, description="Run gate"
    )
    matrix: MatrixConfig = Field(
        default_factory=MatrixConfig, description="Matrix definition"
    )
    command: str = Field(..., min_length=1, description="Command template")
    env: dict[str, str] = Field(
        default_factory=dict, description="Environment variables for every job"
    )
    platform_axis: str = Field(
        default="platform", description="Axis selecting the job platform"
    )
    runs_on: str = Field(
        default="ubuntu-latest",
        description="Platform used when the matrix has no platform axis",
    )
    max_parallel: int | None = Field(
        default=None, ge=1, description="Maximum concurrently running jobs"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Per-job timeout in seconds"
    )

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value


class PipelineFile(BaseModel):
    """Top-level layout of a pipeline configuration file."""

    version: str = Field(default="1.0", description="Configuration schema version")
    pipelines: list[PipelineConfig] = Field(
        default_factory=list, description="Pipelines defined in the file"
    )


class LocalConfig(BaseModel):
    """Configuration for the local subprocess provider."""

    platforms: list[str] | None = Field(
        default=None,
        description="Platforms this host can serve; defaults to the host's own",
    )
    output_dir: str | None = Field(
        default=None, description="Directory for captured job output"
    )
    cwd: str | None = Field(default=None, description="Working directory")
    shell: str | None = Field(default=None, description="Shell executable")


class GitHubConfig(BaseModel):
    """Configuration for GitHub Actions provider."""

    token: str = Field(..., description="GitHub personal access token or GITHUB_TOKEN")
    owner: str = Field(..., description="Repository owner")
    repo: str = Field(..., description="Repository name")
    workflow_id: str = Field(..., description="Workflow file name or ID")
    ref: str = Field(
        default="main",
        description="Git reference to run the job workflow on",
    )
    base_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )
    poll_interval: float = Field(
        default=30, gt=0, description="Seconds between run status polls"
    )
