"""Load and parse pipeline definitions from YAML files."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from crosscheck.matrix_action.errors import ConfigurationError
from crosscheck.matrix_action.models.pipeline_config import (
    PipelineConfig,
    PipelineFile,
)


def load_pipeline_file(config_path: Path) -> PipelineFile:
    """Load every pipeline defined in a configuration file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Parsed pipeline file

    Raises:
        ConfigurationError: If the file is missing, empty, not valid YAML,
            doesn't match the schema or defines duplicate pipeline names

    """
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")

    try:
        pipeline_file = PipelineFile.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration schema in {config_path}: {e}"
        ) from e

    names = [p.name for p in pipeline_file.pipelines]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(
            f"Duplicate pipeline names in {config_path}: {', '.join(duplicates)}"
        )

    return pipeline_file


def select_pipelines(
    pipeline_file: PipelineFile, names: list[str] | None = None
) -> list[PipelineConfig]:
    """Pick pipelines by name, keeping file order.

    Raises:
        ConfigurationError: If a requested pipeline is not defined

    """
    if not names:
        return list(pipeline_file.pipelines)

    known = {p.name for p in pipeline_file.pipelines}
    missing = [n for n in names if n not in known]
    if missing:
        raise ConfigurationError(f"Unknown pipelines: {', '.join(missing)}")

    return [p for p in pipeline_file.pipelines if p.name in names]
