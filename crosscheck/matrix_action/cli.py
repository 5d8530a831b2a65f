"""CLI entry point for the build matrix action."""

import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError

from crosscheck.matrix_action.changed_paths import detect_changed_paths
from crosscheck.matrix_action.config_loader import (
    load_pipeline_file,
    select_pipelines,
)
from crosscheck.matrix_action.errors import ConfigurationError
from crosscheck.matrix_action.event_loader import (
    diff_refs,
    event_from_payload,
    read_payload,
)
from crosscheck.matrix_action.expander import expand_pipeline
from crosscheck.matrix_action.models.pipeline_config import (
    GitHubConfig,
    LocalConfig,
)
from crosscheck.matrix_action.models.trigger import Event
from crosscheck.matrix_action.orchestrator import DEFAULT_MAX_PARALLEL, RunCoordinator
from crosscheck.matrix_action.providers.base import EnvironmentProvider
from crosscheck.matrix_action.providers.github import GitHubProvider
from crosscheck.matrix_action.providers.local import LocalProvider
from crosscheck.matrix_action.reporter import (
    build_output,
    log_summary,
    overall_status,
    write_output,
)

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

app = typer.Typer()


@app.command()
def run(  # noqa: C901
    config: Path = typer.Option(..., help="Path to the pipeline configuration file"),  # noqa: B008
    event_path: Path | None = typer.Option(  # noqa: B008
        None,
        "--event",
        envvar="GITHUB_EVENT_PATH",
        help="Path to the webhook payload JSON",
    ),
    event_name: str = typer.Option(
        "pull_request", envvar="GITHUB_EVENT_NAME", help="Event kind"
    ),
    label: list[str] | None = typer.Option(  # noqa: B008
        None, help="Label present on the change (repeatable)"
    ),
    changed_path: list[str] | None = typer.Option(  # noqa: B008
        None, help="Changed file path (repeatable)"
    ),
    repo_path: Path = typer.Option(Path("."), help="Path to the git repository"),  # noqa: B008
    base_ref: str | None = typer.Option(None, help="Base ref for changed paths"),
    head_ref: str | None = typer.Option(None, help="Head ref for changed paths"),
    pipeline: list[str] | None = typer.Option(  # noqa: B008
        None, help="Pipeline to run (repeatable, default: all)"
    ),
    provider: str = typer.Option("local", help="Provider type (local, github)"),
    provider_config: str = typer.Option(
        "{}", help="JSON configuration for the provider"
    ),
    max_parallel: int = typer.Option(
        DEFAULT_MAX_PARALLEL, min=1, help="Default concurrent jobs per pipeline"
    ),
    output: Path | None = typer.Option(None, help="Also write the report here"),  # noqa: B008
) -> None:
    """Run the build matrix of every pipeline whose trigger fires."""
    logger.info("=" * 80)
    logger.info("Build Matrix Action - Starting")
    logger.info("=" * 80)
    logger.info(f"Config: {config}")
    logger.info(f"Event: {event_name} ({event_path or 'no payload'})")
    logger.info(f"Provider: {provider}")
    logger.info(f"Working directory: {Path.cwd()}")

    try:
        pipelines = select_pipelines(load_pipeline_file(config), list(pipeline or []))
    except ConfigurationError as e:
        _abort(str(e), output)

    try:
        payload = read_payload(event_path) if event_path is not None else {}
        paths = list(changed_path or [])
        if not paths:
            refs = diff_refs(payload)
            if base_ref and head_ref:
                refs = (base_ref, head_ref)
            if refs is not None:
                paths = asyncio.run(detect_changed_paths(repo_path, *refs))
            elif any(p.trigger.paths for p in pipelines):
                logger.warning(
                    "No changed paths given and no base/head refs found; "
                    "pipelines with path filters will be skipped"
                )
        event = _build_event(event_name, payload, list(label or []), paths)
    except (RuntimeError, ValueError, OSError) as e:
        logger.error(f"Failed to build event: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        logger.info("Creating provider...")
        environment_provider = _create_provider(provider, provider_config)
        logger.info(f"Provider created: {type(environment_provider).__name__}")
    except ValueError as e:
        logger.error(f"Failed to create provider: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    coordinator = RunCoordinator(environment_provider, max_parallel)

    logger.info(f"Running {len(pipelines)} pipelines...")
    reports = asyncio.run(coordinator.run_all(pipelines, event))

    for report in reports:
        log_summary(report)

    result = build_output(reports)
    typer.echo(json.dumps(result, indent=2))
    if output is not None:
        write_output(result, output)

    status = overall_status(reports)
    if status in {"failed", "aborted"}:
        logger.error(f"Build matrix {status}")
        raise typer.Exit(code=1)


@app.command()
def expand(
    config: Path = typer.Option(..., help="Path to the pipeline configuration file"),  # noqa: B008
    pipeline: list[str] | None = typer.Option(  # noqa: B008
        None, help="Pipeline to expand (repeatable, default: all)"
    ),
) -> None:
    """Print the jobs each pipeline would run, without running them."""
    try:
        pipelines = select_pipelines(load_pipeline_file(config), list(pipeline or []))
        expanded = [
            {
                "pipeline": p.name,
                "jobs": [
                    {
                        "index": job.index,
                        "values": job.values,
                        "platform": job.platform,
                        "command": job.command,
                    }
                    for job in expand_pipeline(p)
                ],
            }
            for p in pipelines
        ]
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(expanded, indent=2))


def _abort(message: str, output: Path | None) -> NoReturn:
    logger.error(f"Aborted: {message}")
    result = {"status": "aborted", "message": message, "pipelines": []}
    typer.echo(json.dumps(result, indent=2))
    if output is not None:
        write_output(result, output)
    raise typer.Exit(code=1)


def _build_event(
    event_name: str,
    payload: Mapping[str, object],
    labels: list[str],
    changed_paths: list[str],
) -> Event:
    """Build the event from the payload, adding labels from the command line."""
    event = event_from_payload(event_name, payload, changed_paths)
    if labels:
        event = event.model_copy(update={"labels": event.labels | set(labels)})
    logger.info(
        f"Event {event.kind} (action={event.action}, "
        f"labels={sorted(event.labels)}, change={event.change_id}, "
        f"{len(event.changed_paths)} changed paths)"
    )
    return event


def _create_provider(provider_type: str, config_json: str) -> EnvironmentProvider:
    """Create provider based on type and JSON configuration."""
    provider_type = provider_type.lower()

    try:
        config_dict = json.loads(config_json)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in provider-config: {e}")
    if not isinstance(config_dict, dict):
        raise ValueError("provider-config must be a JSON object")

    try:
        if provider_type == "local":
            return LocalProvider(LocalConfig(**config_dict))
        elif provider_type == "github":
            config = GitHubConfig(**config_dict)
            if "GITHUB_API_URL" in os.environ:
                config.base_url = os.environ["GITHUB_API_URL"]
            return GitHubProvider(config)
    except ValidationError as e:
        raise ValueError(f"Invalid {provider_type} provider-config: {e}") from e

    raise ValueError(
        f"Unknown provider type: {provider_type}. Must be one of: local, github"
    )


if __name__ == "__main__":  # pragma: no cover
    app()
