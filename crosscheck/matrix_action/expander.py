"""Expand matrix axes into concrete jobs."""

import itertools
import logging
import re
from collections.abc import Mapping, Sequence

from crosscheck.matrix_action.errors import ConfigurationError
from crosscheck.matrix_action.models.matrix import Axis, JobSpec
from crosscheck.matrix_action.models.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\$\{\{\s*matrix\.([A-Za-z0-9_-]+)\s*\}\}")


def expand(
    axes: Sequence[Axis],
    command: str,
    *,
    env: Mapping[str, str] | None = None,
    exclude: Sequence[Mapping[str, str]] = (),
    include: Sequence[Mapping[str, str]] = (),
    platform_axis: str = "platform",
    runs_on: str = "ubuntu-latest",
    timeout: float | None = None,
) -> list[JobSpec]:
    """Compute the cross-product of axes and resolve one job per cell.

    Ordering is row-major: the last declared axis varies fastest, so
    ``toolchain=[stable, nightly]`` and ``platform=[linux, macos]`` yield
    (stable, linux), (stable, macos), (nightly, linux), (nightly, macos).
    Included cells follow the cross-product in the order given.

    Args:
        axes: Axes in declaration order
        command: Command template with ``${{ matrix.<axis> }}`` placeholders
        env: Environment templates applied to every job
        exclude: Partial cells; any product cell matching all pairs is dropped
        include: Complete cells appended after the cross-product
        platform_axis: Axis whose value selects the job platform
        runs_on: Platform used when there is no platform axis
        timeout: Per-job timeout in seconds

    Returns:
        Jobs in expansion order, each stamped with its index

    Raises:
        ConfigurationError: If an axis is empty or duplicated, a placeholder
            names an undeclared axis, or the cells are otherwise inconsistent

    """
    env = dict(env or {})
    names = _validate_axes(axes)
    _check_placeholders(command, names, "command")
    for key, value in env.items():
        _check_placeholders(value, names, f"env {key}")

    cells = _product(axes)
    if exclude:
        cells = _apply_exclude(cells, exclude, names)
        if not cells:
            raise ConfigurationError("Matrix exclusions remove every job")
    if include:
        cells = _apply_include(cells, include, names)

    jobs = [
        JobSpec(
            index=index,
            values=cell,
            command=substitute(command, cell),
            env={key: substitute(value, cell) for key, value in env.items()},
            platform=cell.get(platform_axis, runs_on),
            timeout=timeout,
        )
        for index, cell in enumerate(cells)
    ]
    logger.debug(f"Expanded {len(axes)} axes into {len(jobs)} jobs")
    return jobs


def expand_pipeline(pipeline: PipelineConfig) -> list[JobSpec]:
    """Expand the matrix of a configured pipeline."""
    matrix = pipeline.matrix
    return expand(
        matrix.axes,
        pipeline.command,
        env=pipeline.env,
        exclude=matrix.exclude,
        include=matrix.include,
        platform_axis=pipeline.platform_axis,
        runs_on=pipeline.runs_on,
        timeout=pipeline.timeout,
    )


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Replace ``${{ matrix.<axis> }}`` placeholders with axis values."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            raise ConfigurationError(f"Unknown matrix axis in template: {name}")
        return values[name]

    return PLACEHOLDER.sub(_replace, template)


def placeholders(template: str) -> set[str]:
    """Axis names referenced by a template."""
    return set(PLACEHOLDER.findall(template))


def _validate_axes(axes: Sequence[Axis]) -> list[str]:
    names: list[str] = []
    for axis in axes:
        if axis.name in names:
            raise ConfigurationError(f"Duplicate matrix axis: {axis.name}")
        if not axis.values:
            raise ConfigurationError(f"Matrix axis {axis.name!r} has no values")
        if len(set(axis.values)) != len(axis.values):
            raise ConfigurationError(
                f"Matrix axis {axis.name!r} has duplicate values: {list(axis.values)}"
            )
        names.append(axis.name)
    return names


def _check_placeholders(template: str, names: Sequence[str], where: str) -> None:
    unknown = sorted(placeholders(template) - set(names))
    if unknown:
        raise ConfigurationError(
            f"Template in {where} references undeclared axes: {', '.join(unknown)}"
        )


def _product(axes: Sequence[Axis]) -> list[dict[str, str]]:
    # itertools.product over no iterables yields one empty tuple
    names = [axis.name for axis in axes]
    return [
        dict(zip(names, combo, strict=True))
        for combo in itertools.product(*(axis.values for axis in axes))
    ]


def _apply_exclude(
    cells: list[dict[str, str]],
    exclude: Sequence[Mapping[str, str]],
    names: Sequence[str],
) -> list[dict[str, str]]:
    for rule in exclude:
        unknown = sorted(set(rule) - set(names))
        if unknown:
            raise ConfigurationError(
                f"Matrix exclude references undeclared axes: {', '.join(unknown)}"
            )
    return [
        cell
        for cell in cells
        if not any(all(cell[k] == v for k, v in rule.items()) for rule in exclude)
    ]


def _apply_include(
    cells: list[dict[str, str]],
    include: Sequence[Mapping[str, str]],
    names: Sequence[str],
) -> list[dict[str, str]]:
    result = list(cells)
    for extra in include:
        if set(extra) != set(names):
            raise ConfigurationError(
                f"Matrix include must set every axis ({', '.join(names)}), "
                f"got: {', '.join(sorted(extra))}"
            )
        cell = {name: extra[name] for name in names}
        if cell in result:
            raise ConfigurationError(
                f"Matrix include duplicates an existing job: {cell}"
            )
        result.append(cell)
    return result
