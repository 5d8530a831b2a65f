"""Evaluate trigger conditions against incoming events."""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from functools import lru_cache

from pydantic import ValidationError

from crosscheck.matrix_action.models.trigger import Event, TriggerCondition

logger = logging.getLogger(__name__)


def evaluate(
    condition: TriggerCondition, event: Event | Mapping[str, object] | None
) -> bool:
    """Decide whether an event starts a run.

    The event kind must match, the required label must be present and, when
    path filters are configured, at least one changed path must match them.
    Never raises: an event that is missing fields or malformed evaluates to
    False.

    Args:
        condition: Trigger condition of the pipeline
        event: Event snapshot, or a raw mapping of its fields

    Returns:
        True if the run should proceed

    """
    parsed = _coerce_event(event)
    if parsed is None:
        return False

    if parsed.kind != condition.event:
        logger.debug(f"Event kind {parsed.kind!r} != {condition.event!r}")
        return False

    if condition.actions and parsed.action not in condition.actions:
        logger.debug(f"Event action {parsed.action!r} not in {condition.actions}")
        return False

    if condition.label is not None and condition.label not in parsed.labels:
        logger.debug(f"Required label {condition.label!r} not present")
        return False

    if condition.paths and not any_path_matches(parsed.changed_paths, condition.paths):
        logger.debug("No changed path matches the path filters")
        return False

    return True


def _coerce_event(event: Event | Mapping[str, object] | None) -> Event | None:
    if isinstance(event, Event):
        return event
    if not isinstance(event, Mapping):
        return None
    try:
        return Event.model_validate(dict(event))
    except ValidationError:
        return None


def any_path_matches(paths: Iterable[str], patterns: Sequence[str]) -> bool:
    """Check whether any path passes the glob filters."""
    return any(path_matches(path, patterns) for path in paths)


def path_matches(path: str, patterns: Sequence[str]) -> bool:
    """Check a single path against ordered glob filters.

    Patterns are applied in order. A pattern prefixed with ``!`` excludes
    paths it matches, so later patterns can re-include them.
    """
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if _compile_glob(pattern[1:]).fullmatch(path):
                matched = False
        elif _compile_glob(pattern).fullmatch(path):
            matched = True
    return matched


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a path glob into a regular expression.

    ``*`` and ``?`` stay within one path segment, ``**`` spans segments and
    ``**/`` may also match nothing so ``**/Cargo.toml`` matches at the root.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts))
