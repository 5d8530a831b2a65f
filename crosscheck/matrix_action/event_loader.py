"""Build trigger events from GitHub webhook payloads."""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from crosscheck.matrix_action.models.trigger import Event

logger = logging.getLogger(__name__)


def event_from_payload(
    event_name: str,
    payload: Mapping[str, object],
    changed_paths: Iterable[str] = (),
) -> Event:
    """Convert a webhook payload into an event snapshot.

    The label set combines the labels already on the pull request with the
    label that was just applied, since a ``labeled`` payload may predate the
    label appearing on the pull request itself.
    """
    labels: set[str] = set()

    pull_request = payload.get("pull_request")
    if isinstance(pull_request, Mapping):
        labels.update(_label_names(pull_request.get("labels")))

    label = payload.get("label")
    if isinstance(label, Mapping) and isinstance(label.get("name"), str):
        labels.add(str(label["name"]))

    action = payload.get("action")
    number = payload.get("number")
    if number is None and isinstance(pull_request, Mapping):
        number = pull_request.get("number")

    return Event(
        kind=event_name,
        action=action if isinstance(action, str) else None,
        labels=frozenset(labels),
        changed_paths=tuple(changed_paths),
        change_id=str(number) if number is not None else None,
    )


def diff_refs(payload: Mapping[str, object]) -> tuple[str, str] | None:
    """Base and head commits of the pull request in a payload, if present."""
    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, Mapping):
        return None

    base = _sha(pull_request.get("base"))
    head = _sha(pull_request.get("head"))
    if base is None or head is None:
        return None
    return (base, head)


def read_payload(event_path: Path) -> dict[str, object]:
    """Read a webhook payload from disk.

    Raises:
        ValueError: If the file is not a JSON object

    """
    try:
        payload = json.loads(event_path.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in event file {event_path}: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError(f"Event file {event_path} must contain a JSON object")
    return payload


def _label_names(labels: object) -> list[str]:
    if not isinstance(labels, list):
        return []
    return [
        str(item["name"])
        for item in labels
        if isinstance(item, Mapping) and isinstance(item.get("name"), str)
    ]


def _sha(ref: object) -> str | None:
    if not isinstance(ref, Mapping):
        return None
    sha = ref.get("sha")
    return sha if isinstance(sha, str) and sha else None
