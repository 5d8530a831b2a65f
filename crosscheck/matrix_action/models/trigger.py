"""Models for incoming events and the conditions that gate a run."""

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """Snapshot of the event metadata a trigger is evaluated against."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Event kind (e.g., pull_request)")
    action: str | None = Field(
        default=None, description="Event action (e.g., labeled, synchronize)"
    )
    labels: frozenset[str] = Field(
        default_factory=frozenset, description="Labels present on the change"
    )
    changed_paths: tuple[str, ...] = Field(
        default_factory=tuple, description="Paths changed by the change"
    )
    change_id: str | None = Field(
        default=None, description="Logical change identifier (e.g., PR number)"
    )


class TriggerCondition(BaseModel):
    """Predicate deciding whether an event starts a run."""

    model_config = ConfigDict(frozen=True)

    event: str = Field(default="pull_request", description="Required event kind")
    label: str | None = Field(default=None, description="Required label name")
    actions: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Accepted event actions; empty accepts any action",
    )
    paths: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Glob patterns; when set, one changed path must match",
    )
