"""Models for matrix axes and the jobs expanded from them."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


def matrix_value(value: object) -> str:
    """Return the text of a matrix value read from YAML.

    Only strings and integers keep their exact text through YAML, so bare
    values like ``1.70`` (read as ``1.7``) or ``yes`` are rejected.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise ValueError(
        f"Matrix value {value!r} is not a string; quote it in YAML, "
        'e.g. "1.70"'
    )


class Axis(BaseModel):
    """A named, ordered list of values taking part in the cross-product."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Axis name (e.g., toolchain)")
    values: tuple[str, ...] = Field(..., description="Ordered axis values")

    @field_validator("values", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if isinstance(value, list | tuple):
            return tuple(matrix_value(v) for v in value)
        return value


class JobSpec(BaseModel):
    """One resolved cell of the matrix."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position in expansion order")
    values: dict[str, str] = Field(
        default_factory=dict, description="Axis name to value for this cell"
    )
    command: str = Field(..., description="Command with axis values substituted")
    env: dict[str, str] = Field(
        default_factory=dict, description="Environment variables for the command"
    )
    platform: str = Field(..., description="Platform the job must run on")
    timeout: float | None = Field(
        default=None, description="Maximum command duration in seconds"
    )

    @property
    def key(self) -> tuple[str, ...]:
        """Axis-value tuple identifying this cell."""
        return tuple(self.values.values())

    @property
    def label(self) -> str:
        """Human-readable cell name, e.g. ``(stable, ubuntu-latest)``."""
        return f"({', '.join(self.key)})"
