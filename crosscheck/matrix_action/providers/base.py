"""Abstract base class for job execution environment providers."""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from pydantic import BaseModel, Field


class EnvironmentHandle(BaseModel):
    """Reference to a provisioned execution environment."""

    id: str = Field(..., description="Provider-specific environment identifier")
    platform: str = Field(..., description="Platform the environment provides")
    run_id: str | None = Field(
        default=None, description="Identifier of the command run, once started"
    )


class EnvironmentProvider(ABC):
    """Capability interface for provisioning environments and running commands."""

    name: str = "base"

    @abstractmethod
    async def provision(self, platform: str) -> EnvironmentHandle:
        """Provision an environment for a platform.

        Args:
            platform: Platform label (e.g., "ubuntu-latest")

        Returns:
            Handle owned exclusively by the caller until released

        Raises:
            ProvisionError: If the platform cannot be served

        """

    @abstractmethod
    async def run(
        self,
        handle: EnvironmentHandle,
        command: str,
        env: Mapping[str, str],
    ) -> tuple[int, str | None]:
        """Run a command in a provisioned environment.

        Args:
            handle: Handle returned by provision
            command: Shell command to execute
            env: Extra environment variables

        Returns:
            Tuple of (exit_code, output_ref)

        """

    async def release(self, handle: EnvironmentHandle) -> None:  # noqa: B027
        """Release a provisioned environment.

        Providers without environment state keep the default no-op.
        """
