"""Local subprocess provider running jobs on the current host."""

import asyncio
import logging
import os
import signal
import sys
import tempfile
import uuid
from collections.abc import Mapping
from pathlib import Path

from crosscheck.matrix_action.errors import ProvisionError
from crosscheck.matrix_action.models.pipeline_config import LocalConfig
from crosscheck.matrix_action.providers.base import (
    EnvironmentHandle,
    EnvironmentProvider,
)

logger = logging.getLogger(__name__)

HOST_PLATFORMS: dict[str, list[str]] = {
    "linux": ["linux", "ubuntu-latest", "ubuntu-24.04", "ubuntu-22.04"],
    "darwin": ["macos", "macos-latest", "macos-15", "macos-14"],
    "win32": ["windows", "windows-latest", "windows-2022"],
}


def host_platforms() -> list[str]:
    """Platform labels served by the current host."""
    return HOST_PLATFORMS.get(sys.platform, [sys.platform])


class LocalProvider(EnvironmentProvider):
    """Runs job commands as shell subprocesses of this process."""

    name = "local"

    def __init__(self, config: LocalConfig | None = None) -> None:
        """Initialize local provider with configuration."""
        self.config = config or LocalConfig()
        platforms = self.config.platforms or host_platforms()
        self.platforms = {p.lower() for p in platforms}
        self._output_dir: Path | None = (
            Path(self.config.output_dir) if self.config.output_dir else None
        )

    @property
    def output_dir(self) -> Path:
        """Directory receiving one log file per job."""
        if self._output_dir is None:
            self._output_dir = Path(tempfile.mkdtemp(prefix="crosscheck-"))
        self._output_dir.mkdir(parents=True, exist_ok=True)
        return self._output_dir

    async def provision(self, platform: str) -> EnvironmentHandle:
        """Accept platforms this host can serve."""
        if platform.lower() not in self.platforms:
            raise ProvisionError(
                f"Platform {platform!r} is not available on this host "
                f"(available: {', '.join(sorted(self.platforms))})"
            )
        return EnvironmentHandle(id=uuid.uuid4().hex[:12], platform=platform)

    async def run(
        self,
        handle: EnvironmentHandle,
        command: str,
        env: Mapping[str, str],
    ) -> tuple[int, str | None]:
        """Run the command in a shell and capture combined output to a file."""
        log_file = self.output_dir / f"{handle.id}.log"
        logger.info(f"Running locally [{handle.id}]: {command}")

        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=self.config.cwd,
            env={**os.environ, **env},
            executable=self.config.shell,
            start_new_session=sys.platform != "win32",
        )
        handle.run_id = str(process.pid)

        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            logger.info(f"Killing local run [{handle.id}]")
            _kill_process_group(process)
            await process.wait()
            raise

        log_file.write_bytes(stdout or b"")
        exit_code = process.returncode if process.returncode is not None else -1
        logger.info(f"Local run [{handle.id}] exited with code {exit_code}")
        return (exit_code, str(log_file))


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and every process it started.

    Children of the shell keep the output pipe open, so killing only the
    shell leaves ``wait()`` blocked until they finish on their own.
    """
    try:
        if sys.platform == "win32":
            process.kill()
        else:
            os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
