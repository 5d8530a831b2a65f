"""GitHub Actions provider dispatching one workflow run per job."""

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Mapping
from datetime import datetime

import aiohttp

from crosscheck.matrix_action.errors import ExecutionError
from crosscheck.matrix_action.models.pipeline_config import GitHubConfig
from crosscheck.matrix_action.providers.base import (
    EnvironmentHandle,
    EnvironmentProvider,
)

logger = logging.getLogger(__name__)

# Conclusions that reflect the command's own outcome; anything else means the
# run never produced a verdict for the command.
EXIT_CODES: dict[str, int] = {
    "success": 0,
    "neutral": 0,
    "failure": 1,
}


class GitHubProvider(EnvironmentProvider):
    """Runs jobs through a ``workflow_dispatch`` workflow.

    The dispatched workflow receives ``job_id``, ``platform``, ``command`` and
    ``env`` inputs and must put ``job_id`` in its ``run-name`` so the run can
    be found again.
    """

    name = "github"

    def __init__(self, config: GitHubConfig) -> None:
        """Initialize GitHub provider with configuration."""
        self.config = config
        self.base_url = config.base_url
        # handle id to dispatch time, for runs that may not be found yet
        self._dispatched: dict[str, float] = {}

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
        }

    async def provision(self, platform: str) -> EnvironmentHandle:
        """Reserve a correlation id; GitHub provisions the runner itself."""
        return EnvironmentHandle(id=uuid.uuid4().hex, platform=platform)

    async def run(
        self,
        handle: EnvironmentHandle,
        command: str,
        env: Mapping[str, str],
    ) -> tuple[int, str | None]:
        """Dispatch the job workflow and wait for its conclusion."""
        dispatch_time = time.time()
        await self._dispatch(handle, command, env)
        self._dispatched[handle.id] = dispatch_time

        await asyncio.sleep(5)

        handle.run_id = await self._find_workflow_run(dispatch_time, handle.id)
        logger.info(f"Job {handle.id} dispatched as workflow run {handle.run_id}")

        data = await self._wait_for_completion(handle.run_id)
        html_url = str(data.get("html_url", "")) or None
        conclusion = str(data.get("conclusion"))
        if conclusion not in EXIT_CODES:
            raise ExecutionError(
                f"Workflow run {handle.run_id} concluded with {conclusion!r}"
            )
        return (EXIT_CODES[conclusion], html_url)

    async def release(self, handle: EnvironmentHandle) -> None:
        """Cancel the workflow run if it is still in progress.

        A job cancelled between dispatch and run lookup has no run id yet, so
        the run is looked up by job id first.
        """
        dispatch_time = self._dispatched.pop(handle.id, None)
        if handle.run_id is None:
            if dispatch_time is None:
                return
            logger.info(f"Looking up dispatched workflow run for job {handle.id}")
            handle.run_id = await self._find_workflow_run(dispatch_time, handle.id)

        data = await self._get_run(handle.run_id)
        if data.get("status") == "completed":
            return

        logger.info(f"Cancelling workflow run {handle.run_id}")
        async with aiohttp.ClientSession() as session:
            url = (
                f"{self.base_url}/repos/{self.config.owner}/{self.config.repo}/"
                f"actions/runs/{handle.run_id}/cancel"
            )
            async with session.post(url, headers=self.headers) as response:
                if response.status not in {202, 409}:
                    text = await response.text()
                    raise RuntimeError(
                        f"Failed to cancel workflow run: {response.status} {text}"
                    )

    async def _dispatch(
        self, handle: EnvironmentHandle, command: str, env: Mapping[str, str]
    ) -> None:
        async with aiohttp.ClientSession() as session:
            url = (
                f"{self.base_url}/repos/{self.config.owner}/{self.config.repo}/"
                f"actions/workflows/{self.config.workflow_id}/dispatches"
            )
            payload = {
                "ref": self.config.ref,
                "inputs": {
                    "job_id": handle.id,
                    "platform": handle.platform,
                    "command": command,
                    "env": json.dumps(dict(env)),
                },
            }

            async with session.post(
                url, headers=self.headers, json=payload
            ) as response:
                if response.status != 204:
                    text = await response.text()
                    raise RuntimeError(
                        f"Failed to dispatch workflow: {response.status} {text}"
                    )

    async def _wait_for_completion(self, run_id: str) -> Mapping[str, object]:
        """Poll a workflow run until it completes."""
        while True:
            data = await self._get_run(run_id)
            if data.get("status") == "completed":
                return data
            await asyncio.sleep(self.config.poll_interval)

    async def _get_run(self, run_id: str) -> Mapping[str, object]:
        async with aiohttp.ClientSession() as session:
            url = (
                f"{self.base_url}/repos/{self.config.owner}/{self.config.repo}/"
                f"actions/runs/{run_id}"
            )
            async with session.get(url, headers=self.headers) as response:
                if response.status != 200:
                    text = await response.text()
                    raise RuntimeError(
                        f"Failed to get workflow run: {response.status} {text}"
                    )

                data: Mapping[str, object] = await response.json()
        return data

    async def _find_workflow_run(self, dispatch_time: float, job_id: str) -> str:
        """Find the workflow run that was just dispatched.

        Matches runs by time window and job id in display_title.
        """
        for attempt in range(10):
            runs = await self._fetch_recent_runs()
            run_id = self._find_matching_run(runs, dispatch_time, job_id)

            if run_id:
                return run_id

            if attempt < 9:
                await asyncio.sleep(2)

        raise RuntimeError(f"Could not find dispatched workflow run for job {job_id}")

    async def _fetch_recent_runs(self) -> list[object]:
        """Fetch recent runs of the job workflow."""
        async with aiohttp.ClientSession() as session:
            url = (
                f"{self.base_url}/repos/{self.config.owner}/{self.config.repo}/"
                f"actions/workflows/{self.config.workflow_id}/runs"
            )
            params = {"per_page": "20", "event": "workflow_dispatch"}

            async with session.get(
                url, headers=self.headers, params=params
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    raise RuntimeError(
                        f"Failed to list workflow runs: {response.status} {text}"
                    )

                data: Mapping[str, object] = await response.json()

        runs = data.get("workflow_runs", [])
        return runs if isinstance(runs, list) else []

    def _find_matching_run(
        self, runs: list[object], dispatch_time: float, job_id: str
    ) -> str | None:
        """Find a run created after dispatch carrying the job id."""
        for run in runs:
            if not isinstance(run, dict):
                continue

            display_title = run.get("display_title")
            if not isinstance(display_title, str) or job_id not in display_title:
                continue

            created_at = run.get("created_at")
            if not isinstance(created_at, str):
                continue

            created_time = datetime.fromisoformat(
                created_at.replace("Z", "+00:00")
            ).timestamp()
            if created_time < dispatch_time - 60:
                continue

            run_id = run.get("id")
            if isinstance(run_id, int):
                return str(run_id)

        return None
