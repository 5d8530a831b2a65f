"""Execute a single matrix job in a provisioned environment."""

import asyncio
import logging

from crosscheck.matrix_action.models.job_result import JobResult
from crosscheck.matrix_action.models.matrix import JobSpec
from crosscheck.matrix_action.providers.base import (
    EnvironmentHandle,
    EnvironmentProvider,
)

logger = logging.getLogger(__name__)


class JobExecutor:
    """Runs jobs through an environment provider and records their outcome."""

    def __init__(self, provider: EnvironmentProvider) -> None:
        """Initialize executor with an environment provider."""
        self.provider = provider

    async def execute(self, job: JobSpec) -> JobResult:
        """Run a job's command in an environment matching its platform.

        Exit code zero maps to succeeded and anything else to failed. Failure
        to provision or run the environment becomes an errored result. Only
        cancellation propagates, after the environment is released.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        def _finish(**fields: object) -> JobResult:
            return JobResult.model_validate(
                {"job": job, "duration": loop.time() - start_time, **fields}
            )

        logger.info(f"Provisioning {job.platform} for job {job.label}")
        try:
            handle = await self.provider.provision(job.platform)
        except Exception as e:
            logger.error(f"Failed to provision {job.platform} for {job.label}: {e}")
            return _finish(status="errored", reason=f"provision failed: {e}")

        try:
            async with asyncio.timeout(job.timeout) as deadline:
                exit_code, output_ref = await self.provider.run(
                    handle, job.command, job.env
                )
        except asyncio.CancelledError:
            await self._release(handle, job)
            raise
        except TimeoutError as e:
            await self._release(handle, job)
            if deadline.expired() and job.timeout is not None:
                logger.error(f"Job {job.label} timed out after {job.timeout:g}s")
                return _finish(
                    status="errored", reason=f"timed out after {job.timeout:g}s"
                )
            logger.error(f"Job {job.label} could not run: {type(e).__name__}: {e}")
            return _finish(status="errored", reason=str(e) or type(e).__name__)
        except Exception as e:
            logger.error(f"Job {job.label} could not run: {type(e).__name__}: {e}")
            await self._release(handle, job)
            return _finish(status="errored", reason=str(e) or type(e).__name__)

        await self._release(handle, job)
        status = "succeeded" if exit_code == 0 else "failed"
        return _finish(status=status, exit_code=exit_code, output_ref=output_ref)

    async def _release(self, handle: EnvironmentHandle, job: JobSpec) -> None:
        try:
            await self.provider.release(handle)
        except Exception as e:
            logger.warning(f"Failed to release environment for {job.label}: {e}")
