"""Detect paths changed between two git references."""

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


async def detect_changed_paths(
    repo_path: Path, base_ref: str, head_ref: str
) -> list[str]:
    """List files changed between base_ref and head_ref.

    Args:
        repo_path: Path to the git repository
        base_ref: Base git reference (e.g., "origin/main")
        head_ref: Head git reference (e.g., "HEAD")

    Returns:
        Sorted paths relative to the repository root

    Raises:
        RuntimeError: If a reference cannot be resolved or git fails

    """
    logger.info(
        "Detecting changed paths",
        extra={
            "repo_path": str(repo_path),
            "base_ref": base_ref,
            "head_ref": head_ref,
        },
    )

    resolved_base = await _resolve_ref(repo_path, base_ref)
    resolved_head = await _resolve_ref(repo_path, head_ref)

    logger.info(f"Running: git diff --name-only {resolved_base} {resolved_head}")
    returncode, stdout, stderr = await _git(
        repo_path, "diff", "--name-only", resolved_base, resolved_head
    )

    if returncode != 0:
        logger.error(f"Git diff command failed with exit code {returncode}")
        logger.error(f"Git stderr: {stderr}")
        raise RuntimeError(f"Git command failed: {stderr}")

    paths = sorted({line for line in stdout.split("\n") if line})
    logger.info(f"Found {len(paths)} changed paths")
    return paths


async def _resolve_ref(repo_path: Path, ref: str) -> str:
    """Resolve a git reference, trying origin/ prefix if needed.

    In CI checkouts refs often exist only as origin/main instead of main.

    Raises:
        RuntimeError: If the reference cannot be resolved

    """
    returncode, stdout, stderr = await _git(repo_path, "rev-parse", "--verify", ref)
    if returncode == 0:
        logger.info(f"Resolved ref '{ref}' to {stdout.strip()}")
        return ref

    if not ref.startswith("origin/") and not ref.startswith("refs/"):
        origin_ref = f"origin/{ref}"
        returncode, stdout, stderr = await _git(
            repo_path, "rev-parse", "--verify", origin_ref
        )
        if returncode == 0:
            logger.info(f"Resolved ref '{ref}' as '{origin_ref}' to {stdout.strip()}")
            return origin_ref

    raise RuntimeError(
        f"Cannot resolve git ref '{ref}'. Tried '{ref}' and 'origin/{ref}'. "
        f"Error: {stderr.strip()}"
    )


async def _git(repo_path: Path, *args: str) -> tuple[int, str, str]:
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=repo_path,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    returncode = process.returncode if process.returncode is not None else -1
    return (returncode, stdout.decode(), stderr.decode())
