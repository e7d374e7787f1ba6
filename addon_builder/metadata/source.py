"""Source control helpers.

Git is used for two things: cloning a remote repository to build from,
and deriving the short revision reference embedded in the built image.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from addon_builder.errors import (
    GitCloneError,
    NotGitRepositoryError,
    WorkdirNotEmptyError,
)
from addon_builder.types import DIRTY_BUILD_REF

logger = logging.getLogger(__name__)


def clone_repository(
    repository: str,
    branch: str,
    workdir: Path,
    git_binary: str = "git",
) -> None:
    """Shallow clone a single branch of a remote repository into workdir.

    Args:
        repository: Repository URL.
        branch: Branch to clone.
        workdir: Destination directory; must be missing or empty.
        git_binary: Git executable.

    Raises:
        WorkdirNotEmptyError: If workdir already has content.
        GitCloneError: If cloning fails.
    """
    logger.info("Cloning remote Git repository %s (branch %s)", repository, branch)

    if workdir.exists() and any(workdir.iterdir()):
        raise WorkdirNotEmptyError(str(workdir))

    workdir.mkdir(parents=True, exist_ok=True)
    cmd = [
        git_binary,
        "clone",
        "--depth",
        "1",
        "--single-branch",
        repository,
        "-b",
        branch,
        str(workdir),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise GitCloneError(f"Failed to run git clone: {e}") from e

    if result.returncode != 0:
        logger.error("git clone failed: %s", result.stderr.strip())
        raise GitCloneError(
            f"Failed cloning requested Git repository (exit code {result.returncode})"
        )


def _git(git_binary: str, target: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [git_binary, "-C", str(target), *args],
        capture_output=True,
        text=True,
        check=False,
    )


def get_build_ref(target: Path, git_binary: str = "git") -> str:
    """Return the short revision of HEAD, or ``dirty`` for uncommitted changes.

    Args:
        target: Directory inside a git checkout.
        git_binary: Git executable.

    Returns:
        Short commit hash or ``dirty``.

    Raises:
        NotGitRepositoryError: If target is not inside a git checkout.
    """
    try:
        if _git(git_binary, target, "rev-parse").returncode != 0:
            raise NotGitRepositoryError(str(target))

        status = _git(git_binary, target, "status", "--porcelain")
        if status.returncode != 0:
            raise NotGitRepositoryError(str(target))
        if status.stdout.strip():
            return DIRTY_BUILD_REF

        head = _git(git_binary, target, "rev-parse", "--short", "HEAD")
    except OSError as e:
        raise NotGitRepositoryError(str(target)) from e

    if head.returncode != 0:
        # A repository without commits has no HEAD to describe
        raise NotGitRepositoryError(str(target))
    return head.stdout.strip()


__all__ = ["clone_repository", "get_build_ref"]
