"""Docker build context creation.

The build context is the target directory as a tar stream, with the
Dockerfile replaced by the per-architecture text. It is fed to
``docker build -`` on stdin.
"""

from __future__ import annotations

import fnmatch
import io
import logging
import os
import tarfile
from pathlib import Path
from typing import BinaryIO

from addon_builder.metadata.dockerfile import DOCKERFILE_NAME

logger = logging.getLogger(__name__)

DOCKERIGNORE_NAME = ".dockerignore"

# Never shipped to the daemon
ALWAYS_EXCLUDED = (".git", DOCKERFILE_NAME)


def load_dockerignore(target: Path) -> list[str]:
    """Read ``.dockerignore`` patterns (comments and blank lines dropped)."""
    path = target / DOCKERIGNORE_NAME
    if not path.is_file():
        return []
    patterns = []
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        patterns.append(stripped.strip("/"))
    return patterns


def _match_segments(parts: list[str], pattern_parts: list[str]) -> bool:
    if not pattern_parts:
        return not parts
    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == "**":
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatch.fnmatchcase(parts[0], head) and _match_segments(parts[1:], rest)


def matches_pattern(relative_path: str, pattern: str) -> bool:
    """Match a path against a ``.dockerignore`` pattern segment by segment.

    ``*`` and ``?`` never cross a ``/``; a ``**`` segment matches any number
    of directories.
    """
    return _match_segments(relative_path.split("/"), pattern.split("/"))


def is_excluded(relative_path: str, patterns: list[str]) -> bool:
    """Check whether a context-relative POSIX path is excluded.

    A path is excluded when it or any of its parent directories matches a
    pattern. Patterns starting with ``!`` re-include matching paths; the last
    matching pattern wins.
    """
    if relative_path in ALWAYS_EXCLUDED or relative_path.startswith(".git/"):
        return True

    parts = relative_path.split("/")
    candidates = ["/".join(parts[: i + 1]) for i in range(len(parts))]

    excluded = False
    for pattern in patterns:
        negate = pattern.startswith("!")
        pat = pattern[1:] if negate else pattern
        if any(matches_pattern(c, pat) for c in candidates):
            excluded = not negate
    return excluded


def create_build_context(target: Path, dockerfile: str, fileobj: BinaryIO) -> int:
    """Write a tar build context for target into fileobj.

    Args:
        target: Build target directory.
        dockerfile: Dockerfile text to place at the context root.
        fileobj: Binary file object to write the tar stream to.

    Returns:
        Number of members added (the Dockerfile included).
    """
    patterns = load_dockerignore(target)
    count = 0

    with tarfile.open(fileobj=fileobj, mode="w") as tar:
        for root, dirs, files in os.walk(target):
            root_path = Path(root)
            dirs.sort()
            for name in list(dirs):
                rel = (root_path / name).relative_to(target).as_posix()
                if is_excluded(rel, patterns):
                    dirs.remove(name)
                    continue
                tar.add(root_path / name, arcname=rel, recursive=False)
                count += 1
            for name in sorted(files):
                rel = (root_path / name).relative_to(target).as_posix()
                if is_excluded(rel, patterns):
                    continue
                tar.add(root_path / name, arcname=rel, recursive=False)
                count += 1

        data = dockerfile.encode("utf-8")
        info = tarfile.TarInfo(DOCKERFILE_NAME)
        info.size = len(data)
        info.mode = 0o644
        tar.addfile(info, io.BytesIO(data))
        count += 1

    logger.debug("Build context for %s has %d members", target, count)
    return count


__all__ = [
    "ALWAYS_EXCLUDED",
    "DOCKERIGNORE_NAME",
    "create_build_context",
    "is_excluded",
    "load_dockerignore",
]
