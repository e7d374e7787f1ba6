"""Docker command composition.

Pure functions turning an ArchitectureJob plus resolved metadata into the
argument lists executed by the pipeline.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from addon_builder.models import ArchitectureJob, ResolvedMetadata

LATEST_TAG = "latest"
TEST_TAG = "test"

BUILD_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_build_date(now: datetime | None = None) -> str:
    """Return the build timestamp in UTC, ISO-8601 with seconds precision."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime(BUILD_DATE_FORMAT)


def compose_build_args(
    job: ArchitectureJob,
    metadata: ResolvedMetadata,
    build_date: str,
) -> list[str]:
    """Compose ``KEY=VALUE`` build arguments for a job.

    Fixed arguments come first, user arguments follow in insertion order.
    """
    args = [
        f"BUILD_FROM={job.build_from}",
        f"BUILD_REF={metadata.build_ref}",
        f"BUILD_TYPE={metadata.build_type}",
        f"BUILD_ARCH={job.arch}",
        f"BUILD_DATE={build_date}",
    ]
    args.extend(f"{key}={value}" for key, value in metadata.build_args.items())
    return args


def compose_build_command(
    docker: str,
    job: ArchitectureJob,
    metadata: ResolvedMetadata,
    *,
    cache: bool,
    build_date: str,
) -> list[str]:
    """Compose the ``docker build`` command reading its context from stdin.

    Args:
        docker: Docker client executable.
        job: Architecture job to build.
        metadata: Resolved (validated) metadata.
        cache: Use ``<image>:latest`` as cache source instead of no cache.
        build_date: Value for the BUILD_DATE build argument.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [
        docker,
        "build",
        "--pull",
        "--compress",
        "--tag",
        job.reference(metadata.version or ""),
    ]
    for arg in compose_build_args(job, metadata, build_date):
        cmd.extend(["--build-arg", arg])

    if metadata.squash:
        cmd.append("--squash")

    if cache:
        cmd.extend(["--cache-from", job.reference(LATEST_TAG)])
    else:
        cmd.append("--no-cache")

    cmd.append("-")
    return cmd


def compose_pull_command(docker: str, job: ArchitectureJob) -> list[str]:
    """Compose the cache warmup pull of ``<image>:latest``."""
    return [docker, "pull", job.reference(LATEST_TAG)]


def compose_tag_command(
    docker: str, job: ArchitectureJob, version: str, tag: str
) -> list[str]:
    """Compose tagging ``<image>:<version>`` as ``<image>:<tag>``."""
    return [docker, "tag", job.reference(version), job.reference(tag)]


def compose_push_command(docker: str, job: ArchitectureJob, tag: str) -> list[str]:
    """Compose pushing ``<image>:<tag>``."""
    return [docker, "push", job.reference(tag)]


def requested_tags(tag_latest: bool, tag_test: bool) -> list[str]:
    """Return the extra tags requested, in push order."""
    tags = []
    if tag_latest:
        tags.append(LATEST_TAG)
    if tag_test:
        tags.append(TEST_TAG)
    return tags


__all__ = [
    "BUILD_DATE_FORMAT",
    "LATEST_TAG",
    "TEST_TAG",
    "compose_build_args",
    "compose_build_command",
    "compose_pull_command",
    "compose_push_command",
    "compose_tag_command",
    "format_build_date",
    "requested_tags",
]
