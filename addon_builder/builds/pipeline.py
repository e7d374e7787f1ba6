"""Per-architecture build pipeline.

Each phase maps to one or more docker commands for a single
ArchitectureJob and reports a PhaseResult; command failures never raise.

Phases:
- warmup: pull ``<image>:latest`` as cache source (failure disables cache)
- build: ``docker build`` from a generated context
- tag: tag the version as ``latest`` and/or ``test``
- push: push the version, then ``latest``, then ``test``
"""

from __future__ import annotations

import logging
import shlex
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

from addon_builder.builds.commands import (
    compose_build_command,
    compose_pull_command,
    compose_push_command,
    compose_tag_command,
    format_build_date,
    requested_tags,
)
from addon_builder.builds.context import create_build_context
from addon_builder.builds.runner import CommandRunner, run_streamed
from addon_builder.metadata.dockerfile import inject_labels
from addon_builder.models import ArchitectureJob
from addon_builder.types import Phase, PhaseResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from addon_builder.config import Settings
    from addon_builder.models import BuildRequest, ResolvedMetadata, SharedBuildState

logger = logging.getLogger(__name__)


def create_job(metadata: ResolvedMetadata, arch: str) -> ArchitectureJob:
    """Derive the unit of work for one architecture.

    Substitutes the architecture placeholder and appends any missing
    type/version/architecture labels to the Dockerfile.
    """
    dockerfile = inject_labels(
        metadata.dockerfile_for(arch),
        metadata.existing_labels,
        build_type=metadata.build_type or "",
        version=metadata.version or "",
        arch=arch,
    )
    return ArchitectureJob(
        arch=arch,
        image=metadata.image_for(arch),
        dockerfile=dockerfile,
        build_from=metadata.build_from.get(arch, ""),
    )


class ArchitecturePipeline:
    """Runs pipeline phases for architecture jobs of one build run."""

    def __init__(
        self,
        request: BuildRequest,
        metadata: ResolvedMetadata,
        state: SharedBuildState,
        settings: Settings,
        *,
        run: CommandRunner = run_streamed,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.request = request
        self.metadata = metadata
        self.state = state
        self.settings = settings
        self._run = run
        self._now = now

    @property
    def docker(self) -> str:
        return self.settings.docker_binary

    @property
    def version(self) -> str:
        return self.metadata.version or ""

    def _log_path(self, job: ArchitectureJob) -> Path | None:
        if self.settings.log_dir is None:
            return None
        return Path(self.settings.log_dir) / f"{job.arch}.log"

    def _execute(
        self, cmd: list[str], job: ArchitectureJob, stdin: IO[bytes] | None = None
    ) -> int:
        return self._run(
            cmd, label=job.arch, stdin=stdin, log_path=self._log_path(job)
        )

    def warmup(self, job: ArchitectureJob) -> PhaseResult:
        """Pull the previous ``latest`` image to use as build cache."""
        logger.info("[%s] Warming up cache", job.arch)
        cmd = compose_pull_command(self.docker, job)
        exit_code = self._execute(cmd, job)
        if exit_code != 0:
            logger.warning("[%s] Cache warmup failed, continuing without it", job.arch)
            self.state.disable_cache()
            return PhaseResult(
                job.arch,
                Phase.WARMUP,
                success=False,
                exit_code=exit_code,
                message="Cache warmup failed, continuing without it",
                command=shlex.join(cmd),
            )
        return PhaseResult(
            job.arch,
            Phase.WARMUP,
            success=True,
            message="Cache warmed up",
            command=shlex.join(cmd),
        )

    def build(self, job: ArchitectureJob) -> PhaseResult:
        """Build the image for one architecture."""
        logger.info("[%s] Running Docker build", job.arch)
        build_date = format_build_date(self._now() if self._now else None)
        cmd = compose_build_command(
            self.docker,
            job,
            self.metadata,
            cache=self.state.cache_enabled,
            build_date=build_date,
        )

        try:
            with tempfile.TemporaryFile() as context:
                create_build_context(self.request.target_dir, job.dockerfile, context)
                context.seek(0)
                exit_code = self._execute(cmd, job, stdin=context)
        except OSError as e:
            logger.error("[%s] Failed to create build context: %s", job.arch, e)
            return PhaseResult(
                job.arch,
                Phase.BUILD,
                success=False,
                exit_code=-1,
                message=f"Failed to create build context: {e}",
                command=shlex.join(cmd),
            )

        if exit_code != 0:
            return PhaseResult(
                job.arch,
                Phase.BUILD,
                success=False,
                exit_code=exit_code,
                message="Docker build failed",
                command=shlex.join(cmd),
            )

        logger.info("[%s] Docker build finished", job.arch)
        return PhaseResult(
            job.arch,
            Phase.BUILD,
            success=True,
            message="Docker build finished",
            command=shlex.join(cmd),
        )

    def tag(self, job: ArchitectureJob) -> PhaseResult:
        """Tag the version as ``latest`` and/or ``test`` as requested."""
        cmd: list[str] | None = None
        for tag in requested_tags(self.request.tag_latest, self.request.tag_test):
            logger.info("[%s] Tagging image as %s", job.arch, tag)
            cmd = compose_tag_command(self.docker, job, self.version, tag)
            exit_code = self._execute(cmd, job)
            if exit_code != 0:
                return PhaseResult(
                    job.arch,
                    Phase.TAG,
                    success=False,
                    exit_code=exit_code,
                    message=f"Setting {tag} tag failed",
                    command=shlex.join(cmd),
                )

        return PhaseResult(
            job.arch,
            Phase.TAG,
            success=True,
            message="Tagged" if cmd else "No extra tags requested",
            command=shlex.join(cmd) if cmd else None,
        )

    def push(self, job: ArchitectureJob) -> PhaseResult:
        """Push the version, then each requested extra tag."""
        tags = [
            self.version,
            *requested_tags(self.request.tag_latest, self.request.tag_test),
        ]
        cmd: list[str] = []
        for tag in tags:
            logger.info("[%s] Pushing Docker image %s", job.arch, job.reference(tag))
            cmd = compose_push_command(self.docker, job, tag)
            exit_code = self._execute(cmd, job)
            if exit_code != 0:
                return PhaseResult(
                    job.arch,
                    Phase.PUSH,
                    success=False,
                    exit_code=exit_code,
                    message=f"Docker push of {job.reference(tag)} failed",
                    command=shlex.join(cmd),
                )

        logger.info("[%s] Push finished", job.arch)
        return PhaseResult(
            job.arch,
            Phase.PUSH,
            success=True,
            message="Push finished",
            command=shlex.join(cmd),
        )


__all__ = ["ArchitecturePipeline", "create_job"]
