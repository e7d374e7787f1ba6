"""Build orchestration.

This module provides the high-level build API:
- run_build(): clone (optional), resolve, validate, then build, tag and
  push every requested architecture inside a managed build environment

Phase order is fixed: warmup -> build -> tag -> push, with a join between
phases. The environment is always torn down before returning or raising.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable

from addon_builder.builds.pipeline import ArchitecturePipeline, create_job
from addon_builder.builds.runner import CommandRunner, run_streamed
from addon_builder.builds.scheduler import active_jobs, run_phase
from addon_builder.config import Settings, get_settings
from addon_builder.environment.lifecycle import BuildEnvironment
from addon_builder.metadata.resolver import resolve_metadata
from addon_builder.metadata.source import clone_repository
from addon_builder.models import BuildRequest, RunReport, SharedBuildState
from addon_builder.types import Phase
from addon_builder.validation import has_extended_privileges, validate

logger = logging.getLogger(__name__)


def run_build(
    request: BuildRequest,
    settings: Settings | None = None,
    *,
    environment_factory: Callable[[Settings], BuildEnvironment] = BuildEnvironment,
    run: CommandRunner = run_streamed,
    privilege_probe: Callable[[], bool] | None = None,
) -> RunReport:
    """Build, tag and optionally push images for all requested architectures.

    Args:
        request: The build request.
        settings: Application settings (defaults to environment settings).
        environment_factory: Creates the build environment to run inside.
        run: Executes docker commands for the pipeline.
        privilege_probe: Overrides the extended privileges check.

    Returns:
        RunReport with every per-architecture phase result. Per-architecture
        failures are reported here, not raised.

    Raises:
        BuilderError: For configuration and environment failures.
    """
    if settings is None:
        settings = get_settings()

    if request.repository:
        clone_repository(
            request.repository,
            request.branch,
            request.workdir,
            git_binary=settings.git_binary,
        )

    metadata = resolve_metadata(request, settings)
    if privilege_probe is None:
        privilege_probe = functools.partial(has_extended_privileges, settings.ip_binary)
    validate(request, metadata, privilege_probe=privilege_probe)

    jobs = [create_job(metadata, arch) for arch in metadata.archs]
    report = RunReport(metadata=metadata, jobs=jobs)
    state = SharedBuildState(cache_enabled=request.cache)
    pipeline = ArchitecturePipeline(request, metadata, state, settings, run=run)

    logger.info(
        "Building %s version %s for %s",
        metadata.image,
        metadata.version,
        ", ".join(metadata.archs),
    )

    with environment_factory(settings) as environment:
        environment.enable()

        if state.cache_enabled:
            run_phase(Phase.WARMUP, pipeline.warmup, jobs)

        run_phase(Phase.BUILD, pipeline.build, jobs, parallel=request.parallel)
        run_phase(Phase.TAG, pipeline.tag, active_jobs(jobs))

        if request.push:
            run_phase(Phase.PUSH, pipeline.push, active_jobs(jobs))

    return report


__all__ = ["run_build"]
