"""Data model for a build run.

A run starts from an immutable ``BuildRequest``, derives a single
``ResolvedMetadata`` value that is threaded through validation and the
pipeline, and fans out into one ``ArchitectureJob`` per architecture.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from addon_builder.types import (
    ARCH_PLACEHOLDER,
    PHASE_EXIT_CODES,
    ExitCode,
    Phase,
    PhaseResult,
)


@dataclass(frozen=True)
class BuildRequest:
    """User-supplied build intent, as parsed from the command line.

    Attributes:
        target: Directory containing the Dockerfile to build, relative to
            workdir unless absolute.
        workdir: Working directory; remote repositories are cloned here.
        repository: Remote git repository to clone into ``workdir``.
        branch: Branch to clone when using a remote repository.
        version: Explicit version override.
        image: Explicit image name override (may contain ``{arch}``).
        archs: Requested architectures, in request order.
        build_type: Explicit build type override (None = auto detect).
        build_args: Extra build arguments.
        build_all: Build every supported architecture.
        parallel: Run the build phase for all architectures concurrently.
        push: Push resulting images.
        cache: Use the previous ``latest`` image as build cache.
        squash: Squash image layers (None = use metadata / default).
        tag_latest: Tag (and push) the build as ``latest``.
        tag_test: Tag (and push) the build as ``test``.
    """

    target: Path = Path(".")
    workdir: Path = field(default_factory=Path.cwd)
    repository: str | None = None
    branch: str = "master"
    version: str | None = None
    image: str | None = None
    archs: Sequence[str] = ()
    build_type: str | None = None
    build_args: Mapping[str, str] = field(default_factory=dict)
    build_all: bool = False
    parallel: bool = True
    push: bool = False
    cache: bool = True
    squash: bool | None = None
    tag_latest: bool = False
    tag_test: bool = False

    def __post_init__(self) -> None:
        # Keep request order, drop repeated flags
        object.__setattr__(self, "archs", tuple(dict.fromkeys(self.archs)))
        object.__setattr__(self, "build_args", dict(self.build_args))
        object.__setattr__(self, "target", Path(self.target))
        object.__setattr__(self, "workdir", Path(self.workdir))

    @property
    def target_dir(self) -> Path:
        """Directory holding the Dockerfile."""
        if self.target.is_absolute():
            return self.target
        return self.workdir / self.target


@dataclass
class ResolvedMetadata:
    """Build metadata merged from the request, metadata files, git and Dockerfile.

    Mutable while being resolved; treated as read-only once validated.
    """

    dockerfile: str
    version: str | None = None
    image: str | None = None
    supported_archs: list[str] = field(default_factory=list)
    build_from: dict[str, str] = field(default_factory=dict)
    build_type: str | None = None
    build_ref: str | None = None
    existing_labels: list[str] = field(default_factory=list)
    squash: bool | None = None
    build_args: dict[str, str] = field(default_factory=dict)
    archs: list[str] = field(default_factory=list)

    def image_for(self, arch: str) -> str:
        """Return the image name with the architecture substituted."""
        return (self.image or "").replace(ARCH_PLACEHOLDER, arch)

    def dockerfile_for(self, arch: str) -> str:
        """Return the Dockerfile text with the architecture substituted."""
        return self.dockerfile.replace(ARCH_PLACEHOLDER, arch)


@dataclass
class ArchitectureJob:
    """A single architecture's unit of work.

    Attributes:
        arch: Architecture identifier.
        image: Image reference without tag.
        dockerfile: Dockerfile text for this architecture (labels injected).
        build_from: Base image for this architecture.
        results: Phase results, in execution order.
    """

    arch: str
    image: str
    dockerfile: str
    build_from: str
    results: list[PhaseResult] = field(default_factory=list)

    def reference(self, tag: str) -> str:
        """Return ``<image>:<tag>``."""
        return f"{self.image}:{tag}"

    @property
    def failed(self) -> bool:
        """Whether a fatal phase failed for this architecture."""
        return any(not r.success for r in self.results if r.phase != Phase.WARMUP)


class SharedBuildState:
    """Run-wide mutable state shared by concurrent architecture tasks.

    Only the cache flag lives here; any failed warmup may downgrade it.
    """

    def __init__(self, cache_enabled: bool = True) -> None:
        self._lock = threading.Lock()
        self._cache_enabled = cache_enabled

    @property
    def cache_enabled(self) -> bool:
        with self._lock:
            return self._cache_enabled

    def disable_cache(self) -> None:
        with self._lock:
            self._cache_enabled = False


@dataclass
class RunReport:
    """Outcome of a whole build run."""

    metadata: ResolvedMetadata
    jobs: list[ArchitectureJob] = field(default_factory=list)

    @property
    def results(self) -> list[PhaseResult]:
        return [r for job in self.jobs for r in job.results]

    @property
    def failed(self) -> list[PhaseResult]:
        return [r for r in self.results if not r.success and r.phase != Phase.WARMUP]

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> ExitCode:
        """Exit code of the earliest failing phase, or OK."""
        failed_phases = {r.phase for r in self.failed}
        for phase in (Phase.BUILD, Phase.TAG, Phase.PUSH):
            if phase in failed_phases:
                return PHASE_EXIT_CODES[phase]
        return ExitCode.OK


__all__ = [
    "ArchitectureJob",
    "BuildRequest",
    "ResolvedMetadata",
    "RunReport",
    "SharedBuildState",
]
