"""Shared type definitions for addon_builder.

This module contains enums, constants and small result dataclasses shared
across subpackages to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum

# Placeholder substituted with the architecture in image names and Dockerfiles
ARCH_PLACEHOLDER = "{arch}"

CANONICAL_ARCHITECTURES: tuple[str, ...] = ("aarch64", "amd64", "armhf", "i386")

DEFAULT_BUILD_REF = "Unknown"
DIRTY_BUILD_REF = "dirty"

# Label keys recognized in (and injected into) Dockerfiles
LABEL_TYPE = "io.hass.type"
LABEL_VERSION = "io.hass.version"
LABEL_ARCH = "io.hass.arch"


class BuildType(str, Enum):
    """Kind of thing being built."""

    ADDON = "addon"
    BASE = "base"
    CLUSTER = "cluster"
    HOMEASSISTANT = "homeassistant"
    SUPERVISOR = "supervisor"


# The empty string is accepted for backwards compatibility
VALID_BUILD_TYPES: frozenset[str] = frozenset({""} | {t.value for t in BuildType})


class Phase(str, Enum):
    """Per-architecture pipeline phase."""

    WARMUP = "warmup"
    BUILD = "build"
    TAG = "tag"
    PUSH = "push"


class ExitCode(IntEnum):
    """Process exit codes, one per failure kind."""

    OK = 0
    UNKNOWN = 1
    UNKNOWN_ARGUMENT = 2
    CROSS_COMPILE = 3
    DOCKER_BUILD = 4
    DOCKER_DIE = 5
    DOCKER_PUSH = 6
    DOCKER_TAG = 7
    DOCKER_TIMEOUT = 8
    DOCKERFILE = 9
    GIT_CLONE = 10
    INVALID_TYPE = 11
    MULTISTAGE = 12
    NO_ARCHS = 13
    NO_FROM = 14
    NO_IMAGE_NAME = 15
    NOT_EMPTY = 16
    NOT_GIT = 17
    PRIVILEGES = 18
    SUPPORTED = 19
    VERSION = 20


# Exit code reported when a phase fails for an architecture
PHASE_EXIT_CODES: dict[Phase, ExitCode] = {
    Phase.WARMUP: ExitCode.OK,
    Phase.BUILD: ExitCode.DOCKER_BUILD,
    Phase.TAG: ExitCode.DOCKER_TAG,
    Phase.PUSH: ExitCode.DOCKER_PUSH,
}


@dataclass
class PhaseResult:
    """Outcome of one pipeline phase for one architecture.

    Attributes:
        arch: Architecture the phase ran for.
        phase: Which phase this is.
        success: Whether the phase succeeded.
        exit_code: Process exit code of the failing command (0 on success).
        message: Human-readable summary.
        command: The last command that was executed, if any.
    """

    arch: str
    phase: Phase
    success: bool
    exit_code: int = 0
    message: str = ""
    command: str | None = None


__all__ = [
    "ARCH_PLACEHOLDER",
    "CANONICAL_ARCHITECTURES",
    "DEFAULT_BUILD_REF",
    "DIRTY_BUILD_REF",
    "LABEL_ARCH",
    "LABEL_TYPE",
    "LABEL_VERSION",
    "PHASE_EXIT_CODES",
    "VALID_BUILD_TYPES",
    "BuildType",
    "ExitCode",
    "Phase",
    "PhaseResult",
]
