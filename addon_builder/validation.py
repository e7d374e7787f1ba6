"""Preflight checks.

All checks run before any external resource is touched and fail fast, in a
fixed order, with a dedicated error per rule.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable

from addon_builder.errors import (
    ArchitectureError,
    InvalidTypeError,
    MissingBaseImageError,
    MissingImageNameError,
    MultiStageError,
    PrivilegeError,
    UnsupportedArchitectureError,
    VersionError,
)
from addon_builder.metadata.dockerfile import count_base_images
from addon_builder.models import BuildRequest, ResolvedMetadata
from addon_builder.types import VALID_BUILD_TYPES

logger = logging.getLogger(__name__)

PROBE_INTERFACE = "dummy0"


def has_extended_privileges(ip_binary: str = "ip") -> bool:
    """Probe whether the host allows creating a network interface.

    Creates and immediately deletes a dummy link. Only possible with extended
    privileges (e.g. a ``--privileged`` container).
    """
    try:
        created = subprocess.run(
            [ip_binary, "link", "add", PROBE_INTERFACE, "type", "dummy"],
            capture_output=True,
            check=False,
        )
    except OSError as e:
        logger.debug("Privilege probe could not run: %s", e)
        return False

    if created.returncode != 0:
        return False

    subprocess.run(
        [ip_binary, "link", "delete", PROBE_INTERFACE],
        capture_output=True,
        check=False,
    )
    return True


def validate(
    request: BuildRequest,
    metadata: ResolvedMetadata,
    privilege_probe: Callable[[], bool] = has_extended_privileges,
) -> None:
    """Ensure we have everything needed to start building.

    Args:
        request: The build request.
        metadata: Resolved metadata.
        privilege_probe: Returns True if the host grants extended privileges.

    Raises:
        ValidationError: The first violated rule (see addon_builder.errors).
    """
    logger.info("Running preflight checks")

    if not privilege_probe():
        raise PrivilegeError()

    if not metadata.archs and not request.build_all:
        raise ArchitectureError()

    if not metadata.version:
        raise VersionError()

    if metadata.supported_archs and not request.build_all:
        for arch in metadata.archs:
            if arch not in metadata.supported_archs:
                raise UnsupportedArchitectureError(arch)

    for arch in metadata.supported_archs:
        if not metadata.build_from.get(arch):
            raise MissingBaseImageError(arch)

    base_images = count_base_images(metadata.dockerfile)
    if base_images > 1:
        raise MultiStageError(base_images)

    if not metadata.image:
        raise MissingImageNameError()

    if (metadata.build_type or "") not in VALID_BUILD_TYPES:
        raise InvalidTypeError(metadata.build_type or "")


__all__ = ["PROBE_INTERFACE", "has_extended_privileges", "validate"]
