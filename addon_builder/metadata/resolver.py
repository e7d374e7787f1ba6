"""Build metadata resolution.

Sources are consulted in a fixed order and a field, once set, is never
overwritten:

1. Explicit values from the BuildRequest
2. Primary metadata file (``config.json``/``config.yaml``)
3. Secondary metadata file (``build.json``/``build.yaml``)
4. Git state (revision reference)
5. Labels already declared in the Dockerfile (build type)
6. Defaults
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from addon_builder.errors import NotGitRepositoryError
from addon_builder.metadata.dockerfile import parse_labels, read_dockerfile
from addon_builder.metadata.io import load_metadata_files
from addon_builder.metadata.source import get_build_ref
from addon_builder.models import BuildRequest, ResolvedMetadata
from addon_builder.types import (
    CANONICAL_ARCHITECTURES,
    DEFAULT_BUILD_REF,
    LABEL_TYPE,
    BuildType,
)

if TYPE_CHECKING:
    from pathlib import Path

    from addon_builder.config import Settings
    from addon_builder.metadata.schema import BuildMetadataFile

logger = logging.getLogger(__name__)


def apply_request(metadata: ResolvedMetadata, request: BuildRequest) -> None:
    """Apply explicit request values. These always win."""
    metadata.version = request.version or None
    metadata.image = request.image or None
    metadata.build_type = request.build_type
    metadata.squash = request.squash
    metadata.build_args.update(request.build_args)
    metadata.archs = list(request.archs)


def apply_metadata_file(metadata: ResolvedMetadata, data: BuildMetadataFile) -> None:
    """Fill fields that are still unset from a metadata file.

    Mappings (``build_from``, ``args``) are merged per key, first writer wins.
    """
    if metadata.version is None and data.version is not None:
        metadata.version = data.version
    if metadata.image is None and data.image is not None:
        metadata.image = data.image
    if not metadata.supported_archs and data.arch:
        metadata.supported_archs = list(data.arch)
    if metadata.squash is None and data.squash is not None:
        metadata.squash = data.squash

    for arch, base_image in (data.build_from or {}).items():
        if arch and arch not in metadata.build_from:
            metadata.build_from[arch] = base_image

    for key, value in (data.args or {}).items():
        if key and key not in metadata.build_args:
            metadata.build_args[key] = value


def apply_git(metadata: ResolvedMetadata, target: Path, git_binary: str = "git") -> None:
    """Record the git revision of target, skipping non-repositories."""
    logger.info("Collecting information from Git")
    try:
        metadata.build_ref = get_build_ref(target, git_binary=git_binary)
    except NotGitRepositoryError:
        logger.warning("%s is not a Git repository. Skipping.", target)


def apply_dockerfile_labels(metadata: ResolvedMetadata) -> None:
    """Record existing labels and adopt the build type label if none was given."""
    logger.info("Collecting information from Dockerfile")
    labels = parse_labels(metadata.dockerfile)
    metadata.existing_labels = list(labels)
    if not metadata.build_type and LABEL_TYPE in labels:
        metadata.build_type = labels[LABEL_TYPE]


def apply_defaults(metadata: ResolvedMetadata, build_all: bool) -> None:
    """Fill remaining gaps with defaults and expand ``build_all``."""
    logger.info("Filling in configuration gaps with defaults")
    if not metadata.supported_archs:
        metadata.supported_archs = list(CANONICAL_ARCHITECTURES)
    if build_all:
        metadata.archs = list(metadata.supported_archs)
    if not metadata.build_ref:
        metadata.build_ref = DEFAULT_BUILD_REF
    if not metadata.build_type:
        metadata.build_type = BuildType.ADDON.value
    if metadata.squash is None:
        metadata.squash = True


def resolve_metadata(request: BuildRequest, settings: Settings) -> ResolvedMetadata:
    """Resolve all build metadata for a request.

    Args:
        request: The build request.
        settings: Application settings.

    Returns:
        Fully populated ResolvedMetadata (not validated yet).

    Raises:
        DockerfileNotFoundError: If the target has no Dockerfile.
        MetadataError: If a metadata file is malformed.
    """
    target = request.target_dir
    metadata = ResolvedMetadata(dockerfile=read_dockerfile(target))

    apply_request(metadata, request)
    for data in load_metadata_files(target):
        apply_metadata_file(metadata, data)
    apply_git(metadata, target, git_binary=settings.git_binary)
    apply_dockerfile_labels(metadata)
    apply_defaults(metadata, request.build_all)

    logger.debug("Resolved metadata: %s", metadata)
    return metadata


__all__ = [
    "apply_defaults",
    "apply_dockerfile_labels",
    "apply_git",
    "apply_metadata_file",
    "apply_request",
    "resolve_metadata",
]
