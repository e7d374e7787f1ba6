"""Metadata file loading.

A build target may carry a primary metadata file (``config``) and a
secondary one (``build``), each as JSON or YAML. JSON is preferred when both
exist.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from addon_builder.errors import MetadataError
from addon_builder.metadata.schema import BuildMetadataFile

logger = logging.getLogger(__name__)

PRIMARY_CANDIDATES = ("config.json", "config.yaml", "config.yml")
SECONDARY_CANDIDATES = ("build.json", "build.yaml", "build.yml")


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the file does not contain an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the file does not contain a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_metadata_file(path: Path) -> BuildMetadataFile:
    """Load and validate a metadata file (JSON or YAML by extension).

    Args:
        path: Path to the metadata file.

    Returns:
        Validated BuildMetadataFile.

    Raises:
        MetadataError: If the file cannot be read or does not match the schema.
    """
    logger.info("Loading information from %s", path)
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = load_yaml(path)
        else:
            data = load_json(path)
        return BuildMetadataFile.model_validate(data)
    except (OSError, ValueError, yaml.YAMLError) as e:
        # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
        detail = _format_validation_error(e) if isinstance(e, ValidationError) else e
        raise MetadataError(f"Invalid metadata file {path}: {detail}") from e


def find_metadata_file(target: Path, candidates: tuple[str, ...]) -> Path | None:
    """Return the first candidate file that exists in target, if any."""
    for name in candidates:
        path = target / name
        if path.is_file():
            return path
    return None


def load_metadata_files(target: Path) -> list[BuildMetadataFile]:
    """Load the primary and secondary metadata files of a target, in precedence order.

    Args:
        target: Build target directory.

    Returns:
        Zero, one or two metadata files; earlier entries take precedence.
    """
    files: list[BuildMetadataFile] = []
    for candidates in (PRIMARY_CANDIDATES, SECONDARY_CANDIDATES):
        path = find_metadata_file(target, candidates)
        if path is not None:
            files.append(load_metadata_file(path))
    return files


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "(root)"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


__all__ = [
    "PRIMARY_CANDIDATES",
    "SECONDARY_CANDIDATES",
    "find_metadata_file",
    "load_json",
    "load_metadata_file",
    "load_metadata_files",
    "load_yaml",
]
