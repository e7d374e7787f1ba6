"""Dockerfile analysis and label injection.

Only the parts of a Dockerfile the build environment cares about are
understood here: instructions (to count ``FROM``), and ``LABEL``
declarations (to detect the build type and avoid overriding labels).
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from pathlib import Path

from addon_builder.errors import DockerfileNotFoundError, MetadataError
from addon_builder.types import LABEL_ARCH, LABEL_TYPE, LABEL_VERSION

logger = logging.getLogger(__name__)

DOCKERFILE_NAME = "Dockerfile"

_COMMENT = re.compile(r"^\s*#")
_CONTINUATION = re.compile(r"\\\s*$")
_INSTRUCTION = re.compile(r"^\s*([A-Za-z]+)(?:\s+(.*))?$")


@dataclass
class Instruction:
    """A single Dockerfile instruction.

    Attributes:
        keyword: Upper-cased instruction keyword (e.g. ``FROM``).
        value: Remaining text of the logical line.
        lineno: 1-based line number where the instruction starts.
    """

    keyword: str
    value: str
    lineno: int


def read_dockerfile(target: Path) -> str:
    """Read the Dockerfile of a build target.

    Raises:
        DockerfileNotFoundError: If the target has no Dockerfile.
    """
    path = target / DOCKERFILE_NAME
    if not path.is_file():
        raise DockerfileNotFoundError(str(path))
    return path.read_text(encoding="utf-8")


def parse_instructions(text: str) -> list[Instruction]:
    """Split Dockerfile text into instructions.

    Comment lines are dropped and backslash line continuations are joined.
    """
    instructions: list[Instruction] = []
    buffer: list[str] = []
    start = 0

    for lineno, line in enumerate(text.splitlines(), start=1):
        if _COMMENT.match(line):
            continue
        if not buffer:
            if not line.strip():
                continue
            start = lineno
        if _CONTINUATION.search(line):
            buffer.append(_CONTINUATION.sub("", line))
            continue
        buffer.append(line)
        _append_instruction(instructions, " ".join(buffer), start)
        buffer = []

    if buffer:
        _append_instruction(instructions, " ".join(buffer), start)
    return instructions


def _append_instruction(instructions: list[Instruction], line: str, lineno: int) -> None:
    match = _INSTRUCTION.match(line)
    if match is None:
        logger.debug("Ignoring unparsable Dockerfile line %d: %s", lineno, line)
        return
    keyword, value = match.groups()
    instructions.append(Instruction(keyword.upper(), (value or "").strip(), lineno))


def count_base_images(text: str) -> int:
    """Return the number of ``FROM`` instructions."""
    return sum(1 for i in parse_instructions(text) if i.keyword == "FROM")


def parse_label_value(value: str) -> dict[str, str]:
    """Parse the arguments of a single ``LABEL`` instruction.

    Supports ``key=value`` pairs (optionally quoted) and the legacy
    ``LABEL key value`` form.

    Raises:
        MetadataError: If quoting is unbalanced.
    """
    try:
        tokens = shlex.split(value, posix=True)
    except ValueError as e:
        raise MetadataError(f"Malformed LABEL instruction: {value}") from e

    if not tokens:
        return {}

    if "=" not in tokens[0]:
        return {tokens[0]: " ".join(tokens[1:])}

    labels: dict[str, str] = {}
    for token in tokens:
        key, sep, val = token.partition("=")
        if not sep:
            raise MetadataError(f"Malformed LABEL instruction: {value}")
        labels[key] = val
    return labels


def parse_labels(text: str) -> dict[str, str]:
    """Return all labels declared in a Dockerfile, in declaration order."""
    labels: dict[str, str] = {}
    for instruction in parse_instructions(text):
        if instruction.keyword == "LABEL":
            labels.update(parse_label_value(instruction.value))
    return labels


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def inject_labels(
    text: str,
    existing_labels: list[str],
    build_type: str,
    version: str,
    arch: str,
) -> str:
    """Append type/version/architecture labels that are not declared yet.

    Existing declarations are never overridden. The returned text always ends
    with a newline.

    Args:
        text: Dockerfile text.
        existing_labels: Label keys already declared in the Dockerfile.
        build_type: Value for the type label.
        version: Value for the version label.
        arch: Value for the architecture label.

    Returns:
        Dockerfile text with an extra ``LABEL`` line if anything was missing.
    """
    if not text.endswith("\n"):
        text += "\n"

    candidates = {
        LABEL_TYPE: build_type,
        LABEL_VERSION: version,
        LABEL_ARCH: arch,
    }
    missing = [
        f"{key}={_quote(value)}"
        for key, value in candidates.items()
        if key not in existing_labels
    ]
    if missing:
        text += f"LABEL {' '.join(missing)}\n"
    return text


__all__ = [
    "DOCKERFILE_NAME",
    "Instruction",
    "count_base_images",
    "inject_labels",
    "parse_instructions",
    "parse_label_value",
    "parse_labels",
    "read_dockerfile",
]
