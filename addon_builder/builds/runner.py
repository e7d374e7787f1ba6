"""Command execution with per-architecture output attribution.

Commands for several architectures run concurrently; every output line is
prefixed with its architecture so interleaved output stays attributable.
Output can additionally be captured to a per-architecture log file.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
import threading
from collections.abc import Callable, Sequence
from contextlib import ExitStack
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

logger = logging.getLogger(__name__)

# Exit code reported when a command cannot be executed at all
COMMAND_NOT_FOUND = 127

_output_lock = threading.Lock()


# (cmd, *, label, stdin=None, log_path=None) -> exit code
CommandRunner = Callable[..., int]


def write_line(line: str) -> None:
    """Write a line to stdout without interleaving with other threads."""
    with _output_lock:
        sys.stdout.write(line + "\n")
        sys.stdout.flush()


def run_streamed(
    cmd: Sequence[str],
    *,
    label: str,
    stdin: IO[bytes] | None = None,
    log_path: Path | None = None,
    sink: Callable[[str], None] = write_line,
) -> int:
    """Run a command, streaming combined stdout/stderr prefixed with label.

    Args:
        cmd: Command to execute.
        label: Prefix for every output line (the architecture).
        stdin: Optional binary file object fed to the command.
        log_path: Optional log file to append raw output to.
        sink: Receives each prefixed output line.

    Returns:
        Exit code of the command, or COMMAND_NOT_FOUND if it could not start.
    """
    cmd_str = shlex.join(cmd)
    logger.info("[%s] Executing: %s", label, cmd_str)

    with ExitStack() as stack:
        log_file: IO[str] | None = None
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_file = stack.enter_context(log_path.open("a", encoding="utf-8"))
            log_file.write(f"# Command: {cmd_str}\n")
            log_file.write(f"# Started: {datetime.now(timezone.utc).isoformat()}\n")
            log_file.flush()

        popen_kwargs: dict[str, Any] = {
            "stdin": stdin if stdin is not None else subprocess.DEVNULL,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.STDOUT,
            "text": True,
            "errors": "replace",
        }
        try:
            process = stack.enter_context(subprocess.Popen(list(cmd), **popen_kwargs))
        except OSError as e:
            logger.error("[%s] Failed to execute %s: %s", label, cmd[0], e)
            if log_file is not None:
                log_file.write(f"# Failed to execute: {e}\n")
            return COMMAND_NOT_FOUND

        stdout = process.stdout if process.stdout is not None else ()
        for raw in stdout:
            line = raw.rstrip("\n")
            sink(f"[{label}] {line}")
            if log_file is not None:
                log_file.write(raw)

        exit_code = process.wait()
        if log_file is not None:
            log_file.write(f"# Exit code: {exit_code}\n\n")

    if exit_code != 0:
        logger.error("[%s] Command failed with exit code %d: %s", label, exit_code, cmd_str)
    return exit_code


__all__ = ["COMMAND_NOT_FOUND", "CommandRunner", "run_streamed", "write_line"]
