"""Cross compile support via binfmt_misc and QEMU user emulation.

Registering the QEMU handlers lets the Docker daemon execute foreign
architecture binaries (e.g. ``RUN`` steps of an armhf image) on the host.
"""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from addon_builder.errors import CrossCompileError

if TYPE_CHECKING:
    from pathlib import Path

    from addon_builder.config import Settings

logger = logging.getLogger(__name__)


class CrossCompileSupport:
    """Enables and disables foreign architecture execution handlers.

    Attributes:
        enabled: Whether support is currently (possibly partially) enabled.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.enabled = False
        self._mounted = False

    @property
    def _status_file(self) -> Path:
        return self.settings.binfmt_misc_dir / "status"

    def _run(self, cmd: list[str], action: str) -> None:
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise CrossCompileError(
                f"Failed {action} cross compile features: {e}"
            ) from e

        if result.returncode != 0:
            logger.error("%s failed: %s", cmd[0], result.stderr.strip())
            raise CrossCompileError(
                f"Failed {action} cross compile features! "
                f"({' '.join(cmd)} exited with code {result.returncode})"
            )

    def _handler_cmd(self, flag: str, handler: str) -> list[str]:
        return [self.settings.update_binfmts_binary, flag, handler]

    def enable(self) -> None:
        """Mount binfmt_misc (if needed) and enable every configured handler.

        Raises:
            CrossCompileError: If any step fails.
        """
        logger.info("Enabling cross compile features")
        self.enabled = True

        if not self._status_file.exists():
            self._run(
                [
                    self.settings.mount_binary,
                    "binfmt_misc",
                    "-t",
                    "binfmt_misc",
                    str(self.settings.binfmt_misc_dir),
                ],
                "enabling",
            )
            self._mounted = True

        for handler in self.settings.binfmt_handlers:
            self._run(self._handler_cmd("--enable", handler), "enabling")

    def disable(self) -> None:
        """Disable every configured handler and unmount what enable() mounted.

        A no-op when support is not enabled.

        Raises:
            CrossCompileError: If any step fails.
        """
        if not self.enabled:
            logger.debug("Cross compile features not enabled, nothing to disable")
            return

        logger.info("Disabling cross compile features")
        self.enabled = False

        for handler in self.settings.binfmt_handlers:
            self._run(self._handler_cmd("--disable", handler), "disabling")

        if self._mounted and self._status_file.exists():
            self._run(
                [self.settings.umount_binary, str(self.settings.binfmt_misc_dir)],
                "disabling",
            )
        self._mounted = False


__all__ = ["CrossCompileSupport"]
