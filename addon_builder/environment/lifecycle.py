"""Scoped acquisition and guaranteed release of the build environment.

``BuildEnvironment`` is used as a context manager around everything that
needs the daemon. Teardown runs exactly once: on normal exit, on error,
or on SIGINT/SIGTERM, whichever comes first.
"""

from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass
from types import FrameType
from typing import TYPE_CHECKING, Any

from addon_builder.environment.crosscompile import CrossCompileSupport
from addon_builder.environment.daemon import DockerDaemon
from addon_builder.errors import BuilderError

if TYPE_CHECKING:
    from addon_builder.config import Settings

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass(frozen=True)
class DaemonHandle:
    """Snapshot of the host-level state owned by a run.

    Attributes:
        pid: Daemon process id, None when not running.
        cross_compile_enabled: Whether cross compile support is enabled.
    """

    pid: int | None
    cross_compile_enabled: bool


class BuildEnvironment:
    """Cross compile support plus a Docker daemon, torn down exactly once."""

    def __init__(
        self,
        settings: Settings,
        *,
        crosscompile: CrossCompileSupport | None = None,
        daemon: DockerDaemon | None = None,
    ) -> None:
        self.settings = settings
        self.crosscompile = (
            crosscompile if crosscompile is not None else CrossCompileSupport(settings)
        )
        self.daemon = daemon if daemon is not None else DockerDaemon(settings)
        # Reentrant: a signal may arrive while the main thread is tearing down
        self._lock = threading.RLock()
        self._torn_down = False
        self._in_teardown = False
        self._previous_handlers: dict[int, Any] = {}

    @property
    def handle(self) -> DaemonHandle:
        return DaemonHandle(
            pid=self.daemon.pid if self.daemon.running else None,
            cross_compile_enabled=self.crosscompile.enabled,
        )

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def enable(self) -> None:
        """Enable cross compile support, then start the daemon.

        Raises:
            CrossCompileError: If cross compile support cannot be enabled.
            DaemonError: If the daemon cannot be started.
        """
        self.crosscompile.enable()
        self.daemon.start()

    def teardown(self) -> None:
        """Stop the daemon, then disable cross compile support.

        Both steps are attempted even if the first fails; the first failure is
        re-raised afterwards. Calls after the first are no-ops. Signals that
        arrive while this runs are ignored.

        Raises:
            BuilderError: The first teardown step that failed.
        """
        with self._lock:
            if self._torn_down:
                return
            self._torn_down = True
            self._in_teardown = True

        first_error: BuilderError | None = None
        try:
            try:
                self.daemon.stop()
            except BuilderError as e:
                logger.error("%s", e)
                first_error = e

            try:
                self.crosscompile.disable()
            except BuilderError as e:
                logger.error("%s", e)
                if first_error is None:
                    first_error = e
        finally:
            self._in_teardown = False

        if first_error is not None:
            raise first_error

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        name = signal.Signals(signum).name
        if self._in_teardown:
            logger.warning("Received %s, cleanup already in progress", name)
            return
        logger.warning("Received %s, cleaning up", name)
        try:
            self.teardown()
        except BuilderError as e:
            logger.error("Cleanup after %s failed: %s", name, e)
        raise SystemExit(128 + signum)

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to teardown. Only possible from the main thread."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, signal handlers not installed")
            return
        for signum in HANDLED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def __enter__(self) -> BuildEnvironment:
        self.install_signal_handlers()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            self.teardown()
        finally:
            self.restore_signal_handlers()


__all__ = ["HANDLED_SIGNALS", "BuildEnvironment", "DaemonHandle"]
