"""Docker daemon management.

The daemon runs as a child process in its own session so that an
interrupt delivered to the builder's process group does not kill it before
teardown gets to stop it in order.
"""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from addon_builder.errors import (
    DaemonError,
    DaemonShutdownTimeoutError,
    DaemonTimeoutError,
)

if TYPE_CHECKING:
    from addon_builder.config import Settings

logger = logging.getLogger(__name__)


def poll_until(
    predicate: Callable[[], bool],
    timeout: float,
    interval: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Call predicate every interval seconds until it holds or timeout passes.

    Returns:
        True if the predicate held within the timeout.
    """
    start = clock()
    while True:
        if predicate():
            return True
        if clock() - start >= timeout:
            return False
        sleep(interval)


class DockerDaemon:
    """A Docker daemon owned by this process."""

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._sleep = sleep
        self._process: subprocess.Popen[bytes] | None = None

    @property
    def pid(self) -> int | None:
        """Process id of the daemon, None if never started."""
        return self._process.pid if self._process is not None else None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def is_ready(self) -> bool:
        """Whether the daemon answers a ``docker info`` query."""
        try:
            result = subprocess.run(
                [self.settings.docker_binary, "info"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError:
            return False
        return result.returncode == 0

    def _poll(self, predicate: Callable[[], bool]) -> bool:
        return poll_until(
            predicate,
            self.settings.daemon_timeout,
            self.settings.poll_interval,
            clock=self._clock,
            sleep=self._sleep,
        )

    def start(self) -> None:
        """Spawn the daemon and wait until it is ready.

        Raises:
            DaemonError: If the daemon cannot be spawned or exits early.
            DaemonTimeoutError: If it is not ready within the timeout.
        """
        if self.running:
            logger.debug("Docker daemon already running (pid %s)", self.pid)
            return

        logger.info("Starting the Docker daemon")
        cmd = [self.settings.dockerd_binary, *self.settings.dockerd_args]
        try:
            self._process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise DaemonError(f"Failed to start the Docker daemon: {e}") from e

        logger.info("Waiting for Docker to initialize...")

        def ready() -> bool:
            if not self.running:
                return True
            return self.is_ready()

        if not self._poll(ready):
            raise DaemonTimeoutError(self.settings.daemon_timeout)

        if not self.running:
            raise DaemonError(
                f"Docker daemon exited with code {self._process.returncode}"
            )
        logger.info("Docker is initialized (pid %s)", self.pid)

    def stop(self) -> None:
        """Terminate the daemon and wait for it to exit.

        A no-op if the daemon was never started or already exited.

        Raises:
            DaemonShutdownTimeoutError: If it does not exit within the timeout.
        """
        logger.info("Stopping the Docker daemon")
        if self._process is None or not self.running:
            logger.info("Docker daemon was already stopped")
            return

        process = self._process
        process.terminate()
        if not self._poll(lambda: process.poll() is not None):
            raise DaemonShutdownTimeoutError(self.settings.daemon_timeout)
        logger.info("Docker daemon has been stopped")


__all__ = ["DockerDaemon", "poll_until"]
