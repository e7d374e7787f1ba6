"""Tests for environment/lifecycle.py module.

Cross compile support and the daemon are replaced by mocks so the teardown
ordering and once-only guarantees can be observed.
"""

import signal
import threading
from unittest.mock import MagicMock

import pytest

from addon_builder.config import Settings
from addon_builder.environment.lifecycle import BuildEnvironment
from addon_builder.errors import CrossCompileError, DaemonShutdownTimeoutError


@pytest.fixture
def parts() -> MagicMock:
    """Shared parent mock so call order across collaborators is recorded."""
    parent = MagicMock()
    parent.crosscompile.enabled = False
    parent.daemon.pid = 99
    parent.daemon.running = True
    return parent


@pytest.fixture
def environment(parts: MagicMock) -> BuildEnvironment:
    return BuildEnvironment(
        Settings(), crosscompile=parts.crosscompile, daemon=parts.daemon
    )


def call_names(parts: MagicMock) -> list[str]:
    return [name for name, _, _ in parts.mock_calls]


class TestEnable:
    """Tests for BuildEnvironment.enable."""

    def test_order(self, environment: BuildEnvironment, parts: MagicMock) -> None:
        """Cross compile support should be enabled before the daemon starts."""
        environment.enable()
        assert call_names(parts) == ["crosscompile.enable", "daemon.start"]

    def test_handle(self, environment: BuildEnvironment, parts: MagicMock) -> None:
        """The handle should reflect the owned state."""
        parts.crosscompile.enabled = True
        handle = environment.handle
        assert handle.pid == 99
        assert handle.cross_compile_enabled is True


class TestTeardown:
    """Tests for BuildEnvironment.teardown."""

    def test_order(self, environment: BuildEnvironment, parts: MagicMock) -> None:
        """The daemon should stop before cross compile support is disabled."""
        environment.teardown()
        assert call_names(parts) == ["daemon.stop", "crosscompile.disable"]
        assert environment.torn_down

    def test_runs_once(self, environment: BuildEnvironment, parts: MagicMock) -> None:
        """A second teardown should do nothing."""
        environment.teardown()
        environment.teardown()
        parts.daemon.stop.assert_called_once()
        parts.crosscompile.disable.assert_called_once()

    def test_second_step_after_failure(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """Cross compile should be disabled even if stopping the daemon failed."""
        parts.daemon.stop.side_effect = DaemonShutdownTimeoutError(20)

        with pytest.raises(DaemonShutdownTimeoutError):
            environment.teardown()

        parts.crosscompile.disable.assert_called_once()

    def test_first_error_wins(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """When both steps fail, the first failure should be raised."""
        parts.daemon.stop.side_effect = DaemonShutdownTimeoutError(20)
        parts.crosscompile.disable.side_effect = CrossCompileError("umount failed")

        with pytest.raises(DaemonShutdownTimeoutError):
            environment.teardown()

    def test_concurrent_teardown(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """Concurrent teardown calls should release resources once."""
        threads = [threading.Thread(target=environment.teardown) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        parts.daemon.stop.assert_called_once()
        parts.crosscompile.disable.assert_called_once()


class TestContextManager:
    """Tests for scoped use of BuildEnvironment."""

    def test_teardown_on_exit(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """Leaving the block should tear down."""
        with environment:
            environment.enable()
        assert environment.torn_down
        assert call_names(parts)[-2:] == ["daemon.stop", "crosscompile.disable"]

    def test_teardown_on_error(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """An error inside the block should still tear down and propagate."""
        parts.daemon.start.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            with environment:
                environment.enable()

        parts.daemon.stop.assert_called_once()
        parts.crosscompile.disable.assert_called_once()

    def test_handlers_restored(self, environment: BuildEnvironment) -> None:
        """Signal handlers should be installed inside and restored after."""
        before = signal.getsignal(signal.SIGTERM)

        with environment:
            assert signal.getsignal(signal.SIGTERM) == environment._handle_signal

        assert signal.getsignal(signal.SIGTERM) == before


class TestSignals:
    """Tests for signal driven teardown."""

    def test_signal_tears_down_and_exits(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """A signal should tear down and exit with 128 + signal number."""
        with pytest.raises(SystemExit) as exc_info:
            environment._handle_signal(signal.SIGTERM, None)

        assert exc_info.value.code == 128 + signal.SIGTERM
        parts.daemon.stop.assert_called_once()
        parts.crosscompile.disable.assert_called_once()

    def test_signal_then_normal_exit(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """Teardown after a signal-triggered teardown should be a no-op."""
        with pytest.raises(SystemExit):
            with environment:
                environment._handle_signal(signal.SIGINT, None)

        parts.daemon.stop.assert_called_once()
        parts.crosscompile.disable.assert_called_once()

    def test_second_signal_during_teardown_ignored(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """A signal arriving while teardown runs should not cut it short."""
        parts.daemon.stop.side_effect = lambda: environment._handle_signal(
            signal.SIGINT, None
        )

        with pytest.raises(SystemExit) as exc_info:
            with environment:
                environment._handle_signal(signal.SIGTERM, None)

        assert exc_info.value.code == 128 + signal.SIGTERM
        parts.daemon.stop.assert_called_once()
        parts.crosscompile.disable.assert_called_once()

    def test_signal_exit_code_when_teardown_fails(
        self, environment: BuildEnvironment, parts: MagicMock
    ) -> None:
        """A failed teardown should still exit with the signal status."""
        parts.crosscompile.disable.side_effect = CrossCompileError("umount failed")

        with pytest.raises(SystemExit) as exc_info:
            environment._handle_signal(signal.SIGTERM, None)

        assert exc_info.value.code == 128 + signal.SIGTERM
        parts.daemon.stop.assert_called_once()
