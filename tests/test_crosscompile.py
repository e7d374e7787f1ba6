"""Tests for environment/crosscompile.py module.

Uses a temporary directory in place of the binfmt_misc mount point and
mocked subprocess for mount/update-binfmts.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from addon_builder.config import Settings
from addon_builder.environment.crosscompile import CrossCompileSupport
from addon_builder.errors import CrossCompileError


def ok(*args, **kwargs):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(binfmt_misc_dir=tmp_path / "binfmt_misc")


def commands(mock_run) -> list[list[str]]:
    return [c[0][0] for c in mock_run.call_args_list]


class TestEnable:
    """Tests for CrossCompileSupport.enable."""

    def test_mounts_and_enables_handlers(self, settings: Settings) -> None:
        """Should mount binfmt_misc and enable each handler."""
        support = CrossCompileSupport(settings)
        with patch(
            "addon_builder.environment.crosscompile.subprocess.run", side_effect=ok
        ) as mock_run:
            support.enable()

        assert commands(mock_run) == [
            [
                "mount",
                "binfmt_misc",
                "-t",
                "binfmt_misc",
                str(settings.binfmt_misc_dir),
            ],
            ["update-binfmts", "--enable", "qemu-arm"],
            ["update-binfmts", "--enable", "qemu-aarch64"],
        ]
        assert support.enabled is True

    def test_already_mounted(self, settings: Settings) -> None:
        """An existing status file should skip the mount."""
        settings.binfmt_misc_dir.mkdir()
        (settings.binfmt_misc_dir / "status").write_text("enabled\n")
        support = CrossCompileSupport(settings)

        with patch(
            "addon_builder.environment.crosscompile.subprocess.run", side_effect=ok
        ) as mock_run:
            support.enable()

        assert all(cmd[0] == "update-binfmts" for cmd in commands(mock_run))

    def test_handler_failure(self, settings: Settings) -> None:
        """A failing handler registration should raise CrossCompileError."""
        support = CrossCompileSupport(settings)
        failed = subprocess.CompletedProcess(
            args=[], returncode=2, stdout="", stderr="no such handler"
        )
        with patch(
            "addon_builder.environment.crosscompile.subprocess.run",
            side_effect=[ok(), failed],
        ):
            with pytest.raises(CrossCompileError):
                support.enable()

        # Partially enabled support must still be torn down
        assert support.enabled is True

    def test_mount_binary_missing(self, settings: Settings) -> None:
        """A missing mount binary should raise CrossCompileError."""
        support = CrossCompileSupport(settings)
        with patch(
            "addon_builder.environment.crosscompile.subprocess.run",
            side_effect=FileNotFoundError("mount"),
        ):
            with pytest.raises(CrossCompileError):
                support.enable()


class TestDisable:
    """Tests for CrossCompileSupport.disable."""

    def test_not_enabled_is_noop(self, settings: Settings) -> None:
        """Disabling without enabling should run nothing."""
        support = CrossCompileSupport(settings)
        with patch(
            "addon_builder.environment.crosscompile.subprocess.run"
        ) as mock_run:
            support.disable()
        mock_run.assert_not_called()

    def test_disables_handlers_and_unmounts(self, settings: Settings) -> None:
        """Should disable handlers and unmount what enable mounted."""
        support = CrossCompileSupport(settings)

        def mount(cmd, **kwargs):
            if cmd[0] == "mount":
                settings.binfmt_misc_dir.mkdir()
                (settings.binfmt_misc_dir / "status").write_text("enabled\n")
            return ok()

        with patch(
            "addon_builder.environment.crosscompile.subprocess.run", side_effect=mount
        ) as mock_run:
            support.enable()
            mock_run.reset_mock()
            support.disable()

        assert commands(mock_run) == [
            ["update-binfmts", "--disable", "qemu-arm"],
            ["update-binfmts", "--disable", "qemu-aarch64"],
            ["umount", str(settings.binfmt_misc_dir)],
        ]
        assert support.enabled is False

    def test_keeps_foreign_mount(self, settings: Settings) -> None:
        """A mount that existed before enable should be left in place."""
        settings.binfmt_misc_dir.mkdir()
        (settings.binfmt_misc_dir / "status").write_text("enabled\n")
        support = CrossCompileSupport(settings)

        with patch(
            "addon_builder.environment.crosscompile.subprocess.run", side_effect=ok
        ) as mock_run:
            support.enable()
            mock_run.reset_mock()
            support.disable()

        assert all(cmd[0] == "update-binfmts" for cmd in commands(mock_run))

    def test_disable_twice(self, settings: Settings) -> None:
        """A second disable should be a no-op."""
        support = CrossCompileSupport(settings)
        with patch(
            "addon_builder.environment.crosscompile.subprocess.run", side_effect=ok
        ) as mock_run:
            support.enable()
            support.disable()
            mock_run.reset_mock()
            support.disable()
        mock_run.assert_not_called()
