"""Tests for metadata/source.py module.

Uses mocked subprocess so no git binary is required.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from addon_builder.errors import (
    GitCloneError,
    NotGitRepositoryError,
    WorkdirNotEmptyError,
)
from addon_builder.metadata.source import clone_repository, get_build_ref


def completed(returncode: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestCloneRepository:
    """Tests for clone_repository function."""

    def test_shallow_single_branch_clone(self, tmp_path: Path) -> None:
        """Should run a shallow single branch clone into the workdir."""
        workdir = tmp_path / "src"
        with patch(
            "addon_builder.metadata.source.subprocess.run", return_value=completed()
        ) as mock_run:
            clone_repository("https://example.com/repo.git", "dev", workdir)

        cmd = mock_run.call_args[0][0]
        assert cmd == [
            "git",
            "clone",
            "--depth",
            "1",
            "--single-branch",
            "https://example.com/repo.git",
            "-b",
            "dev",
            str(workdir),
        ]
        assert workdir.is_dir()

    def test_empty_workdir_allowed(self, tmp_path: Path) -> None:
        """An existing but empty workdir should be accepted."""
        with patch(
            "addon_builder.metadata.source.subprocess.run", return_value=completed()
        ) as mock_run:
            clone_repository("repo", "master", tmp_path, git_binary="/usr/bin/git")
        assert mock_run.call_args[0][0][0] == "/usr/bin/git"

    def test_non_empty_workdir(self, tmp_path: Path) -> None:
        """A workdir with content should be refused before cloning."""
        (tmp_path / "file").write_text("x", encoding="utf-8")
        with patch("addon_builder.metadata.source.subprocess.run") as mock_run:
            with pytest.raises(WorkdirNotEmptyError):
                clone_repository("repo", "master", tmp_path)
        mock_run.assert_not_called()

    def test_clone_failure(self, tmp_path: Path) -> None:
        """A failing clone should raise GitCloneError."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            return_value=completed(128, stderr="fatal: repository not found"),
        ):
            with pytest.raises(GitCloneError):
                clone_repository("repo", "master", tmp_path / "src")

    def test_git_missing(self, tmp_path: Path) -> None:
        """A missing git binary should raise GitCloneError."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            side_effect=FileNotFoundError("git"),
        ):
            with pytest.raises(GitCloneError):
                clone_repository("repo", "master", tmp_path / "src")


class TestGetBuildRef:
    """Tests for get_build_ref function."""

    def test_clean_checkout(self, tmp_path: Path) -> None:
        """A clean checkout should yield the short HEAD revision."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            side_effect=[completed(), completed(stdout=""), completed(stdout="abc1234\n")],
        ) as mock_run:
            assert get_build_ref(tmp_path) == "abc1234"

        last_cmd = mock_run.call_args_list[-1][0][0]
        assert last_cmd == ["git", "-C", str(tmp_path), "rev-parse", "--short", "HEAD"]

    def test_dirty_checkout(self, tmp_path: Path) -> None:
        """Uncommitted changes should yield 'dirty'."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            side_effect=[completed(), completed(stdout=" M Dockerfile\n")],
        ):
            assert get_build_ref(tmp_path) == "dirty"

    def test_not_a_repository(self, tmp_path: Path) -> None:
        """A directory outside git should raise NotGitRepositoryError."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            return_value=completed(128),
        ):
            with pytest.raises(NotGitRepositoryError):
                get_build_ref(tmp_path)

    def test_no_commits(self, tmp_path: Path) -> None:
        """A repository without commits should raise NotGitRepositoryError."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            side_effect=[completed(), completed(), completed(128)],
        ):
            with pytest.raises(NotGitRepositoryError):
                get_build_ref(tmp_path)

    def test_git_missing(self, tmp_path: Path) -> None:
        """A missing git binary should raise NotGitRepositoryError."""
        with patch(
            "addon_builder.metadata.source.subprocess.run",
            side_effect=FileNotFoundError("git"),
        ):
            with pytest.raises(NotGitRepositoryError):
                get_build_ref(tmp_path)
