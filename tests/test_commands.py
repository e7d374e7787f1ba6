"""Tests for builds/commands.py module."""

from datetime import datetime, timedelta, timezone

import pytest

from addon_builder.builds.commands import (
    compose_build_args,
    compose_build_command,
    compose_pull_command,
    compose_push_command,
    compose_tag_command,
    format_build_date,
    requested_tags,
)
from addon_builder.models import ArchitectureJob, ResolvedMetadata


@pytest.fixture
def metadata() -> ResolvedMetadata:
    return ResolvedMetadata(
        dockerfile="FROM ${BUILD_FROM}\n",
        version="1.2.3",
        image="example/{arch}-addon",
        build_from={"armhf": "base/armhf:3.9"},
        build_type="addon",
        build_ref="abc1234",
        squash=True,
        build_args={"FOO": "bar", "EMPTY": ""},
        archs=["armhf"],
    )


@pytest.fixture
def job() -> ArchitectureJob:
    return ArchitectureJob(
        arch="armhf",
        image="example/armhf-addon",
        dockerfile="FROM ${BUILD_FROM}\n",
        build_from="base/armhf:3.9",
    )


class TestFormatBuildDate:
    """Tests for format_build_date function."""

    def test_utc_seconds(self) -> None:
        """Should format as ISO-8601 UTC with seconds precision."""
        now = datetime(2024, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)
        assert format_build_date(now) == "2024-03-01T12:30:45Z"

    def test_converts_to_utc(self) -> None:
        """Aware timestamps in other zones should be converted to UTC."""
        now = datetime(2024, 3, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_build_date(now) == "2024-03-01T12:00:00Z"

    def test_default_now(self) -> None:
        """Without an argument the current time should be used."""
        assert format_build_date().endswith("Z")


class TestComposeBuildArgs:
    """Tests for compose_build_args function."""

    def test_fixed_then_user_args(self, job, metadata) -> None:
        """Fixed args should come first, user args after in order."""
        args = compose_build_args(job, metadata, "2024-03-01T12:00:00Z")
        assert args == [
            "BUILD_FROM=base/armhf:3.9",
            "BUILD_REF=abc1234",
            "BUILD_TYPE=addon",
            "BUILD_ARCH=armhf",
            "BUILD_DATE=2024-03-01T12:00:00Z",
            "FOO=bar",
            "EMPTY=",
        ]


class TestComposeBuildCommand:
    """Tests for compose_build_command function."""

    def test_with_cache(self, job, metadata) -> None:
        """A cached build should use the latest image as cache source."""
        cmd = compose_build_command(
            "docker", job, metadata, cache=True, build_date="D"
        )

        assert cmd[:6] == [
            "docker",
            "build",
            "--pull",
            "--compress",
            "--tag",
            "example/armhf-addon:1.2.3",
        ]
        assert cmd[-3:] == ["--cache-from", "example/armhf-addon:latest", "-"]
        assert "--squash" in cmd
        assert "--no-cache" not in cmd
        assert cmd.count("--build-arg") == 7

    def test_without_cache(self, job, metadata) -> None:
        """An uncached build should pass --no-cache."""
        cmd = compose_build_command(
            "docker", job, metadata, cache=False, build_date="D"
        )
        assert cmd[-2:] == ["--no-cache", "-"]
        assert "--cache-from" not in cmd

    def test_without_squash(self, job, metadata) -> None:
        """Squash should only be passed when enabled."""
        metadata.squash = False
        cmd = compose_build_command("docker", job, metadata, cache=True, build_date="D")
        assert "--squash" not in cmd

    def test_build_arg_pairs(self, job, metadata) -> None:
        """Every build arg should follow its own --build-arg flag."""
        cmd = compose_build_command("docker", job, metadata, cache=True, build_date="D")
        index = cmd.index("BUILD_ARCH=armhf")
        assert cmd[index - 1] == "--build-arg"


class TestOtherCommands:
    """Tests for pull/tag/push composition."""

    def test_pull(self, job) -> None:
        """Warmup should pull the latest image."""
        assert compose_pull_command("docker", job) == [
            "docker",
            "pull",
            "example/armhf-addon:latest",
        ]

    def test_tag(self, job) -> None:
        """Tagging should reference the version as source."""
        assert compose_tag_command("docker", job, "1.2.3", "test") == [
            "docker",
            "tag",
            "example/armhf-addon:1.2.3",
            "example/armhf-addon:test",
        ]

    def test_push(self, job) -> None:
        """Pushing should reference a single tag."""
        assert compose_push_command("docker", job, "1.2.3") == [
            "docker",
            "push",
            "example/armhf-addon:1.2.3",
        ]

    def test_requested_tags(self) -> None:
        """Extra tags should be returned latest first."""
        assert requested_tags(False, False) == []
        assert requested_tags(True, False) == ["latest"]
        assert requested_tags(False, True) == ["test"]
        assert requested_tags(True, True) == ["latest", "test"]
