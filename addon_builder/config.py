"""Configuration settings for addon_builder.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the ADDON_BUILD_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADDON_BUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # External tools
    docker_binary: str = Field(default="docker", description="Docker client")
    dockerd_binary: str = Field(default="dockerd", description="Docker daemon")
    dockerd_args: list[str] = Field(
        default_factory=lambda: ["--experimental=true"],
        description="Extra arguments passed to the Docker daemon",
    )
    git_binary: str = Field(default="git", description="Git client")
    ip_binary: str = Field(default="ip", description="iproute2 client")
    mount_binary: str = Field(default="mount", description="mount(8)")
    umount_binary: str = Field(default="umount", description="umount(8)")
    update_binfmts_binary: str = Field(
        default="update-binfmts", description="binfmt handler registrar"
    )

    # Cross compile support
    binfmt_misc_dir: Path = Field(
        default=Path("/proc/sys/fs/binfmt_misc"),
        description="Mount point of the binfmt_misc filesystem",
    )
    binfmt_handlers: list[str] = Field(
        default_factory=lambda: ["qemu-arm", "qemu-aarch64"],
        description="Foreign architecture handlers to enable",
    )

    # Daemon lifecycle (seconds)
    daemon_timeout: float = Field(
        default=20,
        gt=0,
        description="Time to wait for the daemon to start or exit",
    )
    poll_interval: float = Field(
        default=1.0,
        gt=0,
        description="Interval between daemon readiness/liveness probes",
    )

    # Sources
    default_branch: str = Field(
        default="master", description="Branch to clone for remote repositories"
    )

    # Output
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory for per-architecture build logs (disabled if not set)",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
