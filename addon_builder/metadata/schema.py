"""Pydantic models for build metadata files.

Add-on ``config.json`` files carry many keys that are irrelevant to the
build; only the keys below are recognized, everything else is ignored.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BuildMetadataFile(BaseModel):
    """Schema for a primary (``config``) or secondary (``build``) metadata file.

    Attributes:
        version: Version of the thing being built.
        image: Image name, may contain an ``{arch}`` placeholder.
        arch: Supported architectures.
        build_from: Base image per architecture.
        squash: Whether to squash image layers.
        args: Extra build arguments.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    version: str | None = Field(default=None, description="Version")
    image: str | None = Field(default=None, description="Image name template")
    arch: list[str] | None = Field(
        default=None, description="Supported architectures"
    )
    build_from: dict[str, str] | None = Field(
        default=None, description="Base image per architecture"
    )
    squash: bool | None = Field(default=None, description="Squash image layers")
    args: dict[str, str] | None = Field(default=None, description="Build arguments")

    @field_validator("version", "image")
    @classmethod
    def empty_as_unset(cls, v: str | None) -> str | None:
        """Treat empty strings as not set."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("arch")
    @classmethod
    def validate_arch(cls, v: list[str] | None) -> list[str] | None:
        """Drop blank entries and duplicates, keeping order."""
        if v is None:
            return v
        return list(dict.fromkeys(a.strip() for a in v if a and a.strip()))


__all__ = ["BuildMetadataFile"]
