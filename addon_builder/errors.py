"""Error definitions for addon_builder.

Every fatal condition maps to a stable string code and a process exit code.
The CLI surfaces the message and exits with ``exit_code``.
"""

from addon_builder.types import ExitCode


class BuilderError(Exception):
    """Base error for all fatal build environment conditions."""

    def __init__(
        self,
        message: str,
        exit_code: ExitCode = ExitCode.UNKNOWN,
        code: str = "builder_error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.code = code


# Configuration errors


class MetadataError(BuilderError):
    """Metadata file could not be read or is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ExitCode.UNKNOWN, code="metadata_error")


class DockerfileNotFoundError(BuilderError):
    """The target directory has no Dockerfile."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Dockerfile not found: {path}", ExitCode.DOCKERFILE, code="no_dockerfile"
        )
        self.path = path


class ValidationError(BuilderError):
    """Base class for preflight check failures."""


class PrivilegeError(ValidationError):
    """Host does not grant extended privileges."""

    def __init__(self) -> None:
        super().__init__(
            "This build environment needs extended privileges (--privileged)",
            ExitCode.PRIVILEGES,
            code="privileges",
        )


class ArchitectureError(ValidationError):
    """No architectures were requested."""

    def __init__(self) -> None:
        super().__init__(
            "No architectures to build", ExitCode.NO_ARCHS, code="no_archs"
        )


class VersionError(ValidationError):
    """No version could be resolved."""

    def __init__(self) -> None:
        super().__init__(
            "No version found and specified. Please use --version",
            ExitCode.VERSION,
            code="no_version",
        )


class UnsupportedArchitectureError(ValidationError):
    """A requested architecture is not in the supported set."""

    def __init__(self, arch: str) -> None:
        super().__init__(
            f"Requested to build for {arch}, but it seems like it is not supported",
            ExitCode.SUPPORTED,
            code="unsupported_arch",
        )
        self.arch = arch


class MissingBaseImageError(ValidationError):
    """A supported architecture has no image to build from."""

    def __init__(self, arch: str) -> None:
        super().__init__(
            f"Architecture {arch} is missing an image to build from",
            ExitCode.NO_FROM,
            code="no_from",
        )
        self.arch = arch


class MultiStageError(ValidationError):
    """The Dockerfile declares more than one base image."""

    def __init__(self, count: int) -> None:
        super().__init__(
            f"The Dockerfile seems to be multistage ({count} FROM instructions)",
            ExitCode.MULTISTAGE,
            code="multistage",
        )
        self.count = count


class MissingImageNameError(ValidationError):
    """No image name was configured or given."""

    def __init__(self) -> None:
        super().__init__(
            "Missing build image name", ExitCode.NO_IMAGE_NAME, code="no_image_name"
        )


class InvalidTypeError(ValidationError):
    """Build type is not one of the known values."""

    def __init__(self, build_type: str) -> None:
        super().__init__(
            f"{build_type} is not a valid type.",
            ExitCode.INVALID_TYPE,
            code="invalid_type",
        )
        self.build_type = build_type


# Source control errors


class GitCloneError(BuilderError):
    """Cloning the remote repository failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ExitCode.GIT_CLONE, code="git_clone")


class WorkdirNotEmptyError(BuilderError):
    """A repository was requested but the target directory is in use."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"{path} is in use already, while requesting a repository",
            ExitCode.NOT_EMPTY,
            code="not_empty",
        )
        self.path = path


class NotGitRepositoryError(BuilderError):
    """The target directory is not a git checkout."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"{path} is not a Git repository", ExitCode.NOT_GIT, code="not_git"
        )
        self.path = path


# Environment errors


class CrossCompileError(BuilderError):
    """Enabling or disabling cross compile support failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ExitCode.CROSS_COMPILE, code="cross_compile")


class DaemonError(BuilderError):
    """The build daemon could not be started."""

    def __init__(
        self, message: str, exit_code: ExitCode = ExitCode.DOCKER_TIMEOUT
    ) -> None:
        super().__init__(message, exit_code, code="daemon_error")


class DaemonTimeoutError(DaemonError):
    """The build daemon did not become ready in time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"Timeout while waiting for Docker to come up ({timeout}s)",
            ExitCode.DOCKER_TIMEOUT,
        )
        self.code = "daemon_timeout"
        self.timeout = timeout


class DaemonShutdownTimeoutError(DaemonError):
    """The build daemon did not exit in time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"Timeout while waiting for Docker to shut down ({timeout}s)",
            ExitCode.DOCKER_DIE,
        )
        self.code = "daemon_shutdown_timeout"
        self.timeout = timeout


__all__ = [
    "ArchitectureError",
    "BuilderError",
    "CrossCompileError",
    "DaemonError",
    "DaemonShutdownTimeoutError",
    "DaemonTimeoutError",
    "DockerfileNotFoundError",
    "GitCloneError",
    "InvalidTypeError",
    "MetadataError",
    "MissingBaseImageError",
    "MissingImageNameError",
    "MultiStageError",
    "NotGitRepositoryError",
    "PrivilegeError",
    "UnsupportedArchitectureError",
    "ValidationError",
    "VersionError",
    "WorkdirNotEmptyError",
]
