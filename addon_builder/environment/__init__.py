"""Build environment lifecycle.

This subpackage manages host-level state needed to build foreign
architecture images: binfmt_misc cross compile support and the Docker
daemon. BuildEnvironment composes both and guarantees a single teardown.
"""

from addon_builder.environment.crosscompile import CrossCompileSupport
from addon_builder.environment.daemon import DockerDaemon
from addon_builder.environment.lifecycle import BuildEnvironment, DaemonHandle

__all__ = ["BuildEnvironment", "CrossCompileSupport", "DaemonHandle", "DockerDaemon"]
