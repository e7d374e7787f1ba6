"""Build metadata resolution.

This subpackage merges build identity from metadata files, git state and
the existing Dockerfile into a single ResolvedMetadata value.
"""

from addon_builder.metadata.resolver import resolve_metadata

__all__ = ["resolve_metadata"]
