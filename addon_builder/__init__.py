"""Add-on Build Environment - cross platform Docker image builder.

This package orchestrates building one Dockerfile into per-architecture
images: metadata resolution, preflight validation, build daemon and
cross-compile lifecycle, and parallel build/tag/push fan-out.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
