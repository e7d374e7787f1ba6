"""Per-architecture build pipeline and fan-out scheduling."""

from addon_builder.builds.pipeline import ArchitecturePipeline, create_job
from addon_builder.builds.scheduler import active_jobs, run_phase

__all__ = ["ArchitecturePipeline", "active_jobs", "create_job", "run_phase"]
