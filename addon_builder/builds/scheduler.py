"""Fan-out of pipeline phases across architectures.

One task per architecture per phase, joined before the next phase starts.
A failing task never cancels its siblings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from addon_builder.models import ArchitectureJob
from addon_builder.types import Phase, PhaseResult

logger = logging.getLogger(__name__)

PhaseFunction = Callable[[ArchitectureJob], PhaseResult]


def _run_task(phase: Phase, fn: PhaseFunction, job: ArchitectureJob) -> PhaseResult:
    try:
        return fn(job)
    except Exception as e:
        # Isolate the failure to this architecture
        logger.exception("[%s] Unexpected error during %s", job.arch, phase.value)
        return PhaseResult(
            job.arch,
            phase,
            success=False,
            exit_code=-1,
            message=f"Unexpected error during {phase.value}: {e}",
        )


def run_phase(
    phase: Phase,
    fn: PhaseFunction,
    jobs: Sequence[ArchitectureJob],
    *,
    parallel: bool = True,
) -> list[PhaseResult]:
    """Run one phase for every job and wait for all of them.

    Each result is appended to its job's results.

    Args:
        phase: Phase being run (for attribution and logging).
        fn: Phase implementation for a single job.
        jobs: Jobs to run the phase for.
        parallel: Run one concurrent task per job; otherwise one at a time.

    Returns:
        Results in job order.
    """
    if not jobs:
        logger.info("No architectures left for %s", phase.value)
        return []

    logger.info("Starting %s for all requested architectures", phase.value)
    if parallel and len(jobs) > 1:
        with ThreadPoolExecutor(
            max_workers=len(jobs), thread_name_prefix=f"addon-{phase.value}"
        ) as executor:
            futures = [executor.submit(_run_task, phase, fn, job) for job in jobs]
            results = [future.result() for future in futures]
    else:
        results = [_run_task(phase, fn, job) for job in jobs]

    for job, result in zip(jobs, results):
        job.results.append(result)

    failed = [r.arch for r in results if not r.success]
    if failed and phase != Phase.WARMUP:
        logger.error("%s failed for: %s", phase.value.capitalize(), ", ".join(failed))
    logger.info("Finished %s for all requested architectures", phase.value)
    return results


def active_jobs(jobs: Sequence[ArchitectureJob]) -> list[ArchitectureJob]:
    """Return jobs that have not failed a fatal phase yet."""
    return [job for job in jobs if not job.failed]


__all__ = ["PhaseFunction", "active_jobs", "run_phase"]
