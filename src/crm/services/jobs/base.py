# src/crm/services/jobs/base.py
"""
Background Jobs Base Module

Job configuration registry and the runner used by the HTTP routes, the
in-app scheduler and the CLI.
"""

from dataclasses import dataclass
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


@dataclass
class JobConfig:
    """Configuration for a background job."""
    name: str
    description: str
    schedule: str  # cron expression
    enabled: bool = True


# Job configuration registry
JOB_CONFIGS: Dict[str, JobConfig] = {
    "check-alerts": JobConfig(
        name="Check Alerts",
        description="Notify owners about missing next steps, stalled deals and low pipeline coverage",
        schedule="0 * * * *",  # Every hour
        enabled=True,
    ),
    "create-forecast-snapshot": JobConfig(
        name="Forecast Snapshot",
        description="Capture commit / best case / pipeline totals per rep and per organization",
        schedule="0 6 * * 1",  # Every Monday at 6 AM
        enabled=True,
    ),
}


# =============================================================================
# JOB RUNNER FUNCTIONS
# =============================================================================

def run_job(job_name: str) -> Dict[str, Any]:
    """
    Run a specific background job by name.

    Args:
        job_name: One of 'check-alerts', 'create-forecast-snapshot'

    Returns:
        Success response body for the job

    Raises:
        ValueError: for an unknown job name
        CRMJobError: when the job fails (configuration, query)
    """
    # Import here to avoid circular imports
    from .check_alerts import CheckAlertsJob
    from .forecast_snapshot import ForecastSnapshotJob

    jobs = {
        "check-alerts": CheckAlertsJob,
        "create-forecast-snapshot": ForecastSnapshotJob,
    }

    if job_name not in jobs:
        raise ValueError(f"Unknown job: {job_name}. Available: {list(jobs.keys())}")

    job = jobs[job_name]()
    return job.run().to_response()


def failure_response(error: Exception) -> Dict[str, Any]:
    """Body returned when a job invocation fails."""
    return {
        "success": False,
        "error": str(error) or error.__class__.__name__,
    }


__all__ = [
    "JobConfig",
    "JOB_CONFIGS",
    "run_job",
    "failure_response",
]
