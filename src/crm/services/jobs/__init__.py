# src/crm/services/jobs/__init__.py
"""
Background Jobs Module

Scheduled jobs that scan opportunity data:
- check-alerts: notifications for missing next steps, stalled deals,
  late-stage stalls and low pipeline coverage (hourly)
- create-forecast-snapshot: per-rep and per-org forecast rollups (Monday 6 AM)

Jobs are triggered over HTTP by an external cron, by the in-app APScheduler
in production, or manually via scripts/run_job.py.
"""

from .base import JobConfig, JOB_CONFIGS, failure_response, run_job
from .check_alerts import AlertRunResult, CheckAlertsJob, filter_duplicate_alerts
from .forecast import aggregate_forecast, current_period
from .forecast_snapshot import ForecastSnapshotJob, SnapshotRunResult, upsert_snapshot

__all__ = [
    # Configuration
    "JobConfig",
    "JOB_CONFIGS",
    # Job classes
    "CheckAlertsJob",
    "ForecastSnapshotJob",
    # Results
    "AlertRunResult",
    "SnapshotRunResult",
    # Building blocks
    "filter_duplicate_alerts",
    "aggregate_forecast",
    "current_period",
    "upsert_snapshot",
    # Runner functions
    "run_job",
    "failure_response",
]
