"""
Background Job Scheduler

Uses APScheduler to run the pipeline jobs at their scheduled times. The
external cron remains the primary trigger; this in-app scheduler is only
started when scheduler.enabled is set (production).
"""

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import CRMConfig, get_config
from .jobs import JOB_CONFIGS, run_job

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> Optional[BackgroundScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


def _run_scheduled(job_name: str):
    """Run one job from the scheduler thread and log the outcome."""
    try:
        result = run_job(job_name)
        logger.info(f"{job_name} completed: {result}")
    except Exception as e:
        logger.error(f"{job_name} failed: {e}")


def init_scheduler(config: Optional[CRMConfig] = None) -> Optional[BackgroundScheduler]:
    """
    Initialize the APScheduler with the pipeline jobs.

    Returns None when the scheduler is disabled for this environment.
    """
    global _scheduler

    config = config or get_config()
    if not config.scheduler.enabled:
        logger.info(f"Scheduler disabled in {config.environment} environment")
        return None

    if _scheduler is not None:
        return _scheduler

    _scheduler = BackgroundScheduler(
        timezone=config.scheduler.timezone,
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # One instance at a time
            'misfire_grace_time': 60 * 30,  # 30 min grace period
        },
    )

    crons = {
        "check-alerts": config.scheduler.check_alerts_cron,
        "create-forecast-snapshot": config.scheduler.forecast_snapshot_cron,
    }

    for job_name, cron in crons.items():
        job_config = JOB_CONFIGS[job_name]
        if not job_config.enabled:
            continue
        _scheduler.add_job(
            _run_scheduled,
            CronTrigger.from_crontab(cron, timezone=config.scheduler.timezone),
            args=[job_name],
            id=job_name,
            name=job_config.name,
            replace_existing=True,
        )

    _scheduler.start()
    logger.info("Background job scheduler started")

    for job in _scheduler.get_jobs():
        logger.info(f"  {job.name}: next run at {job.next_run_time}")

    return _scheduler


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown complete")
        _scheduler = None


def get_next_job_runs() -> list:
    """Get the next scheduled run times for all jobs."""
    if not _scheduler:
        return []

    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })
    return jobs
