"""
Background Jobs API Routes

HTTP triggers for the pipeline jobs. The external cron hits the per-job
routes; any method is accepted and the request body is ignored.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..services.jobs import JOB_CONFIGS, failure_response, run_job

logger = logging.getLogger(__name__)

router = APIRouter()

# Any verb triggers a run
TRIGGER_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _execute(job_name: str, request: Request) -> JSONResponse:
    run_id = request.headers.get("X-Job-Run-Id")
    try:
        body = run_job(job_name)
    except Exception as e:
        logger.error(f"Error in {job_name} (run_id={run_id}): {e}")
        return JSONResponse(failure_response(e), status_code=500)
    return JSONResponse(body)


@router.api_route("/api/v1/jobs/check-alerts", methods=TRIGGER_METHODS)
def check_alerts(request: Request):
    """Generate alert notifications (missing next step, stalled, coverage)."""
    return _execute("check-alerts", request)


@router.api_route("/api/v1/jobs/create-forecast-snapshot", methods=TRIGGER_METHODS)
def create_forecast_snapshot(request: Request):
    """Capture this month's forecast snapshot for every rep and organization."""
    return _execute("create-forecast-snapshot", request)


@router.post("/api/v1/jobs/{job_name}/run")
def run_background_job(job_name: str, request: Request):
    """
    Execute a background job by name.

    Jobs:
    - check-alerts: Alert notifications for opportunity owners
    - create-forecast-snapshot: Weekly forecast snapshot
    """
    valid_jobs = list(JOB_CONFIGS.keys())
    if job_name not in valid_jobs:
        return JSONResponse({
            "success": False,
            "error": f"Unknown job: {job_name}",
            "available_jobs": valid_jobs,
        }, status_code=400)

    return _execute(job_name, request)


@router.get("/api/v1/jobs")
def list_background_jobs():
    """List all available background jobs and their schedules."""
    from ..services.scheduler import get_next_job_runs, get_scheduler

    jobs = []
    for key, config in JOB_CONFIGS.items():
        jobs.append({
            "name": key,
            "display_name": config.name,
            "description": config.description,
            "schedule": config.schedule,
            "enabled": config.enabled,
        })

    scheduler = get_scheduler()
    if scheduler:
        scheduling_info = {
            "method": "apscheduler",
            "status": "running" if scheduler.running else "stopped",
            "next_runs": get_next_job_runs(),
        }
    else:
        scheduling_info = {
            "method": "external_cron",
            "description": "Jobs are triggered over HTTP by an external scheduler",
            "status": "disabled",
        }

    return JSONResponse({
        "jobs": jobs,
        "scheduling": scheduling_info,
    })


@router.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
