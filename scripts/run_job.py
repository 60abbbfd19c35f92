#!/usr/bin/env python3
# scripts/run_job.py
"""
Run a pipeline job once from the shell.

Run: python scripts/run_job.py [job]

Jobs:
    check-alerts              - Generate alert notifications
    create-forecast-snapshot  - Capture this month's forecast snapshot
    list                      - Show registered jobs and schedules

Exit status is 0 on success and 1 when the job reports a failure.
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

from src.crm.config import get_config
from src.crm.services.jobs import JOB_CONFIGS, failure_response, run_job
from src.crm.services.startup import configure_logging


def cmd_list():
    """Show registered jobs."""
    for key, config in JOB_CONFIGS.items():
        status = "enabled" if config.enabled else "disabled"
        print(f"  {key:<26} {config.schedule:<12} {status:<9} {config.description}")
    return 0


def cmd_run(job_name: str) -> int:
    """Run one job and print the response body."""
    try:
        body = run_job(job_name)
    except Exception as e:
        print(json.dumps(failure_response(e), indent=2))
        return 1
    print(json.dumps(body, indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a CRM pipeline job")
    parser.add_argument("job", choices=[*JOB_CONFIGS.keys(), "list"], help="Job to run")
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging(get_config().log_level)

    if args.job == "list":
        return cmd_list()
    return cmd_run(args.job)


if __name__ == "__main__":
    sys.exit(main())
