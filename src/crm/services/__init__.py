"""
CRM services - business logic between the HTTP layer and the repositories.
"""

from .jobs import JOB_CONFIGS, run_job

__all__ = [
    "JOB_CONFIGS",
    "run_job",
]
