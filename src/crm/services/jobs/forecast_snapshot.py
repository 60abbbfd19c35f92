# src/crm/services/jobs/forecast_snapshot.py
"""
Forecast Snapshot Job

Captures commit / best case / pipeline totals for the current month, once per
active user and once per organization (user_id NULL), so forecast drift can be
tracked week over week.

Re-running on the same day updates that day's rows in place; there is never
more than one row per (org, user, snapshot_date, period_start).

Schedule: Every Monday at 6 AM
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

from ...errors import QueryError, RecordError, WriteError
from ...infrastructure.supabase_client import supabase_session
from ...models import ForecastData, ForecastSnapshot, Organization, PeriodWindow
from ...repositories import ForecastSnapshotRepository, Repositories
from .check_alerts import utc_now
from .forecast import aggregate_forecast, current_period

logger = logging.getLogger(__name__)


@dataclass
class SnapshotRunResult:
    """Outcome of one create-forecast-snapshot invocation."""
    snapshots_created: int
    snapshot_date: date
    period: PeriodWindow
    users_skipped: int = 0

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "snapshotsCreated": self.snapshots_created,
            "snapshotDate": self.snapshot_date.isoformat(),
            "periodStart": self.period.start.isoformat(),
            "periodEnd": self.period.end.isoformat(),
        }


def upsert_snapshot(repo: ForecastSnapshotRepository, snapshot: ForecastSnapshot) -> str:
    """
    Write a snapshot idempotently.

    Updates the row with the same key if there is one, otherwise inserts.
    If the insert loses a race to a concurrent run (unique violation), the
    winner's row is updated instead.

    Returns:
        "updated" or "inserted"

    Raises:
        WriteError / QueryError: when the store rejects the write
    """
    existing = repo.find(snapshot.key)
    if existing is not None:
        repo.update_amounts(existing.id, snapshot.forecast)
        return "updated"

    try:
        repo.insert(snapshot)
        return "inserted"
    except WriteError as e:
        if not e.is_unique_violation:
            raise
        existing = repo.find(snapshot.key)
        if existing is None:
            raise
        logger.info(f"Snapshot {snapshot.key} created concurrently, updating in place")
        repo.update_amounts(existing.id, snapshot.forecast)
        return "updated"


class ForecastSnapshotJob:
    """
    Weekly forecast snapshot for every organization and its active users.

    Schedule: Monday 6 AM
    """

    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory or supabase_session
        self._clock = clock or utc_now

    def run(self) -> SnapshotRunResult:
        logger.info("Running Forecast Snapshot job")
        with self._session_factory() as client:
            return self.evaluate(Repositories.from_client(client))

    def evaluate(self, repos: Repositories) -> SnapshotRunResult:
        now = self._clock()
        period = current_period(now)
        snapshot_date = now.date()

        created = 0
        skipped = 0

        for org in repos.organizations.list_all():
            org_created, org_skipped = self._snapshot_organization(repos, org, period, snapshot_date)
            created += org_created
            skipped += org_skipped

        logger.info(
            f"Forecast Snapshot completed: snapshots={created} users_skipped={skipped} "
            f"period={period.start}..{period.end}"
        )
        return SnapshotRunResult(
            snapshots_created=created,
            snapshot_date=snapshot_date,
            period=period,
            users_skipped=skipped,
        )

    def _snapshot_organization(self, repos: Repositories, org: Organization, period: PeriodWindow, snapshot_date: date):
        created = 0
        skipped = 0

        try:
            users = repos.users.list_active(org_id=org.id)
        except (QueryError, RecordError) as e:
            logger.warning(f"Skipping forecast snapshots for org {org.id}: {e}")
            return 0, 0

        for user in users:
            try:
                opps = repos.opportunities.list_open_closing_in(period, owner_id=user.id)
            except (QueryError, RecordError) as e:
                logger.warning(f"Skipping forecast snapshot for user {user.id}: {e}")
                skipped += 1
                continue

            if self._write(repos, org.id, user.id, snapshot_date, period, aggregate_forecast(opps)):
                created += 1

        org_opps = repos.opportunities.list_open_closing_in(period, org_id=org.id)
        if self._write(repos, org.id, None, snapshot_date, period, aggregate_forecast(org_opps)):
            created += 1

        return created, skipped

    def _write(
        self,
        repos: Repositories,
        org_id: str,
        user_id: Optional[str],
        snapshot_date: date,
        period: PeriodWindow,
        forecast: ForecastData,
    ) -> bool:
        """Best-effort upsert; a failed write is logged and skipped."""
        snapshot = ForecastSnapshot(
            org_id=org_id,
            user_id=user_id,
            snapshot_date=snapshot_date,
            period_start=period.start,
            period_end=period.end,
            forecast=forecast,
        )
        try:
            upsert_snapshot(repos.forecast_snapshots, snapshot)
        except (WriteError, QueryError, RecordError) as e:
            logger.error(f"Failed to write forecast snapshot {snapshot.key}: {e}")
            return False
        return True
