# src/crm/services/jobs/check_alerts.py
"""
Check Alerts Job

Triggers when:
- Open opportunity has no next step (text or date)
- Open opportunity has had no activity for 7+ days
- Late-stage opportunity (negotiation, verbal commitment) idle for 3+ days
- A rep's weighted pipeline is under 3x the monthly quota

Alerts are deduplicated against unread notifications from the last 24 hours
on (user, title, related entity), then written in a single batch.

Schedule: Hourly
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ...config import AlertSettings, get_config
from ...errors import QueryError, RecordError, WriteError
from ...infrastructure.supabase_client import supabase_session
from ...models import UserAlert
from ...repositories import Repositories
from .alert_rules import (
    PipelineLoad,
    check_late_stage_stalled,
    check_missing_next_step,
    check_pipeline_coverage,
    check_stalled,
    collect_pipeline_loads,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AlertRunResult:
    """Outcome of one check-alerts invocation."""
    alerts_generated: int
    notifications_created: int
    timestamp: datetime
    skipped_users: List[PipelineLoad] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "alertsGenerated": self.alerts_generated,
            "notificationsCreated": self.notifications_created,
            "timestamp": self.timestamp.isoformat(),
        }


def filter_duplicate_alerts(alerts: Iterable[UserAlert], existing_keys: Iterable[tuple]) -> List[UserAlert]:
    """
    Drop alerts whose (user, title, related id) key is already pending.

    Message text is not part of the key, so an alert whose numbers changed
    since the last run is still treated as the same issue. Repeats inside the
    new batch are collapsed as well.
    """
    seen = set(existing_keys)
    fresh = []
    for alert in alerts:
        if alert.dedup_key in seen:
            continue
        seen.add(alert.dedup_key)
        fresh.append(alert)
    return fresh


class CheckAlertsJob:
    """
    Scan open opportunities and active users and notify owners who need to act.

    Schedule: Hourly
    """

    def __init__(
        self,
        settings: Optional[AlertSettings] = None,
        session_factory: Optional[Callable] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_config().alerts
        self._session_factory = session_factory or supabase_session
        self._clock = clock or utc_now

    def run(self) -> AlertRunResult:
        """Open a session, evaluate every rule and write new notifications."""
        logger.info("Running Check Alerts job")
        with self._session_factory() as client:
            return self.evaluate(Repositories.from_client(client))

    def evaluate(self, repos: Repositories) -> AlertRunResult:
        now = self._clock()
        alerts, skipped = self.generate_alerts(repos, now)
        created = self.create_notifications(repos, alerts, now)

        logger.info(
            f"Check Alerts completed: alerts={len(alerts)} created={created} skipped_users={len(skipped)}"
        )
        return AlertRunResult(
            alerts_generated=len(alerts),
            notifications_created=created,
            timestamp=now,
            skipped_users=skipped,
        )

    def generate_alerts(self, repos: Repositories, now: datetime):
        """Run all four rules. Returns (alerts, skipped coverage users)."""
        s = self.settings
        open_opps = repos.opportunities.list_open()

        alerts: List[UserAlert] = []
        alerts.extend(check_missing_next_step(open_opps))
        alerts.extend(check_stalled(open_opps, now, s.stalled_days))
        alerts.extend(check_late_stage_stalled(open_opps, now, s.late_stage_stalled_days, s.late_stages))

        try:
            users = repos.users.list_active()
        except (QueryError, RecordError) as e:
            logger.warning(f"Skipping coverage check, active users unavailable: {e}")
            users = []

        loads = collect_pipeline_loads(users, repos.opportunities)
        alerts.extend(check_pipeline_coverage(loads, s.monthly_quota, s.coverage_threshold))

        skipped = [load for load in loads if load.skipped]
        return alerts, skipped

    def create_notifications(self, repos: Repositories, alerts: List[UserAlert], now: datetime) -> int:
        """Deduplicate and insert. A rejected batch is logged and counts as zero."""
        if not alerts:
            return 0

        since = now - timedelta(hours=self.settings.dedup_window_hours)
        existing = repos.notifications.get_unread_since(since)
        new_alerts = filter_duplicate_alerts(alerts, (n.dedup_key for n in existing))

        if not new_alerts:
            logger.info(f"All {len(alerts)} alerts already have pending notifications")
            return 0

        try:
            return repos.notifications.insert_alerts(new_alerts)
        except WriteError as e:
            logger.error(f"Error creating notifications: {e}")
            return 0
