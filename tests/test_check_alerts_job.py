# tests/test_check_alerts_job.py
"""
Tests for the Check Alerts job.

Runs the job end to end against the in-memory Supabase mock: rule
evaluation, 24h deduplication, the batch insert and failure handling.
"""

from datetime import timedelta

import pytest

from src.crm.config import AlertSettings
from src.crm.errors import QueryError
from src.crm.services.jobs.check_alerts import CheckAlertsJob, filter_duplicate_alerts
from src.crm.models import UserAlert
from tests.fixtures.data import NOW, days_ago, make_notification, make_opportunity, make_user


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def job(session_factory, fixed_clock):
    return CheckAlertsJob(settings=AlertSettings(), session_factory=session_factory, clock=fixed_clock)


@pytest.fixture
def healthy_rep(mock_supabase):
    """One rep with a well-covered pipeline and nothing to flag."""
    mock_supabase.seed_data("users", [make_user()])
    mock_supabase.seed_data("opportunities", [
        make_opportunity(id="opp-1", weighted_amount=350000),
    ])
    return mock_supabase


def _titles(client):
    return sorted(row["title"] for row in client.rows("notifications"))


# =============================================================================
# RULE EVALUATION
# =============================================================================

class TestCheckAlertsRun:
    """End-to-end runs of the job."""

    def test_nothing_to_flag(self, job, healthy_rep):
        result = job.run()

        assert result.alerts_generated == 0
        assert result.notifications_created == 0
        assert healthy_rep.rows("notifications") == []

    def test_response_body(self, job, healthy_rep):
        body = job.run().to_response()

        assert body == {
            "success": True,
            "alertsGenerated": 0,
            "notificationsCreated": 0,
            "timestamp": NOW.isoformat(),
        }

    def test_each_rule_writes_a_notification(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id="opp-1", next_step=None, weighted_amount=100000),
            make_opportunity(id="opp-2", stage="negotiation", last_activity_at=days_ago(4), weighted_amount=50000),
            make_opportunity(id="opp-3", last_activity_at=days_ago(8), weighted_amount=50000),
        ])

        result = job.run()

        # missing step (opp-1), late stage (opp-2), stalled (opp-3), coverage (2.0x)
        assert result.alerts_generated == 4
        assert result.notifications_created == 4
        assert _titles(mock_supabase) == [
            "Late-Stage Deal Stalling",
            "Low Pipeline Coverage",
            "Missing Next Step",
            "Stalled Opportunity",
        ]

    def test_notification_rows_are_unread_and_scoped(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id="opp-7", next_step="", weighted_amount=400000),
        ])

        job.run()

        [row] = mock_supabase.rows("notifications")
        assert row["user_id"] == "user-1"
        assert row["org_id"] == "org-1"
        assert row["type"] == "error"
        assert row["related_to_type"] == "opportunity"
        assert row["related_to_id"] == "opp-7"
        assert row["is_read"] is False

    def test_single_batch_insert(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id=f"opp-{i}", next_step=None, weighted_amount=100000) for i in range(5)
        ])

        job.run()

        inserts = [c for c in mock_supabase.calls if c[0] == "notifications" and c[1] == "insert"]
        assert len(inserts) == 1


# =============================================================================
# DEDUPLICATION
# =============================================================================

class TestDeduplication:
    """Pending unread notifications from the last 24 hours suppress repeats."""

    def test_second_run_creates_nothing(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id="opp-1", last_activity_at=days_ago(9), weighted_amount=400000),
        ])

        first = job.run()
        second = job.run()

        assert first.notifications_created == 1
        assert second.alerts_generated == 1
        assert second.notifications_created == 0
        assert len(mock_supabase.rows("notifications")) == 1

    def test_read_notification_does_not_suppress(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id="opp-1", last_activity_at=days_ago(9), weighted_amount=400000),
        ])
        mock_supabase.seed_data("notifications", [make_notification(is_read=True)])

        assert job.run().notifications_created == 1

    def test_notification_older_than_window_does_not_suppress(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id="opp-1", last_activity_at=days_ago(9), weighted_amount=400000),
        ])
        mock_supabase.seed_data("notifications", [make_notification(created_at=days_ago(1.5))])

        assert job.run().notifications_created == 1

    def test_pending_coverage_alert_suppresses_by_none_key(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [make_opportunity(weighted_amount=1000)])
        mock_supabase.seed_data("notifications", [
            make_notification(title="Low Pipeline Coverage", related_to_id=None),
        ])

        result = job.run()

        assert result.alerts_generated == 1
        assert result.notifications_created == 0

    def test_repeats_within_a_batch_collapse(self):
        alert = UserAlert(user_id="user-1", org_id="org-1", title="Low Pipeline Coverage", message="a")
        again = UserAlert(user_id="user-1", org_id="org-1", title="Low Pipeline Coverage", message="b")

        assert filter_duplicate_alerts([alert, again], []) == [alert]

    def test_dedup_window_starts_24_hours_back(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [make_opportunity(next_step=None, weighted_amount=400000)])

        job.run()

        [read] = [c for c in mock_supabase.calls if c[0] == "notifications" and c[1] == "select"]
        assert ("gte", "created_at", (NOW - timedelta(hours=24)).isoformat()) in read[2]
        assert ("eq", "is_read", False) in read[2]


# =============================================================================
# FAILURES
# =============================================================================

class TestCheckAlertsFailures:

    def test_insert_failure_reports_zero_created(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [make_opportunity(next_step=None, weighted_amount=400000)])
        mock_supabase.fail_when("notifications", op="insert")

        result = job.run()

        assert result.alerts_generated == 1
        assert result.notifications_created == 0

    def test_coverage_query_failure_skips_that_user(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user("user-1"), make_user("user-2")])
        mock_supabase.seed_data("opportunities", [
            make_opportunity(id="opp-1", owner_id="user-1", weighted_amount=1000),
            make_opportunity(id="opp-2", owner_id="user-2", weighted_amount=1000),
        ])
        mock_supabase.fail_when("opportunities", owner_id="user-1")

        result = job.run()

        assert [load.user.id for load in result.skipped_users] == ["user-1"]
        assert result.notifications_created == 1
        [row] = mock_supabase.rows("notifications")
        assert row["user_id"] == "user-2"

    def test_active_users_failure_skips_coverage_only(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [make_opportunity(next_step=None, weighted_amount=1000)])
        mock_supabase.fail_when("users", status="active")

        result = job.run()

        assert result.alerts_generated == 1
        assert result.notifications_created == 1
        assert _titles(mock_supabase) == ["Missing Next Step"]

    def test_open_opportunities_query_failure_propagates(self, job, mock_supabase):
        mock_supabase.fail_when("opportunities", status="open")

        with pytest.raises(QueryError):
            job.run()

    def test_dedup_read_failure_propagates(self, job, mock_supabase):
        mock_supabase.seed_data("users", [make_user()])
        mock_supabase.seed_data("opportunities", [make_opportunity(next_step=None, weighted_amount=400000)])
        mock_supabase.fail_when("notifications", op="select")

        with pytest.raises(QueryError):
            job.run()

        assert mock_supabase.rows("notifications") == []
