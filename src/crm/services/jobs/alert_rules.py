# src/crm/services/jobs/alert_rules.py
"""
Alert rules for the check-alerts job.

Each rule maps the current opportunity/user data to zero or more UserAlerts.
Rules are independent; one opportunity can trip several of them. The only
rule that needs extra reads is low coverage, and those reads happen up front
in collect_pipeline_loads() so the rule itself stays a pure function.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence

from ...errors import QueryError, RecordError
from ...models import NotificationType, Opportunity, User, UserAlert
from ...repositories import OpportunityRepository

logger = logging.getLogger(__name__)

MISSING_NEXT_STEP_TITLE = "Missing Next Step"
STALLED_TITLE = "Stalled Opportunity"
LATE_STAGE_STALLED_TITLE = "Late-Stage Deal Stalling"
LOW_COVERAGE_TITLE = "Low Pipeline Coverage"

RELATED_OPPORTUNITY = "opportunity"


def round_half_up(value, places: int = 0) -> Decimal:
    """Round halves away from zero (0.25 -> 0.3)."""
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_currency(amount: float) -> str:
    """$12,500 / $12,500.5 style: thousands separators, at most 3 decimals."""
    text = f"{round_half_up(amount, 3):,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"${text}"


def _is_stale(opp: Opportunity, cutoff: datetime) -> bool:
    return opp.last_activity_at is None or opp.last_activity_at < cutoff


def _open(opportunities: Iterable[Opportunity]) -> List[Opportunity]:
    return [opp for opp in opportunities if opp.is_open]


# =============================================================================
# OPPORTUNITY RULES
# =============================================================================

def check_missing_next_step(opportunities: Iterable[Opportunity]) -> List[UserAlert]:
    """Open opportunities with no next step text or no next step date."""
    return [
        UserAlert(
            user_id=opp.owner_id,
            org_id=opp.org_id,
            title=MISSING_NEXT_STEP_TITLE,
            message=(
                f'Opportunity "{opp.name}" has no next step defined. '
                f"Set a next step to keep this deal moving."
            ),
            type=NotificationType.ERROR,
            related_to_type=RELATED_OPPORTUNITY,
            related_to_id=opp.id,
        )
        for opp in _open(opportunities)
        if not opp.has_next_step
    ]


def check_stalled(opportunities: Iterable[Opportunity], now: datetime, days: int) -> List[UserAlert]:
    """Open opportunities with no activity recorded in the last `days` days."""
    cutoff = now - timedelta(days=days)
    return [
        UserAlert(
            user_id=opp.owner_id,
            org_id=opp.org_id,
            title=STALLED_TITLE,
            message=(
                f'Opportunity "{opp.name}" has had no activity in {days}+ days. '
                f"Follow up to keep this deal alive."
            ),
            type=NotificationType.WARNING,
            related_to_type=RELATED_OPPORTUNITY,
            related_to_id=opp.id,
        )
        for opp in _open(opportunities)
        if _is_stale(opp, cutoff)
    ]


def check_late_stage_stalled(
    opportunities: Iterable[Opportunity],
    now: datetime,
    days: int,
    late_stages: Sequence[str],
) -> List[UserAlert]:
    """Late-stage deals with no activity in `days` days (tighter window than check_stalled)."""
    cutoff = now - timedelta(days=days)
    return [
        UserAlert(
            user_id=opp.owner_id,
            org_id=opp.org_id,
            title=LATE_STAGE_STALLED_TITLE,
            message=(
                f'High-value opportunity "{opp.name}" ({format_currency(opp.amount)}) '
                f"in {opp.stage} has stalled. This is critical - follow up immediately!"
            ),
            type=NotificationType.ERROR,
            related_to_type=RELATED_OPPORTUNITY,
            related_to_id=opp.id,
        )
        for opp in _open(opportunities)
        if opp.stage in late_stages and _is_stale(opp, cutoff)
    ]


# =============================================================================
# PIPELINE COVERAGE
# =============================================================================

@dataclass
class PipelineLoad:
    """Weighted open pipeline for one user, or the reason it could not be read."""
    user: User
    weighted_pipeline: float = 0.0
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    @classmethod
    def ok(cls, user: User, weighted_pipeline: float) -> "PipelineLoad":
        return cls(user=user, weighted_pipeline=weighted_pipeline)

    @classmethod
    def skip(cls, user: User, reason: str) -> "PipelineLoad":
        return cls(user=user, skip_reason=reason)


def collect_pipeline_loads(users: Iterable[User], opportunities: OpportunityRepository) -> List[PipelineLoad]:
    """
    Sum weighted_amount over each user's open opportunities.

    A failed query (or malformed row) for one user yields a skip outcome for
    that user only; the rest of the organization is still evaluated.
    """
    loads = []
    for user in users:
        try:
            owned = opportunities.list_open(owner_id=user.id)
        except (QueryError, RecordError) as e:
            logger.warning(f"Skipping coverage check for user {user.id}: {e}")
            loads.append(PipelineLoad.skip(user, str(e)))
            continue
        loads.append(PipelineLoad.ok(user, sum(opp.weighted_amount for opp in owned)))
    return loads


def check_pipeline_coverage(
    loads: Iterable[PipelineLoad],
    quota: float,
    threshold: float,
) -> List[UserAlert]:
    """Users whose weighted pipeline is below `threshold` x quota (strictly)."""
    alerts = []
    target_k = quota * threshold / 1000

    for load in loads:
        if load.skipped:
            continue

        coverage = load.weighted_pipeline / quota
        if coverage >= threshold:
            continue

        alerts.append(UserAlert(
            user_id=load.user.id,
            org_id=load.user.org_id,
            title=LOW_COVERAGE_TITLE,
            message=(
                f"Your pipeline coverage is {round_half_up(coverage * 100):f}% ({round_half_up(coverage, 1):f}x). "
                f"You need {threshold:g}x coverage (${round_half_up(target_k):f}k weighted) to hit quota."
            ),
            type=NotificationType.WARNING,
        ))

    return alerts
