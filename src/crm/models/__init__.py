"""Typed records shared by repositories and jobs."""

from .records import (
    ForecastCategory,
    ForecastData,
    ForecastSnapshot,
    NotificationRecord,
    NotificationType,
    Opportunity,
    OpportunityStatus,
    Organization,
    PeriodWindow,
    SnapshotKey,
    User,
    UserAlert,
    dedup_key,
    parse_date,
    parse_datetime,
)

__all__ = [
    "ForecastCategory",
    "ForecastData",
    "ForecastSnapshot",
    "NotificationRecord",
    "NotificationType",
    "Opportunity",
    "OpportunityStatus",
    "Organization",
    "PeriodWindow",
    "SnapshotKey",
    "User",
    "UserAlert",
    "dedup_key",
    "parse_date",
    "parse_datetime",
]
