"""
Typed records for the rows the pipeline jobs read and write.

Rows coming back from Supabase are plain dicts. They are turned into these
dataclasses at the repository boundary; a row missing a required field or
carrying an impossible value raises RecordError there instead of failing at
first attribute access somewhere inside a rule.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from ..errors import RecordError

_DATETIME = TypeAdapter(datetime)


class OpportunityStatus(str, Enum):
    OPEN = "open"
    WON = "won"
    LOST = "lost"


class ForecastCategory(str, Enum):
    COMMIT = "commit"
    BEST_CASE = "best_case"
    PIPELINE = "pipeline"


class NotificationType(str, Enum):
    """Severity of a user notification."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


# =============================================================================
# PARSING HELPERS
# =============================================================================

def parse_datetime(val: Any) -> Optional[datetime]:
    """Parse an ISO timestamp from the store. Naive values are taken as UTC."""
    if val is None or val == "":
        return None
    try:
        parsed = _DATETIME.validate_python(val)
    except ValidationError as e:
        raise RecordError(f"Invalid timestamp: {val!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(val: Any) -> Optional[date]:
    """Parse a calendar date (YYYY-MM-DD or a full timestamp)."""
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    try:
        return date.fromisoformat(str(val)[:10])
    except ValueError as e:
        raise RecordError(f"Invalid date: {val!r}") from e


def _require(row: Dict[str, Any], kind: str, *keys: str) -> None:
    missing = [k for k in keys if row.get(k) in (None, "")]
    if missing:
        raise RecordError(f"{kind} row {row.get('id', '?')} is missing {', '.join(missing)}")


def _amount(row: Dict[str, Any], key: str, kind: str) -> float:
    raw = row.get(key)
    if raw is None:
        return 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise RecordError(f"{kind} row {row.get('id', '?')} has non-numeric {key}: {raw!r}") from e
    if value < 0:
        raise RecordError(f"{kind} row {row.get('id', '?')} has negative {key}: {value}")
    return value


# =============================================================================
# STORE RECORDS
# =============================================================================

@dataclass
class Opportunity:
    """An opportunity (deal) as read by the jobs. Never written by them."""
    id: str
    name: str
    owner_id: str
    org_id: str
    status: str = OpportunityStatus.OPEN.value
    stage: str = "lead"
    amount: float = 0.0
    weighted_amount: float = 0.0
    forecast_category: str = ForecastCategory.PIPELINE.value
    next_step: Optional[str] = None
    next_step_date: Optional[date] = None
    last_activity_at: Optional[datetime] = None
    expected_close_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.status == OpportunityStatus.OPEN.value

    @property
    def has_next_step(self) -> bool:
        return bool((self.next_step or "").strip()) and self.next_step_date is not None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Opportunity":
        _require(row, "opportunity", "id", "name", "owner_id", "org_id", "status")
        return cls(
            id=str(row["id"]),
            name=row["name"],
            owner_id=str(row["owner_id"]),
            org_id=str(row["org_id"]),
            status=row["status"],
            stage=row.get("stage") or "lead",
            amount=_amount(row, "amount", "opportunity"),
            weighted_amount=_amount(row, "weighted_amount", "opportunity"),
            forecast_category=row.get("forecast_category") or ForecastCategory.PIPELINE.value,
            next_step=row.get("next_step"),
            next_step_date=parse_date(row.get("next_step_date")),
            last_activity_at=parse_datetime(row.get("last_activity_at")),
            expected_close_date=parse_date(row.get("expected_close_date")),
        )


@dataclass
class User:
    id: str
    org_id: str
    status: str = "active"
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.id

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        _require(row, "user", "id", "org_id")
        return cls(
            id=str(row["id"]),
            org_id=str(row["org_id"]),
            status=row.get("status") or "active",
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
        )


@dataclass
class Organization:
    id: str
    name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Organization":
        _require(row, "organization", "id")
        return cls(id=str(row["id"]), name=row.get("name"))


@dataclass
class NotificationRecord:
    """An existing notification, read back for deduplication."""
    id: str
    user_id: str
    title: str
    org_id: Optional[str] = None
    message: str = ""
    type: str = NotificationType.INFO.value
    related_to_type: Optional[str] = None
    related_to_id: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    @property
    def dedup_key(self) -> Tuple[str, str, str]:
        return dedup_key(self.user_id, self.title, self.related_to_id)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "NotificationRecord":
        _require(row, "notification", "user_id", "title")
        related = row.get("related_to_id")
        return cls(
            id=str(row.get("id") or ""),
            user_id=str(row["user_id"]),
            title=row["title"],
            org_id=row.get("org_id"),
            message=row.get("message") or "",
            type=row.get("type") or NotificationType.INFO.value,
            related_to_type=row.get("related_to_type"),
            related_to_id=str(related) if related is not None else None,
            is_read=bool(row.get("is_read", False)),
            created_at=parse_datetime(row.get("created_at")),
        )


@dataclass
class ForecastData:
    """Cumulative forecast totals (commit <= best_case <= pipeline)."""
    commit: float = 0.0
    best_case: float = 0.0
    pipeline: float = 0.0

    def to_columns(self) -> Dict[str, float]:
        return {
            "commit_amount": self.commit,
            "best_case_amount": self.best_case,
            "pipeline_amount": self.pipeline,
        }


@dataclass(frozen=True)
class PeriodWindow:
    """A forecast period (first and last day of a calendar month)."""
    start: date
    end: date

    def contains(self, day: Optional[date]) -> bool:
        return day is not None and self.start <= day <= self.end


@dataclass(frozen=True)
class SnapshotKey:
    """Identity of a forecast snapshot row. user_id None is the org rollup."""
    org_id: str
    user_id: Optional[str]
    snapshot_date: date
    period_start: date


@dataclass
class ForecastSnapshot:
    org_id: str
    user_id: Optional[str]
    snapshot_date: date
    period_start: date
    period_end: date
    forecast: ForecastData = field(default_factory=ForecastData)
    id: Optional[str] = None

    @property
    def key(self) -> SnapshotKey:
        return SnapshotKey(self.org_id, self.user_id, self.snapshot_date, self.period_start)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a row for insertion."""
        data = {
            "org_id": self.org_id,
            "user_id": self.user_id,
            "snapshot_date": self.snapshot_date.isoformat(),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
        }
        data.update(self.forecast.to_columns())
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ForecastSnapshot":
        _require(row, "forecast_snapshot", "org_id", "snapshot_date", "period_start", "period_end")
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            org_id=str(row["org_id"]),
            user_id=str(row["user_id"]) if row.get("user_id") is not None else None,
            snapshot_date=parse_date(row["snapshot_date"]),
            period_start=parse_date(row["period_start"]),
            period_end=parse_date(row["period_end"]),
            forecast=ForecastData(
                commit=_amount(row, "commit_amount", "forecast_snapshot"),
                best_case=_amount(row, "best_case_amount", "forecast_snapshot"),
                pipeline=_amount(row, "pipeline_amount", "forecast_snapshot"),
            ),
        )


# =============================================================================
# ALERTS
# =============================================================================

def dedup_key(user_id: str, title: str, related_to_id: Optional[str]) -> Tuple[str, str, str]:
    """(user, title, related entity or "none") identifies one open issue."""
    return (str(user_id), title, str(related_to_id) if related_to_id else "none")


@dataclass
class UserAlert:
    """A candidate notification produced by an alert rule."""
    user_id: str
    org_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    related_to_type: Optional[str] = None
    related_to_id: Optional[str] = None

    @property
    def dedup_key(self) -> Tuple[str, str, str]:
        return dedup_key(self.user_id, self.title, self.related_to_id)

    def to_notification_row(self) -> Dict[str, Any]:
        """Row for the notifications table."""
        return {
            "org_id": self.org_id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "related_to_type": self.related_to_type,
            "related_to_id": self.related_to_id,
            "is_read": False,
        }
