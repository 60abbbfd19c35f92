"""
Forecast Snapshots Repository

Rows are identified by (org_id, user_id, snapshot_date, period_start); a null
user_id is the organization rollup. The storage layer enforces that tuple as a
unique index (see supabase/migrations), so an insert can fail with a unique
violation when another run got there first.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import ForecastData, ForecastSnapshot, SnapshotKey
from .base import SupabaseRepository


class ForecastSnapshotRepository(ABC):
    """Abstract interface (Port) for forecast snapshot persistence."""

    @abstractmethod
    def find(self, key: SnapshotKey) -> Optional[ForecastSnapshot]:
        """Get the snapshot with this key, if any."""
        pass

    @abstractmethod
    def update_amounts(self, snapshot_id: str, forecast: ForecastData) -> None:
        """Overwrite the three amount columns of an existing snapshot."""
        pass

    @abstractmethod
    def insert(self, snapshot: ForecastSnapshot) -> Optional[str]:
        """
        Insert a new snapshot.

        Returns:
            The new row ID (when the store returns it)

        Raises:
            WriteError: on rejection (is_unique_violation for key conflicts)
        """
        pass


class SupabaseForecastSnapshotRepository(SupabaseRepository, ForecastSnapshotRepository):
    table_name = "forecast_snapshots"

    def find(self, key: SnapshotKey) -> Optional[ForecastSnapshot]:
        query = (
            self._table()
            .select("*")
            .eq("org_id", key.org_id)
            .eq("snapshot_date", key.snapshot_date.isoformat())
            .eq("period_start", key.period_start.isoformat())
        )
        # PostgREST needs IS NULL for the org rollup; eq on null matches nothing
        if key.user_id is None:
            query = query.is_("user_id", "null")
        else:
            query = query.eq("user_id", key.user_id)

        rows = self._read(query.limit(1))
        return self._first(self._parse_rows(rows, ForecastSnapshot.from_row))

    def update_amounts(self, snapshot_id: str, forecast: ForecastData) -> None:
        self._write(self._table().update(forecast.to_columns()).eq("id", snapshot_id))

    def insert(self, snapshot: ForecastSnapshot) -> Optional[str]:
        rows = self._write(self._table().insert(snapshot.to_dict()))
        if rows and rows[0].get("id") is not None:
            return str(rows[0]["id"])
        return None
