"""
Notifications Repository - Data Access for User Notifications

The alert job only needs two operations:
- read recent unread notifications (for deduplication)
- insert a batch of new notifications in one write
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from ..models import NotificationRecord, UserAlert
from .base import SupabaseRepository


class NotificationsRepository(ABC):
    """
    Abstract interface (Port) for notification data access.
    """

    @abstractmethod
    def get_unread_since(self, since: datetime) -> List[NotificationRecord]:
        """
        Get unread notifications created at or after a point in time.

        Args:
            since: Lower bound on created_at (inclusive)

        Returns:
            List of notification records
        """
        pass

    @abstractmethod
    def insert_alerts(self, alerts: List[UserAlert]) -> int:
        """
        Insert one notification per alert in a single batch write.

        Args:
            alerts: Alerts to persist

        Returns:
            Number of notifications written

        Raises:
            WriteError: if the batch is rejected
        """
        pass


class SupabaseNotificationsRepository(SupabaseRepository, NotificationsRepository):
    """
    Supabase implementation of NotificationsRepository.
    """

    table_name = "notifications"

    def get_unread_since(self, since: datetime) -> List[NotificationRecord]:
        query = (
            self._table()
            .select("id, user_id, org_id, title, related_to_type, related_to_id, is_read, created_at")
            .eq("is_read", False)
            .gte("created_at", since.isoformat())
        )
        return self._parse_rows(self._read(query), NotificationRecord.from_row)

    def insert_alerts(self, alerts: List[UserAlert]) -> int:
        if not alerts:
            return 0
        rows = [alert.to_notification_row() for alert in alerts]
        self._write(self._table().insert(rows))
        return len(rows)
