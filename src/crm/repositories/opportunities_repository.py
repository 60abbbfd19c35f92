"""
Opportunities Repository - read access to the opportunities table.

The jobs never write opportunities; they only read open ones.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Opportunity, OpportunityStatus, PeriodWindow
from .base import SupabaseRepository


class OpportunityRepository(ABC):
    """Abstract interface (Port) for opportunity reads."""

    @abstractmethod
    def list_open(self, owner_id: Optional[str] = None) -> List[Opportunity]:
        """
        Get open opportunities.

        Args:
            owner_id: Restrict to one owner

        Returns:
            List of open opportunities
        """
        pass

    @abstractmethod
    def list_open_closing_in(
        self,
        period: PeriodWindow,
        owner_id: Optional[str] = None,
        org_id: Optional[str] = None,
    ) -> List[Opportunity]:
        """
        Get open opportunities whose expected close date falls inside a period.

        Args:
            period: Inclusive date window
            owner_id: Restrict to one owner
            org_id: Restrict to one organization
        """
        pass


class SupabaseOpportunityRepository(SupabaseRepository, OpportunityRepository):
    """Supabase implementation of OpportunityRepository."""

    table_name = "opportunities"

    def list_open(self, owner_id: Optional[str] = None) -> List[Opportunity]:
        query = self._table().select("*").eq("status", OpportunityStatus.OPEN.value)
        if owner_id:
            query = query.eq("owner_id", owner_id)
        return self._parse_rows(self._read(query), Opportunity.from_row)

    def list_open_closing_in(
        self,
        period: PeriodWindow,
        owner_id: Optional[str] = None,
        org_id: Optional[str] = None,
    ) -> List[Opportunity]:
        query = (
            self._table()
            .select("*")
            .eq("status", OpportunityStatus.OPEN.value)
            .gte("expected_close_date", period.start.isoformat())
            .lte("expected_close_date", period.end.isoformat())
        )
        if owner_id:
            query = query.eq("owner_id", owner_id)
        if org_id:
            query = query.eq("org_id", org_id)
        return self._parse_rows(self._read(query), Opportunity.from_row)
