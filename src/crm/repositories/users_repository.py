"""
Users and Organizations Repositories - read access to the tenant directory.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Organization, User
from .base import SupabaseRepository


class UserRepository(ABC):
    """Abstract interface (Port) for user reads."""

    @abstractmethod
    def list_active(self, org_id: Optional[str] = None) -> List[User]:
        """Get active users, optionally limited to one organization."""
        pass


class OrganizationRepository(ABC):
    """Abstract interface (Port) for organization reads."""

    @abstractmethod
    def list_all(self) -> List[Organization]:
        """Get every organization."""
        pass


class SupabaseUserRepository(SupabaseRepository, UserRepository):
    table_name = "users"

    def list_active(self, org_id: Optional[str] = None) -> List[User]:
        query = self._table().select("id, org_id, status, first_name, last_name").eq("status", "active")
        if org_id:
            query = query.eq("org_id", org_id)
        return self._parse_rows(self._read(query), User.from_row)


class SupabaseOrganizationRepository(SupabaseRepository, OrganizationRepository):
    table_name = "organizations"

    def list_all(self) -> List[Organization]:
        return self._parse_rows(self._read(self._table().select("id, name")), Organization.from_row)
