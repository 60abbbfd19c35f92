# src/crm/repositories/__init__.py
"""
Repository Layer - Ports and Adapters Pattern

One port per table the jobs touch, with a Supabase adapter for each.
Repositories are built around a client that belongs to a single job
invocation, so there are no module-level singletons here.

Usage:
    from src.crm.repositories import Repositories

    with supabase_session() as client:
        repos = Repositories.from_client(client)
        open_deals = repos.opportunities.list_open()
"""

from dataclasses import dataclass

from .base import SupabaseRepository
from .forecast_snapshots_repository import (
    ForecastSnapshotRepository,
    SupabaseForecastSnapshotRepository,
)
from .notifications_repository import (
    NotificationsRepository,
    SupabaseNotificationsRepository,
)
from .opportunities_repository import (
    OpportunityRepository,
    SupabaseOpportunityRepository,
)
from .users_repository import (
    OrganizationRepository,
    SupabaseOrganizationRepository,
    SupabaseUserRepository,
    UserRepository,
)


@dataclass
class Repositories:
    """The set of repositories a job works with."""
    opportunities: OpportunityRepository
    users: UserRepository
    organizations: OrganizationRepository
    notifications: NotificationsRepository
    forecast_snapshots: ForecastSnapshotRepository

    @classmethod
    def from_client(cls, client) -> "Repositories":
        return cls(
            opportunities=SupabaseOpportunityRepository(client),
            users=SupabaseUserRepository(client),
            organizations=SupabaseOrganizationRepository(client),
            notifications=SupabaseNotificationsRepository(client),
            forecast_snapshots=SupabaseForecastSnapshotRepository(client),
        )


__all__ = [
    "Repositories",
    "SupabaseRepository",
    "OpportunityRepository",
    "SupabaseOpportunityRepository",
    "UserRepository",
    "SupabaseUserRepository",
    "OrganizationRepository",
    "SupabaseOrganizationRepository",
    "NotificationsRepository",
    "SupabaseNotificationsRepository",
    "ForecastSnapshotRepository",
    "SupabaseForecastSnapshotRepository",
]
