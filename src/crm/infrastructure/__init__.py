# src/crm/infrastructure/__init__.py
"""
Infrastructure components for the CRM pipeline jobs.

Components:
- supabase_client: scoped Supabase client for one job invocation

Usage:
    from .infrastructure import supabase_session
"""

from .supabase_client import (
    close_supabase_client,
    create_supabase_client,
    supabase_session,
)

__all__ = [
    "close_supabase_client",
    "create_supabase_client",
    "supabase_session",
]
