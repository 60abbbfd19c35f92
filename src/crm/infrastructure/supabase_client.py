# src/crm/infrastructure/supabase_client.py
"""
Supabase Client

Each job invocation opens its own client with the service-role key and
releases it when the job finishes, successfully or not. Nothing is cached
between invocations.

Usage:
    from .supabase_client import supabase_session

    with supabase_session() as client:
        result = client.table("opportunities").select("*").eq("status", "open").execute()
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from supabase import Client, create_client

from ..config import SupabaseSettings, get_config
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_supabase_client(settings: Optional[SupabaseSettings] = None) -> Client:
    """
    Create a new Supabase client.

    Args:
        settings: Connection settings (defaults to the global config)

    Raises:
        ConfigurationError: if the URL or service-role key is missing
    """
    settings = (settings or get_config().supabase).require()

    try:
        client = create_client(settings.url, settings.service_role_key)
    except Exception as e:
        raise ConfigurationError(f"Failed to create Supabase client: {e}") from e

    logger.debug(f"Connected to Supabase: {settings.url}")
    return client


def close_supabase_client(client) -> None:
    """Close the HTTP session behind a client, if one was opened."""
    postgrest = getattr(client, "_postgrest", None)
    session = getattr(postgrest, "session", None)
    if session is None:
        return
    try:
        session.close()
    except Exception as e:
        logger.warning(f"Error closing Supabase session: {e}")


@contextmanager
def supabase_session(settings: Optional[SupabaseSettings] = None) -> Iterator[Client]:
    """Scoped Supabase client for one job invocation."""
    client = create_supabase_client(settings)
    try:
        yield client
    finally:
        close_supabase_client(client)
