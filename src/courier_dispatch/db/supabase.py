"""Supabase client shared by the order, notification and directory queries."""

from __future__ import annotations

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Return the process-wide client, or None when credentials are missing.

    Callers in ``persistence.database`` turn None into
    ``DatabaseNotConfiguredError``. No query is issued here, so a returned
    client may still fail on first use.
    """
    if not (settings.supabase_url and settings.supabase_key):
        logger.warning("DISPATCH_SUPABASE_URL or DISPATCH_SUPABASE_KEY is not set; database features are disabled")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Could not create Supabase client for {settings.supabase_url}: {e}")
        return None
