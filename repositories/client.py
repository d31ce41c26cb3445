"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository modules
ask for a client through `create_supabase_client` instead of importing a
module-level instance, so the memory and file backends work without Supabase
credentials.

Credentials required by the supabase backend:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]


def create_supabase_client(url: str | None, key: str | None) -> Client:
    """
    Build a Supabase client from explicit credentials.

    Raises:
        RuntimeError: if either credential is missing.
    """

    if not url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    return create_client(url, key)


__all__ = ["create_supabase_client"]
