"""
Runtime configuration and storage backend selection.

Settings come from environment variables, after loading the `.env` file in
the project root (if present).

Environment variables:
- REFERRAL_STORAGE: memory | file | supabase (default: memory)
- REFERRAL_DATA_FILE: JSON file for the file backend (default: data/referrals.json)
- SUPABASE_URL / SUPABASE_KEY: credentials for the supabase backend
- REFERRAL_SUPABASE_TABLE: table for the supabase backend (default: referrals)
- REFERRAL_RESTRICT_UPDATES: only allow whitelisted fields in updates (default: false)
- REFERRAL_CORS_ORIGINS: comma-separated allowed origins (default: *)
- LOG_LEVEL: root log level (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from repositories.referral_storage import (
    InMemoryReferralStorage,
    JsonFileReferralStorage,
    ReferralStorage,
)
from repositories.supabase_referral_storage import (
    DEFAULT_REFERRALS_TABLE,
    SupabaseReferralStorage,
)

PROJECT_ROOT = Path(__file__).parent.parent

STORAGE_BACKENDS = ("memory", "file", "supabase")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    storage_backend: str = "memory"
    data_file: Path = PROJECT_ROOT / "data" / "referrals.json"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = DEFAULT_REFERRALS_TABLE
    restrict_update_fields: bool = False
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from the environment.

    When `environ` is None the project `.env` file is loaded first and
    `os.environ` is used; pass a mapping to bypass both (tests).

    Raises:
        ValueError: if REFERRAL_STORAGE names an unknown backend.
    """

    if environ is None:
        load_dotenv(dotenv_path=PROJECT_ROOT / ".env")
        environ = os.environ

    backend = environ.get("REFERRAL_STORAGE", "memory").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown REFERRAL_STORAGE {backend!r}; expected one of {', '.join(STORAGE_BACKENDS)}"
        )

    data_file = Path(environ.get("REFERRAL_DATA_FILE", "data/referrals.json"))
    if not data_file.is_absolute():
        data_file = PROJECT_ROOT / data_file

    origins = _split_origins(environ.get("REFERRAL_CORS_ORIGINS", "*")) or ["*"]

    return Settings(
        storage_backend=backend,
        data_file=data_file,
        supabase_url=environ.get("SUPABASE_URL"),
        supabase_key=environ.get("SUPABASE_KEY"),
        supabase_table=environ.get("REFERRAL_SUPABASE_TABLE", DEFAULT_REFERRALS_TABLE),
        restrict_update_fields=(
            environ.get("REFERRAL_RESTRICT_UPDATES", "false").strip().lower() in _TRUTHY
        ),
        cors_origins=tuple(origins),
        log_level=environ.get("LOG_LEVEL", "INFO").strip().upper(),
    )


def build_storage(settings: Settings) -> ReferralStorage:
    """Instantiate the storage backend the settings select."""

    if settings.storage_backend == "file":
        return JsonFileReferralStorage(settings.data_file)

    if settings.storage_backend == "supabase":
        from repositories.client import create_supabase_client

        client = create_supabase_client(settings.supabase_url, settings.supabase_key)
        return SupabaseReferralStorage(client, table=settings.supabase_table)

    return InMemoryReferralStorage()


__all__ = ["Settings", "load_settings", "build_storage", "STORAGE_BACKENDS"]
