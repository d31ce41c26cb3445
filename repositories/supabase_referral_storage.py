"""
Referral repository backed by a Supabase table.

Rows use snake_case columns; keys merged into a record that are not record
fields are kept in the `extra` jsonb column.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from postgrest.exceptions import APIError

from domain.errors import StorageFailure
from domain.referral import ReferralRecord
from domain.time import parse_utc_datetime, to_iso_utc

logger = logging.getLogger(__name__)

# Supabase table name for referral records.
# Keep this aligned with your database schema.
DEFAULT_REFERRALS_TABLE: str = "referrals"

# Rows per request; PostgREST returns at most 1000 rows per response by default.
PAGE_SIZE: int = 1000


def _record_to_row(record: ReferralRecord) -> dict[str, Any]:
    """Convert a domain ReferralRecord to a Supabase row payload."""

    return {
        # Identity
        "id": record.referral_id,
        "created_at_utc": to_iso_utc(record.created_at),
        "updated_at_utc": to_iso_utc(record.updated_at) if record.updated_at else None,

        # Referrer
        "referrer_name": record.referrer_name,
        "referrer_email": record.referrer_email,

        # Lead contact details
        "lead_name": record.lead_name,
        "lead_address": record.lead_address,
        "lead_phone": record.lead_phone,
        "lead_email": record.lead_email,
        "lead_notes": record.lead_notes,

        # Pipeline
        "status": record.status,
        "assigned_setter": record.assigned_setter,
        "incentive_amount": record.incentive_amount,
        "incentive_status": record.incentive_status,

        # Outreach tracking
        "email_day0_sent": record.email_day0_sent,
        "email_day3_sent": record.email_day3_sent,
        "email_day7_sent": record.email_day7_sent,
        "last_contact_date_utc": (
            to_iso_utc(record.last_contact_date) if record.last_contact_date else None
        ),

        "extra": dict(record.extra),
    }


def _row_to_record(row: Mapping[str, Any]) -> ReferralRecord:
    """Convert a Supabase row into a domain ReferralRecord."""

    def get_timestamp(key: str):
        value = row.get(key)
        return parse_utc_datetime(value) if value else None

    return ReferralRecord(
        referral_id=str(row["id"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        updated_at=get_timestamp("updated_at_utc"),
        referrer_name=row.get("referrer_name", ""),
        referrer_email=row.get("referrer_email", ""),
        lead_name=row.get("lead_name", ""),
        lead_address=row.get("lead_address", ""),
        lead_phone=row.get("lead_phone", ""),
        lead_email=row.get("lead_email") or "",
        lead_notes=row.get("lead_notes") or "",
        status=row.get("status"),
        assigned_setter=row.get("assigned_setter") or "",
        incentive_amount=row.get("incentive_amount"),
        incentive_status=row.get("incentive_status"),
        email_day0_sent=bool(row.get("email_day0_sent", False)),
        email_day3_sent=bool(row.get("email_day3_sent", False)),
        email_day7_sent=bool(row.get("email_day7_sent", False)),
        last_contact_date=get_timestamp("last_contact_date_utc"),
        extra=dict(row.get("extra") or {}),
    )


class SupabaseReferralStorage:
    """
    Durable storage in a Supabase (PostgreSQL) table.

    Each mutation touches a single row; the record store still serializes
    calls so that read-merge-write sequences from this process never
    interleave.
    """

    def __init__(self, client: Any, table: str = DEFAULT_REFERRALS_TABLE) -> None:
        self.client = client
        self.table = table

    def _execute(self, query: Any, action: str) -> list[Mapping[str, Any]]:
        try:
            response = query.execute()
        except APIError as e:
            raise StorageFailure(f"Failed to {action}: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise StorageFailure(f"Failed to {action}: {error}")

        return getattr(response, "data", None) or []

    def _decode(self, rows: List[Mapping[str, Any]]) -> List[ReferralRecord]:
        try:
            return [_row_to_record(row) for row in rows]
        except (KeyError, ValueError, TypeError) as e:
            raise StorageFailure(f"Failed to decode referral row: {e}") from e

    def load_all(self) -> List[ReferralRecord]:
        # PostgREST caps each response, so fetch in pages until one comes back empty.
        all_rows: List[Mapping[str, Any]] = []
        offset = 0

        while True:
            query_page = (
                self.client.table(self.table)
                .select("*")
                .order("created_at_utc")
                .order("id")
                .range(offset, offset + PAGE_SIZE - 1)
            )
            rows = self._execute(query_page, "list referrals")
            if not rows:
                break

            all_rows.extend(rows)
            offset += len(rows)

        return self._decode(all_rows)

    def find(self, referral_id: str) -> Optional[ReferralRecord]:
        rows = self._execute(
            self.client.table(self.table).select("*").eq("id", referral_id).limit(1),
            "fetch referral",
        )
        records = self._decode(rows)
        return records[0] if records else None

    def insert(self, record: ReferralRecord) -> None:
        self._execute(
            self.client.table(self.table).insert(_record_to_row(record)),
            "insert referral",
        )

    def replace(self, record: ReferralRecord) -> None:
        row = _record_to_row(record)
        # Identity columns are write-once.
        row.pop("id")
        row.pop("created_at_utc")
        self._execute(
            self.client.table(self.table).update(row).eq("id", record.referral_id),
            "update referral",
        )


__all__ = [
    "DEFAULT_REFERRALS_TABLE",
    "PAGE_SIZE",
    "SupabaseReferralStorage",
]
