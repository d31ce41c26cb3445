"""
CSV export service for referrals.

Generates CSV text containing referrer, lead and pipeline details for a list
of referrals, e.g. for handing the pipeline to setters in a spreadsheet.

Security:
- CSV Injection Prevention: Sanitizes text fields to prevent formula execution
- Security Logging: Logs when dangerous characters are stripped
"""

from __future__ import annotations

import csv
import logging
from io import StringIO
from typing import Any, Iterable, List

from domain.referral import ReferralRecord
from domain.time import to_iso_utc

logger = logging.getLogger(__name__)

# (header, record attribute) in column order
CSV_COLUMNS: List[tuple[str, str]] = [
    ("Referral ID", "referral_id"),
    ("Created At", "created_at"),
    ("Updated At", "updated_at"),

    # Referrer
    ("Referrer Name", "referrer_name"),
    ("Referrer Email", "referrer_email"),

    # Lead
    ("Lead Name", "lead_name"),
    ("Lead Address", "lead_address"),
    ("Lead Phone", "lead_phone"),
    ("Lead Email", "lead_email"),
    ("Lead Notes", "lead_notes"),

    # Pipeline
    ("Status", "status"),
    ("Assigned Setter", "assigned_setter"),
    ("Incentive Amount", "incentive_amount"),
    ("Incentive Status", "incentive_status"),
    ("Last Contact Date", "last_contact_date"),
]

_TIMESTAMP_ATTRS = {"created_at", "updated_at", "last_contact_date"}


def sanitize_csv_field(value: Any, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    If dangerous characters are found and stripped, a warning is logged for
    security monitoring.

    Example:
        sanitize_csv_field("=1+1", "lead_name")
        # Returns "1+1" and logs warning about stripped "=" character

        sanitize_csv_field("Normal Name", "lead_name")
        # Returns "Normal Name" (unchanged, no logging)
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],  # First 100 chars
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def _cell(record: ReferralRecord, attr: str) -> str:
    value = getattr(record, attr)
    if attr in _TIMESTAMP_ATTRS:
        return to_iso_utc(value) if value is not None else ""
    return sanitize_csv_field(value, attr)


def generate_referrals_csv(records: Iterable[ReferralRecord]) -> str:
    """
    Generate CSV content for the given referrals, header row first.

    Example:
        csv_content = generate_referrals_csv(service.fetch_all())
        with open("referrals.csv", "w") as f:
            f.write(csv_content)
    """
    output = StringIO()
    writer = csv.writer(output)

    writer.writerow([header for header, _ in CSV_COLUMNS])
    for record in records:
        writer.writerow([_cell(record, attr) for _, attr in CSV_COLUMNS])

    return output.getvalue()


__all__ = [
    "CSV_COLUMNS",
    "generate_referrals_csv",
    "sanitize_csv_field",
]
