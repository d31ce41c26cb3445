"""
Domain: Referral record entity.

A referral links a referrer to a prospective lead and tracks that lead through
the sales pipeline.

Rules implemented here:
- `referral_id` and `created_at` are assigned once and never change.
- Status and incentive enumerations are advisory. The entity stores whatever
  value it is given; enforcement belongs to the presentation layer.
- Keys that are not record fields survive in `extra` so that a record
  round-trips through every storage backend unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .time import parse_utc_datetime, require_utc_timestamp, to_iso_utc, truncate_to_millis

# Fixed incentive policy: every referral is worth the same reward.
DEFAULT_INCENTIVE_AMOUNT: int = 500


class ReferralStatus(str, Enum):
    SUBMITTED = "submitted"
    CONTACTED = "contacted"
    APPOINTMENT = "appointment"
    CLOSED = "closed"
    LOST = "lost"


class IncentiveStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


# Wire names of the fields a submission must carry, in canonical order.
REQUIRED_FIELDS: tuple[str, ...] = (
    "referrerName",
    "referrerEmail",
    "leadName",
    "leadAddress",
    "leadPhone",
)

OPTIONAL_FIELDS: tuple[str, ...] = ("leadEmail", "leadNotes")

# Fields an update can never overwrite.
PROTECTED_FIELDS: frozenset[str] = frozenset({"id", "createdAt"})

# Whitelist used when update restriction is switched on.
PATCHABLE_FIELDS: frozenset[str] = frozenset({
    "status",
    "assignedSetter",
    "incentiveStatus",
    "lastContactDate",
    "emailDay0Sent",
    "emailDay3Sent",
    "emailDay7Sent",
})

# Wire name -> entity attribute, in serialization order.
WIRE_TO_ATTR: Dict[str, str] = {
    "id": "referral_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "referrerName": "referrer_name",
    "referrerEmail": "referrer_email",
    "leadName": "lead_name",
    "leadAddress": "lead_address",
    "leadPhone": "lead_phone",
    "leadEmail": "lead_email",
    "leadNotes": "lead_notes",
    "status": "status",
    "assignedSetter": "assigned_setter",
    "incentiveAmount": "incentive_amount",
    "incentiveStatus": "incentive_status",
    "emailDay0Sent": "email_day0_sent",
    "emailDay3Sent": "email_day3_sent",
    "emailDay7Sent": "email_day7_sent",
    "lastContactDate": "last_contact_date",
}

_TIMESTAMP_FIELDS = frozenset({"createdAt", "updatedAt", "lastContactDate"})


@dataclass(frozen=True, slots=True)
class ReferralSubmission:
    """Validated contact details for a new referral, before identity is assigned."""

    referrer_name: str
    referrer_email: str
    lead_name: str
    lead_address: str
    lead_phone: str
    lead_email: str = ""
    lead_notes: str = ""


@dataclass(frozen=True, slots=True)
class ReferralRecord:
    """
    Pure domain entity for a referral.

    Immutability:
    - Instances are frozen; updates produce a new record via `merged`.
      Readers holding an older instance never observe a half-applied update.
    """

    referral_id: str
    created_at: datetime
    # Admin updates store patched values as given, without type coercion.
    referrer_name: str
    referrer_email: str
    lead_name: str
    lead_address: str
    lead_phone: str
    lead_email: str = ""
    lead_notes: str = ""
    status: str = ReferralStatus.SUBMITTED.value  # submitted, contacted, appointment, closed, lost
    assigned_setter: str = ""
    incentive_amount: int = DEFAULT_INCENTIVE_AMOUNT
    incentive_status: str = IncentiveStatus.PENDING.value  # pending, paid
    email_day0_sent: bool = False
    email_day3_sent: bool = False
    email_day7_sent: bool = False
    last_contact_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)
        if self.last_contact_date is not None:
            require_utc_timestamp("last_contact_date", self.last_contact_date)

    @classmethod
    def from_submission(
        cls,
        referral_id: str,
        created_at: datetime,
        submission: ReferralSubmission,
    ) -> "ReferralRecord":
        return cls(
            referral_id=referral_id,
            created_at=created_at,
            referrer_name=submission.referrer_name,
            referrer_email=submission.referrer_email,
            lead_name=submission.lead_name,
            lead_address=submission.lead_address,
            lead_phone=submission.lead_phone,
            lead_email=submission.lead_email,
            lead_notes=submission.lead_notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire/file layout."""

        data: Dict[str, Any] = {}
        for wire_name, attr in WIRE_TO_ATTR.items():
            value = getattr(self, attr)
            if wire_name in _TIMESTAMP_FIELDS and value is not None:
                value = to_iso_utc(value)
            data[wire_name] = value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReferralRecord":
        """
        Build a record from the camelCase layout.

        Raises:
            KeyError: if `id` or `createdAt` is missing.
            ValueError/TypeError: if a timestamp cannot be parsed.
        """

        values: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            attr = WIRE_TO_ATTR.get(key)
            if attr is None:
                extra[key] = value
                continue
            if key in _TIMESTAMP_FIELDS and value is not None:
                value = parse_utc_datetime(value)
            values[attr] = value

        for required in ("id", "createdAt"):
            if WIRE_TO_ATTR[required] not in values:
                raise KeyError(required)
        for wire_name in REQUIRED_FIELDS:
            values.setdefault(WIRE_TO_ATTR[wire_name], "")

        return cls(**values, extra=extra)

    def merged(self, changes: Mapping[str, Any], updated_at: datetime) -> "ReferralRecord":
        """
        Return a copy with `changes` (wire names) merged over this record.

        `id` and `createdAt` are never overwritten. Unknown keys land in
        `extra`. `updated_at` always takes the given value.

        Raises:
            ValueError/TypeError: if `lastContactDate` is not null or ISO-8601.
        """

        values: Dict[str, Any] = {}
        extra = dict(self.extra)
        for key, value in changes.items():
            if key in PROTECTED_FIELDS or key == "updatedAt":
                continue
            attr = WIRE_TO_ATTR.get(key)
            if attr is None:
                extra[key] = value
                continue
            if key == "lastContactDate" and value is not None:
                value = truncate_to_millis(parse_utc_datetime(value))
            values[attr] = value

        return replace(self, **values, updated_at=updated_at, extra=extra)
