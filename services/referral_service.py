"""
Submission and admin service for referrals.

Validates requests at the boundary and delegates every state change to the
ReferralStore. No status transition rules are enforced: any status may move
to any other.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from domain.errors import ValidationError
from domain.referral import (
    OPTIONAL_FIELDS,
    PATCHABLE_FIELDS,
    REQUIRED_FIELDS,
    ReferralRecord,
    ReferralSubmission,
)
from services.referral_store import ReferralStore

logger = logging.getLogger(__name__)


def _is_present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def find_missing_fields(raw: Mapping[str, Any]) -> List[str]:
    """Return the required wire fields that are absent, non-string or blank."""
    return [name for name in REQUIRED_FIELDS if not _is_present(raw.get(name))]


class ReferralService:
    def __init__(self, store: ReferralStore, restrict_update_fields: bool = False) -> None:
        self.store = store
        self.restrict_update_fields = restrict_update_fields

    def submit(self, raw: Mapping[str, Any]) -> ReferralRecord:
        """
        Validate a public form submission and create the referral.

        Unknown keys are ignored; missing optional fields default to "".

        Raises:
            ValidationError: naming every missing required field. The store
                is not touched.
            StorageFailure: if the record could not be persisted.
        """

        missing = find_missing_fields(raw)
        if missing:
            logger.warning(
                "Referral submission rejected",
                extra={"missing_fields": missing},
            )
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )

        optional = {}
        for name in OPTIONAL_FIELDS:
            value = raw.get(name)
            optional[name] = value if isinstance(value, str) else ""

        submission = ReferralSubmission(
            referrer_name=raw["referrerName"],
            referrer_email=raw["referrerEmail"],
            lead_name=raw["leadName"],
            lead_address=raw["leadAddress"],
            lead_phone=raw["leadPhone"],
            lead_email=optional["leadEmail"],
            lead_notes=optional["leadNotes"],
        )
        return self.store.create(submission)

    def fetch_all(self) -> List[ReferralRecord]:
        return self.store.list_all()

    def apply_update(self, referral_id: Any, changes: Mapping[str, Any]) -> ReferralRecord:
        """
        Apply an admin edit to an existing referral.

        Raises:
            ValidationError: if `referral_id` is missing, or restriction is on
                and `changes` names fields outside the patchable whitelist.
            NotFound: if no record has `referral_id`.
            StorageFailure: if the update could not be persisted.
        """

        if referral_id is None or not str(referral_id).strip():
            raise ValidationError("Referral ID required", fields=["id"])

        if self.restrict_update_fields:
            rejected = sorted(key for key in changes if key not in PATCHABLE_FIELDS)
            if rejected:
                raise ValidationError(
                    f"Fields cannot be updated: {', '.join(rejected)}", fields=rejected
                )

        return self.store.update(str(referral_id), changes)


__all__ = ["ReferralService", "find_missing_fields"]
