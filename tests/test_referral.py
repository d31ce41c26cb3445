"""
Tests for `domain/referral.py`.

Covers:
- Defaults applied when a record is built from a submission.
- camelCase serialization, including millisecond 'Z' timestamps.
- Merge never overwrites id/createdAt and always stamps updatedAt.
- Unknown keys survive as extra fields.
- Timestamps must be UTC.
- Timestamps carry millisecond precision, the finest the wire format stores.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from domain.referral import (
    DEFAULT_INCENTIVE_AMOUNT,
    ReferralRecord,
    ReferralSubmission,
)
from domain.time import utc_now

CREATED = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
LATER = datetime(2025, 1, 2, 8, 30, 0, tzinfo=timezone.utc)


def _record() -> ReferralRecord:
    submission = ReferralSubmission(
        referrer_name="John Smith",
        referrer_email="john@x.com",
        lead_name="Jane Doe",
        lead_address="123 Main St",
        lead_phone="555-1234",
    )
    return ReferralRecord.from_submission("ref-1", CREATED, submission)


def test_from_submission_applies_defaults() -> None:
    record = _record()

    assert record.status == "submitted"
    assert record.assigned_setter == ""
    assert record.incentive_amount == DEFAULT_INCENTIVE_AMOUNT == 500
    assert record.incentive_status == "pending"
    assert record.lead_email == ""
    assert record.lead_notes == ""
    assert record.email_day0_sent is False
    assert record.email_day3_sent is False
    assert record.email_day7_sent is False
    assert record.last_contact_date is None
    assert record.updated_at is None


def test_to_dict_uses_wire_names_and_iso_timestamps() -> None:
    data = _record().to_dict()

    assert data["id"] == "ref-1"
    assert data["createdAt"] == "2025-01-01T12:00:00.000Z"
    assert data["updatedAt"] is None
    assert data["referrerName"] == "John Smith"
    assert data["leadPhone"] == "555-1234"
    assert data["incentiveAmount"] == 500
    assert data["lastContactDate"] is None
    assert list(data)[:3] == ["id", "createdAt", "updatedAt"]


def test_from_dict_round_trips_including_extra_fields() -> None:
    record = _record().merged({"priority": "high"}, updated_at=LATER)

    restored = ReferralRecord.from_dict(record.to_dict())

    assert restored == record
    assert restored.extra == {"priority": "high"}


def test_from_dict_requires_identity() -> None:
    data = _record().to_dict()
    del data["createdAt"]

    with pytest.raises(KeyError):
        ReferralRecord.from_dict(data)


def test_merged_protects_id_and_created_at() -> None:
    record = _record()

    updated = record.merged(
        {"id": "hijacked", "createdAt": "1999-01-01T00:00:00Z", "status": "closed"},
        updated_at=LATER,
    )

    assert updated.referral_id == "ref-1"
    assert updated.created_at == CREATED
    assert updated.status == "closed"
    assert updated.updated_at == LATER
    assert "id" not in updated.extra
    assert "createdAt" not in updated.extra


def test_merged_leaves_absent_fields_untouched_and_original_unchanged() -> None:
    record = _record()

    updated = record.merged({"assignedSetter": "Alex"}, updated_at=LATER)

    assert updated.assigned_setter == "Alex"
    assert updated.lead_name == record.lead_name
    assert updated.status == record.status
    assert record.assigned_setter == ""
    assert record.updated_at is None


def test_merged_ignores_client_supplied_updated_at() -> None:
    updated = _record().merged({"updatedAt": "1999-01-01T00:00:00Z"}, updated_at=LATER)

    assert updated.updated_at == LATER


def test_merged_parses_last_contact_date() -> None:
    updated = _record().merged({"lastContactDate": "2025-01-02T10:00:00Z"}, updated_at=LATER)

    assert updated.last_contact_date == datetime(2025, 1, 2, 10, 0, 0, tzinfo=timezone.utc)
    assert updated.to_dict()["lastContactDate"] == "2025-01-02T10:00:00.000Z"


def test_merged_rejects_unparseable_last_contact_date() -> None:
    with pytest.raises(ValueError):
        _record().merged({"lastContactDate": "next tuesday"}, updated_at=LATER)


def test_merged_accepts_any_status_value() -> None:
    updated = _record().merged({"status": "on-hold"}, updated_at=LATER)

    assert updated.status == "on-hold"


def test_record_requires_utc_timestamps() -> None:
    submission = ReferralSubmission("a", "b", "c", "d", "e")

    with pytest.raises(ValueError):
        ReferralRecord.from_submission("ref-1", datetime(2025, 1, 1), submission)

    with pytest.raises(ValueError):
        ReferralRecord.from_submission(
            "ref-1",
            datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=-5))),
            submission,
        )


def test_record_is_immutable() -> None:
    record = _record()

    with pytest.raises(FrozenInstanceError):
        record.status = "closed"  # type: ignore[misc]


def test_utc_now_has_millisecond_precision() -> None:
    now = utc_now()

    assert now.tzinfo is not None
    assert now.microsecond % 1000 == 0


def test_merged_truncates_last_contact_date_to_milliseconds() -> None:
    updated = _record().merged({"lastContactDate": "2025-01-02T10:00:00.987654Z"}, updated_at=LATER)

    assert updated.last_contact_date == datetime(2025, 1, 2, 10, 0, 0, 987000, tzinfo=timezone.utc)
    assert ReferralRecord.from_dict(updated.to_dict()) == updated


def test_patched_values_are_stored_as_given() -> None:
    updated = _record().merged({"incentiveAmount": "750", "emailDay0Sent": 1}, updated_at=LATER)

    assert _record().incentive_amount == DEFAULT_INCENTIVE_AMOUNT
    assert updated.incentive_amount == "750"
    assert updated.email_day0_sent == 1
