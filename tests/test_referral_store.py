"""
Tests for `services/referral_store.py`.

Covers:
- create() assigns unique ids, createdAt and defaults, then persists.
- list_all() returns every record in creation order.
- update() merges, protects id/createdAt, stamps updatedAt, persists.
- update() on an unknown id raises NotFound and changes nothing.
- Concurrent updates to different ids are both applied (no lost update).
- Backend errors surface as StorageFailure without partial application.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone

import pytest

from domain.errors import NotFound, StorageFailure, ValidationError
from domain.referral import ReferralSubmission
from repositories.referral_storage import InMemoryReferralStorage, JsonFileReferralStorage
from services.referral_store import ReferralStore


def _submission(lead_name: str = "Jane Doe") -> ReferralSubmission:
    return ReferralSubmission(
        referrer_name="John Smith",
        referrer_email="john@x.com",
        lead_name=lead_name,
        lead_address="123 Main St",
        lead_phone="555-1234",
    )


class SlowFileStorage(JsonFileReferralStorage):
    """Widens the read-modify-write window of every file access so unserialized calls collide."""

    def load_all(self):
        records = super().load_all()
        time.sleep(0.05)
        return records


class FailingStorage(InMemoryReferralStorage):
    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def insert(self, record):
        if self.fail:
            raise OSError("backing store unavailable")
        super().insert(record)

    def replace(self, record):
        if self.fail:
            raise OSError("backing store unavailable")
        super().replace(record)


def test_create_assigns_identity_and_defaults(clock) -> None:
    store = ReferralStore(InMemoryReferralStorage(), clock=clock)

    record = store.create(_submission())

    assert record.referral_id
    assert record.created_at == datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert record.status == "submitted"
    assert record.incentive_amount == 500
    assert record.incentive_status == "pending"
    assert record.updated_at is None


def test_create_ids_are_unique() -> None:
    store = ReferralStore(InMemoryReferralStorage())

    ids = {store.create(_submission()).referral_id for _ in range(50)}

    assert len(ids) == 50


def test_list_all_returns_records_in_creation_order() -> None:
    store = ReferralStore(InMemoryReferralStorage())
    created = [store.create(_submission(f"Lead {i}")) for i in range(3)]

    assert store.list_all() == created


def test_update_merges_and_stamps_updated_at(clock) -> None:
    store = ReferralStore(InMemoryReferralStorage(), clock=clock)
    record = store.create(_submission())

    updated = store.update(record.referral_id, {"status": "closed"})

    assert updated.status == "closed"
    assert updated.updated_at == datetime(2025, 1, 1, 12, 0, 1, tzinfo=timezone.utc)
    assert updated.lead_name == record.lead_name
    assert updated.assigned_setter == record.assigned_setter
    assert store.list_all() == [updated]


def test_update_never_changes_id_or_created_at() -> None:
    store = ReferralStore(InMemoryReferralStorage())
    record = store.create(_submission())

    updated = store.update(
        record.referral_id,
        {"id": "other", "createdAt": "2000-01-01T00:00:00Z", "assignedSetter": "Alex"},
    )

    assert updated.referral_id == record.referral_id
    assert updated.created_at == record.created_at
    assert updated.assigned_setter == "Alex"


def test_update_allows_any_status_transition() -> None:
    store = ReferralStore(InMemoryReferralStorage())
    record = store.create(_submission())

    for status in ("closed", "submitted", "lost", "appointment", "contacted"):
        record = store.update(record.referral_id, {"status": status})
        assert record.status == status


def test_update_unknown_id_raises_not_found_and_changes_nothing() -> None:
    store = ReferralStore(InMemoryReferralStorage())
    store.create(_submission())
    before = store.list_all()

    with pytest.raises(NotFound):
        store.update("nonexistent-id", {"status": "closed"})

    assert store.list_all() == before


def test_update_invalid_last_contact_date_raises_validation_error() -> None:
    store = ReferralStore(InMemoryReferralStorage())
    record = store.create(_submission())

    with pytest.raises(ValidationError) as exc_info:
        store.update(record.referral_id, {"lastContactDate": "yesterday"})

    assert exc_info.value.fields == ["lastContactDate"]
    assert store.list_all() == [record]


def test_concurrent_updates_to_different_ids_are_both_applied(tmp_path) -> None:
    store = ReferralStore(SlowFileStorage(tmp_path / "referrals.json"))
    first = store.create(_submission("First"))
    second = store.create(_submission("Second"))

    threads = [
        threading.Thread(target=store.update, args=(first.referral_id, {"status": "closed"})),
        threading.Thread(target=store.update, args=(second.referral_id, {"assignedSetter": "Alex"})),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    persisted = JsonFileReferralStorage(tmp_path / "referrals.json").load_all()
    by_id = {r.referral_id: r for r in persisted}
    assert by_id[first.referral_id].status == "closed"
    assert by_id[second.referral_id].assigned_setter == "Alex"


def test_concurrent_creates_are_all_persisted_to_file(tmp_path) -> None:
    store = ReferralStore(SlowFileStorage(tmp_path / "referrals.json"))

    threads = [
        threading.Thread(target=store.create, args=(_submission(f"Lead {i}"),))
        for i in range(10)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.list_all()) == 10


def test_storage_error_on_create_raises_storage_failure() -> None:
    storage = FailingStorage()
    store = ReferralStore(storage)
    storage.fail = True

    with pytest.raises(StorageFailure):
        store.create(_submission())

    storage.fail = False
    assert store.list_all() == []


def test_storage_error_on_update_leaves_record_unchanged() -> None:
    storage = FailingStorage()
    store = ReferralStore(storage)
    record = store.create(_submission())
    storage.fail = True

    with pytest.raises(StorageFailure):
        store.update(record.referral_id, {"status": "closed"})

    storage.fail = False
    assert store.list_all() == [record]


def test_file_backed_records_read_back_equal_to_what_was_returned(tmp_path) -> None:
    store = ReferralStore(JsonFileReferralStorage(tmp_path / "referrals.json"))

    record = store.create(_submission())
    assert store.list_all() == [record]

    updated = store.update(
        record.referral_id,
        {"status": "contacted", "lastContactDate": "2025-01-02T09:30:00.123456Z"},
    )
    assert updated.last_contact_date == datetime(2025, 1, 2, 9, 30, 0, 123000, tzinfo=timezone.utc)
    assert store.list_all() == [updated]
