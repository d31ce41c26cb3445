"""
Referral storage backends (persistence).

This module provides *only* persistence of the referral collection.
Identity assignment, merge rules and locking live in the record store.

Every backend implements the same calls:
- load_all(): every record in creation order
- find(referral_id): one record, or None
- insert(record): append a new record
- replace(record): overwrite the stored record with the same id

A call returns only after the new state has reached the backing storage.
Failures are reported as StorageFailure and leave the previous state intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol

from domain.errors import NotFound, StorageFailure
from domain.referral import ReferralRecord

logger = logging.getLogger(__name__)


class ReferralStorage(Protocol):
    def load_all(self) -> List[ReferralRecord]:
        ...

    def find(self, referral_id: str) -> Optional[ReferralRecord]:
        ...

    def insert(self, record: ReferralRecord) -> None:
        ...

    def replace(self, record: ReferralRecord) -> None:
        ...


def _index_of(records: List[ReferralRecord], referral_id: str) -> int:
    for index, record in enumerate(records):
        if record.referral_id == referral_id:
            return index
    raise NotFound(referral_id)


def _find_in(records: List[ReferralRecord], referral_id: str) -> Optional[ReferralRecord]:
    return next((r for r in records if r.referral_id == referral_id), None)


class InMemoryReferralStorage:
    """
    Volatile storage for ephemeral deployments and tests.

    Records do not survive a process restart.
    """

    def __init__(self) -> None:
        self._records: List[ReferralRecord] = []

    def load_all(self) -> List[ReferralRecord]:
        return list(self._records)

    def find(self, referral_id: str) -> Optional[ReferralRecord]:
        return _find_in(self._records, referral_id)

    def insert(self, record: ReferralRecord) -> None:
        self._records.append(record)

    def replace(self, record: ReferralRecord) -> None:
        self._records[_index_of(self._records, record.referral_id)] = record


class JsonFileReferralStorage:
    """
    Durable storage in a single JSON file.

    Layout: one JSON array of camelCase record objects, rewritten in full on
    every mutation. Writes go to a temporary file in the same directory that
    is then moved over the target with `os.replace`, so the file on disk is
    always a complete array even if the process dies mid-write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load_all(self) -> List[ReferralRecord]:
        if not self.path.exists():
            return []

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageFailure(f"Failed to read referrals from {self.path}: {e}") from e

        if not text.strip():
            return []

        try:
            rows = json.loads(text)
            if not isinstance(rows, list):
                raise ValueError("expected a JSON array of referral objects")
            return [ReferralRecord.from_dict(row) for row in rows]
        except (ValueError, TypeError, KeyError) as e:
            raise StorageFailure(f"Failed to decode referrals in {self.path}: {e}") from e

    def find(self, referral_id: str) -> Optional[ReferralRecord]:
        return _find_in(self.load_all(), referral_id)

    def insert(self, record: ReferralRecord) -> None:
        records = self.load_all()
        records.append(record)
        self._write_all(records)

    def replace(self, record: ReferralRecord) -> None:
        records = self.load_all()
        records[_index_of(records, record.referral_id)] = record
        self._write_all(records)

    def _write_all(self, records: List[ReferralRecord]) -> None:
        try:
            payload = json.dumps([record.to_dict() for record in records], indent=2)
        except (TypeError, ValueError) as e:
            raise StorageFailure(f"Failed to encode referrals: {e}") from e

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageFailure(f"Failed to write referrals to {self.path}: {e}") from e

        logger.debug(f"Wrote {len(records)} referrals to {self.path}")


__all__ = [
    "ReferralStorage",
    "InMemoryReferralStorage",
    "JsonFileReferralStorage",
]
