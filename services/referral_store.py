"""
Referral record store.

Owns the authoritative referral collection through an injected storage
backend and provides the three operations the rest of the system uses:

- create(): assign identity and defaults, persist, return the record
- list_all(): snapshot of every record in creation order
- update(): merge a partial change over an existing record, persist, return it

Concurrency:
- Every operation runs its storage calls while holding a single lock, so a
  read-merge-write sequence can never interleave with another one and no
  update is lost.
- Records are immutable, so a snapshot returned by list_all() is never torn.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Mapping
from uuid import uuid4

from domain.errors import NotFound, ReferralError, StorageFailure, ValidationError
from domain.referral import ReferralRecord, ReferralSubmission
from domain.time import utc_now
from repositories.referral_storage import ReferralStorage

logger = logging.getLogger(__name__)


def _new_referral_id() -> str:
    return str(uuid4())


class ReferralStore:
    def __init__(
        self,
        storage: ReferralStorage,
        clock: Callable = utc_now,
        id_factory: Callable[[], str] = _new_referral_id,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()

    def create(self, submission: ReferralSubmission) -> ReferralRecord:
        """
        Materialize and persist a new referral.

        The caller is responsible for validating the submission.

        Raises:
            StorageFailure: if the record could not be persisted.
        """

        record = ReferralRecord.from_submission(
            referral_id=self._id_factory(),
            created_at=self._clock(),
            submission=submission,
        )

        with self._lock:
            self._call_storage(lambda: self._storage.insert(record), "create referral")

        logger.info(f"Created referral {record.referral_id}")
        return record

    def list_all(self) -> List[ReferralRecord]:
        """Return every record in creation order."""

        with self._lock:
            return self._call_storage(self._storage.load_all, "list referrals")

    def update(self, referral_id: str, changes: Mapping[str, Any]) -> ReferralRecord:
        """
        Merge `changes` (wire field names) into the record with `referral_id`.

        Keys absent from `changes` are left untouched; `id` and `createdAt` are
        never overwritten; `updatedAt` is set to now.

        Raises:
            NotFound: if no record has `referral_id`.
            ValidationError: if `lastContactDate` is not null or ISO-8601.
            StorageFailure: if the backend cannot be read or written.
        """

        with self._lock:
            current = self._call_storage(
                lambda: self._storage.find(referral_id), "load referral"
            )
            if current is None:
                logger.warning(f"Update rejected, referral not found: {referral_id}")
                raise NotFound(referral_id)

            try:
                updated = current.merged(changes, updated_at=self._clock())
            except (ValueError, TypeError) as e:
                raise ValidationError(
                    f"Invalid lastContactDate: {e}", fields=["lastContactDate"]
                ) from e

            self._call_storage(lambda: self._storage.replace(updated), "update referral")

        logger.info(
            f"Updated referral {referral_id}",
            extra={"referral_id": referral_id, "changed_fields": sorted(changes)},
        )
        return updated

    def _call_storage(self, operation: Callable[[], Any], action: str) -> Any:
        try:
            return operation()
        except StorageFailure:
            logger.exception(f"Storage failure during {action}")
            raise
        except ReferralError:
            raise
        except Exception as e:
            logger.exception(f"Storage failure during {action}")
            raise StorageFailure(f"Failed to {action}: {e}") from e


__all__ = ["ReferralStore"]
