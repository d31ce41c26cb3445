"""
Domain: referral error taxonomy.

Every failure surfaced to a caller is one of these, each carrying a
machine-readable `kind` alongside its human-readable message.
"""

from __future__ import annotations

from typing import Iterable, List


class ReferralError(Exception):
    """Base class for all referral failures."""

    kind = "referral_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ReferralError):
    """Raised when required fields are missing or a field value is unusable."""

    kind = "validation_error"

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields: List[str] = list(fields)


class NotFound(ReferralError):
    """Raised when an update targets an id that no record carries."""

    kind = "not_found"

    def __init__(self, referral_id: str) -> None:
        super().__init__(f"Referral not found: {referral_id}")
        self.referral_id = referral_id


class StorageFailure(ReferralError):
    """Raised when the backing storage cannot be read or written."""

    kind = "storage_failure"
