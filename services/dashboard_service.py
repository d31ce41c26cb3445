"""
Dashboard service for the admin view.

Derived computations over a full snapshot of referrals. Filtering and
counting happen here rather than in the store, which always returns the
complete collection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from domain.referral import IncentiveStatus, ReferralRecord, ReferralStatus

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


@dataclass(frozen=True, slots=True)
class ReferralSummary:
    """
    Pipeline totals shown at the top of the admin dashboard.

    by_status: count per known status (every status present, zero when unused)
    pending_incentive_total: incentive owed on closed referrals not yet paid
    """
    total: int
    by_status: Dict[str, int]
    pending_incentive_total: int


def filter_by_status(
    records: Iterable[ReferralRecord],
    status: Optional[str] = None,
) -> List[ReferralRecord]:
    """Keep records with the given status; `None` or "all" keeps everything."""

    if status is None or status == ALL_STATUSES:
        return list(records)
    return [record for record in records if record.status == status]


def summarize_referrals(records: Iterable[ReferralRecord]) -> ReferralSummary:
    records = list(records)
    by_status = {status.value: 0 for status in ReferralStatus}
    pending_total = 0

    for record in records:
        if record.status in by_status:
            by_status[record.status] += 1

        if (
            record.status == ReferralStatus.CLOSED.value
            and record.incentive_status == IncentiveStatus.PENDING.value
        ):
            amount = record.incentive_amount
            if isinstance(amount, bool) or not isinstance(amount, int):
                logger.warning(
                    f"Skipping non-integer incentive amount on referral {record.referral_id}",
                    extra={"referral_id": record.referral_id, "incentive_amount": repr(amount)},
                )
                continue
            pending_total += amount

    return ReferralSummary(
        total=len(records),
        by_status=by_status,
        pending_incentive_total=pending_total,
    )


__all__ = ["ReferralSummary", "filter_by_status", "summarize_referrals", "ALL_STATUSES"]
