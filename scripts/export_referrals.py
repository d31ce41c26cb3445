#!/usr/bin/env python3
"""
Referral Export Script

Exports referrals from the configured storage backend to CSV, e.g. to hand
the pipeline to setters in a spreadsheet.

Usage:
    python export_referrals.py --output referrals.csv
    python export_referrals.py --status closed --output closed_referrals.csv
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.referral import ReferralStatus
from repositories.config import build_storage, load_settings
from services.csv_export_service import generate_referrals_csv
from services.dashboard_service import ALL_STATUSES, filter_by_status, summarize_referrals
from services.referral_store import ReferralStore


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Export referrals to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export every referral
  python export_referrals.py --output referrals.csv

  # Export closed referrals only
  python export_referrals.py --status closed --output closed_referrals.csv
        """
    )

    parser.add_argument(
        "--output",
        "-o",
        required=True,
        help="Path to output CSV file"
    )

    parser.add_argument(
        "--status",
        "-s",
        choices=[ALL_STATUSES] + [status.value for status in ReferralStatus],
        default=ALL_STATUSES,
        help="Filter by referral status (default: all)"
    )

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        print(f"Fetching referrals from {settings.storage_backend} storage...")
        print(f"  Status filter: {args.status}")
        print()

        store = ReferralStore(build_storage(settings))
        referrals = filter_by_status(store.list_all(), args.status)

        if not referrals:
            print("No referrals found matching the specified filters")
            return 1

        output_path = Path(args.output)
        output_path.write_text(generate_referrals_csv(referrals), encoding="utf-8", newline="")

        summary = summarize_referrals(referrals)

        print("=" * 60)
        print("EXPORT SUMMARY")
        print("=" * 60)
        print(f"Total referrals exported: {summary.total}")
        for status, count in summary.by_status.items():
            print(f"  {status:<12} {count}")
        print(f"Pending incentives: ${summary.pending_incentive_total}")
        print()
        print(f"Output file: {output_path}")
        print("=" * 60)

        return 0

    except KeyboardInterrupt:
        print("\n\nExport interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
