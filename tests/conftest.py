"""
Pytest configuration and shared fixtures.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


class StepClock:
    """Deterministic clock: each call returns one second later than the last."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> StepClock:
    return StepClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def valid_submission() -> dict:
    return {
        "referrerName": "John Smith",
        "referrerEmail": "john@x.com",
        "leadName": "Jane Doe",
        "leadAddress": "123 Main St",
        "leadPhone": "555-1234",
    }
