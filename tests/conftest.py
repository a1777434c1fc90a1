from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Callable

import pytest

from careleo_analytics.models import Outreach

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_event() -> Callable[..., Outreach]:
    """Factory for outreach events placed ``days_ago`` before the fixed reference time."""
    ids = count(1)

    def _make(
        member_id: str = "M0001",
        days_ago: float = 1,
        channel: str = "Call",
        status: str = "Completed",
        purpose: str = "AWV",
        team: str | None = "Care Coordination",
    ) -> Outreach:
        return Outreach(
            id=f"O{next(ids):04d}",
            member_id=member_id,
            channel=channel,
            status=status,
            purpose=purpose,
            timestamp=NOW - timedelta(days=days_ago),
            team=team,
        )

    return _make
