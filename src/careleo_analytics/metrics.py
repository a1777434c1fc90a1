# src/careleo_analytics/metrics.py
"""
KPI scalars and trend comparisons for dashboard tiles.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Iterable, Literal

import pandas as pd

from . import config
from .analytics import filter_by_days, outreach_frame, top_and_bottom_channel
from .data_prep import resolve_now
from .models import Outreach, round_half_up

Direction = Literal["up", "down", "flat"]


@dataclass(frozen=True)
class WindowComparison:
    delta_pct: int
    direction: Direction


@dataclass(frozen=True)
class TrendPoint:
    period: str
    touches: int
    date: str


@dataclass(frozen=True)
class DailyRate:
    date: str
    response_rate: int


@dataclass(frozen=True)
class FunnelStage:
    stage: str
    count: int
    percentage: int


def compare_windows(current: float, previous: float) -> WindowComparison:
    """
    Signed percentage change from ``previous`` to ``current``.

    A zero baseline reads as +100% when anything happened and flat otherwise.
    Rounded deltas with magnitude below 1 snap to flat; exactly 1% does not.
    """
    if previous == 0:
        if current > 0:
            return WindowComparison(delta_pct=100, direction="up")
        return WindowComparison(delta_pct=0, direction="flat")

    delta_pct = round_half_up((current - previous) / previous * 100)
    if abs(delta_pct) < 1:
        return WindowComparison(delta_pct=0, direction="flat")
    return WindowComparison(delta_pct=delta_pct, direction="up" if delta_pct > 0 else "down")


def touches_in_window(
    outreach: Iterable[Outreach], days: int, now: datetime | str | None = None
) -> int:
    return len(filter_by_days(outreach, days, now))


def touches_per_member(
    outreach: Iterable[Outreach],
    member_count: int,
    days: int,
    now: datetime | str | None = None,
) -> float:
    """Average touches per member in the window, one decimal place."""
    if member_count <= 0:
        return 0.0
    touches = touches_in_window(outreach, days, now)
    return round_half_up(touches / member_count * 10) / 10


def compare_trailing_windows(
    outreach: Iterable[Outreach],
    days: int = config.DEFAULT_WINDOW_DAYS,
    now: datetime | str | None = None,
) -> WindowComparison:
    """Touches in the last ``days`` against the ``days`` before that."""
    as_of = resolve_now(now)
    events = outreach_frame(outreach)
    current = _count_between(events, as_of - timedelta(days=days), as_of, closed_end=True)
    previous = _count_between(events, as_of - timedelta(days=2 * days), as_of - timedelta(days=days))
    return compare_windows(current, previous)


def mom_trend_data(
    outreach: Iterable[Outreach],
    days: int = config.DEFAULT_WINDOW_DAYS,
    periods: int = config.MOM_PERIODS,
    now: datetime | str | None = None,
) -> list[TrendPoint]:
    """Touch counts for ``periods`` consecutive half-open windows, oldest first."""
    as_of = resolve_now(now)
    events = outreach_frame(outreach)
    points = []
    for i in range(periods - 1, -1, -1):
        end = as_of - timedelta(days=i * days)
        start = end - timedelta(days=days)
        points.append(
            TrendPoint(
                period=f"Period {periods - i}",
                touches=_count_between(events, start, end),
                date=end.date().isoformat(),
            )
        )
    return points


def response_rate_series(
    outreach: Iterable[Outreach],
    days: int = config.RESPONSE_RATE_DAYS,
    now: datetime | str | None = None,
) -> list[DailyRate]:
    """Daily Completed share (percent) for the trailing ``days`` UTC calendar days."""
    as_of = resolve_now(now)
    df = outreach_frame(outreach)
    df = df.assign(
        day=df["timestamp"].dt.strftime("%Y-%m-%d"),
        completed=df["status"].eq("Completed").astype(int),
    )
    daily = df.groupby("day").agg(total=("id", "size"), completed=("completed", "sum"))

    series = []
    for i in range(days - 1, -1, -1):
        day = (as_of - timedelta(days=i)).date().isoformat()
        total = int(daily["total"].get(day, 0))
        completed = int(daily["completed"].get(day, 0))
        rate = round_half_up(completed / total * 100) if total else 0
        series.append(DailyRate(date=day, response_rate=rate))
    return series


def funnel(outreach: Iterable[Outreach]) -> list[FunnelStage]:
    df = outreach_frame(outreach)
    total = len(df)
    counts = df["status"].value_counts()
    stages = []
    for status in config.STATUSES:
        count = int(counts.get(status, 0))
        stages.append(
            FunnelStage(
                stage=status.replace("-", " "),
                count=count,
                percentage=round_half_up(count / total * 100) if total else 0,
            )
        )
    return stages


def top_channel(
    outreach: Iterable[Outreach],
    days: int = config.DEFAULT_WINDOW_DAYS,
    now: datetime | str | None = None,
) -> str | None:
    top, _ = top_and_bottom_channel(filter_by_days(outreach, days, now))
    return top


def _count_between(
    events: pd.DataFrame, start: datetime, end: datetime, closed_end: bool = False
) -> int:
    inclusive = "both" if closed_end else "left"
    return int(events["timestamp"].between(start, end, inclusive=inclusive).sum())


def kpi_frame(outreach: Iterable[Outreach], now: datetime | str | None = None) -> pd.DataFrame:
    """Trend points as a frame, convenient for printing and charting."""
    return pd.DataFrame([asdict(point) for point in mom_trend_data(outreach, now=now)])
