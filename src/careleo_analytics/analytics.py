# src/careleo_analytics/analytics.py
"""
Time-windowed aggregations over outreach events for the analytics views:
weekly series, grouped counts, channel success rates and the touches-per-member
histogram. Events are loaded into a pandas frame and never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence

import numpy as np
import pandas as pd

from . import config
from .data_prep import resolve_now
from .models import Member, Outreach, round_half_up, to_utc

logger = logging.getLogger(__name__)

OUTREACH_COLUMNS = ["id", "member_id", "channel", "status", "purpose", "team", "timestamp"]

WINDOW_PRESETS = {"last30d": 30, "last60d": 60, "last90d": 90}


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class WeeklyBucket:
    week_label: str
    hra: int
    all: int


@dataclass(frozen=True)
class GroupCount:
    key: str
    count: int


@dataclass(frozen=True)
class PurposeCount:
    key: str
    count: int
    is_hra: bool


@dataclass(frozen=True)
class ChannelSuccess:
    channel: str
    completed: int
    total: int
    rate: int


@dataclass(frozen=True)
class HistogramBin:
    bin: str
    count: int


@dataclass(frozen=True)
class OutreachSummary:
    total: int
    utc_rate: int
    by_status: dict[str, int]


def outreach_frame(outreach: Iterable[Outreach]) -> pd.DataFrame:
    """One row per event; ``team`` is filled with ``Unknown`` when absent."""
    rows = [
        {
            "id": event.id,
            "member_id": event.member_id,
            "channel": event.channel,
            "status": event.status,
            "purpose": event.purpose,
            "team": event.team or config.UNKNOWN_TEAM,
            "timestamp": event.timestamp,
        }
        for event in outreach
    ]
    df = pd.DataFrame(rows, columns=OUTREACH_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df


# ---------------------------------------------------------------------------
# Windows and subsetting


def time_window_range(window: str | None = None, now: datetime | str | None = None) -> TimeWindow:
    """
    Resolve a window preset (``last30d``, ``last60d``, ``last90d`` or
    ``week:N``) into a date range ending at ``now``. ``None`` means 30 days.
    """
    end = resolve_now(now)
    if window is None:
        window = "last30d"

    if window in WINDOW_PRESETS:
        return TimeWindow(start=end - timedelta(days=WINDOW_PRESETS[window]), end=end)

    if window.startswith("week:"):
        week_num = _week_number(window)
        start = end - timedelta(days=week_num * 7)
        return TimeWindow(start=start, end=start + timedelta(days=7))

    raise ValueError(
        f"Unknown time window {window!r}. Expected one of "
        f"{sorted(WINDOW_PRESETS)} or 'week:N'."
    )


def time_window_label(window: str | None = None) -> str:
    if window is None or window == "last30d":
        return "30d"
    if window in WINDOW_PRESETS:
        return f"{WINDOW_PRESETS[window]}d"
    if window.startswith("week:"):
        return f"Week {_week_number(window)}"
    raise ValueError(f"Unknown time window {window!r}.")


def subset_by(
    outreach: Iterable[Outreach], predicate: Callable[[Outreach], bool]
) -> list[Outreach]:
    return [event for event in outreach if predicate(event)]


def subset_outreach(
    outreach: Iterable[Outreach],
    start: datetime | None = None,
    end: datetime | None = None,
    team: str | None = None,
    purpose: str | None = None,
    channel: str | None = None,
    member_type: str | None = None,
    members: Sequence[Member] | None = None,
) -> list[Outreach]:
    """
    Filter events by inclusive date range and exact-match attributes.

    ``member_type`` ("Member", "Prospect" or "Both") needs ``members``; events
    whose member is unknown are dropped when the filter is active.
    """
    start = to_utc(start) if start is not None else None
    end = to_utc(end) if end is not None else None
    type_by_member: dict[str, str] | None = None
    if member_type and member_type != "Both" and members is not None:
        type_by_member = {member.id: member.member_type for member in members}

    def keep(event: Outreach) -> bool:
        if start is not None and event.timestamp < start:
            return False
        if end is not None and event.timestamp > end:
            return False
        if team and (event.team or config.UNKNOWN_TEAM) != team:
            return False
        if purpose and event.purpose != purpose:
            return False
        if channel and event.channel != channel:
            return False
        if type_by_member is not None and type_by_member.get(event.member_id) != member_type:
            return False
        return True

    return subset_by(outreach, keep)


def filter_by_team(outreach: Iterable[Outreach], team: str | None = None) -> list[Outreach]:
    if not team:
        return list(outreach)
    return subset_outreach(outreach, team=team)


def filter_by_days(
    outreach: Iterable[Outreach], days: int | None = None, now: datetime | str | None = None
) -> list[Outreach]:
    """Events in the trailing ``days`` up to and including ``now``; no-op without days."""
    if not days:
        return list(outreach)
    as_of = resolve_now(now)
    return subset_outreach(outreach, start=as_of - timedelta(days=days), end=as_of)


# ---------------------------------------------------------------------------
# Aggregations


def aggregate_weekly_series(
    outreach: Iterable[Outreach],
    week_count: int = config.DEFAULT_WEEK_COUNT,
    now: datetime | str | None = None,
) -> list[WeeklyBucket]:
    """
    Partition the trailing ``week_count * 7`` days into week buckets ending at
    ``now``. Buckets are labelled ``Week 1`` (oldest) to ``Week N`` (current).
    """
    if week_count < 1:
        raise ValueError(f"week_count must be at least 1, got {week_count}.")

    as_of = pd.Timestamp(resolve_now(now))
    df = outreach_frame(outreach)

    age_days = (as_of - df["timestamp"]) / pd.Timedelta(days=1)
    weeks_ago = np.floor(age_days.to_numpy(dtype=float) / 7)
    in_range = (age_days.to_numpy(dtype=float) >= 0) & (weeks_ago < week_count)

    df = df.loc[in_range].assign(
        weeks_ago=weeks_ago[in_range].astype(int),
        is_hra=lambda frame: frame["purpose"].isin(sorted(config.HRA_PURPOSES)),
    )
    totals = df.groupby("weeks_ago").size()
    hra = df.groupby("weeks_ago")["is_hra"].sum()

    series = []
    for weeks_back in range(week_count - 1, -1, -1):
        series.append(
            WeeklyBucket(
                week_label=f"Week {week_count - weeks_back}",
                hra=int(hra.get(weeks_back, 0)),
                all=int(totals.get(weeks_back, 0)),
            )
        )
    return series


def group_by_team(outreach: Iterable[Outreach]) -> list[GroupCount]:
    counts = _counts_desc(outreach_frame(outreach), "team")
    return [GroupCount(key=str(key), count=int(count)) for key, count in counts.items()]


def group_by_purpose(outreach: Iterable[Outreach]) -> list[PurposeCount]:
    counts = _counts_desc(outreach_frame(outreach), "purpose")
    return [
        PurposeCount(key=str(key), count=int(count), is_hra=key in config.HRA_PURPOSES)
        for key, count in counts.items()
    ]


def count_by_channel(outreach: Iterable[Outreach]) -> dict[str, int]:
    counts = outreach_frame(outreach).groupby("channel", sort=False).size()
    return {str(key): int(value) for key, value in counts.items()}


def top_and_bottom_channel(outreach: Iterable[Outreach]) -> tuple[str | None, str | None]:
    """Highest and lowest volume channels; ``(None, None)`` without events."""
    counts = _counts_desc(outreach_frame(outreach), "channel")
    if counts.empty:
        return None, None
    return str(counts.index[0]), str(counts.index[-1])


def channel_success_rates(outreach: Iterable[Outreach]) -> list[ChannelSuccess]:
    """Completed / total per channel, all channels in enumeration order."""
    df = outreach_frame(outreach)
    df = df.assign(completed=df["status"].eq("Completed").astype(int))
    stats = (
        df.groupby("channel")
        .agg(total=("id", "size"), completed=("completed", "sum"))
        .reindex(list(config.CHANNELS), fill_value=0)
    )

    results = []
    for channel, row in stats.iterrows():
        total = int(row["total"])
        completed = int(row["completed"])
        rate = round_half_up(completed / total * 100) if total else 0
        results.append(ChannelSuccess(channel=str(channel), completed=completed, total=total, rate=rate))
    return results


def touches_histogram(outreach: Iterable[Outreach], members: Sequence[Member]) -> list[HistogramBin]:
    """
    Distribution of touches per member over the fixed bins 0,1,2,3,4-5,6-7,8+.

    Only ``member_type == "Member"`` is counted (prospects are excluded); every
    eligible member lands in exactly one bin, so bin counts sum to the number
    of eligible members. Events for unknown members are ignored.
    """
    eligible = list(dict.fromkeys(m.id for m in members if m.member_type == "Member"))
    df = outreach_frame(outreach)
    known = {m.id for m in members}
    unknown = int((~df["member_id"].isin(sorted(known))).sum())
    if unknown:
        logger.debug("Ignoring %d events for unknown members", unknown)
    per_member = (
        df[df["member_id"].isin(eligible)]
        .groupby("member_id")
        .size()
        .reindex(eligible, fill_value=0)
        .astype(int)
    )
    bins = pd.cut(
        per_member,
        bins=[-1, 0, 1, 2, 3, 5, 7, np.inf],
        labels=list(config.TOUCH_HISTOGRAM_BINS),
    )
    counts = bins.value_counts().reindex(list(config.TOUCH_HISTOGRAM_BINS), fill_value=0)
    return [HistogramBin(bin=str(label), count=int(count)) for label, count in counts.items()]


def summarize_outreach(outreach: Iterable[Outreach]) -> OutreachSummary:
    """Status counts plus the Unable-to-Contact rate (Failed share, percent)."""
    df = outreach_frame(outreach)
    by_status = {str(k): int(v) for k, v in df.groupby("status", sort=False).size().items()}
    total = len(df)
    utc = by_status.get("Failed", 0)
    return OutreachSummary(
        total=total,
        utc_rate=round_half_up(utc / total * 100) if total else 0,
        by_status=by_status,
    )


# ---------------------------------------------------------------------------
# Internal helpers


def _counts_desc(df: pd.DataFrame, column: str) -> pd.Series:
    # groupby(sort=False) keeps first-seen order, the stable sort keeps it for ties
    counts = df.groupby(column, sort=False).size()
    return counts.sort_values(ascending=False, kind="stable")


def _week_number(window: str) -> int:
    try:
        week_num = int(window.split(":", 1)[1])
    except (IndexError, ValueError) as exc:
        raise ValueError(f"Malformed week window {window!r}; expected 'week:N'.") from exc
    if week_num < 1:
        raise ValueError(f"Week number must be positive, got {week_num}.")
    return week_num
