# src/careleo_analytics/feature_engineering.py
"""
Per-member outreach history features shared by the scoring and cohort engines.

Events are loaded into the analytics outreach frame and cut off at the
reference instant, so nothing dated after ``as_of`` reaches any feature.
``MemberHistory`` is a thin view over one member's rows (newest first);
``build_feature_frame`` computes the same windows for a whole population.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Sequence

import pandas as pd

from . import config
from .analytics import outreach_frame
from .models import Member, Outreach


@dataclass(frozen=True)
class ChannelStats:
    channel: str
    total: int
    completed: int

    @property
    def completion_rate(self) -> float:
        return self.completed / self.total if self.total else 0.0


@dataclass(frozen=True, eq=False)
class MemberHistory:
    member_id: str
    events: pd.DataFrame  # outreach_frame rows, newest first, none after as_of
    as_of: datetime

    def __len__(self) -> int:
        return len(self.events)

    def in_window(self, days: int) -> pd.DataFrame:
        """Rows with ``as_of - days <= timestamp <= as_of``."""
        cutoff = self.as_of - timedelta(days=days)
        return self.events[self.events["timestamp"].between(cutoff, self.as_of, inclusive="both")]

    def touches(self, days: int) -> int:
        return len(self.in_window(days))

    def completion_rate(self, days: int) -> float:
        """Completed share of the window as a percentage; 0 for an empty window."""
        window = self.in_window(days)
        if window.empty:
            return 0.0
        return int(window["status"].eq("Completed").sum()) / len(window) * 100

    def has_purpose_within(self, purpose: str, days: int) -> bool:
        return bool(self.in_window(days)["purpose"].eq(purpose).any())

    def has_status_within(self, status: str, days: int) -> bool:
        return bool(self.in_window(days)["status"].eq(status).any())

    def count_status_within(self, status: str, days: int) -> int:
        return int(self.in_window(days)["status"].eq(status).sum())

    def recent_statuses(self, count: int) -> list[str]:
        return self.events["status"].head(count).tolist()

    def recent_channels(self, days: int) -> list[str]:
        """Distinct channels used in the window, most recent first."""
        return self.in_window(days)["channel"].drop_duplicates().tolist()

    def last_completed_at(self) -> pd.Timestamp | None:
        completed = self.events.loc[self.events["status"].eq("Completed"), "timestamp"]
        return None if completed.empty else completed.max()

    def days_since(self, moment: datetime) -> float:
        return (pd.Timestamp(self.as_of) - pd.Timestamp(moment)) / pd.Timedelta(days=1)

    def channel_stats(self) -> list[ChannelStats]:
        """Totals and completions per channel, in enumeration order."""
        stats = _channel_counts(self.events)
        return [
            ChannelStats(channel=str(channel), total=int(row["total"]), completed=int(row["completed"]))
            for channel, row in stats.iterrows()
        ]


def history_frame(outreach: Iterable[Outreach], as_of: datetime) -> pd.DataFrame:
    """Outreach frame cut off at ``as_of``, newest first; equal timestamps keep input order."""
    df = outreach_frame(outreach)
    df = df[df["timestamp"] <= as_of]
    return df.sort_values("timestamp", ascending=False, kind="stable").reset_index(drop=True)


def build_member_history(
    member_id: str, outreach: Iterable[Outreach], as_of: datetime
) -> MemberHistory:
    """Collect one member's events newest first; other members' events are ignored."""
    df = history_frame(outreach, as_of)
    own = df[df["member_id"] == member_id].reset_index(drop=True)
    return MemberHistory(member_id=member_id, events=own, as_of=as_of)


def build_histories(
    members: Sequence[Member], outreach: Iterable[Outreach], as_of: datetime
) -> dict[str, MemberHistory]:
    df = history_frame(outreach, as_of)
    by_member = {key: group for key, group in df.groupby("member_id", sort=False)}
    empty = df.iloc[0:0]
    return {
        member.id: MemberHistory(
            member_id=member.id,
            events=by_member.get(member.id, empty).reset_index(drop=True),
            as_of=as_of,
        )
        for member in members
    }


def build_feature_frame(
    members: Sequence[Member], outreach: Iterable[Outreach], as_of: datetime
) -> pd.DataFrame:
    """
    One row per member (indexed by member id) with the windowed features the
    scorers use: lifetime and 7-day touches, 30-day completion rate, days since
    the last completion and per-channel touch counts. Members without events
    get zero counts and a missing recency.
    """
    ids = list(dict.fromkeys(member.id for member in members))
    df = history_frame(outreach, as_of)
    df = df[df["member_id"].isin(ids)]
    df = df.assign(completed=df["status"].eq("Completed").astype(int))

    recent_cutoff = as_of - timedelta(days=config.RECENT_TOUCHES_DAYS)
    rate_cutoff = as_of - timedelta(days=config.COMPLETION_RATE_WINDOW_DAYS)

    total_outreach = df.groupby("member_id").size().rename("total_outreach")
    touches_7d = (
        df[df["timestamp"].between(recent_cutoff, as_of, inclusive="both")]
        .groupby("member_id")
        .size()
        .rename("touches_7d")
    )
    window_30d = (
        df[df["timestamp"].between(rate_cutoff, as_of, inclusive="both")]
        .groupby("member_id")["completed"]
        .agg(["size", "sum"])
    )
    completion_rate_30d = (window_30d["sum"] / window_30d["size"] * 100).rename(
        "completion_rate_30d"
    )
    last_completed_at = (
        df[df["completed"] == 1].groupby("member_id")["timestamp"].max().rename("last_completed_at")
    )

    if df.empty:
        channel_touches = pd.DataFrame(index=pd.Index([], name="member_id"))
    else:
        by_channel = df.groupby(["member_id", "channel"]).agg(
            total=("id", "size"), completed=("completed", "sum")
        )
        channel_touches = by_channel["total"].unstack("channel", fill_value=0)
    channel_touches = channel_touches.reindex(columns=list(config.CHANNELS), fill_value=0).add_prefix(
        "touches_"
    )

    features = pd.concat(
        [total_outreach, touches_7d, completion_rate_30d, last_completed_at, channel_touches],
        axis=1,
    ).reindex(ids)

    count_columns = ["total_outreach", "touches_7d", *channel_touches.columns]
    features[count_columns] = features[count_columns].fillna(0).astype(int)
    features["completion_rate_30d"] = features["completion_rate_30d"].astype(float).fillna(0.0)
    features["last_completed_at"] = pd.to_datetime(features["last_completed_at"], utc=True)
    features["days_since_completion"] = (
        pd.Timestamp(as_of) - features["last_completed_at"]
    ) / pd.Timedelta(days=1)
    features.index.name = "member_id"
    return features[_feature_columns()]


def _feature_columns() -> list[str]:
    return [
        "total_outreach",
        "touches_7d",
        "completion_rate_30d",
        "last_completed_at",
        "days_since_completion",
        *[f"touches_{channel}" for channel in config.CHANNELS],
    ]


def _channel_counts(df: pd.DataFrame) -> pd.DataFrame:
    return (
        df.assign(completed=df["status"].eq("Completed").astype(int))
        .groupby("channel")
        .agg(total=("id", "size"), completed=("completed", "sum"))
        .reindex(list(config.CHANNELS), fill_value=0)
    )
