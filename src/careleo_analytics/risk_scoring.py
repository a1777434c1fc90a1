# src/careleo_analytics/risk_scoring.py
"""
Per-member behavioral signals from outreach history:
  • nudge propensity          (0-100, higher = more receptive to a nudge)
  • negative sentiment risk   (0-100, higher = more likely to react badly)
  • channel preference        (channel with the best completion rate)

Each score is a base value plus rule terms plus a member-stable jitter,
rounded and clamped to [0, 100].
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Literal, Sequence

import pandas as pd

from . import config
from .data_prep import resolve_now
from .feature_engineering import (
    MemberHistory,
    build_feature_frame,
    build_histories,
    build_member_history,
)
from .models import Member, MemberSignals, Outreach, clamp, round_half_up
from .rng import jitter, member_seed


def score_nudge_propensity(member: Member, history: MemberHistory) -> int:
    score: float = config.NUDGE_BASE

    if member.has_condition(*sorted(config.CHRONIC_CONDITIONS)):
        score += config.NUDGE_CHRONIC_BONUS

    last_completed_at = history.last_completed_at()
    if last_completed_at is not None:
        days = history.days_since(last_completed_at)
        if config.COMPLETION_RECENCY_MIN_DAYS <= days <= config.COMPLETION_RECENCY_MAX_DAYS:
            score += config.NUDGE_RECENT_COMPLETION_BONUS

    if history.touches(config.RECENT_TOUCHES_DAYS) >= config.OVER_TOUCH_COUNT:
        score -= config.NUDGE_OVER_TOUCH_PENALTY

    score += jitter(member_seed(member.id), config.NUDGE_JITTER_SPAN)
    return int(clamp(round_half_up(score)))


def score_negative_sentiment(member: Member, history: MemberHistory) -> int:
    score: float = config.SENTIMENT_BASE

    if history.touches(config.RECENT_TOUCHES_DAYS) >= config.OVER_TOUCH_COUNT:
        rate = history.completion_rate(config.COMPLETION_RATE_WINDOW_DAYS)
        if rate < config.SENTIMENT_LOW_COMPLETION_RATE:
            score += config.SENTIMENT_FATIGUE_BONUS

    if _has_failure_run(history):
        score += config.SENTIMENT_FAILURE_RUN_BONUS

    if history.has_status_within("Completed", config.RECENT_TOUCHES_DAYS):
        score -= config.SENTIMENT_RECENT_COMPLETION_RELIEF

    seed = member_seed(member.id) + config.SENTIMENT_SEED_OFFSET
    score += jitter(seed, config.SENTIMENT_JITTER_SPAN)
    return int(clamp(round_half_up(score)))


def calculate_channel_preference(history: MemberHistory) -> str:
    """Best completion rate wins; ties keep enumeration order; Call by default."""
    best_channel = config.CHANNELS[0]
    best_rate = 0.0
    for stats in history.channel_stats():
        if stats.total and stats.completion_rate > best_rate:
            best_channel = stats.channel
            best_rate = stats.completion_rate
    return best_channel


def score_member(
    member: Member, outreach: Iterable[Outreach], now: datetime | str | None = None
) -> MemberSignals:
    """Signals for one member. ``outreach`` may hold other members' events."""
    history = build_member_history(member.id, outreach, resolve_now(now))
    return signals_from_history(member, history)


def signals_from_history(member: Member, history: MemberHistory) -> MemberSignals:
    return MemberSignals(
        nudge_propensity=score_nudge_propensity(member, history),
        neg_sentiment_risk=score_negative_sentiment(member, history),
        channel_preference=calculate_channel_preference(history),
    )


def score_population(
    members: Sequence[Member],
    outreach: Iterable[Outreach],
    now: datetime | str | None = None,
) -> dict[str, MemberSignals]:
    histories = build_histories(members, outreach, resolve_now(now))
    return {member.id: signals_from_history(member, histories[member.id]) for member in members}


def risk_band(risk: float) -> Literal["Low", "Medium", "High"]:
    """Abrasion risk banding used for badges and filters."""
    if risk <= 40:
        return "Low"
    elif risk <= 70:
        return "Medium"
    else:
        return "High"


def scores_frame(
    members: Sequence[Member],
    outreach: Iterable[Outreach],
    now: datetime | str | None = None,
) -> pd.DataFrame:
    """
    Tabular view of the population's signals joined with the windowed outreach
    features behind them, highest nudge propensity first.
    """
    as_of = resolve_now(now)
    events = list(outreach)
    signals = score_population(members, events, as_of)
    features = build_feature_frame(members, events, as_of)
    rows = [
        {
            "member_id": member.id,
            "name": member.name,
            "member_type": member.member_type,
            "risk": member.risk,
            "band": risk_band(member.risk),
            "nudge_propensity": signals[member.id].nudge_propensity,
            "neg_sentiment_risk": signals[member.id].neg_sentiment_risk,
            "channel_preference": signals[member.id].channel_preference,
        }
        for member in members
    ]
    columns = [
        "member_id",
        "name",
        "member_type",
        "risk",
        "band",
        "nudge_propensity",
        "neg_sentiment_risk",
        "channel_preference",
    ]
    df = pd.DataFrame(rows, columns=columns).join(
        features[["touches_7d", "completion_rate_30d", "days_since_completion"]], on="member_id"
    )
    return df.sort_values("nudge_propensity", ascending=False, kind="stable").reset_index(
        drop=True
    )


# ---------------------------------------------------------------------------
# Internal helpers


def _has_failure_run(history: MemberHistory) -> bool:
    """
    Walk the most recent events newest first. Any Completed event clears the
    flag; otherwise Failed/In-Progress events are counted (Planned is skipped).
    """
    unsuccessful = 0
    for status in history.recent_statuses(config.SENTIMENT_HISTORY_DEPTH):
        if status == "Completed":
            return False
        if status in ("Failed", "In-Progress"):
            unsuccessful += 1
    return unsuccessful >= config.SENTIMENT_MIN_FAILURE_RUN
