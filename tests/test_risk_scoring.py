from __future__ import annotations

from datetime import datetime
from typing import Callable

from careleo_analytics.models import Member, Outreach
from careleo_analytics.risk_scoring import (
    calculate_channel_preference,
    risk_band,
    score_member,
    score_population,
    scores_frame,
)
from careleo_analytics.feature_engineering import build_member_history

MEMBER = Member(id="M0001", name="Jane Smith")


def test_scores_without_history_are_base_plus_jitter(now: datetime) -> None:
    signals = score_member(MEMBER, [], now)
    # seed 1 jitters nudge by about -2.49, seed 1001 jitters sentiment by about -3.03
    assert signals.nudge_propensity == 48
    assert signals.neg_sentiment_risk == 27
    assert signals.channel_preference == "Call"


def test_scores_are_deterministic(now: datetime, make_event: Callable[..., Outreach]) -> None:
    events = [make_event(days_ago=d, status="Failed") for d in (1, 2, 3, 20)]
    assert score_member(MEMBER, events, now) == score_member(MEMBER, events, now)


def test_scores_stay_in_range(now: datetime, make_event: Callable[..., Outreach]) -> None:
    members = [
        Member(id=f"M{i:04d}", name="x", conditions=("Diabetes",), risk=i) for i in range(1, 40)
    ]
    events = [
        make_event(member_id=m.id, days_ago=d, status=s)
        for m in members
        for d, s in ((0.5, "Failed"), (1, "In-Progress"), (2, "Failed"), (30, "Completed"))
    ]
    for signals in score_population(members, events, now).values():
        assert 0 <= signals.nudge_propensity <= 100
        assert 0 <= signals.neg_sentiment_risk <= 100


def test_chronic_condition_adds_fifteen(now: datetime) -> None:
    chronic = Member(id="M0001", name="Jane Smith", conditions=("Hypertension",))
    delta = score_member(chronic, [], now).nudge_propensity - score_member(MEMBER, [], now).nudge_propensity
    assert delta == 15


def test_completion_between_two_weeks_and_three_months_adds_ten(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    baseline = score_member(MEMBER, [], now).nudge_propensity
    recent = score_member(MEMBER, [make_event(days_ago=30, status="Completed")], now)
    too_fresh = score_member(MEMBER, [make_event(days_ago=5, status="Completed")], now)
    too_old = score_member(MEMBER, [make_event(days_ago=120, status="Completed")], now)

    assert recent.nudge_propensity - baseline == 10
    assert too_fresh.nudge_propensity == baseline
    assert too_old.nudge_propensity == baseline


def test_over_touch_subtracts_ten(now: datetime, make_event: Callable[..., Outreach]) -> None:
    baseline = score_member(MEMBER, [], now).nudge_propensity
    events = [make_event(days_ago=d, status="Planned") for d in (1, 2, 3)]
    assert baseline - score_member(MEMBER, events, now).nudge_propensity == 10


def test_failure_run_raises_sentiment(now: datetime, make_event: Callable[..., Outreach]) -> None:
    baseline = score_member(MEMBER, [], now).neg_sentiment_risk
    events = [
        make_event(days_ago=20, status="Failed"),
        make_event(days_ago=25, status="Planned"),
        make_event(days_ago=28, status="In-Progress"),
    ]
    assert score_member(MEMBER, events, now).neg_sentiment_risk - baseline == 15


def test_completion_in_recent_history_clears_failure_run(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    baseline = score_member(MEMBER, [], now).neg_sentiment_risk
    events = [
        make_event(days_ago=20, status="Failed"),
        make_event(days_ago=22, status="Failed"),
        make_event(days_ago=24, status="Completed"),
    ]
    assert score_member(MEMBER, events, now).neg_sentiment_risk == baseline


def test_fatigue_and_failures_raise_sentiment(now: datetime, make_event: Callable[..., Outreach]) -> None:
    baseline = score_member(MEMBER, [], now).neg_sentiment_risk
    events = [make_event(days_ago=d, status="Failed") for d in (1, 2, 3)]
    # +25 fatigue (3 touches in 7 days, 0% completion) and +15 failure run
    assert score_member(MEMBER, events, now).neg_sentiment_risk - baseline == 40


def test_recent_completion_relieves_sentiment(now: datetime, make_event: Callable[..., Outreach]) -> None:
    baseline = score_member(MEMBER, [], now).neg_sentiment_risk
    events = [make_event(days_ago=2, status="Completed")]
    assert baseline - score_member(MEMBER, events, now).neg_sentiment_risk == 10


def test_other_members_events_are_ignored(now: datetime, make_event: Callable[..., Outreach]) -> None:
    events = [make_event(member_id="M0099", days_ago=d, status="Failed") for d in (1, 2, 3)]
    assert score_member(MEMBER, events, now) == score_member(MEMBER, [], now)


def test_channel_preference_picks_best_completion_rate(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    events = [
        make_event(channel="Call", status="Failed"),
        make_event(channel="Call", status="Completed"),
        make_event(channel="Email", status="Completed"),
    ]
    history = build_member_history("M0001", events, now)
    assert calculate_channel_preference(history) == "Email"


def test_channel_preference_ties_keep_enumeration_order(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    events = [
        make_event(channel="Portal", status="Completed"),
        make_event(channel="SMS", status="Completed"),
    ]
    history = build_member_history("M0001", events, now)
    assert calculate_channel_preference(history) == "SMS"


def test_channel_preference_defaults_to_call(now: datetime, make_event: Callable[..., Outreach]) -> None:
    events = [make_event(channel="Email", status="Failed")]
    history = build_member_history("M0001", events, now)
    assert calculate_channel_preference(history) == "Call"


def test_risk_band_boundaries() -> None:
    assert risk_band(40) == "Low"
    assert risk_band(41) == "Medium"
    assert risk_band(70) == "Medium"
    assert risk_band(71) == "High"


def test_scores_frame_sorted_by_nudge(now: datetime) -> None:
    members = [
        Member(id="M0001", name="A"),
        Member(id="M0002", name="B", conditions=("Diabetes",)),
    ]
    df = scores_frame(members, [], now)
    assert list(df["member_id"]) == ["M0002", "M0001"]
    assert df["nudge_propensity"].is_monotonic_decreasing


def test_events_after_reference_time_do_not_score(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    upcoming = [make_event(days_ago=-d, status="Planned") for d in (1, 2, 3)]
    assert score_member(MEMBER, upcoming, now) == score_member(MEMBER, [], now)


def test_future_completion_does_not_hide_past_completion(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    past = make_event(days_ago=30)
    upcoming = make_event(days_ago=-2)

    signals = score_member(MEMBER, [past, upcoming], now)
    assert signals == score_member(MEMBER, [past], now)
    assert (signals.nudge_propensity, signals.neg_sentiment_risk) == (58, 27)


def test_scores_frame_carries_window_features(now: datetime, make_event: Callable[..., Outreach]) -> None:
    members = [Member(id="M0001", name="A"), Member(id="M0002", name="B")]
    events = [make_event(days_ago=2, status="Failed"), make_event(days_ago=20)]
    df = scores_frame(members, events, now).set_index("member_id")

    assert df.loc["M0001", "touches_7d"] == 1
    assert df.loc["M0001", "completion_rate_30d"] == 50.0
    assert df.loc["M0001", "days_since_completion"] == 20.0
    assert df.loc["M0002", "touches_7d"] == 0
