from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import pytest

from careleo_analytics.analytics import (
    ChannelSuccess,
    GroupCount,
    WeeklyBucket,
    aggregate_weekly_series,
    channel_success_rates,
    count_by_channel,
    filter_by_days,
    filter_by_team,
    group_by_purpose,
    group_by_team,
    subset_outreach,
    summarize_outreach,
    time_window_label,
    time_window_range,
    top_and_bottom_channel,
    touches_histogram,
)
from careleo_analytics.models import Member, Outreach


def test_channel_success_rates_per_channel(make_event: Callable[..., Outreach]) -> None:
    events = [make_event(channel="Call", status="Completed"), make_event(channel="Call", status="Failed")]
    rates = channel_success_rates(events)

    assert [r.channel for r in rates] == ["Call", "SMS", "Email", "Portal"]
    assert rates[0] == ChannelSuccess(channel="Call", completed=1, total=2, rate=50)
    assert rates[1] == ChannelSuccess(channel="SMS", completed=0, total=0, rate=0)


def test_channel_success_rates_empty() -> None:
    assert all(r.total == 0 and r.rate == 0 for r in channel_success_rates([]))


def test_weekly_series_puts_recent_events_in_last_week(
    now: datetime, make_event: Callable[..., Outreach]
) -> None:
    events = [
        make_event(days_ago=0.5, purpose="HRA Completion"),
        make_event(days_ago=1),
        make_event(days_ago=2.5, purpose="HRA Reminder"),
    ]
    assert aggregate_weekly_series(events, week_count=2, now=now) == [
        WeeklyBucket(week_label="Week 1", hra=0, all=0),
        WeeklyBucket(week_label="Week 2", hra=2, all=3),
    ]


def test_weekly_series_bucket_boundaries(now: datetime, make_event: Callable[..., Outreach]) -> None:
    events = [
        make_event(days_ago=7),  # exactly one week back opens Week 2 of 3
        make_event(days_ago=13.9),
        make_event(days_ago=21),  # outside a three-week range
        make_event(days_ago=-1),  # after the reference instant
    ]
    series = aggregate_weekly_series(events, week_count=3, now=now)
    assert [bucket.all for bucket in series] == [0, 2, 0]
    assert [bucket.week_label for bucket in series] == ["Week 1", "Week 2", "Week 3"]


def test_weekly_series_rejects_non_positive_count(now: datetime) -> None:
    with pytest.raises(ValueError):
        aggregate_weekly_series([], week_count=0, now=now)


def test_weekly_series_empty_input(now: datetime) -> None:
    series = aggregate_weekly_series([], now=now)
    assert len(series) == 12
    assert all(bucket.all == 0 and bucket.hra == 0 for bucket in series)


def test_group_by_team_orders_by_count_then_first_seen(make_event: Callable[..., Outreach]) -> None:
    events = [
        make_event(team="Pharmacy"),
        make_event(team=None),
        make_event(team="Care Coordination"),
        make_event(team="Care Coordination"),
        make_event(team="Pharmacy"),
    ]
    assert group_by_team(events) == [
        GroupCount(key="Pharmacy", count=2),
        GroupCount(key="Care Coordination", count=2),
        GroupCount(key="Unknown", count=1),
    ]


def test_group_by_purpose_flags_hra(make_event: Callable[..., Outreach]) -> None:
    events = [make_event(purpose="AWV"), make_event(purpose="HRA Reminder"), make_event(purpose="HRA Reminder")]
    groups = group_by_purpose(events)
    assert [(g.key, g.count, g.is_hra) for g in groups] == [
        ("HRA Reminder", 2, True),
        ("AWV", 1, False),
    ]


def test_groupings_of_empty_input() -> None:
    assert group_by_team([]) == []
    assert group_by_purpose([]) == []
    assert count_by_channel([]) == {}
    assert top_and_bottom_channel([]) == (None, None)


def test_top_and_bottom_channel(make_event: Callable[..., Outreach]) -> None:
    events = [make_event(channel="SMS"), make_event(channel="SMS"), make_event(channel="Email")]
    assert top_and_bottom_channel(events) == ("SMS", "Email")
    assert count_by_channel(events) == {"SMS": 2, "Email": 1}


def test_touches_histogram_counts_members_only(make_event: Callable[..., Outreach]) -> None:
    members = [
        Member(id="M0001", name="A"),
        Member(id="M0002", name="B"),
        Member(id="M0003", name="C"),
        Member(id="P0001", name="Prospect", member_type="Prospect"),
    ]
    events = (
        [make_event(member_id="M0001") for _ in range(5)]
        + [make_event(member_id="M0002")]
        + [make_event(member_id="P0001") for _ in range(2)]
        + [make_event(member_id="M9999") for _ in range(9)]
    )
    histogram = {b.bin: b.count for b in touches_histogram(events, members)}

    assert list(histogram) == ["0", "1", "2", "3", "4-5", "6-7", "8+"]
    assert histogram == {"0": 1, "1": 1, "2": 0, "3": 0, "4-5": 1, "6-7": 0, "8+": 0}
    assert sum(histogram.values()) == 3


def test_touches_histogram_without_members() -> None:
    assert sum(b.count for b in touches_histogram([], [])) == 0


def test_subset_outreach_filters(now: datetime, make_event: Callable[..., Outreach]) -> None:
    members = [Member(id="M0001", name="A"), Member(id="P0001", name="B", member_type="Prospect")]
    events = [
        make_event(member_id="M0001", days_ago=1, channel="SMS"),
        make_event(member_id="P0001", days_ago=1, channel="SMS"),
        make_event(member_id="M0001", days_ago=40, channel="SMS"),
        make_event(member_id="M0001", days_ago=1, channel="Call", team="Pharmacy"),
    ]
    subset = subset_outreach(
        events,
        start=now - timedelta(days=30),
        end=now,
        channel="SMS",
        member_type="Member",
        members=members,
    )
    assert [e.id for e in subset] == [events[0].id]
    assert [e.id for e in filter_by_team(events, "Pharmacy")] == [events[3].id]
    assert len(filter_by_team(events)) == 4
    assert len(filter_by_days(events, 30, now)) == 3


def test_time_window_range(now: datetime) -> None:
    window = time_window_range("last60d", now)
    assert window.end == now
    assert window.end - window.start == timedelta(days=60)

    week = time_window_range("week:2", now)
    assert week.start == now - timedelta(days=14)
    assert week.end - week.start == timedelta(days=7)

    assert time_window_range(None, now).start == now - timedelta(days=30)
    assert time_window_label("week:3") == "Week 3"
    assert time_window_label(None) == "30d"

    with pytest.raises(ValueError):
        time_window_range("yesterday", now)
    with pytest.raises(ValueError):
        time_window_range("week:x", now)


def test_summarize_outreach(make_event: Callable[..., Outreach]) -> None:
    events = [make_event(status="Failed"), make_event(status="Completed"), make_event(status="Completed")]
    summary = summarize_outreach(events)
    assert summary.total == 3
    assert summary.utc_rate == 33
    assert summary.by_status == {"Failed": 1, "Completed": 2}
    assert summarize_outreach([]).utc_rate == 0
