from __future__ import annotations

from datetime import datetime, timedelta

from careleo_analytics import config
from careleo_analytics.synthetic import derive_behavioral_type, generate_dataset, generate_members


def test_same_seed_reproduces_dataset(now: datetime) -> None:
    first = generate_dataset(member_count=15, outreach_count=60, seed=7, now=now)
    second = generate_dataset(member_count=15, outreach_count=60, seed=7, now=now)
    assert first == second


def test_different_seed_changes_dataset(now: datetime) -> None:
    first = generate_dataset(member_count=15, outreach_count=60, seed=7, now=now)
    second = generate_dataset(member_count=15, outreach_count=60, seed=8, now=now)
    assert first.members != second.members


def test_dataset_shape(now: datetime) -> None:
    dataset = generate_dataset(member_count=20, outreach_count=80, now=now)
    member_ids = {m.id for m in dataset.members}

    assert [m.id for m in dataset.members][:2] == ["M0001", "M0002"]
    assert len(dataset.outreach) == 80
    assert len({e.id for e in dataset.outreach}) == 80
    assert {e.member_id for e in dataset.outreach} == member_ids
    assert all(m.sdoh is not None for m in dataset.members)
    assert all(m.behavioral_type in config.BEHAVIORAL_TYPES for m in dataset.members)
    assert all(e.channel in config.CHANNELS and e.status in config.STATUSES for e in dataset.outreach)

    timestamps = [e.timestamp for e in dataset.outreach]
    assert timestamps == sorted(timestamps, reverse=True)
    assert all(now - timedelta(days=config.OUTREACH_HISTORY_DAYS) <= t <= now for t in timestamps)


def test_every_member_gets_minimum_outreach(now: datetime) -> None:
    dataset = generate_dataset(member_count=10, outreach_count=5, now=now)
    assert len(dataset.outreach) == 10 * config.OUTREACH_PER_MEMBER


def test_members_are_clamped(now: datetime) -> None:
    for member in generate_members(50, now):
        assert 0 <= member.risk <= 100
        assert member.member_type in config.MEMBER_TYPES


def test_behavioral_type_is_stable() -> None:
    assert derive_behavioral_type("M0001") == "fatigue"
    assert derive_behavioral_type("M0001") == derive_behavioral_type("M0001")
    assert derive_behavioral_type("") == "fatigue"
