from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from careleo_analytics import config
from careleo_analytics.data_prep import (
    MalformedTimestampError,
    load_members,
    load_outreach,
    member_from_dict,
    outreach_from_dict,
    parse_timestamp,
    resolve_now,
)
from careleo_analytics.models import Outreach

RAW_EVENT = {
    "id": "O1",
    "memberId": "M0001",
    "channel": "SMS",
    "status": "Completed",
    "purpose": "HRA Reminder",
    "timestamp": "2025-05-30T09:15:00Z",
    "team": "Care Coordination",
}


def test_parse_timestamp_rejects_malformed_values() -> None:
    with pytest.raises(MalformedTimestampError):
        parse_timestamp("not-a-date")
    with pytest.raises(MalformedTimestampError):
        parse_timestamp(12345)


def test_naive_timestamps_are_treated_as_utc() -> None:
    parsed = parse_timestamp("2025-05-30T09:15:00")
    assert parsed.utcoffset().total_seconds() == 0
    assert (parsed.hour, parsed.minute) == (9, 15)

    event = Outreach(
        id="O1",
        member_id="M1",
        channel="Call",
        status="Planned",
        purpose="AWV",
        timestamp=datetime(2025, 5, 30, 9, 15),
    )
    assert event.timestamp == datetime(2025, 5, 30, 9, 15, tzinfo=timezone.utc)


def test_offset_timestamps_are_converted_to_utc() -> None:
    parsed = parse_timestamp("2025-05-30T09:15:00-04:00")
    assert parsed == datetime(2025, 5, 30, 13, 15, tzinfo=timezone.utc)


def test_outreach_requires_datetime_timestamp() -> None:
    with pytest.raises(TypeError):
        Outreach(
            id="O1",
            member_id="M1",
            channel="Call",
            status="Planned",
            purpose="AWV",
            timestamp="2025-05-30",  # type: ignore[arg-type]
        )


def test_outreach_from_dict_accepts_camel_case_keys() -> None:
    event = outreach_from_dict(RAW_EVENT)
    assert event.member_id == "M0001"
    assert event.channel == "SMS"
    assert event.is_hra
    assert event.timestamp.tzinfo is not None


def test_outreach_from_dict_rejects_unknown_channel() -> None:
    with pytest.raises(ValueError, match="Unknown channel"):
        outreach_from_dict({**RAW_EVENT, "channel": "Fax"})


def test_outreach_from_dict_rejects_unknown_status() -> None:
    with pytest.raises(ValueError, match="Unknown status"):
        outreach_from_dict({**RAW_EVENT, "status": "Done"})


def test_outreach_from_dict_requires_fields() -> None:
    record = dict(RAW_EVENT)
    del record["purpose"]
    with pytest.raises(ValueError, match="purpose"):
        outreach_from_dict(record)


def test_missing_team_is_kept_as_none() -> None:
    record = dict(RAW_EVENT)
    del record["team"]
    assert outreach_from_dict(record).team is None


def test_member_from_dict_normalizes_sdoh_needs() -> None:
    member = member_from_dict(
        {
            "id": "M0001",
            "name": "Jane Smith",
            "dob": "1960-02-14",
            "memberType": "Prospect",
            "conditions": ["Diabetes", "Diabetes", "COPD"],
            "risk": 140,
            "sdoh": {
                "socialRiskScore": 61,
                "needs": {"foodInsecurity": 72, "healthcareAccess": 20},
            },
        }
    )
    assert member.dob == date(1960, 2, 14)
    assert member.member_type == "Prospect"
    assert member.conditions == ("Diabetes", "COPD")
    assert member.risk == 100
    assert member.sdoh is not None
    assert member.sdoh.need("food_insecurity") == 72
    assert member.sdoh.need("education") == 0
    assert set(member.sdoh.needs) == set(config.SDOH_NEEDS)


def test_member_from_dict_rejects_unknown_member_type() -> None:
    with pytest.raises(ValueError):
        member_from_dict({"id": "M1", "name": "X", "memberType": "Visitor"})


def test_load_members_rejects_duplicate_ids() -> None:
    with pytest.raises(ValueError, match="Duplicate"):
        load_members([{"id": "M1", "name": "A"}, {"id": "M1", "name": "B"}])


def test_load_outreach_parses_every_record() -> None:
    events = load_outreach([RAW_EVENT, {**RAW_EVENT, "id": "O2", "channel": "Call"}])
    assert [event.id for event in events] == ["O1", "O2"]


def test_resolve_now_prefers_explicit_then_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "AS_OF_OVERRIDE", "2024-01-15")
    assert resolve_now().date() == date(2024, 1, 15)
    assert resolve_now("2025-03-01").date() == date(2025, 3, 1)

    monkeypatch.setattr(config, "AS_OF_OVERRIDE", None)
    assert resolve_now().tzinfo is not None
