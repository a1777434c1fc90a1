# src/careleo_analytics/data_prep.py
"""
Boundary helpers that turn raw member/outreach records (dicts as produced by
JSON exports or the UI layer) into validated domain models.

Timestamp policy: malformed values are rejected with MalformedTimestampError;
naive values are interpreted as UTC.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

import pandas as pd

from . import config
from .models import AreaContext, Member, Outreach, Resource, SdohProfile, to_utc


class MalformedTimestampError(ValueError):
    """Raised when a timestamp cannot be parsed as ISO-8601."""


_FIELD_ALIASES: dict[str, Iterable[str]] = {
    "member_id": ("member_id", "memberid", "member"),
    "timestamp": ("timestamp", "occurred_at", "datetime"),
    "member_type": ("member_type", "membertype", "type"),
    "behavioral_type": ("behavioral_type", "behavioraltype"),
    "dob": ("dob", "date_of_birth", "birth_date"),
    "risk": ("risk", "abrasion_risk"),
    "team": ("team", "team_id"),
}


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise MalformedTimestampError(
            f"Timestamp must be an ISO-8601 string or datetime, got {type(value).__name__}."
        )
    try:
        parsed = pd.to_datetime(value.strip(), utc=True)
    except (ValueError, TypeError, OverflowError) as exc:
        raise MalformedTimestampError(f"Malformed timestamp: {value!r}") from exc
    if pd.isna(parsed):
        raise MalformedTimestampError(f"Malformed timestamp: {value!r}")
    return parsed.to_pydatetime()


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_timestamp(value).date()


def resolve_now(now: datetime | str | None = None) -> datetime:
    """Reference instant for windowed calculations (explicit > override > clock)."""
    if now is not None:
        return parse_timestamp(now)
    if config.AS_OF_OVERRIDE is not None:
        return parse_timestamp(config.AS_OF_OVERRIDE)
    return datetime.now(timezone.utc)


def member_from_dict(record: Mapping[str, Any]) -> Member:
    data = _normalize_keys(record)
    if not data.get("id"):
        raise ValueError("Member record must contain an id.")

    member_type = data.get("member_type") or "Member"
    if member_type not in config.MEMBER_TYPES:
        raise ValueError(f"Unknown member type {member_type!r} for member {data['id']}.")

    behavioral_type = data.get("behavioral_type")
    if behavioral_type is not None and behavioral_type not in config.BEHAVIORAL_TYPES:
        raise ValueError(
            f"Unknown behavioral type {behavioral_type!r} for member {data['id']}."
        )

    sdoh_raw = data.get("sdoh")
    cohorts = data.get("cohorts")
    return Member(
        id=str(data["id"]),
        name=str(data.get("name", "")),
        dob=parse_date(data.get("dob")),
        member_id=str(data.get("member_id", "")),
        plan=str(data.get("plan", "")),
        vendor=str(data.get("vendor", "")),
        conditions=tuple(data.get("conditions") or ()),
        risk=float(data.get("risk") or 0),
        member_type=member_type,
        sdoh=sdoh_from_dict(sdoh_raw) if sdoh_raw else None,
        cohorts=tuple(cohorts) if cohorts is not None else None,
        behavioral_type=behavioral_type,
    )


def sdoh_from_dict(record: Mapping[str, Any]) -> SdohProfile:
    data = _normalize_keys(record)
    needs = {_to_snake_case(key): value for key, value in (data.get("needs") or {}).items()}

    area_raw = data.get("area_context")
    area = None
    if area_raw:
        area_data = _normalize_keys(area_raw)
        area = AreaContext(
            zip_code=str(area_data.get("zip_code", "")),
            adi=int(area_data.get("adi", 1)),
            svi=float(area_data.get("svi", 0.0)),
            broadband_access=int(area_data.get("broadband_access", 0)),
            primary_language=str(area_data.get("primary_language", "")),
        )

    resources = tuple(
        Resource(
            id=str(item["id"]),
            name=str(item.get("name", "")),
            type=str(item.get("type", "")),
            description=str(item.get("description", "")),
            contact_info=str(item.get("contact_info", item.get("contactInfo", ""))),
        )
        for item in data.get("recommended_resources") or ()
    )
    return SdohProfile(
        social_risk_score=int(data.get("social_risk_score") or 0),
        needs=needs,
        area_context=area,
        recommended_resources=resources,
    )


def outreach_from_dict(record: Mapping[str, Any]) -> Outreach:
    data = _normalize_keys(record)
    for required in ("id", "member_id", "channel", "status", "purpose", "timestamp"):
        if data.get(required) in (None, ""):
            raise ValueError(f"Outreach record is missing required field {required!r}.")

    if data["channel"] not in config.CHANNELS:
        raise ValueError(
            f"Unknown channel {data['channel']!r} for outreach {data['id']}. "
            f"Expected one of {list(config.CHANNELS)}."
        )
    if data["status"] not in config.STATUSES:
        raise ValueError(
            f"Unknown status {data['status']!r} for outreach {data['id']}. "
            f"Expected one of {list(config.STATUSES)}."
        )

    return Outreach(
        id=str(data["id"]),
        member_id=str(data["member_id"]),
        channel=data["channel"],
        status=data["status"],
        purpose=str(data["purpose"]),
        timestamp=parse_timestamp(data["timestamp"]),
        team=data.get("team") or None,
        agent=str(data.get("agent", "")),
        note=str(data.get("note", "")),
    )


def load_members(records: Iterable[Mapping[str, Any]]) -> list[Member]:
    members = [member_from_dict(record) for record in records]
    seen: set[str] = set()
    for member in members:
        if member.id in seen:
            raise ValueError(f"Duplicate member id {member.id!r}.")
        seen.add(member.id)
    return members


def load_outreach(records: Iterable[Mapping[str, Any]]) -> list[Outreach]:
    return [outreach_from_dict(record) for record in records]


# ---------------------------------------------------------------------------
# Internal helpers


def _to_snake_case(name: str) -> str:
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return (
        name.replace("-", "_")
        .replace(" ", "_")
        .replace("/", "_")
        .replace("__", "_")
        .strip()
        .lower()
    )


def _normalize_keys(record: Mapping[str, Any]) -> dict[str, Any]:
    data = {_to_snake_case(str(key)): value for key, value in record.items()}
    for target, candidates in _FIELD_ALIASES.items():
        if target in data:
            continue
        for candidate in candidates:
            if candidate in data:
                data[target] = data[candidate]
                break
    return data
