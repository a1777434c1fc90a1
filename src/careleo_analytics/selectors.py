# src/careleo_analytics/selectors.py
"""Member filters behind the clickable KPI tiles and the directory search box."""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from . import config
from .data_prep import resolve_now
from .models import Member, Outreach


def abrasion_bucket_from_score(score: float | None) -> str | None:
    if score is None:
        return None
    if score <= 39:
        return "low"
    if score <= 69:
        return "med"
    return "high"


def filter_members_by_abrasion(members: Sequence[Member], bucket: str | None = None) -> list[Member]:
    if not bucket:
        return list(members)
    if bucket not in config.ABRASION_BUCKETS:
        raise ValueError(
            f"Unknown abrasion bucket {bucket!r}. Expected one of {list(config.ABRASION_BUCKETS)}."
        )
    low, high = config.ABRASION_BUCKETS[bucket]
    return [member for member in members if low <= member.risk <= high]


def filter_members_by_recent_outreach(
    members: Sequence[Member],
    outreach: Iterable[Outreach],
    days: int | None = None,
    now: datetime | str | None = None,
) -> list[Member]:
    """Members touched at least once in the trailing ``days``; no-op without days."""
    if not days:
        return list(members)
    as_of = resolve_now(now)
    cutoff = as_of - timedelta(days=days)
    recent = {event.member_id for event in outreach if cutoff <= event.timestamp <= as_of}
    return [member for member in members if member.id in recent or member.member_id in recent]


def members_with_type(members: Sequence[Member], behavioral_type: str) -> list[Member]:
    return [member for member in members if member.behavioral_type == behavioral_type]


def matches_dob(dob: str, query: str) -> bool:
    """
    Digit-only DOB match accepting yyyy-mm-dd, mm/dd/yyyy, mmddyyyy, mm-yyyy
    or a bare year.
    """
    q = _only_digits(query)
    d = _only_digits(dob)
    if not q or not d:
        return False
    if len(q) >= 8 or len(q) in (4, 6):
        return any(q in form for form in _dob_forms(d))
    return False


def search_members(members: Sequence[Member], query: str) -> list[Member]:
    """Name substring, display-id digits (3+) or DOB match."""
    q = query.strip().lower()
    if not q:
        return list(members)
    q_digits = _only_digits(query)

    results = []
    for member in members:
        name_hit = q in member.name.lower()
        id_hit = len(q_digits) >= 3 and q_digits in member.member_id
        dob_hit = member.dob is not None and matches_dob(member.dob.isoformat(), query)
        if name_hit or id_hit or dob_hit:
            results.append(member)
    return results


def _only_digits(text: str) -> str:
    return re.sub(r"\D+", "", text)


def _dob_forms(digits: str) -> list[str]:
    # yyyymmdd also matched as mmddyyyy and mmyyyy
    if len(digits) != 8:
        return [digits]
    year, month, day = digits[0:4], digits[4:6], digits[6:8]
    return [digits, month + day + year, month + year]
