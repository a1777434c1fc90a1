# src/careleo_analytics/models.py
"""
In-memory domain records: members, their SDOH profiles, and outreach events.
Records are immutable; derived data (signals, cohorts) is recomputed on demand.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Mapping

from . import config


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 towards positive infinity (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def to_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True)
class Resource:
    id: str
    name: str
    type: str
    description: str
    contact_info: str


@dataclass(frozen=True)
class AreaContext:
    zip_code: str
    adi: int  # Area Deprivation Index, 1-10
    svi: float  # Social Vulnerability Index, 0-1
    broadband_access: int
    primary_language: str


@dataclass(frozen=True)
class SdohProfile:
    social_risk_score: int
    needs: Mapping[str, int]
    area_context: AreaContext | None = None
    recommended_resources: tuple[Resource, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "social_risk_score", clamp(self.social_risk_score))
        needs = {name: clamp(self.needs.get(name, 0)) for name in config.SDOH_NEEDS}
        object.__setattr__(self, "needs", needs)
        object.__setattr__(self, "recommended_resources", tuple(self.recommended_resources))

    def need(self, name: str) -> float:
        return self.needs.get(name, 0)


@dataclass(frozen=True)
class Member:
    """A plan member or prospect. ``cohorts`` is a display hint, never authoritative."""

    id: str
    name: str
    dob: date | None = None
    member_id: str = ""
    plan: str = ""
    vendor: str = ""
    conditions: tuple[str, ...] = ()
    risk: float = 0
    member_type: str = "Member"
    sdoh: SdohProfile | None = None
    cohorts: tuple[str, ...] | None = None
    behavioral_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", tuple(dict.fromkeys(self.conditions)))
        object.__setattr__(self, "risk", clamp(self.risk))
        if self.cohorts is not None:
            object.__setattr__(self, "cohorts", tuple(self.cohorts))

    def has_condition(self, *conditions: str) -> bool:
        return any(condition in self.conditions for condition in conditions)


@dataclass(frozen=True)
class Outreach:
    id: str
    member_id: str
    channel: str
    status: str
    purpose: str
    timestamp: datetime
    team: str | None = None
    agent: str = ""
    note: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, datetime):
            raise TypeError(
                f"Outreach {self.id} timestamp must be a datetime, got "
                f"{type(self.timestamp).__name__}; parse raw values with data_prep."
            )
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    @property
    def is_hra(self) -> bool:
        return self.purpose in config.HRA_PURPOSES

    @property
    def is_completed(self) -> bool:
        return self.status == "Completed"


@dataclass(frozen=True)
class MemberSignals:
    nudge_propensity: int
    neg_sentiment_risk: int
    channel_preference: str = field(default="Call")
