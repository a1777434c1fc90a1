# src/careleo_analytics/synthetic.py
"""
Seeded synthetic population for the demo CRM: members, outreach events and
SDOH profiles. One SeededRandom is threaded through every helper, so the same
seed and reference date always reproduce the same dataset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Sequence

from . import config
from .data_prep import resolve_now
from .models import Member, Outreach, round_half_up
from .rng import SeededRandom
from .sdoh import generate_sdoh_profile

logger = logging.getLogger(__name__)

FIRST_NAMES = (
    "John", "Jane", "Michael", "Sarah", "David", "Emily", "Robert", "Jessica",
    "William", "Ashley", "James", "Amanda", "Christopher", "Jennifer", "Daniel",
    "Lisa", "Matthew", "Nancy", "Anthony", "Karen", "Mark", "Betty", "Donald",
    "Helen", "Steven", "Sandra", "Paul", "Donna", "Andrew", "Carol",
)

LAST_NAMES = (
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller",
    "Davis", "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez",
    "Wilson", "Anderson", "Thomas", "Taylor", "Moore", "Jackson", "Martin",
)

PLANS = ("MA-PD Gold", "MA-PD Silver", "D-SNP", "C-SNP", "Medicaid Managed Care", "Commercial PPO")

VENDORS = (
    "BlueCross BlueShield", "Aetna", "Cigna", "UnitedHealth", "Humana",
    "Kaiser Permanente", "Anthem", "Molina Healthcare",
)

CONDITIONS = (
    "Diabetes", "Hypertension", "Heart Disease", "Asthma", "COPD",
    "Arthritis", "Depression", "Anxiety", "High Cholesterol", "Obesity",
    "Sleep Apnea", "Chronic Pain", "Migraine", "Allergies", "Thyroid Disorder",
    "Breast Cancer Risk", "Cervical Cancer Risk", "Colorectal Cancer Risk",
)

AGENTS = (
    "Sarah Johnson", "Mike Chen", "Lisa Rodriguez", "David Kim", "Emma Wilson",
    "James Brown", "Maria Garcia", "Robert Taylor", "Jennifer Lee", "Christopher Davis",
)

SDOH_PURPOSES = tuple(p for p in config.PURPOSES if p.startswith("SDOH"))

NOTE_OUTCOMES = (
    "Member was responsive and engaged.",
    "Left voicemail, no response yet.",
    "Member requested callback.",
    "Completed successfully.",
    "Member declined to participate.",
    "Member prefers text communication.",
    "Follow-up scheduled for next week.",
)

# Completed, In-Progress, Planned, Failed
STATUS_WEIGHTS = {
    "HRA": (0.3, 0.4, 0.2, 0.1),
    "SDOH": (0.5, 0.2, 0.2, 0.1),
    "default": (0.4, 0.3, 0.2, 0.1),
}
STATUS_ORDER = ("Completed", "In-Progress", "Planned", "Failed")

# Call, SMS, Email, Portal
CHANNEL_WEIGHTS = {
    "HRA": (0.3, 0.3, 0.3, 0.1),
    "SDOH": (0.5, 0.2, 0.2, 0.1),
    "default": (0.35, 0.25, 0.25, 0.15),
}


@dataclass(frozen=True)
class Dataset:
    members: list[Member]
    outreach: list[Outreach]
    as_of: datetime


def derive_behavioral_type(member_id: str) -> str:
    """Roughly even fatigue/receptive/nudge split keyed on the id's characters."""
    if not member_id:
        return config.BEHAVIORAL_TYPES[0]
    second = ord(member_id[1]) if len(member_id) > 1 else 0
    type_hash = ord(member_id[0]) + ord(member_id[-1]) + second
    return config.BEHAVIORAL_TYPES[type_hash % 3]


def generate_members(
    count: int = config.DEFAULT_MEMBER_COUNT,
    now: datetime | str | None = None,
    rng: SeededRandom | None = None,
) -> list[Member]:
    as_of = resolve_now(now)
    rng = rng or SeededRandom(config.DATA_SEED)
    return [_make_member(rng, index, as_of) for index in range(count)]


def generate_outreach(
    members: Sequence[Member],
    count: int = config.DEFAULT_OUTREACH_COUNT,
    now: datetime | str | None = None,
    rng: SeededRandom | None = None,
) -> list[Outreach]:
    """
    Every member gets ``OUTREACH_PER_MEMBER`` events; the remainder up to
    ``count`` go to randomly chosen members. Returned newest first.
    """
    as_of = resolve_now(now)
    rng = rng or SeededRandom(config.DATA_SEED)
    if not members:
        return []

    events: list[Outreach] = []
    for member in members:
        for _ in range(config.OUTREACH_PER_MEMBER):
            events.append(_make_event(rng, member, len(events) + 1, as_of, extra=False))

    for _ in range(max(0, count - len(events))):
        member = rng.choice(members)
        events.append(_make_event(rng, member, len(events) + 1, as_of, extra=True))

    return sorted(events, key=lambda event: event.timestamp, reverse=True)


def add_sdoh_profiles(
    members: Sequence[Member], outreach: Sequence[Outreach], now: datetime | str | None = None
) -> list[Member]:
    as_of = resolve_now(now)
    return [replace(m, sdoh=generate_sdoh_profile(m, outreach, as_of)) for m in members]


def generate_dataset(
    member_count: int = config.DEFAULT_MEMBER_COUNT,
    outreach_count: int = config.DEFAULT_OUTREACH_COUNT,
    seed: int = config.DATA_SEED,
    now: datetime | str | None = None,
) -> Dataset:
    as_of = resolve_now(now)
    rng = SeededRandom(seed)
    members = generate_members(member_count, as_of, rng)
    outreach = generate_outreach(members, outreach_count, as_of, rng)
    members = add_sdoh_profiles(members, outreach, as_of)
    logger.info(
        "Generated %d members and %d outreach events (seed=%d, as_of=%s)",
        len(members),
        len(outreach),
        seed,
        as_of.date(),
    )
    return Dataset(members=members, outreach=outreach, as_of=as_of)


# ---------------------------------------------------------------------------
# Internal helpers


def _make_member(rng: SeededRandom, index: int, as_of: datetime) -> Member:
    first = rng.choice(FIRST_NAMES)
    last = rng.choice(LAST_NAMES)
    age = rng.randint(18, 85)
    dob = date(as_of.year - age, rng.randint(1, 12), rng.randint(1, 28))

    conditions: list[str] = []
    for _ in range(rng.randint(0, 4)):
        condition = rng.choice(CONDITIONS)
        if condition not in conditions:
            conditions.append(condition)

    risk = min(20 + age * 0.5 + len(conditions) * 15, 100)
    risk = max(risk + rng.randint(-10, 10), 0)

    plan = rng.choice(PLANS)
    vendor = rng.choice(VENDORS)
    member_type = "Member" if rng.random() < 0.9 else "Prospect"
    member_id = f"M{index + 1:04d}"

    return Member(
        id=member_id,
        member_id=str(100000 + index),
        name=f"{first} {last}",
        dob=dob,
        plan=plan,
        vendor=vendor,
        conditions=tuple(conditions),
        risk=round_half_up(risk),
        member_type=member_type,
        behavioral_type=derive_behavioral_type(member_id),
    )


def _pick_purpose(rng: SeededRandom, member: Member, extra: bool) -> str:
    # extra events lean less on HRA and more on the "other" bucket
    hra_cut, clinical_cut, sdoh_cut = (0.3, 0.5, 0.7) if extra else (0.4, 0.6, 0.8)
    roll = rng.random()
    if roll < hra_cut:
        return rng.choice(("HRA Completion", "HRA Reminder"))
    if roll < clinical_cut:
        if member.has_condition("Diabetes"):
            return rng.choice(("HEDIS - A1c", "Medication Adherence", "AWV"))
        if member.has_condition("Depression", "Anxiety"):
            return rng.choice(("SDOH—Social and Community", "Medication Adherence", "AWV"))
        if member.has_condition("Heart Disease", "Hypertension"):
            return rng.choice(("Medication Adherence", "Care Transition Follow-up", "AWV"))
        return rng.choice(("AWV", "Medication Adherence", "RAF/Chart Retrieval"))
    if roll < sdoh_cut:
        return rng.choice(SDOH_PURPOSES)
    return rng.choice(("RAF/Chart Retrieval", "Care Transition Follow-up", "HEDIS - Mammogram"))


def _weighted(rng: SeededRandom, options: Sequence[str], weights: Sequence[float]) -> str:
    roll = rng.random()
    cumulative = 0.0
    for option, weight in zip(options, weights):
        cumulative += weight
        if roll < cumulative:
            return option
    return options[-1]


def _purpose_family(purpose: str) -> str:
    if purpose.startswith("HRA"):
        return "HRA"
    if purpose.startswith("SDOH"):
        return "SDOH"
    return "default"


def _make_event(
    rng: SeededRandom, member: Member, sequence: int, as_of: datetime, extra: bool
) -> Outreach:
    offset = timedelta(days=config.OUTREACH_HISTORY_DAYS) * rng.random()
    timestamp = as_of - offset
    purpose = _pick_purpose(rng, member, extra)
    team = rng.choice(config.TEAMS[:2])
    family = _purpose_family(purpose)
    status = _weighted(rng, STATUS_ORDER, STATUS_WEIGHTS[family])
    channel = _weighted(rng, config.CHANNELS, CHANNEL_WEIGHTS[family])
    agent = rng.choice(AGENTS)
    note = f"{purpose} outreach via {channel}. {rng.choice(NOTE_OUTCOMES)}"

    return Outreach(
        id=f"O{sequence:04d}",
        member_id=member.id,
        channel=channel,
        status=status,
        purpose=purpose,
        timestamp=timestamp,
        team=team,
        agent=agent,
        note=note,
    )
