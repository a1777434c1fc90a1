# src/careleo_analytics/sdoh.py
"""
Deterministic Social Determinants of Health estimates for synthetic members.

Every estimate re-seeds its own generator from the member id, so a member's
profile does not depend on how many other members were processed first.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from . import config
from .models import AreaContext, Member, Outreach, Resource, SdohProfile, clamp, round_half_up
from .rng import SeededRandom

NEED_VARIANCE = 40
RESOURCE_NEED_MIN = 50
MAX_RESOURCES = 3

NEED_LABELS = {
    "economic_instability": "Economic Instability",
    "food_insecurity": "Food Insecurity",
    "housing_and_neighborhood": "Housing and Neighborhood Issues",
    "healthcare_access": "Healthcare Access",
    "education": "Education",
    "social_and_community": "Social and Community Context",
}

RESOURCE_CATALOG: dict[str, tuple[tuple[str, str, str, str], ...]] = {
    "economic_instability": (
        ("E001", "Financial Assistance Program", "Emergency financial support", "555-FINANCE-01"),
        ("E002", "Job Training Center", "Skills development and job placement", "555-JOBS-02"),
        ("E003", "Housing Voucher Office", "Rental assistance programs", "555-HOUSING-03"),
    ),
    "food_insecurity": (
        ("F001", "Community Food Bank", "Emergency food assistance", "555-FOOD-01"),
        ("F002", "Meals on Wheels", "Home-delivered meals for seniors", "555-MEALS-02"),
        ("F003", "SNAP Benefits Office", "Food assistance program enrollment", "555-SNAP-03"),
    ),
    "housing_and_neighborhood": (
        ("H001", "Safe Housing Program", "Emergency housing assistance", "555-HOUSING-01"),
        ("H002", "Neighborhood Safety Initiative", "Community safety programs", "555-SAFETY-02"),
        ("H003", "Environmental Health Services", "Air quality and pollution assistance", "555-ENV-03"),
    ),
    "healthcare_access": (
        ("C001", "Community Health Center", "Low-cost primary care services", "555-HEALTH-01"),
        ("C002", "Telehealth Support", "Remote healthcare access", "555-TELE-02"),
        ("C003", "Prescription Assistance", "Medication cost reduction programs", "555-RX-03"),
    ),
    "education": (
        ("D001", "Adult Education Center", "GED and literacy programs", "555-EDU-01"),
        ("D002", "Health Literacy Program", "Understanding health information", "555-HEALTH-02"),
        ("D003", "Digital Skills Training", "Computer and internet literacy", "555-DIGITAL-03"),
    ),
    "social_and_community": (
        ("S001", "Community Support Groups", "Peer support and social connection", "555-SUPPORT-01"),
        ("S002", "Cultural Center", "Cultural and language support", "555-CULTURE-02"),
        ("S003", "Mental Health Services", "Counseling and crisis support", "555-MENTAL-03"),
    ),
}

LANGUAGES = ("English", "Spanish", "Mandarin", "Arabic", "French")


def sdoh_seed(member_id: str) -> int:
    """Character-code sum of the id, modulo 10000."""
    return sum(ord(ch) for ch in member_id) % 10000


def derive_social_risk(
    member: Member, outreach: Iterable[Outreach], now: datetime
) -> int:
    rng = SeededRandom(sdoh_seed(member.id))
    age = _age_in_years(member, now)
    risk = min(age * 0.8 + len(member.conditions) * 12, 100)

    cutoff = now - timedelta(days=30)
    recent = [e for e in outreach if e.member_id == member.id and cutoff < e.timestamp <= now]
    if len(recent) > 3:
        risk += 15
    if any(e.status == "Failed" for e in recent):
        risk += 10

    risk += (rng.random() - 0.5) * 20
    return int(clamp(round_half_up(risk)))


def estimate_needs(member: Member) -> dict[str, int]:
    """Six need scores from conditions and abrasion risk plus seeded variance."""
    rng = SeededRandom(sdoh_seed(member.id))
    base = {
        "economic_instability": 65 if member.risk > 70 else 35,
        "food_insecurity": 55 if member.has_condition("Diabetes") else 35,
        "housing_and_neighborhood": 70 if member.has_condition("COPD") else 40,
        "healthcare_access": 50 if member.risk > 60 else 30,
        "education": 45 if member.risk > 50 else 25,
        "social_and_community": 75 if member.has_condition("Depression", "Anxiety") else 30,
    }
    return {
        need: int(clamp(round_half_up(value + (rng.random() - 0.5) * NEED_VARIANCE)))
        for need, value in base.items()
    }


def suggest_resources(member: Member, needs: dict[str, int]) -> tuple[Resource, ...]:
    """One resource for each of the top needs scoring at least 50."""
    rng = SeededRandom(sdoh_seed(member.id))
    top_needs = sorted(
        (item for item in needs.items() if item[1] >= RESOURCE_NEED_MIN),
        key=lambda item: item[1],
        reverse=True,
    )[:MAX_RESOURCES]

    resources = []
    for need, _ in top_needs:
        options = RESOURCE_CATALOG.get(need)
        if not options:
            continue
        res_id, name, description, contact = rng.choice(options)
        resources.append(
            Resource(
                id=res_id,
                name=name,
                type=NEED_LABELS[need],
                description=description,
                contact_info=contact,
            )
        )
    return tuple(resources)


def generate_area_context(member: Member) -> AreaContext:
    rng = SeededRandom(sdoh_seed(member.id))
    zip_code = f"90{int(rng.random() * 1000):03d}"
    adi = int(rng.random() * 10) + 1
    svi = round_half_up(rng.random() * 100) / 100
    broadband = max(20, round_half_up(100 - adi * 8 + (rng.random() - 0.5) * 20))
    return AreaContext(
        zip_code=zip_code,
        adi=adi,
        svi=svi,
        broadband_access=int(clamp(broadband)),
        primary_language=rng.choice(LANGUAGES),
    )


def generate_sdoh_profile(
    member: Member, outreach: Iterable[Outreach], now: datetime
) -> SdohProfile:
    needs = estimate_needs(member)
    return SdohProfile(
        social_risk_score=derive_social_risk(member, outreach, now),
        needs=needs,
        area_context=generate_area_context(member),
        recommended_resources=suggest_resources(member, needs),
    )


def prefer_channel_for(member: Member) -> str:
    """
    Channel to use when referring a member to a community resource.

    Members with depression or anxiety get a less intrusive SMS or Email;
    high abrasion risk members get a Call. Everyone else is spread across the
    four channels by a seeded draw.
    """
    rng = SeededRandom(sdoh_seed(member.id))
    if member.has_condition("Depression", "Anxiety"):
        return "SMS" if rng.random() > 0.5 else "Email"
    if member.risk > 70:
        return "Call"

    roll = rng.random()
    if roll < 0.3:
        return "Call"
    if roll < 0.6:
        return "SMS"
    if roll < 0.9:
        return "Email"
    return "Portal"


def top_need(profile: SdohProfile | None) -> str | None:
    """Highest-scoring need name, first in enumeration order on ties."""
    if profile is None:
        return None
    return max(config.SDOH_NEEDS, key=profile.need)


def _age_in_years(member: Member, now: datetime) -> int:
    if member.dob is None:
        return 0
    today = now.date()
    age = today.year - member.dob.year
    if (today.month, today.day) < (member.dob.month, member.dob.day):
        age -= 1
    return age
