# src/careleo_analytics/cohorts.py
"""
Rule-based cohort segmentation.

Each CohortDefinition is evaluated independently over the whole population.
Natural membership is then passed through an explicit minimum-size backfill
policy so every cohort card has something to show in the demo; backfilled
rows are tagged ``fallback=True`` and never mixed up with rule matches.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

from . import config
from .data_prep import resolve_now
from .feature_engineering import MemberHistory, build_histories, build_member_history
from .models import Member, MemberSignals, Outreach, round_half_up
from .risk_scoring import signals_from_history

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberContext:
    """Everything a cohort rule may look at for one member."""

    member: Member
    history: MemberHistory
    signals: MemberSignals


Predicate = Callable[[MemberContext], bool]
Describer = Callable[[MemberContext], dict[str, Any]]


@dataclass(frozen=True)
class CohortDefinition:
    id: str
    name: str
    category: str
    description: str
    predicate: Predicate
    recommended_action: str
    sparkline_scale: float = 0.1
    sparkline_variance: float = 0.2
    describe: Describer | None = None

    def __post_init__(self) -> None:
        if self.category not in config.COHORT_CATEGORIES:
            raise ValueError(
                f"Cohort {self.id!r} has unknown category {self.category!r}. "
                f"Expected one of {list(config.COHORT_CATEGORIES)}."
            )

    def evaluate(
        self, member: Member, outreach: Iterable[Outreach], now: datetime | str | None = None
    ) -> bool:
        """Membership of one member; depends only on the member and the events."""
        history = build_member_history(member.id, outreach, resolve_now(now))
        return self.predicate(build_context(member, history))

    def metadata_for(self, context: MemberContext) -> dict[str, Any]:
        return dict(self.describe(context)) if self.describe else {}


@dataclass(frozen=True)
class CohortMember:
    member_id: str
    member: Member
    signals: MemberSignals
    metadata: dict[str, Any] = field(default_factory=dict)
    fallback: bool = False


@dataclass(frozen=True)
class Cohort:
    id: str
    name: str
    category: str
    description: str
    members: tuple[CohortMember, ...]
    count: int
    recommended_action: str
    sparkline_data: tuple[int, ...] = ()

    @property
    def size(self) -> int:
        return self.count

    @property
    def natural_count(self) -> int:
        return sum(1 for row in self.members if not row.fallback)

    @property
    def member_ids(self) -> list[str]:
        return [row.member_id for row in self.members]


def build_context(member: Member, history: MemberHistory) -> MemberContext:
    return MemberContext(member=member, history=history, signals=signals_from_history(member, history))


# ---------------------------------------------------------------------------
# Rules


def _sdoh_need(context: MemberContext, need: str) -> float:
    sdoh = context.member.sdoh
    return sdoh.need(need) if sdoh is not None else 0


def _not_contacted_recently(context: MemberContext) -> bool:
    return context.history.touches(config.RECENT_TOUCHES_DAYS) == 0


def _a1c_nudge(context: MemberContext) -> bool:
    had_a1c_outreach = context.history.has_purpose_within("HEDIS - A1c", config.A1C_LOOKBACK_DAYS)
    eligible = context.member.has_condition("Diabetes") or (
        had_a1c_outreach and _not_contacted_recently(context)
    )
    return context.signals.nudge_propensity >= config.NUDGE_PROPENSITY_HIGH and eligible


def _describe_a1c(context: MemberContext) -> dict[str, Any]:
    return {
        "has_diabetes": context.member.has_condition("Diabetes"),
        "last_a1c_outreach": context.history.has_purpose_within(
            "HEDIS - A1c", config.A1C_LOOKBACK_DAYS
        ),
        "days_since_last_contact": "7+" if _not_contacted_recently(context) else "0-7",
    }


def _mammogram_nudge(context: MemberContext) -> bool:
    return context.signals.nudge_propensity >= config.NUDGE_PROPENSITY_HIGH and not (
        context.history.has_purpose_within("HEDIS - Mammogram", config.MAMMOGRAM_LOOKBACK_DAYS)
    )


def _awv_nudge(context: MemberContext) -> bool:
    return context.signals.nudge_propensity >= config.NUDGE_PROPENSITY_MEDIUM and not (
        context.history.has_purpose_within("AWV", config.AWV_LOOKBACK_DAYS)
    )


def _blood_pressure_gap(context: MemberContext) -> bool:
    return context.member.has_condition("Hypertension") and not (
        context.history.has_purpose_within("Medication Adherence", config.CBP_LOOKBACK_DAYS)
    )


def _colorectal_gap(context: MemberContext) -> bool:
    return context.member.has_condition("Colorectal Cancer Risk") and not (
        context.history.has_purpose_within("AWV", config.COLORECTAL_LOOKBACK_DAYS)
    )


def _cervical_gap(context: MemberContext) -> bool:
    return context.member.has_condition("Cervical Cancer Risk") and not (
        context.history.has_purpose_within("AWV", config.CERVICAL_LOOKBACK_DAYS)
    )


def _age_in_months(context: MemberContext) -> int | None:
    dob = context.member.dob
    if dob is None:
        return None
    today = context.history.as_of.date()
    months = (today.year - dob.year) * 12 + today.month - dob.month
    if today.day < dob.day:
        months -= 1
    return months


def _well_child_gap(context: MemberContext) -> bool:
    age = _age_in_months(context)
    return (
        age is not None
        and 0 <= age <= config.WELL_CHILD_MAX_AGE_MONTHS
        and not context.history.has_purpose_within("AWV", config.WELL_CHILD_LOOKBACK_DAYS)
    )


def _negative_sentiment(context: MemberContext) -> bool:
    return context.signals.neg_sentiment_risk >= config.NEGATIVE_SENTIMENT_HIGH


def _describe_sentiment(context: MemberContext) -> dict[str, Any]:
    return {
        "risk_level": "High",
        "recent_touches": context.history.touches(config.RECENT_TOUCHES_DAYS),
        "completion_rate": context.history.completion_rate(config.COMPLETION_RATE_WINDOW_DAYS),
    }


def _fatigue(context: MemberContext) -> bool:
    touches = context.history.touches(config.RECENT_TOUCHES_DAYS)
    rate = context.history.completion_rate(config.COMPLETION_RATE_WINDOW_DAYS)
    return (
        touches >= config.FATIGUE_RISK_TOUCHES and rate < config.FATIGUE_RISK_COMPLETION_RATE
    )


def _describe_fatigue(context: MemberContext) -> dict[str, Any]:
    return {
        "recent_touches": context.history.touches(config.RECENT_TOUCHES_DAYS),
        "completion_rate": round_half_up(
            context.history.completion_rate(config.COMPLETION_RATE_WINDOW_DAYS)
        ),
        "channels": context.history.recent_channels(config.RECENT_TOUCHES_DAYS),
    }


def _unable_to_contact(context: MemberContext) -> bool:
    history, days = context.history, config.UNREACHED_WINDOW_DAYS
    return (
        history.touches(days) > 0
        and not history.has_status_within("Completed", days)
        and history.has_status_within("Failed", days)
    )


def _describe_unable_to_contact(context: MemberContext) -> dict[str, Any]:
    days = config.UNREACHED_WINDOW_DAYS
    return {
        "attempts": context.history.touches(days),
        "failed": context.history.count_status_within("Failed", days),
        "total_outreach": len(context.history),
    }


def _high_clinical_risk(context: MemberContext) -> bool:
    return context.member.risk >= config.HIGH_CLINICAL_RISK


def _need_rule(need: str) -> Predicate:
    def rule(context: MemberContext) -> bool:
        return _sdoh_need(context, need) >= config.SDOH_NEED_THRESHOLD

    rule.__name__ = f"_{need}_need"
    return rule


def _need_describer(need: str) -> Describer:
    def describe(context: MemberContext) -> dict[str, Any]:
        return {"need": need, "score": _sdoh_need(context, need)}

    return describe


def _sdoh_cohort(cohort_id: str, name: str, need: str, description: str, action: str) -> CohortDefinition:
    return CohortDefinition(
        id=cohort_id,
        name=name,
        category="sdoh",
        description=description,
        predicate=_need_rule(need),
        recommended_action=action,
        sparkline_scale=0.1,
        sparkline_variance=0.3,
        describe=_need_describer(need),
    )


DEFAULT_CATALOG: tuple[CohortDefinition, ...] = (
    # HEDIS gaps
    CohortDefinition(
        id="c_hedis_hbd",
        name="Receptive: A1c Nudge",
        category="hedis",
        description="Members with high nudge propensity for A1c testing",
        predicate=_a1c_nudge,
        recommended_action="Prefer SMS for diabetes management",
        sparkline_scale=0.1,
        sparkline_variance=0.3,
        describe=_describe_a1c,
    ),
    CohortDefinition(
        id="c_hedis_bcs",
        name="Receptive: Mammogram Nudge",
        category="hedis",
        description="Members due for mammogram screening",
        predicate=_mammogram_nudge,
        recommended_action="Use Email for screening reminders",
        sparkline_scale=0.08,
        sparkline_variance=0.4,
        describe=lambda context: {"last_mammogram": "6+ months ago"},
    ),
    CohortDefinition(
        id="c_hedis_awv",
        name="Receptive: AWV",
        category="hedis",
        description="Members due for Annual Wellness Visit",
        predicate=_awv_nudge,
        recommended_action="Call for comprehensive care planning",
        sparkline_scale=0.12,
        sparkline_variance=0.25,
        describe=lambda context: {"last_awv": "12+ months ago"},
    ),
    CohortDefinition(
        id="c_hedis_cbp",
        name="CBP Gap",
        category="hedis",
        description="Controlling High Blood Pressure",
        predicate=_blood_pressure_gap,
        recommended_action="Schedule blood pressure check and adherence review",
    ),
    CohortDefinition(
        id="c_hedis_col",
        name="COL Gap",
        category="hedis",
        description="Colorectal Cancer Screening",
        predicate=_colorectal_gap,
        recommended_action="Mail screening kit with Portal follow-up",
    ),
    CohortDefinition(
        id="c_hedis_ccs",
        name="CCS Gap",
        category="hedis",
        description="Cervical Cancer Screening",
        predicate=_cervical_gap,
        recommended_action="Book screening during next wellness visit",
    ),
    CohortDefinition(
        id="c_hedis_w30",
        name="W30 Gap",
        category="hedis",
        description="Well-Child Visits (0-30 months)",
        predicate=_well_child_gap,
        recommended_action="Call the caregiver to schedule a well-child visit",
        describe=lambda context: {"age_months": _age_in_months(context)},
    ),
    # Risk
    CohortDefinition(
        id="c_risk_sentiment",
        name="Negative Sentiment Risk (High)",
        category="risk",
        description="Members at high risk of negative sentiment",
        predicate=_negative_sentiment,
        recommended_action="Pause outreach 7 days, review approach",
        sparkline_scale=0.15,
        sparkline_variance=0.5,
        describe=_describe_sentiment,
    ),
    CohortDefinition(
        id="c_risk_fatigue",
        name="Fatigue Risk (Multi-channel)",
        category="risk",
        description="Members showing outreach fatigue across channels",
        predicate=_fatigue,
        recommended_action="Reduce frequency, focus on preferred channel",
        sparkline_scale=0.2,
        sparkline_variance=0.6,
        describe=_describe_fatigue,
    ),
    CohortDefinition(
        id="c_risk_unreached",
        name="Unable to Contact (UTC)",
        category="risk",
        description="Members unreachable in last 30 days",
        predicate=_unable_to_contact,
        recommended_action="Verify contact details, try alternate channel",
        sparkline_scale=0.05,
        sparkline_variance=0.8,
        describe=_describe_unable_to_contact,
    ),
    CohortDefinition(
        id="c_risk_high",
        name="High Clinical Risk",
        category="risk",
        description="Members with high clinical risk scores",
        predicate=_high_clinical_risk,
        recommended_action="Refer to case management",
        describe=lambda context: {"risk": context.member.risk},
    ),
    # SDOH needs
    _sdoh_cohort(
        "c_sdoh_transport",
        "Transportation Need",
        "housing_and_neighborhood",
        "Housing and Neighborhood - Transportation assistance needed",
        "Offer ride benefit and neighborhood resources",
    ),
    _sdoh_cohort(
        "c_sdoh_food",
        "Food Insecurity",
        "food_insecurity",
        "Food security assistance needed",
        "Connect with food bank or SNAP enrollment",
    ),
    _sdoh_cohort(
        "c_sdoh_economic",
        "Economic Instability",
        "economic_instability",
        "Financial instability support needed",
        "Refer to financial assistance programs",
    ),
    _sdoh_cohort(
        "c_sdoh_healthcare",
        "Healthcare Access",
        "healthcare_access",
        "Healthcare access barriers identified",
        "Help locate in-network providers",
    ),
    _sdoh_cohort(
        "c_sdoh_education",
        "Education Need",
        "education",
        "Health education and literacy support needed",
        "Send plain-language education materials",
    ),
    _sdoh_cohort(
        "c_sdoh_social",
        "Social and Community Need",
        "social_and_community",
        "Social and community context support needed",
        "Connect with community support groups",
    ),
)


# ---------------------------------------------------------------------------
# Segmentation


def segment_population(
    members: Sequence[Member],
    outreach: Iterable[Outreach],
    catalog: Sequence[CohortDefinition] = DEFAULT_CATALOG,
    now: datetime | str | None = None,
    min_size: int = config.COHORT_MIN_SIZE,
) -> list[Cohort]:
    """
    Evaluate every cohort in ``catalog`` over the full population.

    Members are visited in stable member-id order. After rule evaluation the
    minimum-size backfill policy is applied; pass ``min_size=0`` to disable it.
    """
    as_of = resolve_now(now)
    population = sorted(members, key=lambda member: member.id)
    histories = build_histories(population, outreach, as_of)
    contexts = [build_context(member, histories[member.id]) for member in population]

    cohorts = []
    for definition in catalog:
        natural = [
            CohortMember(
                member_id=context.member.id,
                member=context.member,
                signals=context.signals,
                metadata=definition.metadata_for(context),
            )
            for context in contexts
            if definition.predicate(context)
        ]
        rows = backfill_minimum_membership(natural, contexts, min_size)
        if len(rows) > len(natural):
            logger.debug(
                "Cohort %s backfilled from %d to %d members", definition.id, len(natural), len(rows)
            )
        cohorts.append(
            Cohort(
                id=definition.id,
                name=definition.name,
                category=definition.category,
                description=definition.description,
                members=tuple(rows),
                count=len(rows),
                recommended_action=definition.recommended_action,
                sparkline_data=generate_sparkline(
                    len(rows) * definition.sparkline_scale, definition.sparkline_variance
                ),
            )
        )
    return cohorts


def backfill_minimum_membership(
    natural: Sequence[CohortMember],
    contexts: Sequence[MemberContext],
    min_size: int = config.COHORT_MIN_SIZE,
) -> list[CohortMember]:
    """
    Demo-realism policy: top a cohort up to ``min_size`` members.

    Candidates are taken from ``contexts`` ordered by member id, skipping
    members already present. Added rows carry ``fallback=True`` and
    ``metadata["fallback"] = True``.
    """
    rows = list(natural)
    if len(rows) >= min_size:
        return rows

    included = {row.member_id for row in rows}
    for context in sorted(contexts, key=lambda ctx: ctx.member.id):
        if len(rows) >= min_size:
            break
        if context.member.id in included:
            continue
        rows.append(
            CohortMember(
                member_id=context.member.id,
                member=context.member,
                signals=context.signals,
                metadata={"fallback": True},
                fallback=True,
            )
        )
        included.add(context.member.id)
    return rows


def generate_sparkline(base_value: float, variance: float = 0.2) -> tuple[int, ...]:
    """Cosmetic 7-point series; identical inputs always give identical output."""
    return tuple(
        max(0, round_half_up(base_value + math.sin(i * 0.5) * variance * base_value))
        for i in range(config.SPARKLINE_POINTS)
    )


# ---------------------------------------------------------------------------
# Membership views


def membership_index(cohorts: Iterable[Cohort], include_fallback: bool = True) -> dict[str, list[str]]:
    """member id -> ids of the cohorts it belongs to, in catalog order."""
    index: dict[str, list[str]] = defaultdict(list)
    for cohort in cohorts:
        for row in cohort.members:
            if row.fallback and not include_fallback:
                continue
            index[row.member_id].append(cohort.id)
    return dict(index)


def members_in_cohort(cohorts: Iterable[Cohort], cohort_id: str) -> list[Member]:
    for cohort in cohorts:
        if cohort.id == cohort_id:
            return [row.member for row in cohort.members]
    raise KeyError(f"Unknown cohort id: {cohort_id}")


def attach_cohort_hints(members: Sequence[Member], cohorts: Iterable[Cohort]) -> list[Member]:
    """
    Copies of ``members`` whose ``cohorts`` field mirrors recomputed membership.

    The segmentation result is the source of truth; any previously cached
    ``Member.cohorts`` value is overwritten rather than merged.
    """
    index = membership_index(cohorts)
    return [replace(member, cohorts=tuple(index.get(member.id, ()))) for member in members]


def group_cohorts_by_category(cohorts: Iterable[Cohort]) -> dict[str, list[Cohort]]:
    grouped: dict[str, list[Cohort]] = {}
    for cohort in cohorts:
        grouped.setdefault(cohort.category, []).append(cohort)
    return grouped
