"""Convenience exports for member scoring, cohort and outreach analytics."""

from .analytics import (
    aggregate_weekly_series,
    channel_success_rates,
    group_by_purpose,
    group_by_team,
    touches_histogram,
)
from .cohorts import segment_population
from .data_prep import load_members, load_outreach
from .metrics import compare_windows
from .risk_scoring import score_member
from .selectors import (
    filter_members_by_abrasion,
    filter_members_by_recent_outreach,
    matches_dob,
    members_with_type,
    search_members,
)
from .synthetic import generate_dataset

__all__ = [
    "aggregate_weekly_series",
    "channel_success_rates",
    "compare_windows",
    "filter_members_by_abrasion",
    "filter_members_by_recent_outreach",
    "generate_dataset",
    "group_by_purpose",
    "group_by_team",
    "load_members",
    "load_outreach",
    "matches_dob",
    "members_with_type",
    "score_member",
    "search_members",
    "segment_population",
    "touches_histogram",
]
