# src/careleo_analytics/report.py
"""
Generate a synthetic population and print the engine outputs:
cohort counts, weekly touches, channel success, touches-per-member, top
scores, resource referrals and the 30-day trend comparison.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict

import pandas as pd

from . import config
from .analytics import (
    aggregate_weekly_series,
    channel_success_rates,
    group_by_team,
    summarize_outreach,
    touches_histogram,
)
from .cohorts import Cohort, segment_population
from .metrics import compare_trailing_windows
from .models import Member
from .risk_scoring import scores_frame
from .sdoh import NEED_LABELS, prefer_channel_for, top_need
from .synthetic import Dataset, generate_dataset


def build_report(dataset: Dataset, weeks: int = config.DEFAULT_WEEK_COUNT) -> dict[str, pd.DataFrame]:
    """Engine outputs as printable frames, keyed by section title."""
    members, outreach, now = dataset.members, dataset.outreach, dataset.as_of
    cohorts = segment_population(members, outreach, now=now)

    return {
        "Cohorts": _cohort_frame(cohorts),
        "Weekly touches": _frame(aggregate_weekly_series(outreach, weeks, now)),
        "Touches by team": _frame(group_by_team(outreach)),
        "Channel success": _frame(channel_success_rates(outreach)),
        "Touches per member": _frame(touches_histogram(outreach, members)),
        "Top nudge propensity": scores_frame(members, outreach, now).head(10),
        "Resource referrals": _referral_frame(members).head(10),
    }


def _frame(rows: list) -> pd.DataFrame:
    return pd.DataFrame([asdict(row) for row in rows])


def _referral_frame(members: list[Member]) -> pd.DataFrame:
    rows = [
        {
            "member_id": member.id,
            "top_need": NEED_LABELS[top_need(member.sdoh)],
            "resource": member.sdoh.recommended_resources[0].name,
            "contact": member.sdoh.recommended_resources[0].contact_info,
            "channel": prefer_channel_for(member),
        }
        for member in members
        if member.sdoh is not None and member.sdoh.recommended_resources
    ]
    return pd.DataFrame(rows, columns=["member_id", "top_need", "resource", "contact", "channel"])


def _cohort_frame(cohorts: list[Cohort]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": cohort.id,
                "category": cohort.category,
                "name": cohort.name,
                "count": cohort.count,
                "natural": cohort.natural_count,
                "recommended_action": cohort.recommended_action,
            }
            for cohort in cohorts
        ]
    )


def _print_summary(dataset: Dataset, sections: dict[str, pd.DataFrame]) -> None:
    summary = summarize_outreach(dataset.outreach)
    trend = compare_trailing_windows(dataset.outreach, now=dataset.as_of)

    print(f"As of: {dataset.as_of.date()}")
    print(f"Members: {len(dataset.members)}; outreach events: {summary.total}")
    print(f"Unable-to-contact rate: {summary.utc_rate}%")
    print(f"Touches vs prior {config.DEFAULT_WINDOW_DAYS}d: {trend.delta_pct:+d}% ({trend.direction})")
    for title, frame in sections.items():
        print()
        print(f"== {title}")
        print(frame.to_string(index=False) if not frame.empty else "(none)")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Print cohort and outreach analytics.")
    parser.add_argument("--members", type=int, default=config.DEFAULT_MEMBER_COUNT)
    parser.add_argument("--outreach", type=int, default=config.DEFAULT_OUTREACH_COUNT)
    parser.add_argument("--seed", type=int, default=config.DATA_SEED)
    parser.add_argument("--weeks", type=int, default=config.DEFAULT_WEEK_COUNT)
    parser.add_argument(
        "--as_of",
        type=str,
        default=None,
        help="Optional reference date (YYYY-MM-DD). Defaults to now.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    dataset = generate_dataset(
        member_count=args.members,
        outreach_count=args.outreach,
        seed=args.seed,
        now=args.as_of,
    )
    _print_summary(dataset, build_report(dataset, args.weeks))


if __name__ == "__main__":
    main()
