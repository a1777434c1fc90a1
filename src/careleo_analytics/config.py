from typing import Optional

# === Enumerations ===
CHANNELS = ("Call", "SMS", "Email", "Portal")
STATUSES = ("Planned", "In-Progress", "Completed", "Failed")
MEMBER_TYPES = ("Member", "Prospect")
BEHAVIORAL_TYPES = ("fatigue", "receptive", "nudge")
COHORT_CATEGORIES = ("hedis", "risk", "sdoh")

PURPOSES = (
    "HRA Completion",
    "HRA Reminder",
    "AWV",
    "HEDIS - A1c",
    "HEDIS - Mammogram",
    "Medication Adherence",
    "RAF/Chart Retrieval",
    "Care Transition Follow-up",
    "SDOH—Economic Instability",
    "SDOH—Food Insecurity",
    "SDOH—Housing and Neighborhood",
    "SDOH—Healthcare Access",
    "SDOH—Education",
    "SDOH—Social and Community",
)
HRA_PURPOSES = frozenset({"HRA Completion", "HRA Reminder"})

TEAMS = (
    "Care Coordination",
    "Eligibility & Benefits",
    "Risk Adjustment",
    "Quality",
    "Member Services",
    "Case Management",
    "Pharmacy",
    "Community Partnerships",
)
UNKNOWN_TEAM = "Unknown"

SDOH_NEEDS = (
    "economic_instability",
    "food_insecurity",
    "housing_and_neighborhood",
    "healthcare_access",
    "education",
    "social_and_community",
)

CHRONIC_CONDITIONS = frozenset({"Diabetes", "Hypertension", "Heart Disease"})

# === Scoring ===
NUDGE_BASE = 50
NUDGE_CHRONIC_BONUS = 15
NUDGE_RECENT_COMPLETION_BONUS = 10
NUDGE_OVER_TOUCH_PENALTY = 10
NUDGE_JITTER_SPAN = 10  # ±5

SENTIMENT_BASE = 30
SENTIMENT_FATIGUE_BONUS = 25
SENTIMENT_FAILURE_RUN_BONUS = 15
SENTIMENT_RECENT_COMPLETION_RELIEF = 10
SENTIMENT_JITTER_SPAN = 8  # ±4
SENTIMENT_SEED_OFFSET = 1000
SENTIMENT_LOW_COMPLETION_RATE = 30
SENTIMENT_HISTORY_DEPTH = 5
SENTIMENT_MIN_FAILURE_RUN = 2

OVER_TOUCH_COUNT = 3
COMPLETION_RECENCY_MIN_DAYS = 14
COMPLETION_RECENCY_MAX_DAYS = 90

# === Cohort Thresholds ===
NUDGE_PROPENSITY_HIGH = 65
NUDGE_PROPENSITY_MEDIUM = 60
NEGATIVE_SENTIMENT_HIGH = 70
NEGATIVE_SENTIMENT_MEDIUM = 50
FATIGUE_RISK_TOUCHES = 4
FATIGUE_RISK_COMPLETION_RATE = 25
HIGH_CLINICAL_RISK = 80
WELL_CHILD_MAX_AGE_MONTHS = 30
SDOH_NEED_THRESHOLD = 55
COHORT_MIN_SIZE = 3  # floor enforced by the backfill policy

# === Time Windows (days) ===
RECENT_TOUCHES_DAYS = 7
COMPLETION_RATE_WINDOW_DAYS = 30
A1C_LOOKBACK_DAYS = 180
MAMMOGRAM_LOOKBACK_DAYS = 180
CBP_LOOKBACK_DAYS = 180
COLORECTAL_LOOKBACK_DAYS = 365
CERVICAL_LOOKBACK_DAYS = 365
AWV_LOOKBACK_DAYS = 365
WELL_CHILD_LOOKBACK_DAYS = 365
UNREACHED_WINDOW_DAYS = 30

# === Analytics ===
DEFAULT_WEEK_COUNT = 12
DEFAULT_WINDOW_DAYS = 30
MOM_PERIODS = 6
RESPONSE_RATE_DAYS = 14
SPARKLINE_POINTS = 7
TOUCH_HISTOGRAM_BINS = ("0", "1", "2", "3", "4-5", "6-7", "8+")
ABRASION_BUCKETS = {"low": (0, 39), "med": (40, 69), "high": (70, 100)}

# === Sequence Generator ===
LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

# === Synthetic Data ===
DATA_SEED = 12345
DEFAULT_MEMBER_COUNT = 137
DEFAULT_OUTREACH_COUNT = 600
OUTREACH_PER_MEMBER = 3
OUTREACH_HISTORY_DAYS = 120

# === Scheduling ===
AS_OF_OVERRIDE: Optional[str] = None  # YYYY-MM-DD or None
