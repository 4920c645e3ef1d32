"""
Configuration constants for the Studio Class Scheduling System.
All configurable settings are defined here.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Invalid numeric value for {name}: {value!r}")


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


# Week Grid
DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
EARLY_WEEK_DAYS = ["Monday", "Tuesday", "Wednesday"]
WEEKEND_DAYS = ["Saturday", "Sunday"]

# Studio Locations
LOCATIONS = [
    "Kwality House, Kemps Corner",
    "Supreme HQ, Bandra",
    "Kenkere House"
]
CYCLE_STUDIO_LOCATION = "Supreme HQ, Bandra"

# Parallel studio rooms per location (classes that may overlap in time)
STUDIO_CAPACITIES = {
    "Kwality House, Kemps Corner": 2,
    "Supreme HQ, Bandra": 3,
    "Kenkere House": 2
}
DEFAULT_STUDIO_CAPACITY = 1

# Time Grid (15-minute intervals, 07:00 to 20:45)
SLOT_INTERVAL_MINUTES = 15
ALL_TIME_SLOTS = [
    f"{minutes // 60:02d}:{minutes % 60:02d}"
    for minutes in range(7 * 60, 21 * 60, SLOT_INTERVAL_MINUTES)
]

# Standard scheduling windows (hours, inclusive)
MORNING_HOURS = (7, 11)
EVENING_HOURS = (16, 20)

# Restricted midday windows (hours, end exclusive)
WEEKDAY_RESTRICTED_HOURS = (12, 17)
WEEKEND_RESTRICTED_HOURS = (12, 16)

# Shift boundaries used for trainer consolidation
MORNING_SHIFT_END_HOUR = 12
EVENING_SHIFT_START_HOUR = 16

# Teacher Hour Policy
MAX_TEACHER_HOURS = _env_float("MAX_TEACHER_HOURS", 15.0)   # Hard ceiling (blocking, override-gated)
SOFT_WARNING_HOURS = _env_float("SOFT_WARNING_HOURS", 11.0)  # Warning threshold
NEW_TRAINER_MAX_HOURS = _env_float("NEW_TRAINER_MAX_HOURS", 10.0)
TARGET_TEACHER_HOURS = _env_float("TARGET_TEACHER_HOURS", MAX_TEACHER_HOURS)
HOURS_EPSILON = 1e-6

# Daily Trainer Limits
MAX_DAILY_CLASSES = 4
MAX_DAILY_HOURS = 4.0
MAX_CONSECUTIVE_CLASSES = 2
CONSECUTIVE_GAP_MINUTES = 15

# Class Durations (hours)
DEFAULT_CLASS_DURATION = 1.0
FORMAT_DURATIONS = {
    "express": 0.75,
    "recovery": 0.5,
    "foundations": 0.75
}

# Performance Thresholds
MIN_SLOT_ATTENDANCE = 3.0          # Minimum average attendance to generate a class
MUST_INCLUDE_MIN_ATTENDANCE = 5.0  # Must-include candidates need a proven slot
GAP_FILL_MIN_ATTENDANCE = 4.0
TOP_PERFORMER_ATTENDANCE = 6.0
MUST_INCLUDE_CANDIDATES = 3        # Try the best N historical slots per must-include format

# Gap Filling
GAP_FILL_BATCH_SIZE = _env_int("GAP_FILL_BATCH_SIZE", 5)
GAP_FILL_HOURS_BUFFER = 0.5

# Sunday class limits per location
SUNDAY_CLASS_LIMITS = {
    "Kwality House, Kemps Corner": 5,
    "Supreme HQ, Bandra": 7,
    "Kenkere House": 6
}
DEFAULT_SUNDAY_CLASS_LIMIT = 6

# Format rules
CYCLE_FORMAT_KEYWORDS = ["powercycle", "power cycle"]
CYCLE_STUDIO_EXCLUDED_KEYWORDS = ["hiit", "amped up"]
HOSTED_KEYWORD = "hosted"
RECOVERY_KEYWORD = "recovery"

# Default roster cohorts (overridable by the roster collaborator)
DEFAULT_INACTIVE_TEACHERS = ["Nishanth", "Saniya"]
DEFAULT_NEW_TRAINERS = ["Kabir", "Simonelle"]
NEW_TRAINER_FORMATS = [
    "Studio Barre 57",
    "Studio Barre 57 (Express)",
    "Studio powerCycle",
    "Studio powerCycle (Express)",
    "Studio Cardio Barre"
]

# Priority class formats for strategic scheduling
PRIORITY_CLASS_FORMATS = [
    "Studio Barre 57",
    "Studio powerCycle",
    "Studio Mat 57",
    "Studio FIT",
    "Studio Cardio Barre",
    "Studio Amped Up!",
    "Studio Cardio Barre Plus",
    "Studio Back Body Blaze"
]

# Optimization Objectives (selected by iteration % 3)
OBJECTIVE_ROTATION = ["revenue", "attendance", "balanced"]

OBJECTIVE_WEIGHTS = {
    "revenue": {
        "revenue_per_class": 0.70,
        "avg_attendance": 0.20,
        "fill_rate_pct": 0.10,
        "score": 0.00,
        "late_cancel_rate": -0.05
    },
    "attendance": {
        "revenue_per_class": 0.10,
        "avg_attendance": 0.60,
        "fill_rate_pct": 0.30,
        "score": 0.00,
        "late_cancel_rate": -0.05
    },
    "balanced": {
        "revenue_per_class": 0.35,
        "avg_attendance": 0.35,
        "fill_rate_pct": 0.15,
        "score": 0.15,
        "late_cancel_rate": -0.05
    }
}

# Composite scoring bonuses and penalties (added to a 0..1 objective score)
SCORING_WEIGHTS = {
    "priority_format": 0.50,     # Priority/must-include formats first
    "top_performer": 0.10,       # Historical average above TOP_PERFORMER_ATTENDANCE
    "under_target_hours": 0.30,  # Scaled by remaining hours toward target
    "below_min_hours": 0.20,     # Teacher has not reached their minimum yet
    "class_mix_repeat": 0.15,    # Per existing instance of the format that day/location
    "shift_consolidation": 0.10, # Trainer already works this location/day/shift
    "preferred_day": 0.05,
    "priority_teacher": 0.05     # Added for high-tier teachers, subtracted for low-tier
}

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")

# Async engine runs
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
TASK_TIME_LIMIT = _env_int("TASK_TIME_LIMIT", 300)
