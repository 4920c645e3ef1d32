"""
Data models for the Studio Class Scheduling System.
Defines all data structures used throughout the application.
"""

import hashlib
import math
from collections import OrderedDict
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Set, Dict, Tuple, FrozenSet, Iterable

from studio_scheduler.core.config import (
    DAYS_OF_WEEK, DEFAULT_CLASS_DURATION, FORMAT_DURATIONS, SLOT_INTERVAL_MINUTES,
    MAX_TEACHER_HOURS, NEW_TRAINER_MAX_HOURS, NEW_TRAINER_FORMATS,
    DEFAULT_INACTIVE_TEACHERS, DEFAULT_NEW_TRAINERS, TOP_PERFORMER_ATTENDANCE
)
from studio_scheduler.core.exceptions import InputDataError


class Objective(Enum):
    REVENUE = "revenue"
    ATTENDANCE = "attendance"
    BALANCED = "balanced"


class PriorityTier(Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


def normalize_time(value) -> str:
    """Normalize '9:00', '09:00:00' or a time object to 'HH:MM'."""
    if hasattr(value, "strftime"):
        return value.strftime("%H:%M")
    text = str(value).strip()
    parts = text.split(":")
    if len(parts) < 2:
        raise InputDataError(f"Invalid time value: {value!r}")
    try:
        hours, minutes = int(parts[0]), int(parts[1][:2])
    except ValueError:
        raise InputDataError(f"Invalid time value: {value!r}")
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise InputDataError(f"Invalid time value: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total_minutes: int) -> str:
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def class_duration(class_format: str) -> float:
    """Duration in hours for a class format."""
    lower = class_format.lower()
    for keyword, hours in FORMAT_DURATIONS.items():
        if keyword in lower:
            return hours
    return DEFAULT_CLASS_DURATION


def make_instance_id(prefix: str, *parts) -> str:
    """Deterministic id for engine-generated instances."""
    digest = hashlib.sha1("|".join(str(p) for p in parts).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:12]}"


def split_teacher_name(full_name: str) -> Tuple[str, str]:
    parts = full_name.strip().split(" ")
    return parts[0], " ".join(parts[1:])


def _pick(row: Dict, *keys, default=None):
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return default


def _required_text(row: Dict, *keys) -> str:
    value = _pick(row, *keys)
    if value is None or str(value).strip() == "":
        raise InputDataError(f"Missing required field '{keys[0]}'", row)
    return str(value).strip()


def _number(row: Dict, *keys) -> float:
    value = _pick(row, *keys, default=0)
    if value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InputDataError(f"Field '{keys[0]}' is not numeric: {value!r}", row)
    if math.isnan(number) or math.isinf(number):
        raise InputDataError(f"Field '{keys[0]}' is not a finite number", row)
    return number


def _day(row: Dict, *keys) -> str:
    value = _required_text(row, *keys)
    normalized = value.capitalize()
    if normalized not in DAYS_OF_WEEK:
        raise InputDataError(f"Unknown day of week: {value!r}", row)
    return normalized


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    return bool(value)


@dataclass(frozen=True)
class PerformanceRecord:
    """Historical metrics for one class format / slot / teacher combination."""
    class_format: str
    day: str
    time: str
    location: str
    teacher_name: str
    score: float = 0.0
    avg_attendance: float = 0.0
    avg_attendance_no_empty: float = 0.0
    fill_rate_pct: float = 0.0
    revenue_per_class: float = 0.0
    tips_per_class: float = 0.0
    late_cancel_rate: float = 0.0
    total_classes: int = 0

    @property
    def key(self) -> Tuple[str, str, str, str, str]:
        return (self.class_format, self.day, self.time, self.location, self.teacher_name)

    @classmethod
    def from_row(cls, row: Dict) -> "PerformanceRecord":
        if not isinstance(row, dict):
            raise InputDataError("Performance row is not a mapping", row)
        return cls(
            class_format=_required_text(row, "classFormat", "class_format", "cleanedClass"),
            day=_day(row, "day", "dayOfWeek"),
            time=normalize_time(_required_text(row, "time", "classTime")),
            location=_required_text(row, "location"),
            teacher_name=_required_text(row, "teacherName", "teacher_name"),
            score=_number(row, "score", "adjustedScore"),
            avg_attendance=_number(row, "avgAttendance", "avg_attendance", "avgAttendanceWithEmpty"),
            avg_attendance_no_empty=_number(row, "avgAttendanceNoEmpty", "avg_attendance_no_empty",
                                            "avgAttendanceWithoutEmpty"),
            fill_rate_pct=_number(row, "fillRatePct", "fill_rate_pct", "avgFillRate"),
            revenue_per_class=_number(row, "revenuePerClass", "revenue_per_class"),
            tips_per_class=_number(row, "tipsPerClass", "tips_per_class"),
            late_cancel_rate=_number(row, "lateCancelRate", "late_cancel_rate"),
            total_classes=int(_number(row, "totalClasses", "total_classes"))
        )


@dataclass(frozen=True)
class PriorityEntry:
    """A curated, ranked must-consider placement bound to an exact slot and teacher."""
    class_format: str
    day: str
    time: str
    location: str
    teacher_name: str
    priority_rank: int = 0
    must_include: bool = False
    performance: Optional[PerformanceRecord] = None

    @property
    def performance_key(self) -> Tuple[str, str, str, str, str]:
        return (self.class_format, self.day, self.time, self.location, self.teacher_name)

    @classmethod
    def from_row(cls, row: Dict) -> "PriorityEntry":
        if not isinstance(row, dict):
            raise InputDataError("Priority row is not a mapping", row)
        return cls(
            class_format=_required_text(row, "classFormat", "class_format", "className"),
            day=_day(row, "day", "dayOfWeek"),
            time=normalize_time(_required_text(row, "time", "classTime")),
            location=_required_text(row, "location"),
            teacher_name=_required_text(row, "teacherName", "teacher_name", "trainerName"),
            priority_rank=int(_number(row, "priorityRank", "priority_rank", "priority")),
            must_include=_flag(_pick(row, "mustInclude", "must_include", default=False))
        )


@dataclass(frozen=True)
class ScheduledClassInstance:
    """One concrete class placed on the weekly grid."""
    id: str
    day: str
    time: str
    location: str
    class_format: str
    teacher_first_name: str
    teacher_last_name: str
    duration_hours: float = DEFAULT_CLASS_DURATION
    participants: float = 0.0
    revenue: float = 0.0
    is_top_performer: bool = False
    is_private: bool = False
    adjusted_score: float = 0.0
    avg_attendance: float = 0.0
    fill_rate: float = 0.0
    is_priority_class: bool = False

    @property
    def teacher_name(self) -> str:
        return f"{self.teacher_first_name} {self.teacher_last_name}".strip()

    @property
    def slot_key(self) -> Tuple[str, str, str]:
        return (self.location, self.day, self.time)

    @property
    def trainer_slot_key(self) -> Tuple[str, str, str]:
        return (self.teacher_name, self.day, self.time)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + int(round(self.duration_hours * 60))

    def occupied_intervals(self) -> List[int]:
        """Start minute of every 15-minute interval this class occupies."""
        span = max(int(round(self.duration_hours * 60)), SLOT_INTERVAL_MINUTES)
        return list(range(self.start_minutes, self.start_minutes + span, SLOT_INTERVAL_MINUTES))

    def __str__(self):
        return f"{self.class_format} with {self.teacher_name} at {self.location} on {self.day} {self.time}"

    def to_record(self) -> Dict:
        return {
            "id": self.id,
            "day": self.day,
            "time": self.time,
            "location": self.location,
            "classFormat": self.class_format,
            "teacherFirstName": self.teacher_first_name,
            "teacherLastName": self.teacher_last_name,
            "durationHours": self.duration_hours,
            "participants": self.participants,
            "revenue": self.revenue,
            "isTopPerformer": self.is_top_performer,
            "isPrivate": self.is_private,
            "adjustedScore": self.adjusted_score,
            "avgAttendance": self.avg_attendance,
            "fillRate": self.fill_rate,
            "isPriorityClass": self.is_priority_class
        }

    @classmethod
    def from_performance(cls, record: PerformanceRecord, instance_id: str,
                         is_priority_class: bool = False) -> "ScheduledClassInstance":
        """Instance generated from a historical record, carrying its metrics."""
        first_name, last_name = split_teacher_name(record.teacher_name)
        return cls(
            id=instance_id,
            day=record.day,
            time=record.time,
            location=record.location,
            class_format=record.class_format,
            teacher_first_name=first_name,
            teacher_last_name=last_name,
            duration_hours=class_duration(record.class_format),
            participants=record.avg_attendance,
            revenue=record.revenue_per_class,
            is_top_performer=record.avg_attendance >= TOP_PERFORMER_ATTENDANCE,
            adjusted_score=record.score,
            avg_attendance=record.avg_attendance,
            fill_rate=record.fill_rate_pct,
            is_priority_class=is_priority_class
        )

    @classmethod
    def from_record(cls, record: Dict) -> "ScheduledClassInstance":
        first_name = _pick(record, "teacherFirstName", "teacher_first_name")
        last_name = _pick(record, "teacherLastName", "teacher_last_name", default="")
        if first_name is None:
            first_name, last_name = split_teacher_name(_required_text(record, "teacherName", "teacher_name"))
        class_format = _required_text(record, "classFormat", "class_format")
        duration = _pick(record, "durationHours", "duration_hours", "duration")
        return cls(
            id=_required_text(record, "id"),
            day=_day(record, "day"),
            time=normalize_time(_required_text(record, "time")),
            location=_required_text(record, "location"),
            class_format=class_format,
            teacher_first_name=str(first_name).strip(),
            teacher_last_name=str(last_name or "").strip(),
            duration_hours=class_duration(class_format) if duration in (None, "") else _number(record, "durationHours", "duration_hours", "duration"),
            participants=_number(record, "participants"),
            revenue=_number(record, "revenue"),
            is_top_performer=_flag(_pick(record, "isTopPerformer", "is_top_performer", default=False)),
            is_private=_flag(_pick(record, "isPrivate", "is_private", default=False)),
            adjusted_score=_number(record, "adjustedScore", "adjusted_score"),
            avg_attendance=_number(record, "avgAttendance", "avg_attendance"),
            fill_rate=_number(record, "fillRate", "fill_rate"),
            is_priority_class=_flag(_pick(record, "isPriorityClass", "is_priority_class", default=False))
        )


def schedule_to_records(instances: Iterable[ScheduledClassInstance]) -> "OrderedDict[str, Dict]":
    """Persisted layout: ordered mapping of instance id to record."""
    records = OrderedDict()
    for instance in instances:
        records[instance.id] = instance.to_record()
    return records


def schedule_from_records(records) -> Tuple[ScheduledClassInstance, ...]:
    if isinstance(records, dict):
        records = list(records.values())
    return tuple(ScheduledClassInstance.from_record(record) for record in records)


@dataclass
class TeacherProfile:
    first_name: str
    last_name: str = ""
    specialties: List[str] = field(default_factory=list)
    priority_tier: PriorityTier = PriorityTier.NORMAL
    min_hours: float = 0.0
    max_hours: Optional[float] = None
    preferred_days: List[str] = field(default_factory=list)
    is_new: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict) -> "TeacherProfile":
        tier = _pick(data, "priorityTier", "priority_tier", "priority", default="normal")
        max_hours = _pick(data, "maxHours", "max_hours")
        return cls(
            first_name=_required_text(data, "firstName", "first_name"),
            last_name=str(_pick(data, "lastName", "last_name", default="")).strip(),
            specialties=list(_pick(data, "specialties", default=[])),
            priority_tier=PriorityTier(str(tier).lower()),
            min_hours=_number(data, "minHours", "min_hours"),
            max_hours=None if max_hours in (None, "") else float(max_hours),
            preferred_days=list(_pick(data, "preferredDays", "preferred_days", default=[])),
            is_new=_flag(_pick(data, "isNew", "is_new", default=False))
        )


def _name_matches(full_name: str, pattern: str) -> bool:
    """A cohort entry matches a full name exactly or by first name."""
    full = full_name.strip().lower()
    candidate = pattern.strip().lower()
    if not candidate:
        return False
    return full == candidate or full.split(" ")[0] == candidate


@dataclass
class Roster:
    """
    Teacher profiles plus the named cohorts supplied by the roster manager.

    Inactive teachers are excluded from every engine. Restricted (new) teachers
    teach only the restricted format subset and have a lower hour ceiling.
    """
    teachers: List[TeacherProfile] = field(default_factory=list)
    inactive: Set[str] = field(default_factory=lambda: set(DEFAULT_INACTIVE_TEACHERS))
    restricted: Set[str] = field(default_factory=lambda: set(DEFAULT_NEW_TRAINERS))
    restricted_formats: List[str] = field(default_factory=lambda: list(NEW_TRAINER_FORMATS))
    restricted_max_hours: float = NEW_TRAINER_MAX_HOURS
    default_max_hours: float = MAX_TEACHER_HOURS

    def __post_init__(self):
        self._profiles = {profile.full_name: profile for profile in self.teachers}

    def profile_for(self, teacher_name: str) -> Optional[TeacherProfile]:
        return self._profiles.get(teacher_name)

    def is_inactive(self, teacher_name: str) -> bool:
        return any(_name_matches(teacher_name, name) for name in self.inactive)

    def is_restricted(self, teacher_name: str) -> bool:
        profile = self.profile_for(teacher_name)
        if profile and profile.is_new:
            return True
        return any(_name_matches(teacher_name, name) for name in self.restricted)

    def max_hours_for(self, teacher_name: str, ceiling: Optional[float] = None) -> float:
        limit = self.default_max_hours if ceiling is None else ceiling
        if self.is_restricted(teacher_name):
            limit = min(limit, self.restricted_max_hours)
        profile = self.profile_for(teacher_name)
        if profile and profile.max_hours is not None:
            limit = min(limit, profile.max_hours)
        return limit

    def min_hours_for(self, teacher_name: str) -> float:
        profile = self.profile_for(teacher_name)
        return profile.min_hours if profile else 0.0

    def can_teach(self, teacher_name: str, class_format: str) -> bool:
        if self.is_inactive(teacher_name):
            return False
        if self.is_restricted(teacher_name) and class_format not in self.restricted_formats:
            return False
        profile = self.profile_for(teacher_name)
        if profile and profile.specialties:
            return class_format in profile.specialties
        return True

    def prefers_day(self, teacher_name: str, day: str) -> bool:
        profile = self.profile_for(teacher_name)
        return bool(profile and day in profile.preferred_days)

    def priority_tier(self, teacher_name: str) -> PriorityTier:
        profile = self.profile_for(teacher_name)
        return profile.priority_tier if profile else PriorityTier.NORMAL

    def active_teacher_names(self) -> List[str]:
        return [p.full_name for p in self.teachers if not self.is_inactive(p.full_name)]

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "Roster":
        data = data or {}
        roster = cls(
            teachers=[TeacherProfile.from_dict(item) for item in data.get("teachers", [])],
            inactive=set(data.get("inactive", DEFAULT_INACTIVE_TEACHERS)),
            restricted=set(data.get("restricted", DEFAULT_NEW_TRAINERS)),
            restricted_formats=list(data.get("restrictedFormats", NEW_TRAINER_FORMATS)),
            restricted_max_hours=float(data.get("restrictedMaxHours", NEW_TRAINER_MAX_HOURS)),
            default_max_hours=float(data.get("maxHours", MAX_TEACHER_HOURS))
        )
        return roster


def _parse_date(value) -> date:
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), "%Y-%m-%d").date()


@dataclass
class AvailabilityCalendar:
    """
    Teacher leave ranges and blackout dates mapped onto the weekly grid.

    week_start is the Monday of the week being scheduled. Without it only the
    recurring unavailable weekdays apply.
    """
    week_start: Optional[date] = None
    leaves: Dict[str, List[Tuple[date, date]]] = field(default_factory=dict)
    blackout_dates: Dict[str, Set[date]] = field(default_factory=dict)
    unavailable_days: Dict[str, Set[str]] = field(default_factory=dict)

    def date_for(self, day: str) -> Optional[date]:
        if self.week_start is None:
            return None
        return self.week_start + timedelta(days=DAYS_OF_WEEK.index(day))

    def is_available(self, teacher_name: str, day: str) -> bool:
        if day in self.unavailable_days.get(teacher_name, set()):
            return False
        slot_date = self.date_for(day)
        if slot_date is None:
            return True
        if slot_date in self.blackout_dates.get(teacher_name, set()):
            return False
        for start, end in self.leaves.get(teacher_name, []):
            if start <= slot_date <= end:
                return False
        return True

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "AvailabilityCalendar":
        data = data or {}
        week_start = data.get("weekStart")
        leaves = {}
        for teacher, ranges in data.get("leaves", {}).items():
            leaves[teacher] = [(_parse_date(r["start"]), _parse_date(r["end"])) for r in ranges]
        blackouts = {
            teacher: {_parse_date(d) for d in dates}
            for teacher, dates in data.get("blackoutDates", {}).items()
        }
        unavailable_days = {
            teacher: set(days) for teacher, days in data.get("unavailableDays", {}).items()
        }
        return cls(
            week_start=_parse_date(week_start) if week_start else None,
            leaves=leaves,
            blackout_dates=blackouts,
            unavailable_days=unavailable_days
        )


@dataclass(frozen=True)
class LockSet:
    """Instances and teachers that engines must not reassign or overwrite."""
    class_ids: FrozenSet[str] = frozenset()
    teacher_names: FrozenSet[str] = frozenset()

    def is_locked(self, instance: ScheduledClassInstance) -> bool:
        return instance.id in self.class_ids or instance.teacher_name in self.teacher_names

    def with_classes(self, class_ids: Iterable[str]) -> "LockSet":
        return LockSet(self.class_ids | frozenset(class_ids), self.teacher_names)

    def without_classes(self, class_ids: Iterable[str]) -> "LockSet":
        return LockSet(self.class_ids - frozenset(class_ids), self.teacher_names)

    def with_teachers(self, teacher_names: Iterable[str]) -> "LockSet":
        return LockSet(self.class_ids, self.teacher_names | frozenset(teacher_names))

    def without_teachers(self, teacher_names: Iterable[str]) -> "LockSet":
        return LockSet(self.class_ids, self.teacher_names - frozenset(teacher_names))

    def restrict_to(self, instances: Iterable[ScheduledClassInstance]) -> "LockSet":
        """Drop locks on class ids that no longer exist."""
        ids = {instance.id for instance in instances}
        return LockSet(frozenset(i for i in self.class_ids if i in ids), self.teacher_names)

    def to_dict(self) -> Dict:
        return {"classIds": sorted(self.class_ids), "teacherNames": sorted(self.teacher_names)}


@dataclass(frozen=True)
class PolicyBreach:
    teacher: str
    projected_hours: float
    ceiling: float

    def describe(self) -> str:
        return f"{self.teacher}: {self.projected_hours:.1f}h (limit {self.ceiling:.1f}h)"


@dataclass
class ValidationResult:
    is_valid: bool
    overridable: bool = False
    message: str = ""
    warning: Optional[str] = None
    teacher: str = ""
    current_hours: float = 0.0
    projected_hours: float = 0.0
    ceiling: float = 0.0
    overridden: bool = False
    breach: Optional[PolicyBreach] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["breach"] = asdict(self.breach) if self.breach else None
        return data


@dataclass
class ScheduleAuditResult:
    is_valid: bool
    violations: List[str] = field(default_factory=list)
    policy_breaches: List[PolicyBreach] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_violation(self, description: str):
        self.violations.append(description)
        self.is_valid = False

    def get_summary(self) -> str:
        summary = f"Schedule Valid: {self.is_valid}\n"
        summary += f"Violations: {len(self.violations)}\n"
        summary += f"Hour Limit Breaches: {len(self.policy_breaches)}\n"
        return summary

    def to_dict(self) -> Dict:
        return {
            "is_valid": self.is_valid,
            "violations": list(self.violations),
            "policy_breaches": [asdict(b) for b in self.policy_breaches],
            "warnings": list(self.warnings)
        }


@dataclass
class OperationOutcome:
    """Structured summary returned by every operation."""
    operation: str
    success: bool
    message: str = ""
    classes_added: int = 0
    classes_removed: int = 0
    total_classes: int = 0
    total_teachers: int = 0
    total_hours: float = 0.0
    teacher_hours: Dict[str, float] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    conflicts_skipped: int = 0
    skipped_rows: int = 0
    policy_breaches: List[PolicyBreach] = field(default_factory=list)
    requires_override: bool = False
    already_optimal: bool = False
    objective: Optional[str] = None
    iteration: Optional[int] = None
    dropped_formats: List[str] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)
    trainer_assignments: Dict[str, Dict] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)
    validation: Optional[ValidationResult] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["validation"] = self.validation.to_dict() if self.validation else None
        data["policy_breaches"] = [asdict(b) for b in self.policy_breaches]
        return data
