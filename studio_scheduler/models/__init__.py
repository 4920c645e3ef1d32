"""
Data models for the scheduling system.
"""

from .models import (
    Objective,
    PriorityTier,
    PerformanceRecord,
    PriorityEntry,
    ScheduledClassInstance,
    TeacherProfile,
    Roster,
    AvailabilityCalendar,
    LockSet,
    PolicyBreach,
    ValidationResult,
    ScheduleAuditResult,
    OperationOutcome,
    class_duration,
    normalize_time,
    time_to_minutes,
    minutes_to_time,
    split_teacher_name,
    make_instance_id,
    schedule_to_records,
    schedule_from_records
)

__all__ = [
    "Objective",
    "PriorityTier",
    "PerformanceRecord",
    "PriorityEntry",
    "ScheduledClassInstance",
    "TeacherProfile",
    "Roster",
    "AvailabilityCalendar",
    "LockSet",
    "PolicyBreach",
    "ValidationResult",
    "ScheduleAuditResult",
    "OperationOutcome",
    "class_duration",
    "normalize_time",
    "time_to_minutes",
    "minutes_to_time",
    "split_teacher_name",
    "make_instance_id",
    "schedule_to_records",
    "schedule_from_records"
]
