"""
Teacher hour ledger and validation gate for the Studio Class Scheduling System.
Checks candidate additions and whole schedules against hour policy and slot exclusivity.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from studio_scheduler.models import (
    ScheduledClassInstance, Roster, PolicyBreach, ValidationResult, ScheduleAuditResult
)
from studio_scheduler.core.config import MAX_TEACHER_HOURS, SOFT_WARNING_HOURS, HOURS_EPSILON
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.constraints import SlotTracker, LOCATION_SLOT_TAKEN

logger = get_logger(__name__)


def compute_ledger(instances: Iterable[ScheduledClassInstance]) -> Dict[str, float]:
    """
    Derive per-teacher weekly hours from the current instance set.

    Pure and O(n); the ledger is never kept as independent state.
    """
    ledger: Dict[str, float] = defaultdict(float)
    for instance in instances:
        ledger[instance.teacher_name] += instance.duration_hours
    return dict(ledger)


def rounded_ledger(instances: Iterable[ScheduledClassInstance]) -> Dict[str, float]:
    """Ledger rounded to one decimal place for display."""
    return {teacher: round(hours, 1) for teacher, hours in compute_ledger(instances).items()}


class TeacherHourValidator:
    """
    Validation gate for teacher workload policy.

    The gate only returns verdicts. Committing (and deciding to override) is
    always the caller's job.
    """

    def __init__(self, roster: Optional[Roster] = None,
                 max_hours: float = MAX_TEACHER_HOURS,
                 soft_warning_hours: float = SOFT_WARNING_HOURS):
        self.roster = roster or Roster()
        self.max_hours = max_hours
        self.soft_warning_hours = soft_warning_hours

    def ceiling_for(self, teacher_name: str) -> float:
        return self.roster.max_hours_for(teacher_name, self.max_hours)

    def validate(self, existing: Iterable[ScheduledClassInstance],
                 candidate: ScheduledClassInstance,
                 override: bool = False,
                 replacing_id: Optional[str] = None) -> ValidationResult:
        """
        Check a candidate addition against the current schedule.

        Args:
            existing: The committed instances
            candidate: The class to add
            override: Caller confirmed an hour-ceiling breach
            replacing_id: Id of an instance the candidate replaces (edits)

        Returns:
            ValidationResult verdict
        """
        teacher = candidate.teacher_name
        existing = [i for i in existing if i.id != replacing_id]

        if self.roster.is_inactive(teacher):
            return ValidationResult(
                is_valid=False,
                overridable=False,
                message=f"{teacher} is inactive and cannot be assigned to classes",
                teacher=teacher
            )

        reason = SlotTracker(existing).check_exclusivity(candidate)
        if reason == LOCATION_SLOT_TAKEN:
            return ValidationResult(
                is_valid=False,
                overridable=False,
                message=f"{candidate.location} already has a class on {candidate.day} at {candidate.time}",
                teacher=teacher
            )
        if reason:
            return ValidationResult(
                is_valid=False,
                overridable=False,
                message=f"{teacher} is already teaching on {candidate.day} at {candidate.time}",
                teacher=teacher
            )

        current = compute_ledger(existing).get(teacher, 0.0)
        projected = round(current + candidate.duration_hours, 2)
        ceiling = self.ceiling_for(teacher)
        result = ValidationResult(
            is_valid=True,
            teacher=teacher,
            current_hours=round(current, 2),
            projected_hours=projected,
            ceiling=ceiling
        )

        if projected >= ceiling - HOURS_EPSILON:
            result.breach = PolicyBreach(teacher=teacher, projected_hours=projected, ceiling=ceiling)
            result.overridable = True
            if override:
                result.overridden = True
                result.message = f"Override granted: {teacher} will have {projected:.1f}h (limit {ceiling:.1f}h)"
                result.warning = result.message
                logger.info(result.message)
            else:
                result.is_valid = False
                result.message = f"{teacher} would reach the {ceiling:.1f}h limit ({projected:.1f}h total)"
            return result

        if projected >= self.soft_warning_hours - HOURS_EPSILON:
            result.warning = f"{teacher} approaching {ceiling:.1f}h limit ({projected:.1f}h total)"
            result.message = result.warning
            return result

        result.message = f"{teacher} at {projected:.1f}h"
        return result

    def find_policy_breaches(self, instances: Iterable[ScheduledClassInstance]) -> List[PolicyBreach]:
        """Every teacher whose ledger hours are at or above their ceiling."""
        breaches = []
        for teacher, hours in sorted(compute_ledger(instances).items()):
            ceiling = self.ceiling_for(teacher)
            if hours >= ceiling - HOURS_EPSILON:
                breaches.append(PolicyBreach(teacher=teacher, projected_hours=round(hours, 2), ceiling=ceiling))
        return breaches

    def validate_schedule(self, instances: Iterable[ScheduledClassInstance]) -> ScheduleAuditResult:
        """
        Audit a complete schedule against the exclusivity invariants and hour policy.

        Args:
            instances: The schedule to audit

        Returns:
            ScheduleAuditResult with all violations found
        """
        instances = list(instances)
        result = ScheduleAuditResult(is_valid=True)

        self._check_location_conflicts(instances, result)
        self._check_trainer_double_booking(instances, result)
        self._check_inactive_teachers(instances, result)
        for breach in self.find_policy_breaches(instances):
            result.policy_breaches.append(breach)
            result.warnings.append(f"Hour limit exceeded - {breach.describe()}")

        logger.info(
            f"Schedule audit: valid={result.is_valid}, violations={len(result.violations)}, "
            f"hour breaches={len(result.policy_breaches)}"
        )
        return result

    def _check_location_conflicts(self, instances: List[ScheduledClassInstance], result: ScheduleAuditResult):
        """At most one non-private class per (location, day, time)."""
        slot_classes = defaultdict(list)
        for instance in instances:
            if not instance.is_private:
                slot_classes[instance.slot_key].append(instance)

        for (location, day, time), classes in slot_classes.items():
            if len(classes) > 1:
                result.add_violation(f"{len(classes)} classes scheduled at {location} on {day} {time}")

    def _check_trainer_double_booking(self, instances: List[ScheduledClassInstance], result: ScheduleAuditResult):
        """No teacher in two places at the same day/time."""
        trainer_classes = defaultdict(list)
        for instance in instances:
            trainer_classes[instance.trainer_slot_key].append(instance)

        for (teacher, day, time), classes in trainer_classes.items():
            if len(classes) > 1:
                locations = ", ".join(sorted({c.location for c in classes}))
                result.add_violation(f"{teacher} double-booked on {day} {time} ({locations})")

    def _check_inactive_teachers(self, instances: List[ScheduledClassInstance], result: ScheduleAuditResult):
        for teacher in sorted({i.teacher_name for i in instances}):
            if self.roster.is_inactive(teacher):
                result.add_violation(f"{teacher} is inactive but has scheduled classes")
