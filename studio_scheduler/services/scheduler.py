"""
Schedule optimizer using a deterministic greedy heuristic.
Builds a fresh weekly candidate from historical performance, rotating the
objective (revenue, attendance, balanced) with each iteration.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from studio_scheduler.models import (
    ScheduledClassInstance, PerformanceRecord, Roster, AvailabilityCalendar,
    Objective, PriorityTier, make_instance_id
)
from studio_scheduler.core.config import (
    DAYS_OF_WEEK, TARGET_TEACHER_HOURS, PRIORITY_CLASS_FORMATS,
    MIN_SLOT_ATTENDANCE, MUST_INCLUDE_MIN_ATTENDANCE, MUST_INCLUDE_CANDIDATES,
    TOP_PERFORMER_ATTENDANCE, OBJECTIVE_ROTATION, OBJECTIVE_WEIGHTS, SCORING_WEIGHTS,
    HOURS_EPSILON
)
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.validator import compute_ledger
from studio_scheduler.services.constraints import (
    SlotTracker, EXCLUSIVITY_REASONS, WEEKLY_HOURS,
    standard_time_slots, is_time_restricted, check_format_rules, is_teacher_eligible
)

logger = get_logger(__name__)


def objective_for_iteration(iteration: int) -> Objective:
    """iteration % 3: 0 revenue, 1 attendance, 2 balanced."""
    return Objective(OBJECTIVE_ROTATION[iteration % len(OBJECTIVE_ROTATION)])


def objective_score(index: PerformanceIndex, record: PerformanceRecord, objective: Objective) -> float:
    """Weighted sum of the record's metrics, each normalized against the index."""
    weights = OBJECTIVE_WEIGHTS[objective.value]
    return sum(weight * index.normalized(record, metric) for metric, weight in weights.items())


@dataclass
class OptimizerSettings:
    target_teacher_hours: float = TARGET_TEACHER_HOURS
    priority_class_formats: List[str] = field(default_factory=lambda: list(PRIORITY_CLASS_FORMATS))
    must_include_formats: List[str] = field(default_factory=list)
    prioritize_top_performers: bool = True
    balance_class_mix: bool = True
    respect_time_restrictions: bool = True
    minimize_trainers_per_shift: bool = True
    min_attendance: float = MIN_SLOT_ATTENDANCE

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "OptimizerSettings":
        data = data or {}
        defaults = cls()
        return cls(
            target_teacher_hours=float(data.get("targetTeacherHours", defaults.target_teacher_hours)),
            priority_class_formats=list(data.get("priorityClassFormats", defaults.priority_class_formats)),
            must_include_formats=list(data.get("mustIncludeFormats", [])),
            prioritize_top_performers=bool(data.get("prioritizeTopPerformers", True)),
            balance_class_mix=bool(data.get("balanceClassMix", True)),
            respect_time_restrictions=bool(data.get("respectTimeRestrictions", True)),
            minimize_trainers_per_shift=bool(data.get("minimizeTrainersPerShift", True)),
            min_attendance=float(data.get("minAttendance", defaults.min_attendance))
        )


@dataclass
class OptimizationResult:
    instances: List[ScheduledClassInstance]
    objective: Objective
    iteration: int
    dropped_formats: List[str] = field(default_factory=list)
    locked_count: int = 0
    conflicts_skipped: int = 0

    @property
    def generated_count(self) -> int:
        return len(self.instances) - self.locked_count

    @property
    def teacher_hours(self) -> Dict[str, float]:
        return compute_ledger(self.instances)


class ScheduleOptimizer:
    """
    Greedy weekly schedule generator.

    Locked instances are placed first and never moved. Must-include formats
    are placed next, then every location/day grid is filled slot by slot with
    the best-scoring eligible historical record that passes all constraints.
    There is no randomness: the same inputs and iteration always produce the
    same candidate, ids included.
    """

    def __init__(self, index: PerformanceIndex, roster: Optional[Roster] = None,
                 settings: Optional[OptimizerSettings] = None,
                 availability: Optional[AvailabilityCalendar] = None):
        """
        Initialize the optimizer.

        Args:
            index: Historical performance index
            roster: Teacher profiles and cohorts
            settings: Optimization preferences
            availability: Teacher leave and blackout calendar
        """
        self.index = index
        self.roster = roster or Roster()
        self.settings = settings or OptimizerSettings()
        self.availability = availability or AvailabilityCalendar()

    def optimize(self, iteration: int = 0,
                 locked: Iterable[ScheduledClassInstance] = (),
                 locked_teachers: Iterable[str] = ()) -> OptimizationResult:
        """
        Generate a candidate schedule for one iteration.

        Args:
            iteration: Iteration counter, selects the objective and day order
            locked: Instances that must survive unchanged
            locked_teachers: Teachers that receive no new classes

        Returns:
            OptimizationResult with the full candidate (locked instances first)
        """
        objective = objective_for_iteration(iteration)
        locked = list(locked)
        locked_teachers = frozenset(locked_teachers)
        tracker = SlotTracker(locked)
        result = OptimizationResult(
            instances=tracker.instances,
            objective=objective,
            iteration=iteration,
            locked_count=len(locked)
        )

        logger.info(
            f"Optimization iteration {iteration} ({objective.value}): "
            f"{len(self.index)} records, {len(locked)} locked classes"
        )

        self._place_must_include(tracker, objective, iteration, locked_teachers, result)
        self._fill_grid(tracker, objective, iteration, locked_teachers, result)

        logger.info(
            f"Optimization iteration {iteration} complete: {result.generated_count} classes generated, "
            f"{result.conflicts_skipped} conflicts skipped, {len(result.dropped_formats)} formats dropped"
        )
        return result

    def _ceiling(self, teacher_name: str) -> float:
        return min(self.settings.target_teacher_hours, self.roster.max_hours_for(teacher_name))

    def _eligible(self, record: PerformanceRecord, locked_teachers, min_attendance: float) -> bool:
        if record.avg_attendance < min_attendance:
            return False
        if check_format_rules(record.class_format, record.location, record.day):
            return False
        if self.settings.respect_time_restrictions and is_time_restricted(record.time, record.day):
            return False
        return is_teacher_eligible(
            self.roster, self.availability, record.teacher_name,
            record.class_format, record.day, locked_teachers
        )

    def _candidate(self, record: PerformanceRecord, iteration: int) -> ScheduledClassInstance:
        is_priority = (
            record.class_format in self.settings.priority_class_formats
            or record.class_format in self.settings.must_include_formats
        )
        return ScheduledClassInstance.from_performance(
            record,
            make_instance_id("opt", iteration, *record.key),
            is_priority_class=is_priority
        )

    def _try_place(self, tracker: SlotTracker, candidate: ScheduledClassInstance,
                   result: OptimizationResult) -> bool:
        if tracker.day_limit_reached(candidate.location, candidate.day):
            return False
        teacher = candidate.teacher_name
        reason = tracker.check(candidate, max_hours=self.roster.max_hours_for(teacher))
        if not reason and tracker.teacher_hours[teacher] + candidate.duration_hours > \
                self.settings.target_teacher_hours + HOURS_EPSILON:
            reason = WEEKLY_HOURS
        if reason:
            if reason in EXCLUSIVITY_REASONS:
                result.conflicts_skipped += 1
            logger.debug(f"Rejected {candidate}: {reason}")
            return False
        tracker.place(candidate)
        return True

    def _place_must_include(self, tracker: SlotTracker, objective: Objective, iteration: int,
                            locked_teachers, result: OptimizationResult):
        for class_format in self.settings.must_include_formats:
            if any(i.class_format == class_format for i in tracker.instances):
                continue

            records = [
                r for r in self.index.records_for_format(class_format)
                if self._eligible(r, locked_teachers, MUST_INCLUDE_MIN_ATTENDANCE)
            ]
            records.sort(key=lambda r: -objective_score(self.index, r, objective))

            placed = False
            for record in records[:MUST_INCLUDE_CANDIDATES]:
                if self._try_place(tracker, self._candidate(record, iteration), result):
                    placed = True
                    logger.debug(f"Placed must-include {class_format} at {record.location} {record.day} {record.time}")
                    break

            if not placed:
                result.dropped_formats.append(class_format)
                logger.info(f"Must-include format {class_format} could not be placed, dropping")

    def _rotated_days(self, iteration: int) -> List[str]:
        offset = iteration % len(DAYS_OF_WEEK)
        return DAYS_OF_WEEK[offset:] + DAYS_OF_WEEK[:offset]

    def _candidate_times(self, location: str, day: str) -> List[str]:
        times = sorted(set(self.index.times_for(location, day)) | set(standard_time_slots()))
        if self.settings.respect_time_restrictions:
            times = [t for t in times if not is_time_restricted(t, day)]
        return times

    def _fill_grid(self, tracker: SlotTracker, objective: Objective, iteration: int,
                   locked_teachers, result: OptimizationResult):
        for location in self.index.locations():
            for day in self._rotated_days(iteration):
                for time in self._candidate_times(location, day):
                    if tracker.day_limit_reached(location, day):
                        break
                    if tracker.location_slot_taken(location, day, time):
                        continue

                    records = [
                        r for r in self.index.records_for_slot(location, day, time)
                        if self._eligible(r, locked_teachers, self.settings.min_attendance)
                    ]
                    if not records:
                        continue

                    ranked = self._rank(tracker, records, objective)
                    for _, record in ranked:
                        if self._try_place(tracker, self._candidate(record, iteration), result):
                            break

    def _rank(self, tracker: SlotTracker, records: List[PerformanceRecord],
              objective: Objective) -> List[Tuple[float, PerformanceRecord]]:
        scored = [(self._composite_score(tracker, r, objective), r) for r in records]
        # Stable sort keeps index order on ties
        scored.sort(key=lambda item: -item[0])
        return scored

    def _composite_score(self, tracker: SlotTracker, record: PerformanceRecord, objective: Objective) -> float:
        settings = self.settings
        teacher = record.teacher_name
        score = objective_score(self.index, record, objective)

        if record.class_format in settings.priority_class_formats or \
                record.class_format in settings.must_include_formats:
            score += SCORING_WEIGHTS["priority_format"]

        if settings.prioritize_top_performers and record.avg_attendance >= TOP_PERFORMER_ATTENDANCE:
            score += SCORING_WEIGHTS["top_performer"]

        hours = tracker.teacher_hours[teacher]
        target = self._ceiling(teacher)
        if target > 0 and hours < target:
            score += SCORING_WEIGHTS["under_target_hours"] * (target - hours) / target
        if hours < self.roster.min_hours_for(teacher):
            score += SCORING_WEIGHTS["below_min_hours"]

        if settings.balance_class_mix:
            repeats = tracker.format_count(record.location, record.day, record.class_format)
            score -= SCORING_WEIGHTS["class_mix_repeat"] * repeats

        if settings.minimize_trainers_per_shift and \
                tracker.works_shift(teacher, record.location, record.day, record.time):
            score += SCORING_WEIGHTS["shift_consolidation"]

        if self.roster.prefers_day(teacher, record.day):
            score += SCORING_WEIGHTS["preferred_day"]

        tier = self.roster.priority_tier(teacher)
        if tier == PriorityTier.HIGH:
            score += SCORING_WEIGHTS["priority_teacher"]
        elif tier == PriorityTier.LOW:
            score -= SCORING_WEIGHTS["priority_teacher"]

        return score
