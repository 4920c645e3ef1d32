"""
Gap filling: appends a small batch of well-performing classes to an
existing schedule without touching what is already there.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from studio_scheduler.models import (
    ScheduledClassInstance, PerformanceRecord, Roster, AvailabilityCalendar,
    LockSet, Objective, make_instance_id
)
from studio_scheduler.core.config import (
    GAP_FILL_BATCH_SIZE, GAP_FILL_MIN_ATTENDANCE, GAP_FILL_HOURS_BUFFER,
    MAX_TEACHER_HOURS, SCORING_WEIGHTS, HOURS_EPSILON
)
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.scheduler import objective_score
from studio_scheduler.services.constraints import (
    SlotTracker, check_format_rules, is_teacher_eligible
)

logger = get_logger(__name__)


@dataclass
class GapFillResult:
    instances: List[ScheduledClassInstance]
    added: List[ScheduledClassInstance] = field(default_factory=list)

    @property
    def already_optimal(self) -> bool:
        return not self.added


class GapFiller:
    """
    Adds up to batch_size classes to an existing schedule.

    Each round scores every remaining candidate against the schedule as it
    stands (performance, a bonus for teachers with spare hours, a penalty for
    repeating a format on the same day) and places the best one that passes
    the constraints. Existing instances keep their order and values.
    """

    def __init__(self, index: PerformanceIndex, roster: Optional[Roster] = None,
                 availability: Optional[AvailabilityCalendar] = None,
                 batch_size: int = GAP_FILL_BATCH_SIZE,
                 max_hours: float = MAX_TEACHER_HOURS):
        self.index = index
        self.roster = roster or Roster()
        self.availability = availability or AvailabilityCalendar()
        self.batch_size = batch_size
        self.max_hours = max_hours

    def fill(self, existing: Iterable[ScheduledClassInstance],
             locked: LockSet = LockSet()) -> GapFillResult:
        tracker = SlotTracker(existing)
        result = GapFillResult(instances=tracker.instances)
        candidates = self._candidates(locked)

        logger.info(f"Gap filling: {len(tracker.instances)} existing classes, {len(candidates)} candidates")

        while len(result.added) < self.batch_size and candidates:
            best = None
            best_score = None
            for record in candidates:
                if not self._has_room(tracker, record.teacher_name):
                    continue
                if tracker.day_limit_reached(record.location, record.day):
                    continue
                candidate = self._candidate(record)
                if tracker.check(candidate, max_hours=self._ceiling(record.teacher_name)):
                    continue
                score = self._score(tracker, record)
                if best_score is None or score > best_score:
                    best, best_score = candidate, score

            if best is None:
                break

            tracker.place(best)
            result.added.append(best)
            candidates = [r for r in candidates if r.key != self._key_of(best)]
            logger.debug(f"Gap fill added {best}")

        if result.already_optimal:
            logger.info("Gap filling found nothing to add, schedule already optimal")
        else:
            logger.info(f"Gap filling added {len(result.added)} classes")
        return result

    def _ceiling(self, teacher_name: str) -> float:
        return self.roster.max_hours_for(teacher_name, self.max_hours)

    def _has_room(self, tracker: SlotTracker, teacher_name: str) -> bool:
        """Teachers within the buffer of their ceiling are left alone."""
        return tracker.teacher_hours[teacher_name] < \
            self._ceiling(teacher_name) - GAP_FILL_HOURS_BUFFER - HOURS_EPSILON

    def _candidates(self, locked: LockSet) -> List[PerformanceRecord]:
        candidates = []
        for record in self.index:
            if record.avg_attendance < GAP_FILL_MIN_ATTENDANCE:
                continue
            if check_format_rules(record.class_format, record.location, record.day):
                continue
            if not is_teacher_eligible(self.roster, self.availability, record.teacher_name,
                                       record.class_format, record.day, locked.teacher_names):
                continue
            candidates.append(record)
        return candidates

    def _candidate(self, record: PerformanceRecord) -> ScheduledClassInstance:
        return ScheduledClassInstance.from_performance(record, make_instance_id("fill", *record.key))

    @staticmethod
    def _key_of(instance: ScheduledClassInstance):
        return (instance.class_format, instance.day, instance.time, instance.location, instance.teacher_name)

    def _score(self, tracker: SlotTracker, record: PerformanceRecord) -> float:
        score = objective_score(self.index, record, Objective.BALANCED)
        ceiling = self._ceiling(record.teacher_name)
        hours = tracker.teacher_hours[record.teacher_name]
        if ceiling > 0:
            score += SCORING_WEIGHTS["under_target_hours"] * max(ceiling - hours, 0.0) / ceiling
        score -= SCORING_WEIGHTS["class_mix_repeat"] * tracker.day_format_count(record.day, record.class_format)
        return score
