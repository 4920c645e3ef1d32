"""
Priority seeding: places priority catalog entries onto an empty weekly grid.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from studio_scheduler.models import (
    ScheduledClassInstance, PriorityEntry, Roster, AvailabilityCalendar,
    split_teacher_name, make_instance_id
)
from studio_scheduler.core.config import DEFAULT_CLASS_DURATION
from studio_scheduler.core.logging_config import get_logger
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.priority_catalog import PriorityCatalog

logger = get_logger(__name__)


@dataclass
class SeedResult:
    instances: List[ScheduledClassInstance] = field(default_factory=list)
    conflicts_skipped: int = 0
    missing_performance: int = 0
    ineligible_skipped: int = 0
    skipped: List[str] = field(default_factory=list)


class PrioritySeeder:
    """
    Seeds the schedule from the priority catalog.

    Entries are taken strictly by rank (highest first, stable on ties). An
    entry whose teacher or studio slot is already taken by a higher-ranked
    entry is skipped, never bumped. Entries without an exact historical
    match are skipped too; seeding never invents performance numbers.
    """

    def __init__(self, index: PerformanceIndex, roster: Optional[Roster] = None,
                 availability: Optional[AvailabilityCalendar] = None):
        self.index = index
        self.roster = roster or Roster()
        self.availability = availability or AvailabilityCalendar()

    def seed(self, catalog: PriorityCatalog) -> SeedResult:
        result = SeedResult()
        trainer_slots: Set[Tuple[str, str, str]] = set()
        location_slots: Set[Tuple[str, str, str]] = set()

        logger.info(f"Seeding from {len(catalog)} priority entries")

        for entry in catalog.entries:
            label = f"{entry.class_format} with {entry.teacher_name} on {entry.day} {entry.time} at {entry.location}"

            if self.roster.is_inactive(entry.teacher_name) or \
                    not self.availability.is_available(entry.teacher_name, entry.day):
                result.ineligible_skipped += 1
                result.skipped.append(f"Unavailable teacher: {label}")
                logger.info(f"Skipping {label} - teacher inactive or unavailable")
                continue

            slot_key = (entry.teacher_name, entry.day, entry.time)
            location_key = (entry.location, entry.day, entry.time)
            if slot_key in trainer_slots:
                result.conflicts_skipped += 1
                result.skipped.append(f"Trainer conflict: {label}")
                logger.info(f"Skipping {label} - trainer already scheduled at {entry.day} {entry.time}")
                continue
            if location_key in location_slots:
                result.conflicts_skipped += 1
                result.skipped.append(f"Studio conflict: {label}")
                logger.info(f"Skipping {label} - {entry.location} already has a class at {entry.day} {entry.time}")
                continue

            performance = entry.performance or self.index.lookup(*entry.performance_key)
            if performance is None:
                result.missing_performance += 1
                result.skipped.append(f"No performance data: {label}")
                logger.info(f"Skipping {label} - no matching performance record")
                continue

            result.instances.append(self._materialize(entry, performance))
            trainer_slots.add(slot_key)
            location_slots.add(location_key)
            logger.debug(f"Seeded {label}")

        logger.info(
            f"Seeding complete: {len(result.instances)} classes, "
            f"{result.conflicts_skipped} conflicts, {result.missing_performance} without data"
        )
        return result

    def _materialize(self, entry: PriorityEntry, performance) -> ScheduledClassInstance:
        first_name, last_name = split_teacher_name(entry.teacher_name)
        return ScheduledClassInstance(
            id=make_instance_id("seed", *entry.performance_key),
            day=entry.day,
            time=entry.time,
            location=entry.location,
            class_format=entry.class_format,
            teacher_first_name=first_name,
            teacher_last_name=last_name,
            duration_hours=DEFAULT_CLASS_DURATION,
            participants=performance.avg_attendance,
            revenue=performance.revenue_per_class,
            is_top_performer=True,
            is_private=False,
            adjusted_score=performance.score,
            avg_attendance=performance.avg_attendance,
            fill_rate=performance.fill_rate_pct,
            is_priority_class=True
        )
