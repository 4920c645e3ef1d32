"""
Slot and trainer occupancy rules shared by the scheduling engines.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from studio_scheduler.models import (
    ScheduledClassInstance, Roster, AvailabilityCalendar, time_to_minutes
)
from studio_scheduler.core.config import (
    ALL_TIME_SLOTS, MORNING_HOURS, EVENING_HOURS,
    WEEKDAY_RESTRICTED_HOURS, WEEKEND_RESTRICTED_HOURS, WEEKEND_DAYS,
    MORNING_SHIFT_END_HOUR, EVENING_SHIFT_START_HOUR,
    STUDIO_CAPACITIES, DEFAULT_STUDIO_CAPACITY,
    MAX_DAILY_CLASSES, MAX_DAILY_HOURS, MAX_CONSECUTIVE_CLASSES, CONSECUTIVE_GAP_MINUTES,
    CYCLE_STUDIO_LOCATION, CYCLE_FORMAT_KEYWORDS, CYCLE_STUDIO_EXCLUDED_KEYWORDS,
    SUNDAY_CLASS_LIMITS, DEFAULT_SUNDAY_CLASS_LIMIT, EARLY_WEEK_DAYS,
    HOSTED_KEYWORD, RECOVERY_KEYWORD, HOURS_EPSILON
)

# Rejection reasons
LOCATION_SLOT_TAKEN = "location_slot_taken"
STUDIO_CAPACITY = "studio_capacity"
TRAINER_CONFLICT = "trainer_conflict"
TRAINER_LOCATION = "trainer_location"
DAILY_CLASSES = "daily_classes"
DAILY_HOURS = "daily_hours"
CONSECUTIVE = "consecutive_classes"
WEEKLY_HOURS = "weekly_hours"
HOSTED_FORMAT = "hosted_format"
FORMAT_LOCATION = "format_location"
RECOVERY_EARLY_WEEK = "recovery_early_week"

EXCLUSIVITY_REASONS = (LOCATION_SLOT_TAKEN, TRAINER_CONFLICT)


def shift_of(time: str) -> str:
    hour = time_to_minutes(time) // 60
    if hour < MORNING_SHIFT_END_HOUR:
        return "morning"
    if hour >= EVENING_SHIFT_START_HOUR:
        return "evening"
    return "afternoon"


def standard_time_slots() -> List[str]:
    """Time slots inside the morning and evening scheduling windows."""
    slots = []
    for time in ALL_TIME_SLOTS:
        hour = time_to_minutes(time) // 60
        if MORNING_HOURS[0] <= hour <= MORNING_HOURS[1] or EVENING_HOURS[0] <= hour <= EVENING_HOURS[1]:
            slots.append(time)
    return slots


def is_time_restricted(time: str, day: str) -> bool:
    hour = time_to_minutes(time) // 60
    start, end = WEEKEND_RESTRICTED_HOURS if day in WEEKEND_DAYS else WEEKDAY_RESTRICTED_HOURS
    return start <= hour < end


def is_format_allowed_at_location(class_format: str, location: str) -> bool:
    lower = class_format.lower()
    is_cycle = any(keyword in lower for keyword in CYCLE_FORMAT_KEYWORDS)
    if location == CYCLE_STUDIO_LOCATION:
        if is_cycle:
            return True
        return not any(keyword in lower for keyword in CYCLE_STUDIO_EXCLUDED_KEYWORDS)
    return not is_cycle


def studio_capacity(location: str) -> int:
    return STUDIO_CAPACITIES.get(location, DEFAULT_STUDIO_CAPACITY)


def sunday_class_limit(location: str) -> int:
    return SUNDAY_CLASS_LIMITS.get(location, DEFAULT_SUNDAY_CLASS_LIMIT)


def check_format_rules(class_format: str, location: str, day: str) -> Optional[str]:
    """Format placement rules for generated classes. Manual edits bypass these."""
    lower = class_format.lower()
    if HOSTED_KEYWORD in lower:
        return HOSTED_FORMAT
    if not is_format_allowed_at_location(class_format, location):
        return FORMAT_LOCATION
    if RECOVERY_KEYWORD in lower and day in EARLY_WEEK_DAYS:
        return RECOVERY_EARLY_WEEK
    return None


def is_teacher_eligible(roster: Roster, availability: AvailabilityCalendar,
                        teacher_name: str, class_format: str, day: str,
                        locked_teachers: Iterable[str] = ()) -> bool:
    """Whether an engine may give this teacher a new class of this format on this day."""
    if teacher_name in locked_teachers:
        return False
    if not roster.can_teach(teacher_name, class_format):
        return False
    return availability.is_available(teacher_name, day)


class SlotTracker:
    """
    Incremental occupancy view of a schedule.

    Engines seed it with the instances they must keep, ask check() before
    every placement and call place() after. It never mutates the instances it
    is given.
    """

    def __init__(self, instances: Iterable[ScheduledClassInstance] = ()):
        self.instances: List[ScheduledClassInstance] = []
        self.teacher_hours: Dict[str, float] = defaultdict(float)
        self._location_slots: Set[tuple] = set()
        self._location_intervals = defaultdict(lambda: defaultdict(int))
        self._teacher_slots: Set[tuple] = set()
        self._teacher_intervals = defaultdict(set)
        self._teacher_day_classes = defaultdict(list)
        self._teacher_day_location: Dict[tuple, str] = {}
        self._location_day_formats = defaultdict(lambda: defaultdict(int))
        self._location_day_counts = defaultdict(int)
        self._shift_trainers = defaultdict(set)

        for instance in instances:
            self.place(instance)

    def location_slot_taken(self, location: str, day: str, time: str) -> bool:
        return (location, day, time) in self._location_slots

    def trainer_slot_taken(self, teacher_name: str, day: str, time: str) -> bool:
        return (teacher_name, day, time) in self._teacher_slots

    def check_exclusivity(self, candidate: ScheduledClassInstance) -> Optional[str]:
        """Only the slot and trainer exclusivity invariants."""
        if not candidate.is_private and self.location_slot_taken(*candidate.slot_key):
            return LOCATION_SLOT_TAKEN
        if self.trainer_slot_taken(*candidate.trainer_slot_key):
            return TRAINER_CONFLICT
        intervals = self._teacher_intervals[(candidate.teacher_name, candidate.day)]
        if intervals.intersection(candidate.occupied_intervals()):
            return TRAINER_CONFLICT
        return None

    def check(self, candidate: ScheduledClassInstance, max_hours: Optional[float] = None) -> Optional[str]:
        """
        Full generation rules for a candidate placement.

        Returns the rejection reason, or None when the candidate fits.
        """
        reason = self.check_exclusivity(candidate)
        if reason:
            return reason

        if not candidate.is_private:
            occupied = self._location_intervals[(candidate.location, candidate.day)]
            capacity = studio_capacity(candidate.location)
            if any(occupied[minute] >= capacity for minute in candidate.occupied_intervals()):
                return STUDIO_CAPACITY

        key = (candidate.teacher_name, candidate.day)
        current_location = self._teacher_day_location.get(key)
        if current_location and current_location != candidate.location:
            return TRAINER_LOCATION

        day_classes = self._teacher_day_classes[key]
        if len(day_classes) >= MAX_DAILY_CLASSES:
            return DAILY_CLASSES
        day_hours = sum(c.duration_hours for c in day_classes)
        if day_hours + candidate.duration_hours > MAX_DAILY_HOURS + HOURS_EPSILON:
            return DAILY_HOURS
        if self.consecutive_count(candidate) > MAX_CONSECUTIVE_CLASSES:
            return CONSECUTIVE

        if max_hours is not None:
            projected = self.teacher_hours[candidate.teacher_name] + candidate.duration_hours
            # The ceiling itself is a breach, totals must stay below it
            if projected >= max_hours - HOURS_EPSILON:
                return WEEKLY_HOURS
        return None

    def consecutive_count(self, candidate: ScheduledClassInstance) -> int:
        """Longest back-to-back run the teacher would have that day with the candidate."""
        classes = sorted(
            self._teacher_day_classes[(candidate.teacher_name, candidate.day)] + [candidate],
            key=lambda c: c.start_minutes
        )
        longest = current = 1
        for previous, following in zip(classes, classes[1:]):
            if abs(following.start_minutes - previous.end_minutes) <= CONSECUTIVE_GAP_MINUTES:
                current += 1
            else:
                current = 1
            longest = max(longest, current)
        return longest

    def place(self, instance: ScheduledClassInstance):
        self.instances.append(instance)
        self.teacher_hours[instance.teacher_name] += instance.duration_hours
        if not instance.is_private:
            self._location_slots.add(instance.slot_key)
            occupied = self._location_intervals[(instance.location, instance.day)]
            for minute in instance.occupied_intervals():
                occupied[minute] += 1
        self._teacher_slots.add(instance.trainer_slot_key)
        key = (instance.teacher_name, instance.day)
        self._teacher_intervals[key].update(instance.occupied_intervals())
        self._teacher_day_classes[key].append(instance)
        self._teacher_day_location.setdefault(key, instance.location)
        self._location_day_formats[(instance.location, instance.day)][instance.class_format] += 1
        self._location_day_counts[(instance.location, instance.day)] += 1
        self._shift_trainers[(instance.location, instance.day, shift_of(instance.time))].add(instance.teacher_name)

    def format_count(self, location: str, day: str, class_format: str) -> int:
        return self._location_day_formats[(location, day)][class_format]

    def day_format_count(self, day: str, class_format: str) -> int:
        return sum(
            formats[class_format]
            for (location, d), formats in self._location_day_formats.items()
            if d == day
        )

    def classes_at(self, location: str, day: str) -> int:
        return self._location_day_counts[(location, day)]

    def day_limit_reached(self, location: str, day: str) -> bool:
        if day != "Sunday":
            return False
        return self.classes_at(location, day) >= sunday_class_limit(location)

    def works_shift(self, teacher_name: str, location: str, day: str, time: str) -> bool:
        return teacher_name in self._shift_trainers[(location, day, shift_of(time))]
