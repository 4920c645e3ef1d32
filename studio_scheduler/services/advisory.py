"""
Advisory suggestions for schedulers.

Suggestions are informational only. Nothing returned here is ever fed back
into an engine or the validation gate.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from studio_scheduler.models import ScheduledClassInstance, Roster
from studio_scheduler.core.config import SOFT_WARNING_HOURS, DAYS_OF_WEEK
from studio_scheduler.services.performance_index import PerformanceIndex


class AdvisoryProvider(ABC):
    """Swappable source of free-text scheduling suggestions."""

    @abstractmethod
    def suggest(self, instances: Sequence[ScheduledClassInstance],
                teacher_hours: Dict[str, float], roster: Roster) -> List[str]:
        raise NotImplementedError


class NullAdvisoryProvider(AdvisoryProvider):
    def suggest(self, instances, teacher_hours, roster) -> List[str]:
        return []


class RuleBasedAdvisoryProvider(AdvisoryProvider):
    """
    Simple workload and coverage hints derived from the ledger and the index.
    """

    def __init__(self, index: Optional[PerformanceIndex] = None,
                 soft_warning_hours: float = SOFT_WARNING_HOURS,
                 max_suggestions: int = 10):
        self.index = index
        self.soft_warning_hours = soft_warning_hours
        self.max_suggestions = max_suggestions

    def suggest(self, instances, teacher_hours, roster) -> List[str]:
        suggestions = []

        for teacher, hours in sorted(teacher_hours.items()):
            ceiling = roster.max_hours_for(teacher)
            minimum = roster.min_hours_for(teacher)
            if minimum and hours < minimum:
                suggestions.append(f"{teacher} is below their minimum ({hours:.1f}h of {minimum:.1f}h)")
            elif self.soft_warning_hours <= hours < ceiling:
                suggestions.append(f"{teacher} is close to the {ceiling:.1f}h limit ({hours:.1f}h)")

        for teacher in roster.active_teacher_names():
            if teacher not in teacher_hours:
                suggestions.append(f"{teacher} has no classes this week")

        if self.index is not None:
            suggestions.extend(self._uncovered_slots(instances))

        return suggestions[:self.max_suggestions]

    def _uncovered_slots(self, instances) -> List[str]:
        """Best historical slot per day that is currently empty."""
        taken = {i.slot_key for i in instances}
        hints = []
        for day in DAYS_OF_WEEK:
            best = None
            for record in self.index:
                if record.day != day or (record.location, record.day, record.time) in taken:
                    continue
                if best is None or record.avg_attendance > best.avg_attendance:
                    best = record
            if best is not None:
                hints.append(
                    f"Open slot: {best.class_format} at {best.location} on {day} {best.time} "
                    f"averaged {best.avg_attendance:.1f} attendees"
                )
        return hints
