"""
Summary figures for a schedule: totals, utilization and per-trainer assignments.
"""

from collections import defaultdict
from typing import Dict, Iterable, Optional

from studio_scheduler.models import ScheduledClassInstance, Roster
from studio_scheduler.services.constraints import shift_of
from studio_scheduler.services.validator import compute_ledger


def schedule_metrics(instances: Iterable[ScheduledClassInstance],
                     roster: Optional[Roster] = None) -> Dict[str, float]:
    instances = list(instances)
    roster = roster or Roster()
    ledger = compute_ledger(instances)

    utilization = 0.0
    if ledger:
        ratios = [hours / roster.max_hours_for(t) for t, hours in ledger.items() if roster.max_hours_for(t) > 0]
        if ratios:
            utilization = sum(ratios) / len(ratios) * 100

    fill_rate = sum(i.fill_rate for i in instances) / len(instances) if instances else 0.0

    return {
        "total_classes": len(instances),
        "total_revenue": round(sum(i.revenue for i in instances), 2),
        "total_attendance": round(sum(i.participants for i in instances), 1),
        "avg_fill_rate": round(fill_rate, 1),
        "teacher_utilization": round(utilization, 1),
        "top_performer_classes": sum(1 for i in instances if i.is_top_performer),
        "priority_classes": sum(1 for i in instances if i.is_priority_class)
    }


def trainer_assignments(instances: Iterable[ScheduledClassInstance]) -> Dict[str, Dict]:
    """Hours, class count, shifts and locations worked per trainer."""
    summary = defaultdict(lambda: {"hours": 0.0, "classes": 0, "shifts": set(), "locations": set()})
    for instance in instances:
        entry = summary[instance.teacher_name]
        entry["hours"] += instance.duration_hours
        entry["classes"] += 1
        entry["shifts"].add(f"{instance.day} {shift_of(instance.time)}")
        entry["locations"].add(instance.location)

    return {
        teacher: {
            "hours": round(entry["hours"], 2),
            "classes": entry["classes"],
            "shifts": sorted(entry["shifts"]),
            "locations": sorted(entry["locations"])
        }
        for teacher, entry in sorted(summary.items())
    }
