"""
Shared builders for scheduler tests.
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.core.config import DAYS_OF_WEEK, LOCATIONS
from studio_scheduler.models import ScheduledClassInstance, split_teacher_name, minutes_to_time
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.priority_catalog import PriorityCatalog
from studio_scheduler.services.operations import StudioContext

KWALITY = LOCATIONS[0]
SUPREME = LOCATIONS[1]
KENKERE = LOCATIONS[2]

TEACHERS = [
    "Anisha Shah",
    "Mrigakshi Jaiswal",
    "Pranjali Jain",
    "Rohan Dahima",
    "Vivaran Dhasmana",
    "Atulan Purohit",
    "Karanvir Bhatia",
    "Reshma Sharma"
]

FORMATS = [
    "Studio Barre 57",
    "Studio Mat 57",
    "Studio FIT",
    "Studio Cardio Barre",
    "Studio Back Body Blaze"
]

TIMES = ["07:30", "09:00", "18:00", "19:15"]


def perf_row(class_format, day, time, location, teacher, avg=6.0, revenue=5000.0, score=80.0, fill=70.0):
    return {
        "classFormat": class_format,
        "day": day,
        "time": time,
        "location": location,
        "teacherName": teacher,
        "score": score,
        "avgAttendance": avg,
        "fillRatePct": fill,
        "revenuePerClass": revenue,
        "lateCancelRate": 0.05,
        "totalClasses": 12
    }


def priority_row(class_format, day, time, location, teacher, rank, must_include=False):
    return {
        "classFormat": class_format,
        "day": day,
        "time": time,
        "location": location,
        "teacherName": teacher,
        "priorityRank": rank,
        "mustInclude": must_include
    }


def week_rows():
    """Two competing records per slot across every location, day and time."""
    rows = []
    n = 0
    for location in LOCATIONS:
        for day in DAYS_OF_WEEK:
            for time in TIMES:
                for k in range(2):
                    rows.append(perf_row(
                        FORMATS[(n + k) % len(FORMATS)],
                        day,
                        time,
                        location,
                        TEACHERS[(n + k * 3) % len(TEACHERS)],
                        avg=4 + (n * 7 + k) % 5,
                        revenue=3000 + ((n * 37 + k) % 11) * 250,
                        score=60 + (n * 13 + k) % 30,
                        fill=40 + (n * 17 + k) % 50
                    ))
                n += 1
    return rows


def make_instance(instance_id, day, time, location, teacher, class_format="Studio Barre 57",
                  duration=1.0, is_private=False):
    first_name, last_name = split_teacher_name(teacher)
    return ScheduledClassInstance(
        id=instance_id,
        day=day,
        time=time,
        location=location,
        class_format=class_format,
        teacher_first_name=first_name,
        teacher_last_name=last_name,
        duration_hours=duration,
        is_private=is_private
    )


def hours_block(teacher, hours, location=KWALITY, prefix="x"):
    """
    Instances totalling the given hours for one teacher, one hour each
    (plus a half-hour class for a .5 remainder), on distinct day/time slots.
    """
    instances = []
    whole = int(hours)
    slots = [(day, minutes_to_time(7 * 60 + 60 * i)) for day in DAYS_OF_WEEK for i in range(4)]
    for i in range(whole):
        day, time = slots[i]
        instances.append(make_instance(f"{prefix}{i}", day, time, location, teacher))
    if hours - whole >= 0.5:
        day, time = slots[whole]
        instances.append(make_instance(f"{prefix}{whole}", day, time, location, teacher,
                                       class_format="Studio Recovery", duration=0.5))
    return instances


def build_context(rows=None, priorities=None, **kwargs):
    index = PerformanceIndex.from_rows(week_rows() if rows is None else rows)
    catalog = PriorityCatalog.from_rows(priorities or [], index)
    return StudioContext(index=index, catalog=catalog, **kwargs)
