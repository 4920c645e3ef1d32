"""
Tests for row coercion, instance records and roster rules.
"""

import sys
import os
from datetime import date

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.core.exceptions import InputDataError
from studio_scheduler.models import (
    PerformanceRecord, PriorityEntry, ScheduledClassInstance, Roster, TeacherProfile,
    AvailabilityCalendar, LockSet, class_duration, make_instance_id,
    schedule_to_records, schedule_from_records
)
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.priority_catalog import PriorityCatalog

from sample_data import perf_row, priority_row, make_instance, KWALITY, SUPREME


def test_performance_row_is_normalized():
    record = PerformanceRecord.from_row(perf_row("Studio FIT", "monday", "9:00", KWALITY, "Anisha Shah"))
    assert record.day == "Monday"
    assert record.time == "09:00"
    assert record.key == ("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah")


def test_non_numeric_metric_is_rejected():
    row = perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah")
    row["avgAttendance"] = float("nan")
    with pytest.raises(InputDataError):
        PerformanceRecord.from_row(row)

    row["avgAttendance"] = "lots"
    with pytest.raises(InputDataError):
        PerformanceRecord.from_row(row)


def test_index_skips_malformed_rows():
    rows = [
        perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah"),
        perf_row("Studio FIT", "Funday", "09:00", KWALITY, "Anisha Shah"),
        {"classFormat": "Studio FIT"},
        "not a row",
        perf_row("Studio Mat 57", "Tuesday", "18:00", SUPREME, "Rohan Dahima")
    ]
    index = PerformanceIndex.from_rows(rows)
    assert len(index) == 2
    assert index.skipped_rows == 3
    assert index.lookup("Studio Mat 57", "Tuesday", "18:00", SUPREME, "Rohan Dahima") is not None


def test_index_keeps_first_duplicate():
    first = perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", avg=7.0)
    second = perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", avg=2.0)
    index = PerformanceIndex.from_rows([first, second])
    assert len(index) == 1
    assert index.lookup("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah").avg_attendance == 7.0


def test_catalog_sorts_by_rank_and_is_stable():
    rows = [
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=5),
        priority_row("Studio Mat 57", "Monday", "09:00", KWALITY, "Rohan Dahima", rank=10),
        priority_row("Studio Barre 57", "Tuesday", "09:00", KWALITY, "Pranjali Jain", rank=5)
    ]
    catalog = PriorityCatalog.from_rows(rows)
    assert [e.class_format for e in catalog] == ["Studio Mat 57", "Studio FIT", "Studio Barre 57"]


def test_priority_entry_reads_must_include_flag():
    entry = PriorityEntry.from_row(
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=3, must_include="yes")
    )
    assert entry.must_include is True
    assert entry.priority_rank == 3


def test_class_duration_by_format():
    assert class_duration("Studio Barre 57 (Express)") == 0.75
    assert class_duration("Studio Recovery") == 0.5
    assert class_duration("Studio Foundations") == 0.75
    assert class_duration("Studio FIT") == 1.0


def test_instance_ids_are_deterministic():
    assert make_instance_id("opt", 1, "a") == make_instance_id("opt", 1, "a")
    assert make_instance_id("opt", 1, "a") != make_instance_id("opt", 2, "a")


def test_instance_record_layout():
    instance = make_instance("c1", "Monday", "09:00", KWALITY, "Anisha Shah", duration=0.75)
    records = schedule_to_records([instance])
    assert list(records.keys()) == ["c1"]
    assert records["c1"]["teacherFirstName"] == "Anisha"
    assert records["c1"]["durationHours"] == 0.75
    assert schedule_from_records(records) == (instance,)


def test_record_without_duration_uses_format_duration():
    instance = ScheduledClassInstance.from_record({
        "id": "c2", "day": "Friday", "time": "7:30", "location": KWALITY,
        "classFormat": "Studio Recovery", "teacherName": "Reshma Sharma"
    })
    assert instance.duration_hours == 0.5
    assert instance.time == "07:30"
    assert instance.teacher_name == "Reshma Sharma"


def test_occupied_intervals_cover_duration():
    instance = make_instance("c1", "Monday", "09:00", KWALITY, "Anisha Shah", duration=0.75)
    assert instance.occupied_intervals() == [540, 555, 570]


def test_roster_cohorts():
    roster = Roster(teachers=[TeacherProfile("Anisha", "Shah", max_hours=12.0)])
    assert roster.is_inactive("Nishanth Raj")
    assert roster.is_restricted("Kabir Varma")
    assert roster.max_hours_for("Kabir Varma") == 10.0
    assert roster.max_hours_for("Anisha Shah") == 12.0
    assert roster.max_hours_for("Rohan Dahima") == 15.0
    assert roster.can_teach("Kabir Varma", "Studio Barre 57")
    assert not roster.can_teach("Kabir Varma", "Studio Mat 57")
    assert not roster.can_teach("Saniya Khan", "Studio Barre 57")


def test_roster_from_dict():
    roster = Roster.from_dict({
        "teachers": [{"firstName": "Anisha", "lastName": "Shah", "specialties": ["Studio FIT"],
                      "priorityTier": "high", "preferredDays": ["Monday"]}],
        "inactive": ["Rohan"],
        "restricted": []
    })
    assert roster.is_inactive("Rohan Dahima")
    assert not roster.is_restricted("Kabir Varma")
    assert roster.can_teach("Anisha Shah", "Studio FIT")
    assert not roster.can_teach("Anisha Shah", "Studio Mat 57")
    assert roster.prefers_day("Anisha Shah", "Monday")


def test_availability_maps_leave_onto_week():
    calendar = AvailabilityCalendar.from_dict({
        "weekStart": "2024-06-03",
        "leaves": {"Anisha Shah": [{"start": "2024-06-04", "end": "2024-06-05"}]},
        "blackoutDates": {"Rohan Dahima": ["2024-06-09"]},
        "unavailableDays": {"Pranjali Jain": ["Friday"]}
    })
    assert calendar.date_for("Monday") == date(2024, 6, 3)
    assert calendar.is_available("Anisha Shah", "Monday")
    assert not calendar.is_available("Anisha Shah", "Tuesday")
    assert not calendar.is_available("Anisha Shah", "Wednesday")
    assert not calendar.is_available("Rohan Dahima", "Sunday")
    assert not calendar.is_available("Pranjali Jain", "Friday")


def test_lock_set_changes_return_new_values():
    locks = LockSet()
    locked = locks.with_classes(["a", "b"]).with_teachers(["Anisha Shah"])
    assert locks.class_ids == frozenset()
    assert locked.class_ids == frozenset({"a", "b"})
    assert locked.without_classes(["a"]).class_ids == frozenset({"b"})
    instance = make_instance("z", "Monday", "09:00", KWALITY, "Anisha Shah")
    assert locked.is_locked(instance)
    assert locked.restrict_to([instance]).class_ids == frozenset()
