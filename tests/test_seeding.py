"""
Tests for priority seeding.
"""

import sys
import os
import logging

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.models import AvailabilityCalendar
from studio_scheduler.services.performance_index import PerformanceIndex
from studio_scheduler.services.priority_catalog import PriorityCatalog
from studio_scheduler.services.seeding import PrioritySeeder
from studio_scheduler.services import operations
from studio_scheduler.services.operations import StudioState

from sample_data import perf_row, priority_row, build_context, KWALITY, SUPREME


def _seed(perf_rows, priority_rows, availability=None):
    index = PerformanceIndex.from_rows(perf_rows)
    catalog = PriorityCatalog.from_rows(priority_rows)
    return PrioritySeeder(index, availability=availability).seed(catalog)


def test_higher_rank_wins_trainer_slot():
    perf = [
        perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah"),
        perf_row("Studio Mat 57", "Monday", "09:00", SUPREME, "Anisha Shah")
    ]
    priorities = [
        priority_row("Studio Mat 57", "Monday", "09:00", SUPREME, "Anisha Shah", rank=5),
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=10)
    ]
    result = _seed(perf, priorities)

    assert len(result.instances) == 1
    assert result.instances[0].class_format == "Studio FIT"
    assert result.conflicts_skipped == 1


def test_location_slot_is_not_double_booked():
    perf = [
        perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah"),
        perf_row("Studio Mat 57", "Monday", "09:00", KWALITY, "Rohan Dahima")
    ]
    priorities = [
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=10),
        priority_row("Studio Mat 57", "Monday", "09:00", KWALITY, "Rohan Dahima", rank=8)
    ]
    result = _seed(perf, priorities)
    assert [i.teacher_name for i in result.instances] == ["Anisha Shah"]
    assert result.conflicts_skipped == 1


def test_missing_performance_is_never_fabricated():
    perf = [perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah")]
    priorities = [
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=10),
        priority_row("Studio FIT", "Tuesday", "09:00", KWALITY, "Anisha Shah", rank=9)
    ]
    result = _seed(perf, priorities)
    assert len(result.instances) == 1
    assert result.missing_performance == 1


def test_seeded_instance_copies_metrics():
    perf = [perf_row("Studio Barre 57 (Express)", "Friday", "18:00", KWALITY, "Pranjali Jain",
                     avg=7.5, revenue=6200.0, score=91.0, fill=82.0)]
    priorities = [priority_row("Studio Barre 57 (Express)", "Friday", "18:00", KWALITY, "Pranjali Jain", rank=1)]
    instance = _seed(perf, priorities).instances[0]

    assert instance.duration_hours == 1.0
    assert instance.is_top_performer is True
    assert instance.is_private is False
    assert instance.is_priority_class is True
    assert instance.participants == 7.5
    assert instance.avg_attendance == 7.5
    assert instance.revenue == 6200.0
    assert instance.adjusted_score == 91.0
    assert instance.fill_rate == 82.0
    assert instance.teacher_first_name == "Pranjali"
    assert instance.teacher_last_name == "Jain"


def test_inactive_and_unavailable_teachers_are_skipped():
    perf = [
        perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Nishanth Raj"),
        perf_row("Studio FIT", "Tuesday", "09:00", KWALITY, "Anisha Shah")
    ]
    priorities = [
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Nishanth Raj", rank=10),
        priority_row("Studio FIT", "Tuesday", "09:00", KWALITY, "Anisha Shah", rank=9)
    ]
    calendar = AvailabilityCalendar(unavailable_days={"Anisha Shah": {"Tuesday"}})
    result = _seed(perf, priorities, availability=calendar)
    assert result.instances == []
    assert result.ineligible_skipped == 2


def test_seed_is_deterministic():
    perf = [perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah")]
    priorities = [priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=1)]
    assert _seed(perf, priorities).instances == _seed(perf, priorities).instances


def test_empty_seed_is_a_failure():
    context = build_context(
        rows=[perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah")],
        priorities=[priority_row("Studio FIT", "Tuesday", "09:00", KWALITY, "Anisha Shah", rank=1)]
    )
    state = StudioState()
    new_state, outcome = operations.seed(state, context)

    assert outcome.success is False
    assert new_state is state
    assert len(new_state.history) == 0


def test_seed_operation_replaces_schedule():
    context = build_context(
        rows=[
            perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah"),
            perf_row("Studio Mat 57", "Monday", "09:00", SUPREME, "Anisha Shah")
        ],
        priorities=[
            priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=10),
            priority_row("Studio Mat 57", "Monday", "09:00", SUPREME, "Anisha Shah", rank=5)
        ]
    )
    state, outcome = operations.seed(StudioState(), context)

    assert outcome.success is True
    assert outcome.classes_added == 1
    assert outcome.conflicts_skipped == 1
    assert outcome.teacher_hours == {"Anisha Shah": 1.0}
    assert state.history.cursor == 0


def test_trainer_conflict_skip_is_logged(caplog):
    perf = [
        perf_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah"),
        perf_row("Studio Mat 57", "Monday", "09:00", SUPREME, "Anisha Shah")
    ]
    priorities = [
        priority_row("Studio FIT", "Monday", "09:00", KWALITY, "Anisha Shah", rank=10),
        priority_row("Studio Mat 57", "Monday", "09:00", SUPREME, "Anisha Shah", rank=5)
    ]
    caplog.set_level(logging.INFO, logger="studio_scheduler")
    result = _seed(perf, priorities)

    assert result.conflicts_skipped == 1
    skips = [r for r in caplog.records if "trainer already scheduled" in r.getMessage()]
    assert len(skips) == 1
    assert skips[0].levelno == logging.INFO
    assert "Studio Mat 57" in skips[0].getMessage()
