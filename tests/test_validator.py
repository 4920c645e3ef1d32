"""
Tests for the teacher hour ledger and the validation gate.
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.models import Roster
from studio_scheduler.services.validator import TeacherHourValidator, compute_ledger, rounded_ledger

from sample_data import make_instance, hours_block, KWALITY, SUPREME


def test_ledger_sums_durations():
    instances = [
        make_instance("a", "Monday", "07:00", KWALITY, "Anisha Shah", duration=1.0),
        make_instance("b", "Monday", "09:00", KWALITY, "Anisha Shah", duration=0.75),
        make_instance("c", "Tuesday", "09:00", KWALITY, "Anisha Shah", duration=0.5),
        make_instance("d", "Tuesday", "09:00", SUPREME, "Rohan Dahima")
    ]
    ledger = compute_ledger(instances)
    assert ledger == {"Anisha Shah": 2.25, "Rohan Dahima": 1.0}
    assert rounded_ledger(instances)["Rohan Dahima"] == 1.0


def test_crossing_ceiling_is_blocked_but_overridable():
    existing = hours_block("Anisha Shah", 14.5)
    assert compute_ledger(existing)["Anisha Shah"] == 14.5

    candidate = make_instance("new", "Sunday", "18:00", KWALITY, "Anisha Shah")
    result = TeacherHourValidator().validate(existing, candidate)

    assert result.is_valid is False
    assert result.overridable is True
    assert result.projected_hours == 15.5
    assert result.breach.teacher == "Anisha Shah"
    # The gate never commits anything
    assert compute_ledger(existing)["Anisha Shah"] == 14.5


def test_override_flag_grants_breach():
    existing = hours_block("Anisha Shah", 14.5)
    candidate = make_instance("new", "Sunday", "18:00", KWALITY, "Anisha Shah")
    result = TeacherHourValidator().validate(existing, candidate, override=True)

    assert result.is_valid is True
    assert result.overridden is True
    assert result.warning


def test_reaching_ceiling_exactly_is_blocked():
    existing = hours_block("Anisha Shah", 14)
    candidate = make_instance("new", "Sunday", "18:00", KWALITY, "Anisha Shah")
    result = TeacherHourValidator().validate(existing, candidate)

    assert result.is_valid is False
    assert result.overridable is True
    assert result.projected_hours == 15.0
    assert result.breach.projected_hours == 15.0


def test_just_below_ceiling_is_valid_with_warning():
    existing = hours_block("Anisha Shah", 14)
    candidate = make_instance("new", "Sunday", "18:00", KWALITY, "Anisha Shah",
                              class_format="Studio Barre 57 (Express)", duration=0.75)
    result = TeacherHourValidator().validate(existing, candidate)

    assert result.is_valid is True
    assert result.projected_hours == 14.75
    assert result.warning is not None


def test_schedule_at_ceiling_is_a_breach():
    breaches = TeacherHourValidator().find_policy_breaches(hours_block("Anisha Shah", 15))
    assert [(b.teacher, b.projected_hours) for b in breaches] == [("Anisha Shah", 15.0)]
    assert TeacherHourValidator().find_policy_breaches(hours_block("Anisha Shah", 14.5)) == []


def test_soft_threshold_warns():
    existing = hours_block("Anisha Shah", 10)
    candidate = make_instance("new", "Sunday", "18:00", KWALITY, "Anisha Shah")
    result = TeacherHourValidator().validate(existing, candidate)
    assert result.is_valid is True
    assert result.warning is not None

    quiet = TeacherHourValidator().validate(hours_block("Anisha Shah", 5), candidate)
    assert quiet.is_valid is True
    assert quiet.warning is None


def test_trainer_conflict_is_not_overridable():
    existing = [make_instance("a", "Monday", "09:00", KWALITY, "Anisha Shah")]
    candidate = make_instance("b", "Monday", "09:00", SUPREME, "Anisha Shah")
    result = TeacherHourValidator().validate(existing, candidate, override=True)
    assert result.is_valid is False
    assert result.overridable is False


def test_overlapping_class_is_a_trainer_conflict():
    existing = [make_instance("a", "Monday", "09:00", KWALITY, "Anisha Shah")]
    candidate = make_instance("b", "Monday", "09:30", KWALITY, "Anisha Shah")
    assert TeacherHourValidator().validate(existing, candidate).is_valid is False


def test_location_slot_conflict():
    existing = [make_instance("a", "Monday", "09:00", KWALITY, "Anisha Shah")]
    candidate = make_instance("b", "Monday", "09:00", KWALITY, "Rohan Dahima")
    result = TeacherHourValidator().validate(existing, candidate)
    assert result.is_valid is False
    assert KWALITY in result.message

    private = make_instance("p", "Monday", "09:00", KWALITY, "Rohan Dahima", is_private=True)
    assert TeacherHourValidator().validate(existing, private).is_valid is True


def test_inactive_teacher_is_blocked():
    candidate = make_instance("a", "Monday", "09:00", KWALITY, "Nishanth Raj")
    result = TeacherHourValidator().validate([], candidate, override=True)
    assert result.is_valid is False
    assert result.overridable is False


def test_restricted_teacher_has_lower_ceiling():
    existing = hours_block("Kabir Varma", 9)
    candidate = make_instance("new", "Sunday", "18:00", KWALITY, "Kabir Varma")
    result = TeacherHourValidator(Roster()).validate(existing, candidate)
    assert result.is_valid is False
    assert result.ceiling == 10.0
    assert result.projected_hours == 10.0
    assert result.overridable is True


def test_edit_replaces_instead_of_adding():
    existing = hours_block("Anisha Shah", 14)
    moved = make_instance("x0", "Sunday", "18:00", KWALITY, "Anisha Shah")
    result = TeacherHourValidator().validate(existing, moved, replacing_id="x0")
    assert result.is_valid is True
    assert result.projected_hours == 14.0


def test_schedule_audit_finds_conflicts_and_breaches():
    instances = hours_block("Anisha Shah", 16) + [
        make_instance("dup", "Monday", "07:00", KWALITY, "Rohan Dahima"),
        make_instance("twice", "Monday", "07:00", SUPREME, "Anisha Shah"),
        make_instance("gone", "Friday", "19:00", SUPREME, "Saniya Khan")
    ]
    audit = TeacherHourValidator().validate_schedule(instances)
    assert audit.is_valid is False
    assert len(audit.violations) == 3
    assert [b.teacher for b in audit.policy_breaches] == ["Anisha Shah"]
