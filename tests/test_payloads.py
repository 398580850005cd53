# tests/test_payloads.py

from __future__ import annotations

import pytest

from taskbell.tasks.errors import ValidationError
from taskbell.tasks.models import TaskPriority, TaskStatus
from taskbell.tasks.payloads import parse_task_create, parse_task_update

NEW_YEAR_2025 = 1_735_689_600


def test_create_defaults() -> None:
    data = parse_task_create({"title": "  Buy milk  "})
    assert data.title == "Buy milk"
    assert data.status == TaskStatus.PENDING
    assert data.priority == TaskPriority.MEDIUM
    assert data.deadline is None
    assert data.reminder_time is None
    assert data.reminder_enabled is False


def test_create_requires_title() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_task_create({"title": "   "})
    assert excinfo.value.errors == ["title is required"]


def test_create_collects_every_violation() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_task_create(
            {
                "title": "",
                "description": "d" * 2001,
                "status": "DONE",
                "priority": "HUGE",
                "deadline": "someday",
                "reminder_time": "later",
            }
        )
    assert len(excinfo.value.errors) == 6


def test_out_of_range_dates_are_validation_errors() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_task_create({"title": "x", "deadline": "0001-01-01T00:00:00+01:00"})
    assert excinfo.value.errors == ["deadline is not a valid date (got '0001-01-01T00:00:00+01:00')"]

    with pytest.raises(ValidationError):
        parse_task_update({"reminder_time": "9999-12-31T23:00:00-05:00"})


def test_create_accepts_due_date_alias() -> None:
    data = parse_task_create({"title": "t", "due_date": "2025-01-01"})
    assert data.deadline == NEW_YEAR_2025


def test_deadline_wins_over_alias() -> None:
    data = parse_task_create({"title": "t", "deadline": "2025-01-01", "due_date": "2030-01-01"})
    assert data.deadline == NEW_YEAR_2025


def test_create_normalizes_enum_case() -> None:
    data = parse_task_create({"title": "t", "status": "in_progress", "priority": "urgent"})
    assert data.status == TaskStatus.IN_PROGRESS
    assert data.priority == TaskPriority.URGENT


def test_update_keeps_only_given_fields() -> None:
    data = parse_task_update({"priority": "HIGH", "deadline": None})
    assert data.changes == {"priority": TaskPriority.HIGH, "deadline": None}


def test_update_rejects_empty_body() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_task_update({})
    assert excinfo.value.errors == ["no valid fields to update"]


def test_update_rejects_null_flags() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_task_update({"reminder_enabled": None, "reminder_notified": None})
    assert excinfo.value.errors == [
        "reminderEnabled must be a boolean",
        "reminderNotified must be a boolean",
    ]


def test_update_rejects_null_title() -> None:
    with pytest.raises(ValidationError):
        parse_task_update({"title": None})
