# tests/test_task_filters.py

from __future__ import annotations

from sqlalchemy.dialects import sqlite

from taskbell.tasks.filters import (
    PriorityFilter,
    SearchFilter,
    StatusFilter,
    build_filters,
    build_ordering,
    build_predicate,
)
from taskbell.tasks.models import SortField, SortOrder, TaskPriority, TaskQuery, TaskStatus


def _sql(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def test_build_filters_skips_absent_criteria() -> None:
    assert build_filters(TaskQuery()) == []


def test_build_filters_emits_one_variant_per_field() -> None:
    q = TaskQuery(
        search="milk",
        statuses=frozenset({TaskStatus.PENDING}),
        priorities=frozenset({TaskPriority.LOW}),
    )
    assert build_filters(q) == [
        SearchFilter(text="milk"),
        StatusFilter(values=frozenset({TaskStatus.PENDING})),
        PriorityFilter(values=frozenset({TaskPriority.LOW})),
    ]


def test_search_predicate_folds_case_on_both_sides() -> None:
    sql = _sql(build_predicate([SearchFilter(text="ÄRGER")]))
    assert "py_casefold(tasks.title)" in sql
    assert "'ärger'" in sql
    assert "LIKE" not in sql.upper()


def test_status_predicate_is_in_list() -> None:
    sql = _sql(build_predicate([StatusFilter(values=frozenset({TaskStatus.COMPLETED, TaskStatus.PENDING}))]))
    assert "tasks.status IN ('COMPLETED', 'PENDING')" in sql


def test_search_predicate_matches_title_or_description() -> None:
    sql = _sql(build_predicate([SearchFilter(text="Milk")])).lower()
    assert "tasks.title" in sql
    assert "tasks.description" in sql
    assert " or " in sql


def test_ordering_ends_with_id_tie_break() -> None:
    ordering = build_ordering(SortField.TITLE, SortOrder.DESC)
    assert _sql(ordering[-1]) == "tasks.id ASC"


def test_deadline_ordering_puts_nulls_last() -> None:
    ordering = build_ordering(SortField.DEADLINE, SortOrder.DESC)
    assert len(ordering) == 3
    assert _sql(ordering[0]) == "tasks.deadline IS NULL ASC"
