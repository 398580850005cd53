"""
一覧フィルタ -> SQLAlchemy 述語の組み立て。

目的:
    - フィルタ条件をフィールドごとのタグ付き値（variant）で表す。
    - 述語生成は variant を網羅的に match し、漏れは型検査と実行時の両方で検出する。

NOTE:
    - search は title / description の部分一致。大文字小文字は str.casefold で畳み込む
      （非ASCIIも含む。Ä と ä、ß と ss は同一視）。
    - 一致判定は instr なので、% や _ は文字どおりに扱われる。
    - 並びは指定キー -> id 昇順（同値時の順序を決定的にする）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union, assert_never

from sqlalchemy import and_, case, func, or_, true
from sqlalchemy.sql.elements import ColumnElement

from taskbell.storage.db import CASEFOLD_SQL_FUNCTION
from taskbell.storage.models import Task
from taskbell.tasks.models import SortField, SortOrder, TaskPriority, TaskQuery, TaskStatus


@dataclass(frozen=True)
class SearchFilter:
    """title / description の部分一致。"""

    text: str


@dataclass(frozen=True)
class StatusFilter:
    """status がいずれかに一致。"""

    values: frozenset[TaskStatus]


@dataclass(frozen=True)
class PriorityFilter:
    """priority がいずれかに一致。"""

    values: frozenset[TaskPriority]


TaskFilter = Union[SearchFilter, StatusFilter, PriorityFilter]


def build_filters(query: TaskQuery) -> list[TaskFilter]:
    """TaskQuery から有効なフィルタだけを取り出す。"""

    out: list[TaskFilter] = []
    if query.search:
        out.append(SearchFilter(text=str(query.search)))
    if query.statuses:
        out.append(StatusFilter(values=frozenset(query.statuses)))
    if query.priorities:
        out.append(PriorityFilter(values=frozenset(query.priorities)))
    return out


def _contains_folded(column, needle: str) -> ColumnElement[bool]:
    """畳み込んだ列に needle が含まれるか（NULL 列は不一致）。"""

    folded = getattr(func, CASEFOLD_SQL_FUNCTION)(column)
    return func.instr(folded, needle) > 0


def filter_clause(f: TaskFilter) -> ColumnElement[bool]:
    """フィルタ1件を SQLAlchemy の条件式へ変換する。"""

    match f:
        case SearchFilter(text=text_value):
            needle = str(text_value).casefold()
            return or_(*(_contains_folded(col, needle) for col in (Task.title, Task.description)))
        case StatusFilter(values=values):
            return Task.status.in_(sorted(v.value for v in values))
        case PriorityFilter(values=values):
            return Task.priority.in_(sorted(v.value for v in values))
        case _:
            assert_never(f)


def build_predicate(filters: Sequence[TaskFilter]) -> ColumnElement[bool]:
    """フィルタ列を AND で結合した述語を返す（空なら常に真）。"""

    clauses = [filter_clause(f) for f in filters]
    if not clauses:
        return true()
    return and_(*clauses)


def _priority_rank_expr():
    """priority を宣言順（LOW < ... < URGENT）の数値へ写す式。"""

    return case(
        {p.value: p.rank for p in TaskPriority},
        value=Task.priority,
        else_=-1,
    )


def build_ordering(sort_by: SortField, sort_order: SortOrder) -> list:
    """ORDER BY 句を返す（末尾に id 昇順のタイブレーク）。"""

    match sort_by:
        case SortField.CREATED_AT:
            key = Task.created_at
        case SortField.UPDATED_AT:
            key = Task.updated_at
        case SortField.DEADLINE:
            key = Task.deadline
        case SortField.PRIORITY:
            key = _priority_rank_expr()
        case SortField.TITLE:
            key = Task.title
        case _:
            assert_never(sort_by)

    ordered = key.asc() if sort_order == SortOrder.ASC else key.desc()
    out = []
    # --- deadline 未設定は昇順/降順どちらでも末尾 ---
    if sort_by == SortField.DEADLINE:
        out.append(Task.deadline.is_(None).asc())
    out.append(ordered)
    out.append(Task.id.asc())
    return out
