"""
タスク領域の値型（列挙・値オブジェクト）。

ORM モデルは storage.models にあり、ここは DB に依存しない。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    """タスクの状態。"""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    """タスクの優先度（宣言順が低→高）。"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        """並び替え用の順位（LOW=0 .. URGENT=3）。"""

        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[TaskPriority, int] = {p: i for i, p in enumerate(TaskPriority)}


class SortField(str, Enum):
    """一覧の並び替えキー。"""

    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    DEADLINE = "deadline"
    PRIORITY = "priority"
    TITLE = "title"


# dueDate は旧クライアント向けの別名（正は deadline）
SORT_FIELD_ALIASES: dict[str, SortField] = {
    "dueDate": SortField.DEADLINE,
}


class SortOrder(str, Enum):
    """並び順。"""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TaskQuery:
    """
    一覧取得の条件（リクエスト単位、保存しない）。

    statuses / priorities は空集合なら「絞り込みなし」。
    """

    search: Optional[str] = None
    statuses: frozenset[TaskStatus] = field(default_factory=frozenset)
    priorities: frozenset[TaskPriority] = field(default_factory=frozenset)
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        """ページ先頭のオフセット。"""

        return (int(self.page) - 1) * int(self.limit)


@dataclass(frozen=True)
class TaskRecord:
    """
    タスク1件の読み取り専用スナップショット。

    時刻はすべて UTC の UNIX 秒。
    """

    id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    created_at: int
    updated_at: int
    completed_at: Optional[int]
    deadline: Optional[int]
    reminder_time: Optional[int]
    reminder_enabled: bool
    reminder_notified: bool


@dataclass(frozen=True)
class ReminderSnapshot:
    """リマインダー判定に必要な列だけを持つ軽量スナップショット。"""

    id: str
    title: str
    reminder_time: Optional[int]
    reminder_enabled: bool
    reminder_notified: bool


@dataclass(frozen=True)
class TaskPage:
    """一覧1ページ分の結果。"""

    tasks: list[TaskRecord]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        """総ページ数（total=0 なら 0）。"""

        if int(self.limit) <= 0:
            return 0
        return int(math.ceil(int(self.total) / int(self.limit)))
