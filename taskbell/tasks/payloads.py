"""
作成/更新ボディの検証。

目的:
    - pydantic で型だけ整えたボディを、領域ルール（必須・長さ・列挙・日付）で検証する。
    - 違反はまとめて ValidationError にする。

NOTE:
    - deadline が正のフィールド名。dueDate（旧名）は入力の別名としてのみ受け付ける。
    - 日付テキストは time_utils.parse_datetime_text の UTC 規約で解釈する。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from taskbell.tasks.errors import ValidationError
from taskbell.tasks.models import TaskPriority, TaskStatus
from taskbell.time_utils import parse_datetime_text

MAX_TITLE_CHARS = 200
MAX_DESCRIPTION_CHARS = 2000

# 更新で受け付けるフィールド（DB列名）
UPDATABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "deadline",
    "reminder_time",
    "reminder_enabled",
    "reminder_notified",
)


@dataclass(frozen=True)
class TaskCreate:
    """検証済みの作成データ。"""

    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    deadline: Optional[int] = None
    reminder_time: Optional[int] = None
    reminder_enabled: bool = False


@dataclass(frozen=True)
class TaskUpdate:
    """検証済みの部分更新データ（指定されたフィールドだけを持つ）。"""

    changes: dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.changes)


def _check_title(raw: Any, errors: list[str]) -> Optional[str]:
    title = str(raw or "").strip()
    if not title:
        errors.append("title is required")
        return None
    if len(title) > MAX_TITLE_CHARS:
        errors.append(f"title must be at most {MAX_TITLE_CHARS} characters")
        return None
    return title


def _check_description(raw: Any, errors: list[str]) -> Optional[str]:
    if raw is None:
        return None
    description = str(raw).strip()
    if len(description) > MAX_DESCRIPTION_CHARS:
        errors.append(f"description must be at most {MAX_DESCRIPTION_CHARS} characters")
        return None
    return description or None


def _check_enum(raw: Any, enum_cls, *, name: str, errors: list[str]):
    s = str(raw or "").strip().upper()
    try:
        return enum_cls(s)
    except ValueError:
        errors.append(f"{name} must be one of {', '.join(m.value for m in enum_cls)} (got {raw!r})")
        return None


def _check_date(raw: Any, *, name: str, errors: list[str]) -> Optional[int]:
    try:
        return parse_datetime_text(raw)
    except (ValueError, OverflowError):
        errors.append(f"{name} is not a valid date (got {raw!r})")
        return None


def _resolve_deadline_key(body: Mapping[str, Any]) -> Optional[str]:
    """deadline / due_date のどちらが指定されたかを返す（両方なら deadline 優先）。"""

    if "deadline" in body:
        return "deadline"
    if "due_date" in body:
        return "due_date"
    return None


def parse_task_create(body: Mapping[str, Any]) -> TaskCreate:
    """
    作成ボディを検証して TaskCreate を返す。

    Args:
        body: snake_case キーの辞書（未指定キーは含めない）。

    Raises:
        ValidationError: 違反があった場合（全違反を列挙）。
    """

    errors: list[str] = []

    title = _check_title(body.get("title"), errors)
    description = _check_description(body.get("description"), errors)

    status = TaskStatus.PENDING
    if body.get("status") is not None:
        status = _check_enum(body.get("status"), TaskStatus, name="status", errors=errors) or status

    priority = TaskPriority.MEDIUM
    if body.get("priority") is not None:
        priority = _check_enum(body.get("priority"), TaskPriority, name="priority", errors=errors) or priority

    deadline_key = _resolve_deadline_key(body)
    deadline = _check_date(body.get(deadline_key), name="deadline", errors=errors) if deadline_key else None
    reminder_time = _check_date(body.get("reminder_time"), name="reminderTime", errors=errors)

    if errors:
        raise ValidationError(errors)

    return TaskCreate(
        title=str(title),
        description=description,
        status=status,
        priority=priority,
        deadline=deadline,
        reminder_time=reminder_time,
        reminder_enabled=bool(body.get("reminder_enabled") or False),
    )


def parse_task_update(body: Mapping[str, Any]) -> TaskUpdate:
    """
    部分更新ボディを検証して TaskUpdate を返す。

    reminder_notified の整合（false に戻さない、due 前に true にしない）は
    現在値が必要なため repo 側で検証する。

    Raises:
        ValidationError: 違反があった場合、または更新対象が1つも無い場合。
    """

    errors: list[str] = []
    changes: dict[str, Any] = {}

    if "title" in body:
        title = _check_title(body.get("title"), errors)
        if title is not None:
            changes["title"] = title

    if "description" in body:
        changes["description"] = _check_description(body.get("description"), errors)

    if "status" in body:
        status = _check_enum(body.get("status"), TaskStatus, name="status", errors=errors)
        if status is not None:
            changes["status"] = status

    if "priority" in body:
        priority = _check_enum(body.get("priority"), TaskPriority, name="priority", errors=errors)
        if priority is not None:
            changes["priority"] = priority

    deadline_key = _resolve_deadline_key(body)
    if deadline_key:
        changes["deadline"] = _check_date(body.get(deadline_key), name="deadline", errors=errors)

    if "reminder_time" in body:
        changes["reminder_time"] = _check_date(body.get("reminder_time"), name="reminderTime", errors=errors)

    if "reminder_enabled" in body:
        if body.get("reminder_enabled") is None:
            errors.append("reminderEnabled must be a boolean")
        else:
            changes["reminder_enabled"] = bool(body.get("reminder_enabled"))

    if "reminder_notified" in body:
        if body.get("reminder_notified") is None:
            errors.append("reminderNotified must be a boolean")
        else:
            changes["reminder_notified"] = bool(body.get("reminder_notified"))

    if errors:
        raise ValidationError(errors)
    if not changes:
        raise ValidationError(["no valid fields to update"])

    return TaskUpdate(changes=changes)
