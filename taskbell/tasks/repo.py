"""
タスクDBアクセス。

目的:
    - tasks テーブルの読み書きを1箇所に集約する。
    - API（一覧/作成/更新/削除）とリマインダーループで同じ保存契約を使う。

方針:
    - メソッドごとに tasks_session_scope を開く（スレッドから呼ばれても安全）。
    - SQLAlchemy の例外は PersistenceError に包み、ログに残す。
    - ORM インスタンスは外へ出さず、TaskRecord に写して返す。
"""

from __future__ import annotations

import contextlib
import logging
import uuid
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskbell.clock import ClockService, get_clock_service
from taskbell.storage.db import tasks_session_scope
from taskbell.storage.models import Task
from taskbell.tasks.errors import NotFoundError, PersistenceError, ValidationError
from taskbell.tasks.filters import build_filters, build_ordering, build_predicate
from taskbell.tasks.models import (
    ReminderSnapshot,
    TaskPriority,
    TaskQuery,
    TaskRecord,
    TaskStatus,
)
from taskbell.tasks.payloads import TaskCreate, TaskUpdate


logger = logging.getLogger(__name__)


def row_to_record(row: Task) -> TaskRecord:
    """ORM 行を読み取り専用レコードへ写す。"""

    return TaskRecord(
        id=str(row.id),
        title=str(row.title or ""),
        description=row.description,
        status=TaskStatus(str(row.status)),
        priority=TaskPriority(str(row.priority)),
        created_at=int(row.created_at),
        updated_at=int(row.updated_at),
        completed_at=(int(row.completed_at) if row.completed_at is not None else None),
        deadline=(int(row.deadline) if row.deadline is not None else None),
        reminder_time=(int(row.reminder_time) if row.reminder_time is not None else None),
        reminder_enabled=bool(row.reminder_enabled),
        reminder_notified=bool(row.reminder_notified),
    )


class TaskRepository:
    """tasks テーブル専用のリポジトリ。"""

    def __init__(self, *, clock: ClockService | None = None) -> None:
        self.clock = clock or get_clock_service()

    # --- 内部 ---

    @contextlib.contextmanager
    def _session(self, op: str) -> Iterator[Session]:
        """セッションを開き、DB例外を PersistenceError に変換する。"""

        try:
            with tasks_session_scope() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.exception("tasks db operation failed: op=%s", op)
            raise PersistenceError(f"tasks db operation failed: {op}") from exc

    @staticmethod
    def _get_row(db: Session, task_id: str) -> Task:
        row = db.get(Task, str(task_id))
        if row is None:
            raise NotFoundError(task_id)
        return row

    def _touch(self, row: Task) -> None:
        """updated_at を単調非減少で更新する。"""

        now_ts = self.clock.now_utc_ts()
        row.updated_at = max(int(row.updated_at or 0), int(now_ts))

    @staticmethod
    def _apply_status(row: Task, status: TaskStatus, now_ts: int) -> None:
        """status を変更し、completed_at を追従させる。"""

        previous = str(row.status or "")
        row.status = status.value
        if status == TaskStatus.COMPLETED:
            if previous != TaskStatus.COMPLETED.value or row.completed_at is None:
                row.completed_at = int(now_ts)
        else:
            row.completed_at = None

    # --- 一覧 ---

    def find_rows(self, query: TaskQuery) -> list[TaskRecord]:
        """述語・並び・ページングに従って行を返す。"""

        predicate = build_predicate(build_filters(query))
        ordering = build_ordering(query.sort_by, query.sort_order)
        with self._session("find_rows") as db:
            stmt = (
                select(Task)
                .where(predicate)
                .order_by(*ordering)
                .offset(int(query.offset))
                .limit(int(query.limit))
            )
            rows = db.execute(stmt).scalars().all()
            return [row_to_record(r) for r in rows]

    def count(self, query: TaskQuery) -> int:
        """述語に一致する総件数を返す（ページングとは独立）。"""

        predicate = build_predicate(build_filters(query))
        with self._session("count") as db:
            n = db.execute(select(func.count()).select_from(Task).where(predicate)).scalar_one()
            return int(n or 0)

    def count_by_status(self) -> dict[str, int]:
        """status ごとの件数を返す（全 status を 0 埋め）。"""

        out = {s.value: 0 for s in TaskStatus}
        with self._session("count_by_status") as db:
            rows = db.execute(select(Task.status, func.count()).group_by(Task.status)).all()
            for status, n in rows:
                if str(status) in out:
                    out[str(status)] = int(n or 0)
        return out

    # --- 単体 ---

    def get(self, task_id: str) -> TaskRecord:
        """1件取得する。無ければ NotFoundError。"""

        with self._session("get") as db:
            return row_to_record(self._get_row(db, task_id))

    def create(self, data: TaskCreate) -> TaskRecord:
        """
        タスクを作成する。

        id / created_at / updated_at はここで採番し、reminder_notified は常に false で始める。
        """

        now_ts = self.clock.now_utc_ts()
        row = Task(
            id=uuid.uuid4().hex,
            created_at=int(now_ts),
            updated_at=int(now_ts),
            title=str(data.title),
            description=data.description,
            status=data.status.value,
            priority=data.priority.value,
            completed_at=(int(now_ts) if data.status == TaskStatus.COMPLETED else None),
            deadline=data.deadline,
            reminder_time=data.reminder_time,
            reminder_enabled=bool(data.reminder_enabled),
            reminder_notified=False,
        )
        with self._session("create") as db:
            db.add(row)
            db.flush()
            record = row_to_record(row)
        logger.info("task created id=%s status=%s priority=%s", record.id, record.status.value, record.priority.value)
        return record

    def update(self, task_id: str, data: TaskUpdate) -> TaskRecord:
        """
        部分更新する。

        reminder_notified の整合:
            - true -> false は拒否する
            - false -> true は reminder_enabled かつ reminder_time 到達済みのときだけ許可する
        """

        changes: dict[str, Any] = dict(data.changes)
        with self._session("update") as db:
            row = self._get_row(db, task_id)
            now_ts = self.clock.now_utc_ts()

            if "reminder_notified" in changes:
                self._check_reminder_notified(row, changes, now_ts=now_ts)

            for key, value in changes.items():
                if key == "status":
                    self._apply_status(row, value, now_ts)
                elif key == "priority":
                    row.priority = value.value
                else:
                    setattr(row, key, value)

            self._touch(row)
            db.flush()
            record = row_to_record(row)
        logger.info("task updated id=%s fields=%s", record.id, sorted(changes))
        return record

    @staticmethod
    def _check_reminder_notified(row: Task, changes: dict[str, Any], *, now_ts: int) -> None:
        """reminder_notified の遷移を検証する（同時に変わる列は変更後の値で見る）。"""

        requested = bool(changes["reminder_notified"])
        current = bool(row.reminder_notified)
        if requested == current:
            return
        if current and not requested:
            raise ValidationError(["reminderNotified cannot be reset once a reminder has fired"])

        enabled = bool(changes.get("reminder_enabled", row.reminder_enabled))
        reminder_time = changes.get("reminder_time", row.reminder_time)
        if not enabled or reminder_time is None or int(reminder_time) > int(now_ts):
            raise ValidationError(["reminderNotified can only be set after an enabled reminder is due"])

    def set_status(self, task_id: str, status: TaskStatus) -> TaskRecord:
        """status だけを変更する。"""

        return self.update(task_id, TaskUpdate(changes={"status": status}))

    def delete(self, task_id: str) -> None:
        """1件削除する。無ければ NotFoundError。"""

        with self._session("delete") as db:
            row = self._get_row(db, task_id)
            db.delete(row)
        logger.info("task deleted id=%s", task_id)

    # --- 一括 ---

    def bulk_update(
        self,
        task_ids: Iterable[str],
        *,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> int:
        """存在するIDだけを更新し、更新件数を返す。"""

        ids = sorted({str(i) for i in task_ids if str(i or "").strip()})
        if not ids or (status is None and priority is None):
            return 0

        updated = 0
        with self._session("bulk_update") as db:
            now_ts = self.clock.now_utc_ts()
            rows = db.execute(select(Task).where(Task.id.in_(ids))).scalars().all()
            for row in rows:
                if status is not None:
                    self._apply_status(row, status, now_ts)
                if priority is not None:
                    row.priority = priority.value
                self._touch(row)
                updated += 1
        logger.info("tasks bulk updated count=%s", updated)
        return updated

    def bulk_delete(self, task_ids: Iterable[str]) -> int:
        """存在するIDだけを削除し、削除件数を返す。"""

        ids = sorted({str(i) for i in task_ids if str(i or "").strip()})
        if not ids:
            return 0
        with self._session("bulk_delete") as db:
            result = db.execute(
                delete(Task).where(Task.id.in_(ids)).execution_options(synchronize_session=False)
            )
            deleted = int(result.rowcount or 0)
        logger.info("tasks bulk deleted count=%s", deleted)
        return deleted

    # --- リマインダー ---

    def list_reminder_snapshots(self) -> list[ReminderSnapshot]:
        """現在のタスク一覧を、リマインダー判定用の軽量形式で返す。"""

        with self._session("list_reminder_snapshots") as db:
            rows = db.execute(
                select(
                    Task.id,
                    Task.title,
                    Task.reminder_time,
                    Task.reminder_enabled,
                    Task.reminder_notified,
                )
            ).all()
            return [
                ReminderSnapshot(
                    id=str(r[0]),
                    title=str(r[1] or ""),
                    reminder_time=(int(r[2]) if r[2] is not None else None),
                    reminder_enabled=bool(r[3]),
                    reminder_notified=bool(r[4]),
                )
                for r in rows
            ]

    def mark_reminder_notified(self, task_id: str) -> bool:
        """
        reminder_notified を true にする（条件付き UPDATE）。

        Returns:
            True: 今回 false -> true に遷移した
            False: 対象外（削除済み/無効/未到達/既に true）
        """

        now_ts = self.clock.now_utc_ts()
        with self._session("mark_reminder_notified") as db:
            result = db.execute(
                update(Task)
                .where(
                    Task.id == str(task_id),
                    Task.reminder_enabled.is_(True),
                    Task.reminder_notified.is_(False),
                    Task.reminder_time.is_not(None),
                    Task.reminder_time <= int(now_ts),
                )
                .values(
                    reminder_notified=True,
                    updated_at=func.max(Task.updated_at, int(now_ts)),
                )
                .execution_options(synchronize_session=False)
            )
            return int(result.rowcount or 0) == 1
