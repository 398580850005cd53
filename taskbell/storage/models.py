"""
タスクDB（tasks.db）のORMモデル定義

時刻列はすべて UTC の UNIX 秒（int）で保持する。
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from taskbell.storage.db import TasksBase


class Task(TasksBase):
    """タスク1件。

    - status / priority は列挙値の文字列で保存する
    - reminder_notified は false -> true の一方向のみ（repo で担保）
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_status", "status"),
        Index("idx_tasks_priority", "priority"),
        Index("idx_tasks_created_at", "created_at"),
        Index("idx_tasks_reminder", "reminder_enabled", "reminder_notified", "reminder_time"),
    )

    # --- 主キーと基本メタ ---
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    # --- 本文 ---
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # --- 状態 ---
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="MEDIUM")
    completed_at: Mapped[Optional[int]] = mapped_column(Integer)

    # --- 期限とリマインダー ---
    deadline: Mapped[Optional[int]] = mapped_column(Integer)
    reminder_time: Mapped[Optional[int]] = mapped_column(Integer)
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
