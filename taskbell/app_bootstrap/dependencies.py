"""
依存オブジェクトの取得。

目的:
    - FastAPI の Depends で使う取得処理を起動配線側に寄せる。
    - アプリ単位のオブジェクトは app.state に置き、ここから引く（グローバルにしない）。
"""

from __future__ import annotations

from fastapi import Request

from taskbell.config import ConfigStore, get_config_store
from taskbell.notifications import EventStreamNotifier
from taskbell.reminders import ReminderLoop
from taskbell.runtime.event_stream import EventStream
from taskbell.tasks.service import TaskService


def get_config_store_dep() -> ConfigStore:
    """ConfigStore を Depends 用に返す。"""

    return get_config_store()


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_event_stream(request: Request) -> EventStream:
    return request.app.state.event_stream


def get_notifier(request: Request) -> EventStreamNotifier:
    return request.app.state.notifier


def get_reminder_loop(request: Request) -> ReminderLoop:
    """リマインダーループ（notified-set の所有者）を返す。"""

    return request.app.state.reminder_loop
