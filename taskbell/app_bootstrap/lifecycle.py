"""
アプリライフサイクル登録。

目的:
    - startup / shutdown の副作用を 1 箇所へ集約する。
    - `main.py` は登録呼び出しだけにする。
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI

from taskbell.config import Config
from taskbell.reminders import ReminderLoop
from taskbell.runtime.event_stream import EventStream
from taskbell.runtime.logging import suppress_uvicorn_access_log_paths
from taskbell.runtime.periodic import start_periodic_task, stop_periodic_tasks
from taskbell.storage.db import dispose_tasks_db


logger = logging.getLogger(__name__)

# shutdown 時に保存待ちを待つ上限（秒）
_DRAIN_TIMEOUT_SECONDS = 5.0


def register_lifecycle_hooks(app: FastAPI, *, config: Config) -> None:
    """
    FastAPI の startup / shutdown フックを登録する。
    """

    stream: EventStream = app.state.event_stream
    reminder_loop: ReminderLoop = app.state.reminder_loop

    # --- access log のノイズ抑制は startup 時に確実に付与する ---
    @app.on_event("startup")
    async def suppress_noisy_uvicorn_access_logs() -> None:
        """頻繁なアクセスログを uvicorn.access から除外する。"""

        suppress_uvicorn_access_log_paths(
            "/api/health",
            "/api/reminders/status",
        )

    # --- イベント配信を起動する ---
    @app.on_event("startup")
    async def start_event_stream_dispatcher() -> None:
        """イベント WebSocket 配信を起動する。"""

        loop = asyncio.get_running_loop()
        stream.install(loop)
        await stream.start_dispatcher()

    # --- リマインダーを起動する ---
    @app.on_event("startup")
    async def start_periodic_services() -> None:
        """リマインダーループを起動する（起動直後に1回、以降は間隔ごと）。"""

        # --- event_stream 起動後に periodic を登録し、 publish レースを避ける ---
        if not config.reminders_enabled:
            logger.info("reminders disabled by config")
            return

        start_periodic_task(
            app,
            name="periodic_reminders",
            interval_seconds=float(config.reminder_check_interval_seconds),
            wait_first=False,
            func=reminder_loop.tick,
            logger=logger,
        )

    # --- periodic を先に止めて publish レースを避ける ---
    @app.on_event("shutdown")
    async def stop_periodic_services() -> None:
        """定期実行タスクを止め、投げっぱなしの保存を待つ。"""

        await stop_periodic_tasks(app, logger=logger)
        await reminder_loop.drain(timeout_seconds=_DRAIN_TIMEOUT_SECONDS)

    @app.on_event("shutdown")
    async def stop_event_stream_dispatcher() -> None:
        """イベント配信を停止する。"""

        await stream.stop_dispatcher()

    # --- DB は最後に閉じる ---
    @app.on_event("shutdown")
    async def close_tasks_db() -> None:
        dispose_tasks_db()
