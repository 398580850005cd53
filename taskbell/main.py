"""
FastAPI エントリポイント

taskbell APIサーバーのメインモジュール。
設定 -> ログ -> DB -> アプリ単位の部品 -> ルーター -> 起動/終了フック の順で組み立てる。

uvicorn からは factory として起動する（import 時に設定ファイルを読まない）:
    uvicorn taskbell.main:create_app --factory
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from taskbell import __version__
from taskbell.app_bootstrap.config_bootstrap import bootstrap_config
from taskbell.app_bootstrap.lifecycle import register_lifecycle_hooks
from taskbell.app_bootstrap.routers import register_http_routes
from taskbell.clock import ClockService, get_clock_service
from taskbell.config import Config
from taskbell.notifications import EventStreamNotifier
from taskbell.reminders import ReminderLoop
from taskbell.runtime.event_stream import EventStream
from taskbell.tasks.repo import TaskRepository
from taskbell.tasks.service import TaskService


logger = logging.getLogger(__name__)


def create_app(config: Config | None = None, *, clock: ClockService | None = None) -> FastAPI:
    """
    アプリ生成と初期化を行う。

    Args:
        config: 読み込み済み設定。None なら config/setting.toml を読む。
        clock: 時計サービス。None なら共有サービスを使う。
    """

    # 1. 設定・ログ・DB
    config_store = bootstrap_config(config)
    cfg = config_store.config
    clock_service = clock or get_clock_service()

    # 2. FastAPIアプリ作成
    app = FastAPI(title="taskbell API", version=__version__)

    # 3. アプリ単位の部品（notified-set は ReminderLoop が所有する）
    repo = TaskRepository(clock=clock_service)
    stream = EventStream()
    notifier = EventStreamNotifier(stream)
    app.state.event_stream = stream
    app.state.notifier = notifier
    app.state.task_service = TaskService(
        repo,
        default_page_limit=cfg.default_page_limit,
        max_page_limit=cfg.max_page_limit,
    )
    app.state.reminder_loop = ReminderLoop(
        store=repo,
        notifier=notifier,
        clock=clock_service,
        window_seconds=cfg.reminder_window_seconds,
    )

    # 4. ルーターと起動/終了フック
    register_http_routes(app)
    register_lifecycle_hooks(app, config=cfg)

    logger.info("taskbell app created version=%s", __version__)
    return app
