"""
HTTP ルート登録。

目的:
    - router 登録と例外ハンドラの配線をまとめる。
    - `main.py` から HTTP 配線の詳細を外す。
"""

from __future__ import annotations

from fastapi import Depends, FastAPI

from taskbell.api import events, notifications, reminders, tasks
from taskbell.api.errors import register_exception_handlers
from taskbell.api.http_auth import require_bearer


def register_http_routes(app: FastAPI) -> None:
    """
    API router とヘルスチェックを登録する。
    """

    register_exception_handlers(app)

    # --- 認証付き API router を登録する ---
    app.include_router(tasks.router, dependencies=[Depends(require_bearer)], prefix="/api")
    app.include_router(notifications.router, dependencies=[Depends(require_bearer)], prefix="/api")
    app.include_router(reminders.router, dependencies=[Depends(require_bearer)], prefix="/api")

    # --- WebSocket は接続時に自前で認証する ---
    app.include_router(events.router, prefix="/api")

    # --- ヘルスチェックを登録する ---
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        """稼働確認用のヘルスチェックを返す。"""

        return {"status": "healthy"}
