"""
HTTP / WebSocket API パッケージ。

各モジュールは APIRouter を1つ公開し、app_bootstrap.routers で登録する。
"""

from __future__ import annotations
