"""
taskbell

個人用タスク管理サーバー。
タスクの一覧・作成・更新・削除を REST API で提供し、
期限に達したリマインダーを WebSocket 経由でブラウザへ通知する。
"""

from __future__ import annotations

__version__ = "0.1.0"
