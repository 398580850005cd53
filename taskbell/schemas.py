"""
API リクエスト/レスポンスの Pydantic モデル

FastAPI エンドポイントで使用するリクエスト/レスポンスのスキーマ定義。
JSON 上のキーは camelCase、Python 側の属性は snake_case。

NOTE:
    - リクエストは「型の形」だけを pydantic で見る。必須・長さ・列挙・日付の解釈は
      tasks.payloads で行い、違反をまとめて返す。
    - 部分更新は model_dump(exclude_unset=True) で「未指定」と「null 指定」を区別する。
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskbell.notifications import NotificationPermission

# 一括操作で受け付ける id 数の上限
MAX_BULK_IDS = 500


class ApiModel(BaseModel):
    """camelCase の JSON と snake_case の属性を対応づける基底。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- タスク ---


class TaskItem(ApiModel):
    """タスク1件（一覧/取得/作成/更新の共通レスポンス）。"""

    id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    created_at: str
    updated_at: str
    completed_at: Optional[str] = None
    deadline: Optional[str] = None
    reminder_time: Optional[str] = None
    reminder_enabled: bool = False
    reminder_notified: bool = False


class PaginationInfo(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TaskListResponse(ApiModel):
    """タスク一覧レスポンス。"""

    tasks: List[TaskItem] = Field(default_factory=list)
    pagination: PaginationInfo


class TaskCreateRequest(ApiModel):
    """
    タスク作成リクエスト。

    deadline が正のフィールド名。dueDate は旧名として受け付ける。
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    deadline: Optional[str] = None
    due_date: Optional[str] = None
    reminder_time: Optional[str] = None
    reminder_enabled: Optional[bool] = None


class TaskUpdateRequest(ApiModel):
    """タスク更新リクエスト（部分更新）。"""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    deadline: Optional[str] = None
    due_date: Optional[str] = None
    reminder_time: Optional[str] = None
    reminder_enabled: Optional[bool] = None
    reminder_notified: Optional[bool] = None


class TaskStatusUpdateRequest(ApiModel):
    """status だけの更新リクエスト。"""

    status: Optional[str] = None


class TaskBulkUpdateRequest(ApiModel):
    """一括更新リクエスト（status / priority のどちらか以上）。"""

    ids: List[str] = Field(min_length=1, max_length=MAX_BULK_IDS)
    status: Optional[str] = None
    priority: Optional[str] = None


class TaskBulkUpdateResponse(ApiModel):
    updated: int


class TaskBulkDeleteRequest(ApiModel):
    ids: List[str] = Field(min_length=1, max_length=MAX_BULK_IDS)


class TaskBulkDeleteResponse(ApiModel):
    deleted: int


class TaskStatsResponse(ApiModel):
    """status ごとの件数（全 status を 0 埋め）と合計。"""

    counts: Dict[str, int] = Field(default_factory=dict)
    total: int


# --- 通知 / リマインダー ---


class NotificationPermissionResponse(ApiModel):
    permission: NotificationPermission


class NotificationPermissionUpdateRequest(ApiModel):
    """ブラウザの通知許可状態の報告。"""

    permission: NotificationPermission


class NotificationTestResponse(ApiModel):
    """テスト通知の結果。delivered=false は許可待ち（default）で表示しなかった。"""

    delivered: bool
    permission: NotificationPermission


class ReminderStatusResponse(ApiModel):
    """リマインダーループの状態。"""

    enabled: bool
    check_interval_seconds: int
    window_seconds: int
    notified_count: int
    pending_writes: int
    last_tick_at: Optional[str] = None
    connected_clients: int

