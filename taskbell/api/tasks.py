"""
/tasks エンドポイント

タスクの一覧（検索・絞り込み・並び替え・ページング）、作成、取得、更新、削除、一括操作を提供する。
領域例外は api.errors で HTTP ステータスへ写像する。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from taskbell import schemas
from taskbell.api.errors import to_http_exception
from taskbell.app_bootstrap.dependencies import get_task_service
from taskbell.tasks.errors import TaskError
from taskbell.tasks.models import TaskPage, TaskRecord
from taskbell.tasks.service import TaskService
from taskbell.time_utils import format_iso8601_utc


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def to_task_item(record: TaskRecord) -> schemas.TaskItem:
    """TaskRecord を API レスポンスへ整形する（時刻は ISO 8601 UTC）。"""

    return schemas.TaskItem(
        id=record.id,
        title=record.title,
        description=record.description,
        status=record.status.value,
        priority=record.priority.value,
        created_at=str(format_iso8601_utc(record.created_at)),
        updated_at=str(format_iso8601_utc(record.updated_at)),
        completed_at=format_iso8601_utc(record.completed_at),
        deadline=format_iso8601_utc(record.deadline),
        reminder_time=format_iso8601_utc(record.reminder_time),
        reminder_enabled=bool(record.reminder_enabled),
        reminder_notified=bool(record.reminder_notified),
    )


def to_list_response(page: TaskPage) -> schemas.TaskListResponse:
    return schemas.TaskListResponse(
        tasks=[to_task_item(r) for r in page.tasks],
        pagination=schemas.PaginationInfo(
            page=int(page.page),
            limit=int(page.limit),
            total=int(page.total),
            total_pages=int(page.total_pages),
        ),
    )


@router.get("", response_model=schemas.TaskListResponse)
async def list_tasks(
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> schemas.TaskListResponse:
    """
    タスク一覧を返す。

    クエリ: search, status, priority, sortBy, sortOrder, page, limit。
    status / priority は繰り返し指定またはカンマ区切りで複数指定できる。
    """

    # --- 繰り返し指定を落とさないよう、キーごとに全値を渡す ---
    params = {key: request.query_params.getlist(key) for key in request.query_params.keys()}
    try:
        page = await service.list_tasks(params)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return to_list_response(page)


@router.post("", response_model=schemas.TaskItem, status_code=status.HTTP_201_CREATED)
async def create_task(
    request: schemas.TaskCreateRequest,
    service: TaskService = Depends(get_task_service),
) -> schemas.TaskItem:
    """タスクを作成する。"""

    try:
        record = await service.create_task(request.model_dump(exclude_unset=True))
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return to_task_item(record)


@router.get("/stats", response_model=schemas.TaskStatsResponse)
async def task_stats(service: TaskService = Depends(get_task_service)) -> schemas.TaskStatsResponse:
    """status ごとの件数を返す（絞り込みパネルのバッジ用）。"""

    try:
        stats = await service.stats()
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    total = int(stats.pop("total", 0))
    return schemas.TaskStatsResponse(counts=stats, total=total)


@router.post("/bulk-update", response_model=schemas.TaskBulkUpdateResponse)
async def bulk_update_tasks(
    request: schemas.TaskBulkUpdateRequest,
    service: TaskService = Depends(get_task_service),
) -> schemas.TaskBulkUpdateResponse:
    """複数タスクの status / priority をまとめて変更する。存在しない id は無視する。"""

    try:
        updated = await service.bulk_update(request.ids, status=request.status, priority=request.priority)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return schemas.TaskBulkUpdateResponse(updated=int(updated))


@router.post("/bulk-delete", response_model=schemas.TaskBulkDeleteResponse)
async def bulk_delete_tasks(
    request: schemas.TaskBulkDeleteRequest,
    service: TaskService = Depends(get_task_service),
) -> schemas.TaskBulkDeleteResponse:
    """複数タスクをまとめて削除する。存在しない id は無視する。"""

    try:
        deleted = await service.bulk_delete(request.ids)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return schemas.TaskBulkDeleteResponse(deleted=int(deleted))


@router.get("/{task_id}", response_model=schemas.TaskItem)
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)) -> schemas.TaskItem:
    try:
        record = await service.get_task(task_id)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return to_task_item(record)


@router.patch("/{task_id}", response_model=schemas.TaskItem)
async def update_task(
    task_id: str,
    request: schemas.TaskUpdateRequest,
    service: TaskService = Depends(get_task_service),
) -> schemas.TaskItem:
    """タスクを部分更新する（指定したフィールドだけを変更）。"""

    try:
        record = await service.update_task(task_id, request.model_dump(exclude_unset=True))
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return to_task_item(record)


@router.patch("/{task_id}/status", response_model=schemas.TaskItem)
async def update_task_status(
    task_id: str,
    request: schemas.TaskStatusUpdateRequest,
    service: TaskService = Depends(get_task_service),
) -> schemas.TaskItem:
    try:
        record = await service.set_status(task_id, request.status)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return to_task_item(record)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)) -> Response:
    try:
        await service.delete_task(task_id)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
