"""
タスクサービス

API から呼ばれる業務手順をまとめる（検証 -> 保存 -> 結果の整形）。

方針:
    - 入力検証は repo を呼ぶ前に終わらせる（検証エラー時は DB に触れない）。
    - 同期の repo 呼び出しは asyncio.to_thread でワーカースレッドへ逃がす。
    - 一覧のページ読み出しと件数取得は独立した2回の読み出しで、並行に投げる。
      同一トランザクションではないため、同時書き込みがあると total とページが食い違い得る。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping, Optional

from taskbell.tasks.models import TaskPage, TaskPriority, TaskRecord, TaskStatus
from taskbell.tasks.payloads import parse_task_create, parse_task_update
from taskbell.tasks.query import DEFAULT_LIMIT, MAX_LIMIT, RawValue, parse_task_query
from taskbell.tasks.repo import TaskRepository


logger = logging.getLogger(__name__)


class TaskService:
    """タスクの一覧・作成・更新・削除。"""

    def __init__(
        self,
        repo: TaskRepository,
        *,
        default_page_limit: int = DEFAULT_LIMIT,
        max_page_limit: int = MAX_LIMIT,
    ) -> None:
        self.repo = repo
        self.default_page_limit = int(default_page_limit)
        self.max_page_limit = int(max_page_limit)

    async def list_tasks(self, params: Mapping[str, RawValue]) -> TaskPage:
        """
        クエリパラメータに従って1ページ分を返す。

        Raises:
            ValidationError: パラメータ違反（DB には触れない）。
            PersistenceError: 読み出し失敗。
        """

        query = parse_task_query(
            params,
            default_limit=self.default_page_limit,
            max_limit=self.max_page_limit,
        )
        rows, total = await asyncio.gather(
            asyncio.to_thread(self.repo.find_rows, query),
            asyncio.to_thread(self.repo.count, query),
        )
        return TaskPage(tasks=list(rows), page=int(query.page), limit=int(query.limit), total=int(total))

    async def create_task(self, body: Mapping[str, Any]) -> TaskRecord:
        data = parse_task_create(body)
        return await asyncio.to_thread(self.repo.create, data)

    async def get_task(self, task_id: str) -> TaskRecord:
        return await asyncio.to_thread(self.repo.get, task_id)

    async def update_task(self, task_id: str, body: Mapping[str, Any]) -> TaskRecord:
        data = parse_task_update(body)
        return await asyncio.to_thread(self.repo.update, task_id, data)

    async def set_status(self, task_id: str, status: Any) -> TaskRecord:
        """status だけを変更する（値の検証は部分更新と同じ規則）。"""

        data = parse_task_update({"status": status})
        return await asyncio.to_thread(self.repo.update, task_id, data)

    async def delete_task(self, task_id: str) -> None:
        await asyncio.to_thread(self.repo.delete, task_id)

    async def bulk_update(
        self,
        task_ids: Iterable[str],
        *,
        status: Optional[Any] = None,
        priority: Optional[Any] = None,
    ) -> int:
        """
        複数タスクの status / priority をまとめて変更する。

        Returns:
            実際に更新した件数（存在しない id は数えない）。
        """

        body: dict[str, Any] = {}
        if status is not None:
            body["status"] = status
        if priority is not None:
            body["priority"] = priority
        changes = parse_task_update(body).changes

        new_status: Optional[TaskStatus] = changes.get("status")
        new_priority: Optional[TaskPriority] = changes.get("priority")
        ids = list(task_ids)
        return await asyncio.to_thread(
            lambda: self.repo.bulk_update(ids, status=new_status, priority=new_priority)
        )

    async def bulk_delete(self, task_ids: Iterable[str]) -> int:
        ids = list(task_ids)
        return await asyncio.to_thread(self.repo.bulk_delete, ids)

    async def stats(self) -> dict[str, int]:
        """status ごとの件数と合計を返す。"""

        counts = await asyncio.to_thread(self.repo.count_by_status)
        out = dict(counts)
        out["total"] = int(sum(counts.values()))
        return out
