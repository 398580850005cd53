"""
タスク領域の例外。

目的:
    - API 層が HTTP ステータスへ写像できるよう、失敗の種類を型で分ける。
    - 入力検証の失敗は、違反をまとめて1つの例外で返す。
"""

from __future__ import annotations

from typing import Iterable


class TaskError(Exception):
    """タスク領域の例外の基底。"""


class ValidationError(TaskError):
    """入力（クエリ/ボディ）の形式・範囲違反。"""

    def __init__(self, errors: Iterable[str]) -> None:
        # --- 違反は検出順のまま保持する（順序は呼び出し側で固定） ---
        self.errors: list[str] = [str(e) for e in errors if str(e or "").strip()]
        if not self.errors:
            self.errors = ["invalid input"]
        super().__init__("; ".join(self.errors))

    @property
    def message(self) -> str:
        """API 応答向けの要約メッセージ。"""

        return "; ".join(self.errors)


class NotFoundError(TaskError):
    """指定IDのタスクが存在しない。"""

    def __init__(self, task_id: str) -> None:
        self.task_id = str(task_id)
        super().__init__(f"task not found: {self.task_id}")


class PersistenceError(TaskError):
    """永続化層（DB）の読み書き失敗。"""


class PermissionDeniedError(TaskError):
    """通知の許可が得られていない。"""

    def __init__(self, permission: str) -> None:
        self.permission = str(permission)
        super().__init__(f"notification permission is {self.permission}")
