"""
通知（ブラウザ Notification API の代理）

サーバーは通知を直接表示できないため、表示要求をイベントストリームで
ブラウザへ送り、ブラウザ側が Notification API で表示する。

- permission はブラウザから報告された値を保持する（default / granted / denied）
- permission の要求ダイアログはブラウザの UI が出す（待ち時間はこちらで制御しない）
- 許可が無い場合、show() は例外を投げず None を返す（状態として扱う）
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Optional, Protocol

from taskbell.runtime.event_stream import EventStream


logger = logging.getLogger(__name__)


# --- イベント種別 ---
EVENT_PERMISSION_REQUEST = "notification.permission_request"
EVENT_SHOW = "notification.show"

# --- リマインダー通知の見た目 ---
REMINDER_TITLE = "Task Reminder"


def reminder_tag(task_id: str) -> str:
    """リマインダー通知の tag（同じタスクの通知はブラウザ側で置き換わる）。"""

    return f"task-reminder-{task_id}"


class NotificationPermission(str, Enum):
    """ブラウザの通知許可状態。"""

    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class Notifier(Protocol):
    """リマインダーループから見た通知の窓口。"""

    @property
    def permission(self) -> NotificationPermission: ...

    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: Optional[str] = None,
        require_interaction: bool = False,
    ) -> Optional[dict[str, Any]]: ...


class EventStreamNotifier:
    """EventStream 経由でブラウザへ通知表示を依頼する Notifier。"""

    def __init__(self, stream: EventStream) -> None:
        self._stream = stream
        self._permission = NotificationPermission.DEFAULT
        self._lock = threading.Lock()

    @property
    def permission(self) -> NotificationPermission:
        with self._lock:
            return self._permission

    def set_permission(self, value: NotificationPermission | str) -> NotificationPermission:
        """ブラウザから報告された許可状態を保持する。"""

        permission = NotificationPermission(str(getattr(value, "value", value)).strip().lower())
        with self._lock:
            previous = self._permission
            self._permission = permission
        if previous != permission:
            logger.info("notification permission changed: %s -> %s", previous.value, permission.value)
        return permission

    def request_permission(self) -> NotificationPermission:
        """
        ブラウザへ許可要求を送る。

        結果はブラウザから set_permission で非同期に届くため、ここでは現在値を返す。
        """

        self._stream.publish(type=EVENT_PERMISSION_REQUEST, data={})
        logger.info("notification permission requested")
        return self.permission

    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: Optional[str] = None,
        require_interaction: bool = False,
    ) -> Optional[dict[str, Any]]:
        """
        通知の表示を依頼する。

        Returns:
            配信したペイロード。許可が無く表示しなかった場合は None。
        """

        permission = self.permission
        if permission != NotificationPermission.GRANTED:
            # --- denied は再要求してもブラウザがダイアログを出さない ---
            if permission == NotificationPermission.DEFAULT:
                permission = self.request_permission()
            if permission != NotificationPermission.GRANTED:
                logger.info("notification skipped (permission=%s) tag=%s", permission.value, tag)
                return None

        payload: dict[str, Any] = {
            "title": str(title),
            "body": str(body),
            "tag": (str(tag) if tag else None),
            "requireInteraction": bool(require_interaction),
        }
        self._stream.publish(type=EVENT_SHOW, data=payload)
        return payload
