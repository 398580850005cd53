"""
/notifications エンドポイント

ブラウザの通知許可状態の参照・報告と、テスト通知を提供する。
通知の表示そのものはブラウザが行う（サーバーはイベントストリームで依頼するだけ）。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from taskbell import schemas
from taskbell.api.errors import to_http_exception
from taskbell.app_bootstrap.dependencies import get_notifier
from taskbell.notifications import EventStreamNotifier, NotificationPermission
from taskbell.tasks.errors import PermissionDeniedError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

TEST_NOTIFICATION_TITLE = "Test Notification"
TEST_NOTIFICATION_BODY = "Notifications are working."
TEST_NOTIFICATION_TAG = "taskbell-test"


@router.get("/permission", response_model=schemas.NotificationPermissionResponse)
def get_permission(notifier: EventStreamNotifier = Depends(get_notifier)) -> schemas.NotificationPermissionResponse:
    """現在の通知許可状態を返す。"""

    return schemas.NotificationPermissionResponse(permission=notifier.permission)


@router.put("/permission", response_model=schemas.NotificationPermissionResponse)
def put_permission(
    request: schemas.NotificationPermissionUpdateRequest,
    notifier: EventStreamNotifier = Depends(get_notifier),
) -> schemas.NotificationPermissionResponse:
    """ブラウザが取得した通知許可状態を報告する。"""

    permission = notifier.set_permission(request.permission)
    return schemas.NotificationPermissionResponse(permission=permission)


@router.post("/test", response_model=schemas.NotificationTestResponse)
async def send_test_notification(
    notifier: EventStreamNotifier = Depends(get_notifier),
) -> schemas.NotificationTestResponse:
    """
    テスト通知を送る。

    - denied: 409（ブラウザ側の設定変更が必要）
    - default: 許可要求を送り、delivered=false を返す
    - granted: 通知を配信し、delivered=true を返す
    """

    if notifier.permission == NotificationPermission.DENIED:
        raise to_http_exception(PermissionDeniedError(notifier.permission.value))

    payload = await notifier.show(
        TEST_NOTIFICATION_TITLE,
        TEST_NOTIFICATION_BODY,
        tag=TEST_NOTIFICATION_TAG,
        require_interaction=False,
    )
    return schemas.NotificationTestResponse(delivered=payload is not None, permission=notifier.permission)
