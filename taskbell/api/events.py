"""
WebSocketによるアプリイベントストリーミングAPI

リマインダー通知（notification.show）や通知許可の要求（notification.permission_request）を
接続中のブラウザへリアルタイムで配信する。

Server -> Client（この接続だけ）:
    - {"type": "stream.ready", "data": {"permission": ...}} 購読登録の完了
    - {"type": "notification.permission", "data": {"permission": ...}} permission 報告の受理

Client -> Server メッセージ:
    - {"type": "permission", "permission": "granted" | "denied" | "default"}
      ブラウザの Notification.permission を報告する。
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from taskbell.api.ws_auth import authenticate_ws
from taskbell.notifications import EventStreamNotifier, NotificationPermission
from taskbell.runtime.event_stream import AppEvent, EventStream


router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)

# --- 接続単位で返すイベント種別 ---
EVENT_STREAM_READY = "stream.ready"
EVENT_PERMISSION = "notification.permission"


async def _close_policy_violation(websocket: WebSocket) -> None:
    """
    認証失敗などのポリシー違反でWebSocketを閉じる。

    close時例外は制御経路のため、debugで記録して握りつぶす。
    """

    try:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    except Exception as exc:  # noqa: BLE001
        logger.debug("events websocket close failed: %s", str(exc))


def _handle_client_message(text: str, *, notifier: EventStreamNotifier) -> Optional[NotificationPermission]:
    """
    クライアントからのメッセージを処理する（未知の形式は無視）。

    Returns:
        permission 報告を反映した場合はその値、それ以外は None。
    """

    try:
        payload = json.loads(text or "")
    except json.JSONDecodeError:
        logger.debug("events websocket ignored invalid json payload")
        return None
    if not isinstance(payload, dict):
        return None

    msg_type = str(payload.get("type") or "").strip()
    if msg_type != "permission":
        return None

    try:
        return notifier.set_permission(str(payload.get("permission") or ""))
    except ValueError:
        logger.debug("events websocket ignored invalid permission value")
        return None


async def _send_direct(stream: EventStream, websocket: WebSocket, *, type: str, data: dict) -> None:
    """キューを通さず、この接続だけへ送る（seq=0。broadcast と同じ送信ロックを使う）。"""

    await stream.send_to(websocket, AppEvent(type=type, seq=0, data=data))


@router.websocket("/stream")
async def stream_events(websocket: WebSocket) -> None:
    """
    アプリイベントをWebSocketでストリーミング配信する。

    認証後に購読登録し、切断時は自動で登録解除する。
    """
    # --- 接続を受け入れる ---
    # NOTE:
    # - 先に accept し、認証NGなら policy violation(1008) で close することで、
    #   クライアント側が「auth failed」として扱いやすくする。
    await websocket.accept()

    if not authenticate_ws(websocket):
        await _close_policy_violation(websocket)
        logger.info("events websocket rejected (auth failed)")
        return

    stream: EventStream = websocket.app.state.event_stream
    notifier: EventStreamNotifier = websocket.app.state.notifier

    client_added = False
    try:
        await stream.add_client(websocket)
        client_added = True
        logger.info("events websocket connected clients=%s", stream.client_count)

        # --- 登録完了と現在の許可状態を知らせる ---
        await _send_direct(stream, websocket, type=EVENT_STREAM_READY, data={"permission": notifier.permission.value})

        # --- クライアントメッセージ受信ループ ---
        while True:
            text = await websocket.receive_text()
            permission = _handle_client_message(text, notifier=notifier)
            if permission is not None:
                await _send_direct(stream, websocket, type=EVENT_PERMISSION, data={"permission": permission.value})
    except WebSocketDisconnect:
        logger.info("events websocket disconnected by client")
    except Exception as exc:  # noqa: BLE001
        logger.warning("events websocket terminated by error: %s", str(exc))
    finally:
        if client_added:
            await stream.remove_client(websocket)
        logger.info("events websocket disconnected")
