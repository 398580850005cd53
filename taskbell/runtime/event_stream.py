"""
WebSocket向けアプリイベント配信

リマインダー通知や通知許可の要求などのアプリケーションイベントを、
接続中の WebSocket クライアント（ブラウザ）へリアルタイム配信する。

方針:
    - EventStream はアプリ単位で1つ作り、app.state に保持する（モジュールグローバルにしない）。
    - publish() はどのスレッドからでも呼べる（ループへ call_soon_threadsafe で渡す）。
    - キューは有界。満杯時は新しいイベントを捨てて警告する。
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


logger = logging.getLogger(__name__)

# --- 配信バックプレッシャー設定 ---
# NOTE:
# - キューは有界にして、遅延時のメモリ膨張を防ぐ。
# - 送信はタイムアウトを設け、遅いクライアントを切り離す。
_EVENT_QUEUE_MAXSIZE = 1000
_SEND_TIMEOUT_SECONDS = 2.0


class EventClient(Protocol):
    """配信先（FastAPI の WebSocket が満たす最小インターフェース）。"""

    async def send_text(self, data: str) -> None: ...


@dataclass
class AppEvent:
    """WebSocket配信用のイベント。"""

    type: str  # イベント種別（notification.show 等）
    seq: int  # 配信順の通し番号（プロセス内）
    data: Dict[str, Any] = field(default_factory=dict)


def serialize_event(event: AppEvent) -> str:
    """イベントを WebSocket 送信用の JSON 文字列にする。"""

    return json.dumps(
        {
            "seq": int(event.seq),
            "type": event.type,
            "data": event.data,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


class EventStream:
    """
    接続中クライアントへのブロードキャスト配信。

    install() -> start_dispatcher() の順で起動し、stop_dispatcher() で止める。
    """

    def __init__(self, *, queue_maxsize: int = _EVENT_QUEUE_MAXSIZE) -> None:
        self._queue_maxsize = int(queue_maxsize)
        self._queue: Optional[asyncio.Queue[AppEvent]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._dispatch_task: Optional[asyncio.Task[None]] = None
        self._clients: set[EventClient] = set()
        # 接続ごとの送信ロック（broadcast と個別送信が同じソケットへ同時に書かない）
        self._send_locks: dict[EventClient, asyncio.Lock] = {}
        self._seq = itertools.count(1)

    # --- 起動/停止 ---

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        """publish() で使うループとキューを用意する。多重呼び出しは無視する。"""

        if self._queue is not None:
            return
        self._loop = loop
        self._queue = asyncio.Queue(maxsize=int(self._queue_maxsize))
        logger.info("event stream installed")

    async def start_dispatcher(self) -> None:
        """キューからイベントを取り出して配信するタスクを起動する。"""

        if self._dispatch_task is not None:
            return
        if self._queue is None:
            raise RuntimeError("event queue is not initialized. call install() first.")
        self._dispatch_task = asyncio.get_running_loop().create_task(self._dispatch_loop())
        logger.info("event stream dispatcher started")

    async def stop_dispatcher(self) -> None:
        """配信タスクを停止する。"""

        task = self._dispatch_task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._dispatch_task = None
        logger.info("event stream dispatcher stopped")

    # --- クライアント管理 ---

    async def add_client(self, ws: EventClient) -> None:
        self._send_locks.setdefault(ws, asyncio.Lock())
        self._clients.add(ws)

    async def remove_client(self, ws: EventClient) -> None:
        self._clients.discard(ws)
        self._send_locks.pop(ws, None)

    @property
    def client_count(self) -> int:
        """接続中クライアント数（概数で十分なのでロックしない）。"""

        return int(len(self._clients))

    # --- 送信 ---

    async def _send_locked(self, ws: EventClient, payload: str) -> None:
        """接続ごとのロックを取って1フレーム送る（タイムアウト付き）。"""

        lock = self._send_locks.get(ws) or asyncio.Lock()
        async with lock:
            await asyncio.wait_for(ws.send_text(payload), timeout=float(_SEND_TIMEOUT_SECONDS))

    async def send_to(self, ws: EventClient, event: AppEvent) -> None:
        """
        1件を指定クライアントだけへ送る（キューを通さない）。

        broadcast と同じ送信ロックを使う。送信失敗は呼び出し側へ送出する。
        """

        await self._send_locked(ws, serialize_event(event))

    def _enqueue_nonblocking(self, event: AppEvent) -> None:
        if self._queue is None:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("event stream queue full; dropped type=%s seq=%s", event.type, int(event.seq))

    def publish(self, *, type: str, data: Optional[Dict[str, Any]] = None) -> Optional[AppEvent]:
        """
        イベントをキューに投入する。

        Returns:
            投入したイベント。install 前や shutdown 後で投入できなかった場合は None。
        """

        if self._queue is None or self._loop is None:
            logger.debug("event stream not installed; dropped type=%s", type)
            return None
        event = AppEvent(type=str(type), seq=next(self._seq), data=dict(data or {}))
        try:
            self._loop.call_soon_threadsafe(self._enqueue_nonblocking, event)
        except RuntimeError:
            # --- shutdown レース（loop close 後）は捨てる ---
            return None
        return event

    async def broadcast(self, event: AppEvent) -> int:
        """
        1件を全クライアントへ送る。送信に失敗したクライアントは切り離す。

        Returns:
            送信に成功したクライアント数。
        """

        payload = serialize_event(event)
        dead: list[EventClient] = []
        delivered = 0

        # NOTE: data の中身はログに出さず、type/seq/接続数だけを記録する。
        logger.info(
            "event stream broadcast type=%s seq=%s clients=%s",
            event.type,
            int(event.seq),
            len(self._clients),
        )
        for ws in list(self._clients):
            try:
                await self._send_locked(ws, payload)
                delivered += 1
            except Exception as exc:  # noqa: BLE001
                logger.info("event stream client dropped: %s", type(exc).__name__)
                dead.append(ws)

        for ws in dead:
            await self.remove_client(ws)
        return delivered

    async def _dispatch_loop(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            await self.broadcast(event)
