"""
リマインダーループ

一定間隔でタスク一覧を読み、期限に達したリマインダーを1回だけ通知する。

流れ（1 tick）:
    1. 現在のタスク一覧（軽量スナップショット）をワーカースレッドで読む
    2. 一覧に無い id を notified-set から外す（削除されたタスクの分だけ縮む）
    3. 同期的に走査して due を決める
    4. due ごとに通知 -> notified-set へ追加 -> reminder_notified=true の保存を投げっぱなしで起動

保存と通知の関係:
    - notified-set は「保存が終わる前」の重複通知を防ぐためのセッション内メモリ。
    - 保存の失敗はログに残すだけで再試行しない。notified-set も戻さない
      （このセッションでは高々1回の通知になる。永続フラグが false のままなら次回起動時に窓内なら再通知され得る）。

時間窓:
    - reminder_time - now が (-window, 0] のときだけ発火する（早すぎる通知はしない）。
    - window より前に過ぎたリマインダーは黙って見送る（取りこぼしの追い通知はしない）。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Protocol

from taskbell.clock import ClockService
from taskbell.notifications import REMINDER_TITLE, Notifier, reminder_tag
from taskbell.tasks.errors import PersistenceError
from taskbell.tasks.models import ReminderSnapshot


logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60


class ReminderStore(Protocol):
    """リマインダーループが使う保存先（TaskRepository が満たす）。"""

    def list_reminder_snapshots(self) -> list[ReminderSnapshot]: ...

    def mark_reminder_notified(self, task_id: str) -> bool: ...


def is_reminder_due(snapshot: ReminderSnapshot, *, now_ts: int, window_seconds: int) -> bool:
    """永続状態だけで見た due 判定（notified-set は見ない）。"""

    if not snapshot.reminder_enabled or snapshot.reminder_notified:
        return False
    if snapshot.reminder_time is None:
        return False
    delta = int(snapshot.reminder_time) - int(now_ts)
    return -int(window_seconds) < delta <= 0


class ReminderLoop:
    """
    リマインダーの判定と発火を行う。

    notified-set はこのインスタンスが所有する（アプリ単位で1つ作り app.state に置く）。
    """

    def __init__(
        self,
        *,
        store: ReminderStore,
        notifier: Notifier,
        clock: ClockService,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        if int(window_seconds) <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.window_seconds = int(window_seconds)
        self._notified: set[str] = set()
        self._pending_writes: set[asyncio.Task[None]] = set()
        self.last_tick_at: Optional[int] = None

    # --- 状態 ---

    @property
    def notified_ids(self) -> frozenset[str]:
        return frozenset(self._notified)

    @property
    def notified_count(self) -> int:
        return int(len(self._notified))

    @property
    def pending_writes(self) -> int:
        return int(len(self._pending_writes))

    # --- 判定 ---

    def prune(self, known_ids: Iterable[str]) -> int:
        """一覧に無い id を notified-set から外し、外した件数を返す。"""

        known = {str(i) for i in known_ids}
        stale = self._notified - known
        if stale:
            self._notified -= stale
            logger.debug("reminder notified-set pruned count=%s", len(stale))
        return int(len(stale))

    def scan(self, snapshots: Iterable[ReminderSnapshot], *, now_ts: int) -> list[ReminderSnapshot]:
        """今回発火すべきスナップショットを返す（副作用なし）。"""

        due: list[ReminderSnapshot] = []
        for s in snapshots:
            if s.id in self._notified:
                continue
            if is_reminder_due(s, now_ts=now_ts, window_seconds=self.window_seconds):
                due.append(s)
        return due

    # --- 1周期 ---

    async def tick(self) -> list[str]:
        """
        1周期分の処理を行う。

        Returns:
            今回通知した task id のリスト。
        """

        now_ts = int(self.clock.now_utc_ts())
        self.last_tick_at = now_ts

        try:
            snapshots = await asyncio.to_thread(self.store.list_reminder_snapshots)
        except PersistenceError:
            # --- 読めない周期は見送る（次の周期で再試行） ---
            logger.warning("reminder tick skipped: task list unavailable")
            return []

        self.prune(s.id for s in snapshots)

        fired: list[str] = []
        for s in self.scan(snapshots, now_ts=now_ts):
            try:
                await self.notifier.show(
                    REMINDER_TITLE,
                    s.title,
                    tag=reminder_tag(s.id),
                    require_interaction=True,
                )
            except Exception:  # noqa: BLE001
                # --- 通知の失敗はタスク単位で閉じる（set に入れないので次周期で再挑戦） ---
                logger.exception("reminder notification failed task_id=%s", s.id)
                continue

            self._notified.add(s.id)
            self._persist_notified(s.id)
            fired.append(s.id)

        if fired:
            logger.info("reminders fired count=%s", len(fired))
        return fired

    def _persist_notified(self, task_id: str) -> None:
        """reminder_notified=true の保存を起動して待たない。"""

        task = asyncio.create_task(self._write_notified(task_id), name=f"reminder-notified-{task_id}")
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_notified(self, task_id: str) -> None:
        try:
            changed = await asyncio.to_thread(self.store.mark_reminder_notified, task_id)
        except Exception:  # noqa: BLE001
            # --- 再試行しない、notified-set も戻さない ---
            logger.exception("reminder notified flag write failed task_id=%s", task_id)
            return
        if not changed:
            logger.debug("reminder notified flag unchanged task_id=%s", task_id)

    async def drain(self, *, timeout_seconds: float = 5.0) -> int:
        """
        実行中の保存を待つ（shutdown 用）。

        Returns:
            タイムアウトまでに終わらなかった件数。
        """

        pending = list(self._pending_writes)
        if not pending:
            return 0
        _done, not_done = await asyncio.wait(pending, timeout=float(timeout_seconds))
        if not_done:
            logger.warning("reminder writes still pending at shutdown count=%s", len(not_done))
        return int(len(not_done))
