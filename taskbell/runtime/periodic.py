"""
定期実行タスク（periodic task）ユーティリティ

FastAPI の startup/shutdown に合わせて、一定間隔で実行する asyncio タスクを管理する。

方針:
- 標準 asyncio だけで「毎N秒」を実現する
- 1回分の処理が例外を投げてもループは止めず、ログに残して次の周期へ進む
- 同名タスクの二重登録は拒否する（startup が複数回走っても重複しない）
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from fastapi import FastAPI


_TASKS_STATE_KEY = "taskbell_periodic_tasks"


def _registry(app: "FastAPI") -> dict[str, asyncio.Task[None]]:
    """app.state 上の「名前 -> タスク」表を返す（無ければ作る）。"""

    tasks = getattr(app.state, _TASKS_STATE_KEY, None)
    if tasks is None:
        tasks = {}
        setattr(app.state, _TASKS_STATE_KEY, tasks)
    return tasks


async def run_periodically(
    *,
    name: str,
    interval_seconds: float,
    wait_first: bool,
    func: Callable[[], Awaitable[None]],
    logger: logging.Logger,
) -> None:
    """
    キャンセルされるまで func を interval ごとに実行する。

    wait_first=False の場合は、最初の1回を待たずに実行する。
    """

    if wait_first:
        await asyncio.sleep(float(interval_seconds))

    while True:
        try:
            await func()
        except asyncio.CancelledError:
            # --- shutdown で cancel されたら素直に終了 ---
            raise
        except Exception as exc:  # noqa: BLE001
            # --- 例外は落とさずに記録して継続 ---
            logger.exception("periodic task failed: name=%s error=%s", name, str(exc))

        await asyncio.sleep(float(interval_seconds))


def start_periodic_task(
    app: "FastAPI",
    *,
    name: str,
    interval_seconds: float,
    wait_first: bool,
    func: Callable[[], Awaitable[None]],
    logger: logging.Logger,
) -> asyncio.Task[None]:
    """
    定期実行タスクを開始して FastAPI app.state に登録する。

    Args:
        app: FastAPI アプリ。
        name: asyncio タスク名（登録キーも兼ねる）。
        interval_seconds: 実行間隔（秒）。正の値。
        wait_first: True の場合、最初の実行前に interval だけ待つ。
        func: 1回分の処理（awaitable）。
        logger: 例外ログ出力に使用するロガー。

    Returns:
        作成した asyncio.Task。同名タスクが動作中ならそれを返す。
    """

    if float(interval_seconds) <= 0:
        raise ValueError("interval_seconds must be positive")

    tasks = _registry(app)
    existing = tasks.get(str(name))
    if existing is not None and not existing.done():
        logger.warning("periodic task already running: name=%s", name)
        return existing

    task = asyncio.create_task(
        run_periodically(
            name=str(name),
            interval_seconds=float(interval_seconds),
            wait_first=bool(wait_first),
            func=func,
            logger=logger,
        ),
        name=str(name),
    )
    tasks[str(name)] = task
    logger.info("periodic task started: name=%s interval=%ss", name, interval_seconds)
    return task


async def stop_periodic_tasks(app: "FastAPI", *, logger: logging.Logger) -> None:
    """
    app.state に登録された定期実行タスクを停止する。

    Args:
        app: FastAPI アプリ。
        logger: 停止処理のログ出力に使用するロガー。
    """

    tasks: dict[str, asyncio.Task[None]] | None = getattr(app.state, _TASKS_STATE_KEY, None)
    if not tasks:
        return

    # --- 先に cancel して一斉停止 ---
    pending = list(tasks.values())
    for t in pending:
        t.cancel()

    # --- gather して終了を待つ（CancelledError は想定内） ---
    try:
        await asyncio.gather(*pending, return_exceptions=True)
    finally:
        # --- 状態を初期化して二重停止を避ける ---
        setattr(app.state, _TASKS_STATE_KEY, {})
        logger.info("periodic tasks stopped: names=%s", sorted(tasks))
