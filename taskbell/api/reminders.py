"""
/reminders エンドポイント

リマインダーループの状態（発火済み件数、保存待ち件数、最終実行時刻）を返す。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from taskbell import schemas
from taskbell.app_bootstrap.dependencies import get_config_store_dep, get_event_stream, get_reminder_loop
from taskbell.config import ConfigStore
from taskbell.reminders import ReminderLoop
from taskbell.runtime.event_stream import EventStream
from taskbell.time_utils import format_iso8601_utc


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/status", response_model=schemas.ReminderStatusResponse)
def reminder_status(
    loop: ReminderLoop = Depends(get_reminder_loop),
    stream: EventStream = Depends(get_event_stream),
    config_store: ConfigStore = Depends(get_config_store_dep),
) -> schemas.ReminderStatusResponse:
    cfg = config_store.config
    return schemas.ReminderStatusResponse(
        enabled=bool(cfg.reminders_enabled),
        check_interval_seconds=int(cfg.reminder_check_interval_seconds),
        window_seconds=int(loop.window_seconds),
        notified_count=int(loop.notified_count),
        pending_writes=int(loop.pending_writes),
        last_tick_at=format_iso8601_utc(loop.last_tick_at),
        connected_clients=int(stream.client_count),
    )
