"""
アプリ内時計サービス。

目的:
    - 「現在時刻」の取得を1箇所に寄せ、テストでは固定時計へ差し替えられるようにする。
    - タスクの作成/更新時刻とリマインダーの発火判定は同じ実時間を使う。
"""

from __future__ import annotations

import time


class ClockService:
    """
    アプリ内で共有する時計サービス。

    OSの現在時刻（time.time）をUTC epoch秒で返すだけの薄い層。
    """

    def now_utc_ts(self) -> int:
        """現在時刻（UTC epoch seconds）を返す。"""

        return int(time.time())


_clock_service = ClockService()


def get_clock_service() -> ClockService:
    """時計サービスのシングルトンを返す。"""

    return _clock_service
