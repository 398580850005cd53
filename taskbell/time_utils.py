"""
時刻ユーティリティ

このモジュールは、DBに保存しているUNIX秒（UTC）と
API で受け渡す ISO 8601 文字列の相互変換に使う。

注意:
- DB自体の保存形式（UNIX秒）は変更しない（検索・ソートが簡単なため）。
- 入出力のタイムゾーンは常に UTC に揃える。
  - 日付だけ（YYYY-MM-DD）は UTC の 0 時として扱う。
  - オフセット無しの日時も UTC として扱う。
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def format_iso8601_utc(ts_utc: Optional[int]) -> Optional[str]:
    """UTCのUNIX秒を、ISO 8601形式（末尾Z）の文字列へ変換して返す。

    例:
    - 1735689600 -> "2025-01-01T00:00:00Z"

    Args:
        ts_utc: UTCのUNIX秒（int）。None はNoneを返す。

    Returns:
        ISO 8601形式のUTC時刻（秒精度）。無効値ならNone。
    """

    # --- 無効値は None ---
    if ts_utc is None:
        return None
    try:
        ts_i = int(ts_utc)
    except (TypeError, ValueError):
        return None

    # --- UTC で秒精度に整形し、+00:00 を Z に寄せる ---
    dt_utc = datetime.fromtimestamp(ts_i, tz=timezone.utc)
    return dt_utc.isoformat(timespec="seconds").replace("+00:00", "Z")


def datetime_to_utc_ts(dt: datetime) -> int:
    """datetime を UTC の UNIX 秒へ変換する（naive は UTC とみなす）。"""

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.astimezone(timezone.utc).timestamp())


def parse_datetime_text(raw: object) -> Optional[int]:
    """
    日付/日時テキストを UTC の UNIX 秒へ変換する。

    受け付ける形式:
        - None / 空文字 -> None
        - "YYYY-MM-DD" -> その日の UTC 0 時
        - ISO 8601 日時（"Z" / "+09:00" 等のオフセット付き、または naive）

    Raises:
        ValueError: 解釈できない文字列、または文字列以外の値。
    """

    # --- 未指定 ---
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"expected date text, got {type(raw).__name__}")
    s = raw.strip()
    if not s:
        return None

    # --- 日付のみ ---
    if _DATE_ONLY_RE.match(s):
        d = date.fromisoformat(s)
        return datetime_to_utc_ts(datetime(d.year, d.month, d.day, tzinfo=timezone.utc))

    # --- 日時（末尾Zは fromisoformat が古い実装でも読めるよう置換） ---
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)

    # --- UTC 換算で datetime の年範囲（1..9999）を外れるものは解釈不能とする ---
    try:
        return datetime_to_utc_ts(dt)
    except OverflowError as exc:
        raise ValueError(f"date out of range: {raw!r}") from exc
