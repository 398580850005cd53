"""
一覧クエリの検証と正規化。

目的:
    - 文字列のクエリパラメータを、型付き・範囲付きの TaskQuery に変換する。
    - 違反はすべて集めて1つの ValidationError にする（順序はフィールド順で固定）。

方針:
    - 副作用なし（純関数）。DB には触れない。
    - status / priority は複数値（繰り返し指定、またはカンマ区切り）を受け付ける。
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping, Optional, TypeVar, Union

from taskbell.tasks.errors import ValidationError
from taskbell.tasks.models import (
    SORT_FIELD_ALIASES,
    SortField,
    SortOrder,
    TaskPriority,
    TaskQuery,
    TaskStatus,
)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_SEARCH_CHARS = 200

# SQLite の INTEGER（符号付き64bit）に収まる OFFSET の上限
MAX_OFFSET = 2**63 - 1

RawValue = Union[str, Iterable[str], None]

_E = TypeVar("_E", bound=Enum)


def _first(raw: RawValue) -> Optional[str]:
    """単一値パラメータを取り出す（繰り返し指定は先頭を採用）。"""

    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    for item in raw:
        return None if item is None else str(item)
    return None


def _split_multi(raw: RawValue) -> list[str]:
    """複数値パラメータを平坦化する（繰り返し指定 + カンマ区切り）。"""

    if raw is None:
        return []
    items = [raw] if isinstance(raw, str) else [str(x) for x in raw if x is not None]
    out: list[str] = []
    for item in items:
        for part in item.split(","):
            p = part.strip()
            if p:
                out.append(p)
    return out


def _parse_int(raw: RawValue, *, default: int) -> tuple[Optional[int], bool]:
    """整数パラメータを読む。戻り値は (値, 形式OKか)。"""

    s = (_first(raw) or "").strip()
    if not s:
        return default, True
    try:
        return int(s), True
    except ValueError:
        return None, False


def _parse_enum_set(raw: RawValue, enum_cls: type[_E], *, name: str, errors: list[str]) -> frozenset[_E]:
    """列挙の複数値を読む（大文字小文字は無視して正規化）。"""

    allowed = {m.value.upper(): m for m in enum_cls}
    out: set[_E] = set()
    for value in _split_multi(raw):
        member = allowed.get(value.upper())
        if member is None:
            errors.append(f"{name} must be one of {', '.join(m.value for m in enum_cls)} (got {value!r})")
            continue
        out.add(member)
    return frozenset(out)


def parse_task_query(
    params: Mapping[str, RawValue],
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> TaskQuery:
    """
    クエリパラメータを TaskQuery に正規化する。

    Args:
        params: パラメータ名 -> 値（str または繰り返し指定の list）。
        default_limit: limit 未指定時の既定値（設定値）。
        max_limit: limit の上限（設定値）。

    Raises:
        ValidationError: 1つ以上の違反があった場合（全違反を列挙）。
    """

    errors: list[str] = []

    # --- page ---
    page, ok = _parse_int(params.get("page"), default=DEFAULT_PAGE)
    if not ok:
        errors.append("page must be an integer")
    elif page is not None and page < 1:
        errors.append("page must be >= 1")

    # --- limit ---
    upper = max(1, int(max_limit))
    limit, ok = _parse_int(params.get("limit"), default=min(int(default_limit), upper))
    if not ok:
        errors.append("limit must be an integer")
    elif limit is not None and not (1 <= limit <= upper):
        errors.append(f"limit must be between 1 and {upper}")

    # --- page と limit が両方正しいときだけ OFFSET の桁あふれを見る ---
    if page is not None and limit is not None and page >= 1 and 1 <= limit <= upper:
        if (page - 1) * limit > MAX_OFFSET:
            errors.append("page is too large for the given limit")

    # --- sortBy（dueDate は deadline の別名） ---
    sort_raw = (_first(params.get("sortBy")) or "").strip()
    sort_by = SortField.CREATED_AT
    if sort_raw:
        if sort_raw in SORT_FIELD_ALIASES:
            sort_by = SORT_FIELD_ALIASES[sort_raw]
        else:
            try:
                sort_by = SortField(sort_raw)
            except ValueError:
                allowed = [f.value for f in SortField] + sorted(SORT_FIELD_ALIASES)
                errors.append(f"sortBy must be one of {', '.join(allowed)} (got {sort_raw!r})")

    # --- sortOrder ---
    order_raw = (_first(params.get("sortOrder")) or "").strip().lower()
    sort_order = SortOrder.DESC
    if order_raw:
        try:
            sort_order = SortOrder(order_raw)
        except ValueError:
            errors.append(f"sortOrder must be asc or desc (got {order_raw!r})")

    # --- status / priority ---
    statuses = _parse_enum_set(params.get("status"), TaskStatus, name="status", errors=errors)
    priorities = _parse_enum_set(params.get("priority"), TaskPriority, name="priority", errors=errors)

    # --- search（空文字は未指定扱い） ---
    search = (_first(params.get("search")) or "").strip() or None
    if search is not None and len(search) > MAX_SEARCH_CHARS:
        errors.append(f"search must be at most {MAX_SEARCH_CHARS} characters")

    if errors:
        raise ValidationError(errors)

    return TaskQuery(
        search=search,
        statuses=statuses,
        priorities=priorities,
        sort_by=sort_by,
        sort_order=sort_order,
        page=int(page or DEFAULT_PAGE),
        limit=int(limit or default_limit),
    )
