# tests/test_time_utils.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from taskbell.time_utils import datetime_to_utc_ts, format_iso8601_utc, parse_datetime_text

NEW_YEAR_2025 = 1_735_689_600


def test_date_only_is_utc_midnight() -> None:
    assert parse_datetime_text("2025-01-01") == NEW_YEAR_2025
    assert format_iso8601_utc(NEW_YEAR_2025) == "2025-01-01T00:00:00Z"


@pytest.mark.parametrize(
    "raw",
    ["2025-01-01T09:00:00+09:00", "2025-01-01T00:00:00Z", "2025-01-01T00:00:00"],
)
def test_datetime_text_converts_to_utc(raw: str) -> None:
    assert parse_datetime_text(raw) == NEW_YEAR_2025


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_empty_values_are_none(raw) -> None:
    assert parse_datetime_text(raw) is None


@pytest.mark.parametrize("raw", ["tomorrow", "2025-13-01", "01/02/2025", 1735689600])
def test_invalid_values_raise(raw) -> None:
    with pytest.raises(ValueError):
        parse_datetime_text(raw)


@pytest.mark.parametrize("raw", ["0001-01-01T00:00:00+01:00", "9999-12-31T23:00:00-05:00"])
def test_offsets_pushing_past_supported_years_raise_value_error(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_datetime_text(raw)


def test_naive_datetime_is_treated_as_utc() -> None:
    naive = datetime(2025, 1, 1)
    aware = datetime(2025, 1, 1, 9, tzinfo=timezone(timedelta(hours=9)))
    assert datetime_to_utc_ts(naive) == datetime_to_utc_ts(aware) == NEW_YEAR_2025


def test_format_none() -> None:
    assert format_iso8601_utc(None) is None
