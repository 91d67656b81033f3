# tests/test_clock.py

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from focuslist.engine.clock import format_instant, local_midnight, parse_instant, parse_local_date, to_ms

from fakes import START, TZ


def test_format_instant_matches_iso_string_shape() -> None:
    assert format_instant(START) == "2024-06-15T08:00:00.000Z"
    assert format_instant(datetime(2024, 1, 2, 3, 4, 5, 678900, tzinfo=timezone.utc)) == (
        "2024-01-02T03:04:05.678Z"
    )


def test_parse_instant_accepts_z_and_offsets() -> None:
    assert parse_instant("2024-06-15T08:00:00.000Z") == START
    assert parse_instant("2024-06-15T10:00:00+02:00") == START

    with pytest.raises(ValueError):
        parse_instant("last tuesday")


def test_local_dates_ignore_time_and_zone() -> None:
    assert parse_local_date("2024-06-15") == date(2024, 6, 15)
    assert parse_local_date("2024-06-15T23:30:00.000Z") == date(2024, 6, 15)
    assert local_midnight(START) == datetime(2024, 6, 15, tzinfo=TZ)


def test_to_ms() -> None:
    assert to_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
    assert to_ms(START) == 1718438400000
