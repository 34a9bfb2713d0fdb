from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from votegate.util.timestamps import format_timestamp


def test_epoch_zero_formats_to_epoch_date(utc_tz: None) -> None:
    assert format_timestamp(0) == "1970-01-01 00:00:00"


def test_uses_24_hour_clock(utc_tz: None) -> None:
    assert format_timestamp(1_700_000_000) == "2023-11-14 22:13:20"


def test_explicit_timezone_overrides_local_time() -> None:
    plus_two = timezone(timedelta(hours=2))
    assert format_timestamp(0, tz=plus_two) == "1970-01-01 02:00:00"


@pytest.mark.parametrize("value", [None, "1700000000", True, [1]])
def test_rejects_non_numeric_timestamps(value: object) -> None:
    with pytest.raises(TypeError):
        format_timestamp(value)
