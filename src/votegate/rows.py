from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from votegate.commands import CommandSpec


def coerce_number(value: Any) -> int | float | None:
    # NULL maps to 0, unparsable text to null: the values the caller already expects.
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    raise TypeError(f"cannot coerce {type(value).__name__} to a number")


def coerce_flag(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


COERCERS = {
    "number": coerce_number,
    "flag": coerce_flag,
    "text": lambda value: value,
}


def coerce_rows(spec: CommandSpec, rows: Iterable[Mapping[str, Any]]) -> list[list[Any]]:
    columns = spec.columns or ()
    return [[COERCERS[column.kind](row.get(column.name)) for column in columns] for row in rows]
