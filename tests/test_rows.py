from __future__ import annotations

from decimal import Decimal

import pytest

from votegate.commands import COMMANDS
from votegate.rows import coerce_flag, coerce_number, coerce_rows


def test_trolls_row_coerces_flag_to_string() -> None:
    rows = [{"member_id": 7, "upvotes": 3, "downvotes": 1, "is_active": True}]
    assert coerce_rows(COMMANDS["trolls"], rows) == [[7, 3, 1, "true"]]


def test_actions_row_keeps_column_order_and_text() -> None:
    rows = [
        {
            "downvotes": Decimal("0"),
            "upvotes": Decimal("2"),
            "authority_id": Decimal("30"),
            "project_id": Decimal("20"),
            "type": "protest",
            "action_id": Decimal("10"),
        }
    ]
    assert coerce_rows(COMMANDS["actions"], rows) == [[10, "protest", 20, 30, 2, 0]]


def test_projects_and_votes_projection() -> None:
    assert coerce_rows(COMMANDS["projects"], [{"project_id": 5, "authority_id": 6}]) == [[5, 6]]
    assert coerce_rows(COMMANDS["votes"], [{"member_id": 1, "upvotes": 4, "downvotes": 2}]) == [[1, 4, 2]]


def test_empty_result_is_empty_list() -> None:
    assert coerce_rows(COMMANDS["votes"], []) == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("12"), 12),
        (Decimal("12.50"), 12.5),
        ("42", 42),
        (" 3.0 ", 3),
        (2.0, 2),
        (None, 0),
        ("", 0),
        ("abc", None),
        (Decimal("NaN"), None),
    ],
)
def test_coerce_number(value: object, expected: object) -> None:
    result = coerce_number(value)
    assert result == expected
    assert type(result) is type(expected)


def test_coerce_flag() -> None:
    assert coerce_flag(False) == "false"
    assert coerce_flag(None) == "null"
    assert coerce_flag("t") == "t"


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_floats_become_null(value: float) -> None:
    assert coerce_number(value) is None
