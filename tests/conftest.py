from __future__ import annotations

import io
import json
import os
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from votegate.gateway.server_stdio import serve_stdio
from votegate.settings import GatewaySettings

SETTINGS_ENV_VARS = (
    "VOTEGATE_DB_HOST",
    "VOTEGATE_DB_PORT",
    "VOTEGATE_SCHEMA_PATH",
    "VOTEGATE_VERBOSE",
    "VOTEGATE_ELIDE_FALSY_OPTIONALS",
    "VOTEGATE_DRAIN_ON_PROVISION_FAILURE",
    "PGHOST",
    "PGPORT",
)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="run integration tests against a local PostgreSQL",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration tests disabled (use --run-integration)")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.chdir(tmp_path)
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def utc_tz() -> Iterator[None]:
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    time.tzset()
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = previous
        time.tzset()


class FakeCursor:
    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self._rows: list[dict[str, Any]] = []

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def execute(self, sql: str, params: Any = None) -> None:
        self.conn.executed.append((sql, params))
        outcome = self.conn.outcome_for(sql)
        if isinstance(outcome, BaseException):
            raise outcome
        self._rows = list(outcome or [])

    def fetchall(self) -> list[dict[str, Any]]:
        return list(self._rows)


class FakeConnection:
    """Records every statement; ``outcomes`` maps a routine name to rows or an exception."""

    def __init__(self, outcomes: dict[str, Any] | None = None, *, close_error: Exception | None = None) -> None:
        self.outcomes = outcomes or {}
        self.close_error = close_error
        self.executed: list[tuple[str, Any]] = []
        self.close_calls = 0

    def outcome_for(self, sql: str) -> Any:
        for routine, outcome in self.outcomes.items():
            if f"{routine}(" in sql:
                return outcome
        return None

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeConnector:
    def __init__(self, conn: FakeConnection | None = None, *, error: Exception | None = None) -> None:
        self.conn = conn or FakeConnection()
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> FakeConnection:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.conn


OPEN_LINE = json.dumps({"open": {"database": "votes", "login": "app", "password": "secret"}})


def run_gateway(
    lines: list[str],
    connector: FakeConnector,
    *,
    provision: bool = False,
    settings: GatewaySettings | None = None,
) -> tuple[int, list[dict[str, Any]]]:
    stdin = io.StringIO("".join(f"{line}\n" for line in lines))
    stdout = io.StringIO()
    code = serve_stdio(
        stdin,
        stdout,
        settings=settings or GatewaySettings(),
        provision=provision,
        connector=connector,
    )
    responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
    return code, responses
