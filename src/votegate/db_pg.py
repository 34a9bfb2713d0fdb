from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg.rows import dict_row


class PostgresDependencyError(RuntimeError):
    pass


def open_pg(
    *,
    database: str,
    login: str,
    password: str,
    host: str = "localhost",
    port: int = 5432,
) -> Any:
    try:
        return psycopg.connect(
            host=host,
            port=port,
            dbname=database,
            user=login,
            password=password,
            autocommit=True,
            row_factory=dict_row,
        )
    except psycopg.Error as exc:
        raise PostgresDependencyError(f"could not connect to {database!r} at {host}:{port}: {exc}") from exc


@contextmanager
def connect_pg(
    *,
    database: str,
    login: str,
    password: str,
    host: str = "localhost",
    port: int = 5432,
) -> Iterator[Any]:
    conn = open_pg(database=database, login=login, password=password, host=host, port=port)
    try:
        yield conn
    finally:
        conn.close()


def execute_script(conn: Any, path: Path) -> None:
    script = path.read_text(encoding="utf-8")
    with conn.cursor() as cur:
        # No params: psycopg sends the whole script in one simple-query round trip.
        cur.execute(script)


def execute(conn: Any, sql: str, params: Sequence[Any] | None = None) -> None:
    with conn.cursor() as cur:
        cur.execute(sql, params or ())


def fetch_all(conn: Any, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
    with conn.cursor() as cur:
        cur.execute(sql, params or ())
        rows = cur.fetchall()
    return [dict(row) for row in rows]
