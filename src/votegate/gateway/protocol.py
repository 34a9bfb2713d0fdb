from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import psycopg

from votegate.commands import (
    CommandError,
    CommandSpec,
    UnknownCommandError,
    build_call,
    resolve_envelope,
)
from votegate.db_pg import execute, fetch_all
from votegate.rows import coerce_rows
from votegate.util.logging import get_logger
from votegate.util.redaction import redact_fields

logger = get_logger(__name__)


def ok_response(data: list[list[Any]] | None = None) -> dict[str, Any]:
    if data is None:
        return {"status": "OK"}
    return {"status": "OK", "data": data}


def error_response() -> dict[str, Any]:
    return {"status": "ERROR"}


class CommandDispatcher:
    def __init__(
        self,
        conn: Any,
        commands: Mapping[str, CommandSpec],
        *,
        elide_falsy: bool = True,
    ) -> None:
        self.conn = conn
        self.commands = commands
        self.elide_falsy = elide_falsy

    def handle(self, payload: Any) -> dict[str, Any]:
        try:
            spec, fields = resolve_envelope(payload, self.commands)
        except UnknownCommandError as exc:
            logger.warning("dispatch error: %s", exc)
            return error_response()
        except CommandError as exc:
            logger.warning("malformed envelope: %s", exc)
            return error_response()

        logger.debug("%s %s", spec.name, redact_fields(fields))
        try:
            call = build_call(spec, fields, elide_falsy=self.elide_falsy)
            if call.returns_rows:
                rows = fetch_all(self.conn, call.sql, call.params)
                return ok_response(coerce_rows(spec, rows))
            execute(self.conn, call.sql, call.params)
            return ok_response()
        except CommandError as exc:
            logger.warning("%s rejected: %s", spec.name, exc)
        except (psycopg.Error, ValueError, TypeError) as exc:
            logger.warning("%s failed in %s: %s: %s", spec.name, spec.routine, type(exc).__name__, exc)
        return error_response()
