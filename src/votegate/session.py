from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

import psycopg
from pydantic import BaseModel, ConfigDict, ValidationError

from votegate.db_pg import PostgresDependencyError, execute_script, open_pg
from votegate.settings import GatewaySettings
from votegate.util.logging import get_logger
from votegate.util.redaction import redact_secret

logger = get_logger(__name__)


class BootstrapError(RuntimeError):
    pass


class ProvisioningError(RuntimeError):
    pass


class SessionState(str, Enum):
    CONNECTING = "connecting"
    PROVISIONING = "provisioning"
    SERVING = "serving"
    DRAINING = "draining"
    CLOSED = "closed"


class OpenDescriptor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    database: str
    login: str
    password: str


def parse_open_envelope(line: str) -> OpenDescriptor:
    try:
        payload = json.loads(line)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise BootstrapError(f"open envelope is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("open"), dict):
        raise BootstrapError("first line must be an object with an 'open' key")
    try:
        return OpenDescriptor.model_validate(payload["open"])
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
        raise BootstrapError(f"open envelope is missing or has invalid fields: {fields}") from exc


class GatewaySession:
    """The one database session a gateway process owns, and its lifecycle.

    ``open`` moves CONNECTING to SERVING, ``provision`` runs the schema
    script in between, ``drain`` gives up the connection while the line
    protocol is still being acknowledged, and ``close`` releases everything.
    Release is best-effort: each step runs even if an earlier one raised.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        connector: Callable[..., Any] = open_pg,
    ) -> None:
        self.settings = settings
        self.state = SessionState.CONNECTING
        self.conn: Any = None
        self._connector = connector
        self._closers: list[tuple[str, Callable[[], Any]]] = []

    def add_closer(self, name: str, closer: Callable[[], Any]) -> None:
        self._closers.append((name, closer))

    def open(self, line: str) -> None:
        descriptor = parse_open_envelope(line)
        logger.info(
            "opening session database=%s login=%s password=%s host=%s port=%s",
            descriptor.database,
            descriptor.login,
            redact_secret(descriptor.password),
            self.settings.db_host,
            self.settings.db_port,
        )
        try:
            self.conn = self._connector(
                database=descriptor.database,
                login=descriptor.login,
                password=descriptor.password,
                host=self.settings.db_host,
                port=self.settings.db_port,
            )
        except (PostgresDependencyError, psycopg.Error, ValueError) as exc:
            raise BootstrapError(str(exc)) from exc
        self.state = SessionState.SERVING

    def provision(self, script_path: Path) -> None:
        if self.conn is None:
            raise ProvisioningError("cannot provision without an open session")
        self.state = SessionState.PROVISIONING
        logger.info("executing schema script %s", script_path)
        try:
            execute_script(self.conn, script_path)
        except (OSError, UnicodeDecodeError, psycopg.Error) as exc:
            raise ProvisioningError(f"executing {script_path} failed: {exc}") from exc
        self.state = SessionState.SERVING

    def drain(self) -> None:
        self._release_connection()
        self.state = SessionState.DRAINING

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self._release_connection()
        closers, self._closers = self._closers, []
        for name, closer in closers:
            _release(name, closer)
        self.state = SessionState.CLOSED

    def _release_connection(self) -> None:
        conn, self.conn = self.conn, None
        if conn is not None:
            _release("connection", conn.close)


def _release(name: str, closer: Callable[[], Any]) -> None:
    try:
        closer()
    except Exception as exc:
        logger.debug("ignoring error while releasing %s: %s", name, exc)
