from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TextIO

from votegate.commands import COMMANDS, PROVISIONING_COMMANDS
from votegate.db_pg import open_pg
from votegate.gateway.protocol import CommandDispatcher, error_response, ok_response
from votegate.session import BootstrapError, GatewaySession, ProvisioningError
from votegate.settings import GatewaySettings
from votegate.util.logging import get_logger

logger = get_logger(__name__)


class LineSource:
    """Lines of ``stream`` without their terminators, until EOF or ``close``.

    When the stream exposes its binary buffer, each line is decoded on its own
    as UTF-8 with undecodable bytes replaced, so one bad line never poisons
    the rest of the input.
    """

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._buffer = getattr(stream, "buffer", None)
        self.closed = False

    def __iter__(self) -> LineSource:
        return self

    def __next__(self) -> str:
        if self.closed:
            raise StopIteration
        if self._buffer is not None:
            raw_line = self._buffer.readline().decode("utf-8", errors="replace")
        else:
            raw_line = self._stream.readline()
        if not raw_line:
            self.close()
            raise StopIteration
        return raw_line.rstrip("\r\n")

    def close(self) -> None:
        self.closed = True


class ResponseWriter:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self.emitted = 0

    def emit(self, payload: dict[str, Any]) -> None:
        self._stream.write(json.dumps(payload, separators=(",", ":")) + "\n")
        self._stream.flush()
        self.emitted += 1


def _drain(lines: LineSource, writer: ResponseWriter) -> None:
    drained = 0
    for _ in lines:
        writer.emit(error_response())
        drained += 1
    logger.info("drained %d line(s) with ERROR", drained)


def serve_stdio(
    stdin: TextIO,
    stdout: TextIO,
    *,
    settings: GatewaySettings,
    provision: bool = False,
    connector: Callable[..., Any] = open_pg,
) -> int:
    lines = LineSource(stdin)
    writer = ResponseWriter(stdout)
    session = GatewaySession(settings, connector=connector)
    session.add_closer("input", lines.close)

    try:
        first_line = next(lines, None)
        if first_line is None:
            logger.warning("input ended before an open envelope was received")
            return 1

        try:
            session.open(first_line)
        except BootstrapError as exc:
            logger.error("could not open session: %s", exc)
            writer.emit(error_response())
            session.drain()
            _drain(lines, writer)
            return 1
        writer.emit(ok_response())

        if provision:
            try:
                session.provision(settings.schema_path)
            except ProvisioningError as exc:
                logger.error("%s", exc)
                session.drain()
                if settings.drain_on_provision_failure:
                    _drain(lines, writer)
                return 1

        dispatcher = CommandDispatcher(
            session.conn,
            PROVISIONING_COMMANDS if provision else COMMANDS,
            elide_falsy=settings.elide_falsy_optionals,
        )
        for line in lines:
            try:
                payload = json.loads(line)
            except (json.JSONDecodeError, RecursionError) as exc:
                logger.warning("skipping malformed line: %s", exc)
                continue
            writer.emit(dispatcher.handle(payload))

        logger.info("input closed after %d response(s)", writer.emitted)
        return 0
    finally:
        session.close()
