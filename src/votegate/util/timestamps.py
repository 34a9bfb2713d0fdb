from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(epoch_seconds: Any, *, tz: tzinfo | None = None) -> str:
    """Render epoch seconds as ``yyyy-mm-dd HH:MM:ss``.

    Without ``tz`` the process-local timezone is used, which is what the
    stored routines expect for their ``TIMESTAMP`` (without time zone) params.
    """
    if isinstance(epoch_seconds, bool) or not isinstance(epoch_seconds, (int, float)):
        raise TypeError(f"timestamp must be a number of epoch seconds, got {epoch_seconds!r}")
    moment = datetime.fromtimestamp(epoch_seconds, tz=tz)
    return moment.strftime(TIMESTAMP_FORMAT)
