from __future__ import annotations

from typing import Any

SENSITIVE_KEYS = {"password", "passwd", "pwd", "token", "secret"}


def redact_secret(secret: str | None, *, keep_prefix: int = 1, keep_suffix: int = 1) -> str | None:
    if secret is None:
        return None
    if not secret:
        return ""
    if keep_prefix < 0 or keep_suffix < 0:
        raise ValueError("keep_prefix and keep_suffix must be non-negative")

    visible = keep_prefix + keep_suffix
    if len(secret) <= visible:
        return "*" * len(secret)
    return f"{secret[:keep_prefix]}...{secret[-keep_suffix:]}"


def redact_fields(fields: dict[str, Any]) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for key, value in fields.items():
        if key.lower() in SENSITIVE_KEYS:
            redacted[key] = redact_secret(str(value)) if value is not None else None
        else:
            redacted[key] = value
    return redacted
