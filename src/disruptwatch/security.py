"""Secret redaction for config snapshots and logs."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit, urlunsplit

SECRET_KEYS = frozenset(
    {
        "GEMINI_API_KEY",
        "NEWS_API_KEY",
        "OPENWEATHER_API_KEY",
        "RAPIDAPI_KEY",
    }
)
DSN_KEYS = frozenset({"DATABASE_URL"})


def mask_secret(value: str, visible_prefix: int = 4, visible_suffix: int = 2) -> str:
    """Mask a secret value while keeping short boundary context."""
    secret = (value or "").strip()
    if not secret:
        return ""

    if len(secret) <= visible_prefix + visible_suffix:
        return "*" * len(secret)

    hidden = "*" * (len(secret) - visible_prefix - visible_suffix)
    return f"{secret[:visible_prefix]}{hidden}{secret[-visible_suffix:]}"


def mask_dsn(dsn: str) -> str:
    """Hide the password component of a connection URL."""
    if not dsn:
        return ""

    parts = urlsplit(dsn)
    if not parts.password:
        return dsn

    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{parts.username}:***@{host}" if parts.username else f"***@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def redact_env_snapshot(env_map: dict[str, Any], secret_keys: set[str] | None = None) -> dict[str, Any]:
    """Return a redacted copy of selected env/settings keys."""
    sensitive = secret_keys or SECRET_KEYS

    redacted: dict[str, Any] = {}
    for key, value in env_map.items():
        if not isinstance(value, str):
            redacted[key] = value
        elif key in DSN_KEYS:
            redacted[key] = mask_dsn(value)
        elif key in sensitive:
            redacted[key] = mask_secret(value)
        else:
            redacted[key] = value
    return redacted
