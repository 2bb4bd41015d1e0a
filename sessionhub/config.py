"""Environment-driven settings for the hub.

All values are read from the process environment at call time so tests can
adjust them with `monkeypatch.setenv`.
"""

import os
from datetime import timedelta
from typing import Optional

from .session import DEFAULT_MAX_INACTIVE_INTERVAL


class ConfigurationError(ValueError):
    """Raised when an environment setting cannot be parsed."""


def _seconds(name: str) -> Optional[timedelta]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return timedelta(seconds=float(raw))
    except (ValueError, OverflowError) as e:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from e


def get_default_max_inactive_interval() -> timedelta:
    """Interval given to new sessions (`SESSION_MAX_INACTIVE_SECONDS`, default 1800)."""
    interval = _seconds("SESSION_MAX_INACTIVE_SECONDS")
    return DEFAULT_MAX_INACTIVE_INTERVAL if interval is None else interval


def get_fixed_expiration() -> Optional[timedelta]:
    """Fixed expiration forced on every session, or None when not configured.

    Negative values are accepted as-is and mean sessions never expire.
    """
    return _seconds("SESSION_FIXED_EXPIRATION_SECONDS")


def get_admin_token_ttl() -> timedelta:
    raw = os.getenv("ADMIN_TOKEN_TTL_MINUTES", "30")
    try:
        return timedelta(minutes=int(raw))
    except ValueError as e:
        raise ConfigurationError(f"ADMIN_TOKEN_TTL_MINUTES must be an integer, got {raw!r}") from e


def get_audit_log_dir() -> str:
    return os.getenv("AUDIT_LOG_DIR", "logs")
