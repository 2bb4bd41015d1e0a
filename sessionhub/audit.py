"""Audit utilities: append-only JSON-lines audit trail for session operations.

Events land in `<AUDIT_LOG_DIR>/audit.log` (default `logs/audit.log`).
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List

from .config import get_audit_log_dir

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _audit_path() -> str:
    return os.path.join(get_audit_log_dir(), "audit.log")


def record_audit(event: dict) -> None:
    """Append an audit event, adding a timestamp when missing.

    Write failures are logged and swallowed; auditing never fails the caller.
    """
    event_copy = dict(event)
    event_copy.setdefault("timestamp", _now_iso())
    try:
        os.makedirs(get_audit_log_dir(), exist_ok=True)
        with open(_audit_path(), "a", encoding="utf-8") as fh:
            fh.write(json.dumps(event_copy, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.exception("Failed writing audit to file: %s", e)


def read_audit(limit: int = 100) -> List[Dict[str, Any]]:
    """Return the most recent `limit` audit events, oldest first."""
    path = _audit_path()
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as fh:
            lines = fh.readlines()[-limit:] if limit > 0 else []
    except OSError as e:
        logger.debug("Failed reading audit log file %s: %s", path, e)
        return []

    events = []
    for ln in lines:
        if not ln.strip():
            continue
        try:
            events.append(json.loads(ln))
        except json.JSONDecodeError as e:
            logger.debug("Failed to parse audit line: %s", e)
            events.append({"raw": ln.strip()})
    return events
