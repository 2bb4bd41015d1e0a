"""Session repository capability and the in-memory implementation.

`SessionRepository` is the structural interface every backend satisfies:
create, save, find by id, delete by id. The in-memory repository is the
canonical backend used for development and tests.
"""

import copy
import logging
from datetime import timedelta
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .session import DEFAULT_MAX_INACTIVE_INTERVAL, Session

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionRepository(Protocol):
    """Store, retrieve and delete sessions by id."""

    def create_session(self) -> Session:
        """Return a new session that has not been saved yet."""
        ...

    def save(self, session: Session) -> None:
        ...

    def find_by_id(self, session_id: str) -> Optional[Session]:
        """Return the session for `session_id`, or None if missing or expired."""
        ...

    def delete_by_id(self, session_id: str) -> None:
        ...


class InMemorySessionRepository:
    """Lightweight dict-backed repository for development and tests.

    Sessions are stored and returned as copies so callers only change
    stored state through `save`.
    """

    def __init__(self, default_max_inactive_interval: timedelta = DEFAULT_MAX_INACTIVE_INTERVAL) -> None:
        self.default_max_inactive_interval = default_max_inactive_interval
        self.sessions: Dict[str, Session] = {}

    def create_session(self) -> Session:
        return Session(max_inactive_interval=self.default_max_inactive_interval)

    def save(self, session: Session) -> None:
        if session.original_id != session.id:
            self.sessions.pop(session.original_id, None)
        session.mark_saved()
        self.sessions[session.id] = copy.deepcopy(session)

    def find_by_id(self, session_id: str) -> Optional[Session]:
        saved = self.sessions.get(session_id)
        if saved is None:
            return None
        if saved.is_expired():
            logger.debug("Session %s expired; removing", session_id)
            self.delete_by_id(session_id)
            return None
        return copy.deepcopy(saved)

    def delete_by_id(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)

    def list_sessions(self) -> List[Session]:
        """Return copies of every session that has not expired."""
        return [copy.deepcopy(s) for s in list(self.sessions.values()) if not s.is_expired()]
