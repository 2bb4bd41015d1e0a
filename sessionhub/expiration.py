"""Repository decorator that pins every session to one expiration duration."""

import logging
from datetime import timedelta
from typing import Any, Optional

from .repository import SessionRepository
from .session import Session

logger = logging.getLogger(__name__)


class FixedDurationExpirationSessionRepository:
    """Wrap a `SessionRepository` so sessions always live for `expiration_duration`.

    Sessions created or saved through the wrapper have their
    `max_inactive_interval` overwritten with the fixed duration before the
    delegate sees them. Lookups and deletes go straight to the delegate.
    Other attributes of the delegate (for example `list_sessions`) are
    forwarded unchanged.
    """

    def __init__(self, delegate: SessionRepository, expiration_duration: timedelta):
        self._delegate = delegate
        self._expiration_duration = expiration_duration

    @property
    def delegate(self) -> SessionRepository:
        return self._delegate

    @property
    def expiration_duration(self) -> timedelta:
        return self._expiration_duration

    def _apply(self, session: Session) -> Session:
        if session.max_inactive_interval != self._expiration_duration:
            logger.debug(
                "Overriding expiration of session %s from %s to %s",
                session.id, session.max_inactive_interval, self._expiration_duration,
            )
        session.max_inactive_interval = self._expiration_duration
        return session

    def create_session(self) -> Session:
        return self._apply(self._delegate.create_session())

    def save(self, session: Session) -> None:
        self._delegate.save(self._apply(session))

    def find_by_id(self, session_id: str) -> Optional[Session]:
        return self._delegate.find_by_id(session_id)

    def delete_by_id(self, session_id: str) -> None:
        return self._delegate.delete_by_id(session_id)

    def __getattr__(self, name: str) -> Any:
        # only called for names not found on the wrapper itself
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._delegate, name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(delegate={self._delegate!r}, expiration_duration={self._expiration_duration!r})"
