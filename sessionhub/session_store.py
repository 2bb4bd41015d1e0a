"""Session store glue: Redis-backed repository and backend selection.

The runtime picks Redis when `REDIS_URL` is configured and falls back to
`InMemorySessionRepository` from `repository` otherwise.
"""

import json
import logging
import math
import os
from datetime import timedelta
from typing import Any, List, Optional

import redis

from .config import get_default_max_inactive_interval
from .repository import InMemorySessionRepository
from .session import DEFAULT_MAX_INACTIVE_INTERVAL, Session

logger = logging.getLogger(__name__)


class RedisSessionRepository:
    """A simple Redis-backed session repository using JSON blobs.

    Each session lives under its own key whose TTL tracks the session's
    `max_inactive_interval`, so Redis performs the expiry.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Any = None,
        prefix: str = "hub:session:",
        default_max_inactive_interval: timedelta = DEFAULT_MAX_INACTIVE_INTERVAL,
    ):
        if client is None:
            try:
                client = redis.from_url(redis_url, decode_responses=True)
                # test connection
                client.ping()
            except redis.RedisError as e:
                logger.exception("Failed to connect to Redis at %s: %s", redis_url, e)
                raise

        self.client = client
        self.prefix = prefix
        self.set_key = "hub:sessions"
        self.default_max_inactive_interval = default_max_inactive_interval

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    def create_session(self) -> Session:
        return Session(max_inactive_interval=self.default_max_inactive_interval)

    def save(self, session: Session) -> None:
        """Write the session and set the key TTL from its interval.

        A zero interval means the session is already expired, so the key is
        removed instead of written. A negative interval stores without a TTL.
        """
        # key and index writes go through one MULTI/EXEC pipeline
        pipe = self.client.pipeline()
        if session.original_id != session.id:
            self._queue_delete(pipe, session.original_id)

        key = self._key(session.id)
        seconds = session.max_inactive_interval.total_seconds()
        if seconds == 0:
            self._queue_delete(pipe, session.id)
        else:
            payload = json.dumps(session.to_dict())
            if seconds > 0:
                pipe.set(key, payload, ex=math.ceil(seconds))
            else:
                pipe.set(key, payload)
            pipe.sadd(self.set_key, session.id)
        pipe.execute()
        session.mark_saved()

    def _load(self, session_id: str) -> Optional[Session]:
        raw = self.client.get(self._key(session_id))
        if not raw:
            return None
        try:
            return Session.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, OverflowError) as e:
            logger.exception("Failed reading/parsing session %s: %s", session_id, e)
            return None

    def find_by_id(self, session_id: str) -> Optional[Session]:
        """Retrieve a single session by id from Redis, or None if missing or expired."""
        session = self._load(session_id)
        if session is None:
            return None
        if session.is_expired():
            self.delete_by_id(session_id)
            return None
        return session

    def _queue_delete(self, pipe: Any, session_id: str) -> None:
        pipe.delete(self._key(session_id))
        pipe.srem(self.set_key, session_id)

    def delete_by_id(self, session_id: str) -> None:
        pipe = self.client.pipeline()
        self._queue_delete(pipe, session_id)
        pipe.execute()

    def list_sessions(self) -> List[Session]:
        """Return the sessions indexed in Redis, pruning missing or expired entries."""
        ids = self.client.smembers(self.set_key) or []
        out = []
        for sid in ids:
            session = self._load(sid)
            if session is None:
                # cleanup
                self.client.srem(self.set_key, sid)
                continue
            if session.is_expired():
                self.delete_by_id(sid)
                continue
            out.append(session)
        return out


def create_default_repository():
    """Factory: Redis when `REDIS_URL` is set, otherwise in-memory."""
    interval = get_default_max_inactive_interval()
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        try:
            return RedisSessionRepository(redis_url, default_max_inactive_interval=interval)
        except (redis.RedisError, OSError, RuntimeError) as e:
            logger.warning("Falling back to in-memory session repository: %s", e)
    return InMemorySessionRepository(default_max_inactive_interval=interval)
