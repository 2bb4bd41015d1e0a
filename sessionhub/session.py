"""Session record shared by every repository backend.

A session carries its own expiration model: it is considered expired once
`max_inactive_interval` has elapsed since `last_accessed_time`. A negative
interval means the session never expires.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

DEFAULT_MAX_INACTIVE_INTERVAL = timedelta(minutes=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Session:
    """Server-side session state keyed by `id`."""

    id: str = field(default_factory=_new_id)
    creation_time: datetime = field(default_factory=_utcnow)
    last_accessed_time: Optional[datetime] = None
    max_inactive_interval: timedelta = DEFAULT_MAX_INACTIVE_INTERVAL
    attributes: Dict[str, Any] = field(default_factory=dict)
    # id the session was last stored under
    original_id: Optional[str] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.last_accessed_time is None:
            self.last_accessed_time = self.creation_time
        if self.original_id is None:
            self.original_id = self.id

    def get_attribute(self, name: str) -> Any:
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        """Set an attribute; a `None` value removes it."""
        if value is None:
            self.attributes.pop(name, None)
        else:
            self.attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)

    @property
    def attribute_names(self) -> List[str]:
        return list(self.attributes)

    def change_session_id(self) -> str:
        self.id = _new_id()
        return self.id

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.max_inactive_interval < timedelta(0):
            return None
        try:
            return self.last_accessed_time + self.max_inactive_interval
        except OverflowError:
            # beyond datetime.max, effectively never
            return None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.max_inactive_interval < timedelta(0):
            return False
        now = now or _utcnow()
        return now - self.last_accessed_time >= self.max_inactive_interval

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly representation of the session."""
        expires_at = self.expires_at
        return {
            "session_id": self.id,
            "creation_time": self.creation_time.isoformat(),
            "last_accessed_time": self.last_accessed_time.isoformat(),
            "max_inactive_interval_seconds": self.max_inactive_interval.total_seconds(),
            "expires_at": expires_at.isoformat() if expires_at else None,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=data["session_id"],
            creation_time=datetime.fromisoformat(data["creation_time"]),
            last_accessed_time=datetime.fromisoformat(data["last_accessed_time"]),
            max_inactive_interval=timedelta(seconds=data["max_inactive_interval_seconds"]),
            attributes=dict(data.get("attributes") or {}),
        )

    def mark_saved(self) -> None:
        self.original_id = self.id


def attributes_from_spec(spec: Any) -> Dict[str, Any]:
    """Normalize a session spec into a plain attribute dict.

    Accepts a dict, a Pydantic model instance, or an object with attributes.
    `None` values are dropped.
    """
    if spec is None:
        return {}
    if isinstance(spec, dict):
        return {k: v for k, v in spec.items() if v is not None}
    if hasattr(spec, "model_dump"):
        return {k: v for k, v in spec.model_dump().items() if v is not None}
    return {k: v for k, v in vars(spec).items() if v is not None and not k.startswith("_")}
