"""Admin RBAC for the hub's session operations.

Admin actions accept either the legacy `ADMIN_TOKEN` header or a Bearer
JWT signed with `ADMIN_JWT_SECRET`. When neither is configured the hub runs
open, as in local development.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class InvalidTokenError(Exception):
    """Raised when a JWT token cannot be verified."""


def _verify_jwt(token: str, secret: str) -> dict:
    """Verify and return the JWT payload."""
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        raise InvalidTokenError("Invalid JWT token") from exc


def admin_required() -> bool:
    """Return True when an admin mechanism is configured."""
    return bool(os.getenv("ADMIN_TOKEN") or os.getenv("ADMIN_JWT_SECRET"))


def is_admin(authorization: Optional[str], x_admin_token: Optional[str]) -> bool:
    """Return True if the provided credentials authorize an admin action."""
    admin_token = os.getenv("ADMIN_TOKEN")
    if admin_token and x_admin_token and x_admin_token == admin_token:
        return True

    jwt_secret = os.getenv("ADMIN_JWT_SECRET")
    if not (jwt_secret and authorization and authorization.startswith("Bearer ")):
        return False

    token = authorization.split(" ", 1)[1]
    try:
        payload = _verify_jwt(token, jwt_secret)
    except InvalidTokenError as e:
        logger.info("Rejected admin JWT: %s", e.__cause__)
        return False
    return payload.get("role") == "admin" or bool(payload.get("is_admin"))


def issue_admin_token(secret: str, ttl: timedelta) -> str:
    """Mint a short-lived admin JWT."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "admin",
        "role": "admin",
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)
