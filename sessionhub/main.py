"""Application entrypoint and admin/dev routes for the session hub."""

import logging
import os
from datetime import timedelta
from typing import List, Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from pydantic import BaseModel

from .audit import read_audit, record_audit
from .auth import admin_required, is_admin, issue_admin_token
from .config import get_admin_token_ttl, get_fixed_expiration
from .post_processor import (
    BeanPostProcessor,
    FixedDurationExpirationSessionRepositoryBeanPostProcessor,
    apply_post_processors,
)
from .session import attributes_from_spec
from .session_store import create_default_repository

logger = logging.getLogger(__name__)

# Metrics
MET_SESSIONS_CREATED = Counter('hub_sessions_created_total', 'Sessions created')
MET_TERMINATE_ATTEMPTS = Counter('hub_terminate_attempts_total', 'Terminate attempts')
MET_TERMINATE_SUCCESS = Counter('hub_terminate_success_total', 'Terminate success')
MET_TERMINATE_DENIED = Counter('hub_terminate_denied_total', 'Terminate denied (auth)')
MET_AUTH_FAILURES = Counter('hub_auth_failures_total', 'Authentication failures')

SESSION_REPOSITORY_BEAN = "sessionRepository"


class SessionSpec(BaseModel):
    user: str
    role: str
    device: str | None = None
    store: str | None = None
    module: str | None = None


def build_post_processors() -> List[BeanPostProcessor]:
    """Post-processors enabled by the environment."""
    processors: List[BeanPostProcessor] = []
    fixed = get_fixed_expiration()
    if fixed is not None:
        processors.append(FixedDurationExpirationSessionRepositoryBeanPostProcessor(fixed))
    return processors


def build_session_repository():
    repository = create_default_repository()
    repository = apply_post_processors(repository, SESSION_REPOSITORY_BEAN, build_post_processors())
    logger.info("Session repository ready: %r", repository)
    return repository


app = FastAPI(title="Session Hub - Dev Skeleton")

session_repository = build_session_repository()

# Development CORS: allow common local dev origins. Lock this down in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_admin(authorization: Optional[str], x_admin_token: Optional[str]) -> None:
    if admin_required() and not is_admin(authorization, x_admin_token):
        MET_AUTH_FAILURES.inc()
        raise HTTPException(status_code=403, detail="admin credentials required")


@app.get("/health")
async def health():
    fixed = getattr(session_repository, "expiration_duration", None)
    return {
        "status": "ok",
        "fixed_expiration_seconds": fixed.total_seconds() if fixed is not None else None,
    }


@app.get("/api/health/sessions")
async def sessions():
    items = [s.to_dict() for s in session_repository.list_sessions()]
    users = {s["attributes"].get("user") for s in items if s["attributes"].get("user")}
    return {
        "total_active_sessions": len(items),
        "total_active_users": len(users),
        "sessions": items,
    }


@app.post("/api/sessions/create")
async def create_session(
    user: str = "anonymous",
    role: str = "Viewer",
    device: str | None = None,
    store: str | None = None,
    module: str | None = None,
    max_inactive_seconds: float | None = None,
):
    """Dev helper: create and save a session. A fixed expiration, when installed, wins over
    `max_inactive_seconds`."""
    s = session_repository.create_session()
    spec = SessionSpec(user=user, role=role, device=device, store=store, module=module)
    for name, value in attributes_from_spec(spec).items():
        s.set_attribute(name, value)
    if max_inactive_seconds is not None:
        try:
            s.max_inactive_interval = timedelta(seconds=max_inactive_seconds)
        except (ValueError, OverflowError) as e:
            raise HTTPException(status_code=422, detail="max_inactive_seconds out of range") from e
    session_repository.save(s)
    MET_SESSIONS_CREATED.inc()
    return s.to_dict()


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str):
    s = session_repository.find_by_id(session_id)
    if s is None:
        raise HTTPException(status_code=404, detail="session not found")
    return s.to_dict()


@app.post("/api/sessions/{session_id}/terminate")
async def terminate_session(
    session_id: str,
    authorization: str | None = Header(None),
    x_admin_token: str | None = Header(None),
):
    MET_TERMINATE_ATTEMPTS.inc()
    try:
        _require_admin(authorization, x_admin_token)
    except HTTPException:
        MET_TERMINATE_DENIED.inc()
        raise

    if session_repository.find_by_id(session_id) is None:
        raise HTTPException(status_code=404, detail="session not found")
    session_repository.delete_by_id(session_id)
    MET_TERMINATE_SUCCESS.inc()

    record_audit({
        "action": "terminate_session",
        "session_id": session_id,
        "by": "admin",
    })
    return {"status": "terminated", "session_id": session_id}


@app.get('/metrics')
async def metrics():
    """Expose Prometheus metrics."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/api/ops/audit")
async def get_audit(request: Request, limit: int = 100):
    """Return recent audit events. Requires admin credentials when RBAC is configured."""
    _require_admin(request.headers.get("authorization"), request.headers.get("x-admin-token"))
    return {"events": read_audit(limit)}


@app.post("/api/ops/token")
async def mint_admin_token(x_admin_token: str | None = Header(None)):
    """Mint a short-lived admin JWT when provided the legacy `ADMIN_TOKEN`.

    Requires `ADMIN_JWT_SECRET` to be set. This is a dev-friendly helper; replace
    with a proper auth server in production.
    """
    admin_token = os.getenv("ADMIN_TOKEN")
    jwt_secret = os.getenv("ADMIN_JWT_SECRET")

    if not jwt_secret:
        raise HTTPException(status_code=400, detail="ADMIN_JWT_SECRET not configured")

    if not admin_token or x_admin_token != admin_token:
        MET_AUTH_FAILURES.inc()
        raise HTTPException(status_code=403, detail="invalid admin token")

    token = issue_admin_token(jwt_secret, get_admin_token_ttl())
    return {"access_token": token, "token_type": "bearer"}
