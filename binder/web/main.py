"""
Binder web application: session middleware plus the classroom API routers.

Sessions are opaque cookie ids resolved server-side through `SESSION_STORE`;
the login flow that creates them lives with the identity provider and is not
part of this app. Tests create sessions directly on the store.
"""
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from binder.identity_access.stores import SessionStore
from binder.web.config import ensure_secure_config_on_startup
from binder.web.routes.attachments import attachments_router
from binder.web.routes.classroom import classroom_router


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via BINDER_ENABLE_DOTENV (default true outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("BINDER_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
ensure_secure_config_on_startup()

logger = logging.getLogger("binder.web")
SESSION_COOKIE_NAME = "binder_session"
SESSION_STORE = SessionStore()

app = FastAPI(title="Binder", description="Classroom attachments, submissions and grading", version="0.1.0")


def _is_public_path(path: str) -> bool:
    return path in ("/health", "/favicon.ico")


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = SESSION_STORE.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)

    if not rec:
        headers = {"Cache-Control": "private, no-store"}
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers=headers)

    # Expose minimal, read-only user context for downstream handlers.
    request.state.user = {"sub": rec.user_id, "role": rec.role.value}
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


@app.get("/health")
async def health():
    return {"status": "healthy"}


app.include_router(classroom_router)
app.include_router(attachments_router)
