"""
In-memory session store for development and tests.

Why: Keep server-side session state opaque to the client. Cookies carry only
an opaque session id; the caller's user id and role stay server-side. For
production, replace with a DB-backed store.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import secrets
import time

from binder.identity_access.domain import Role


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    user_id: str
    role: Role
    expires_at: Optional[int] = None


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(self, *, user_id: str, role: Role | str, ttl_seconds: int = 3600) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(session_id=sid, user_id=user_id, role=Role.parse(role), expires_at=_now() + ttl_seconds)
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec
