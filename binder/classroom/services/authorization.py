"""Classroom membership gate used before every mutation in the core."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from binder.errors import Unauthorized
from binder.identity_access.domain import CallerContext, Role

_log = logging.getLogger("binder.classroom")


class MembershipRepoProtocol(Protocol):
    def is_member(self, class_id: str, user_id: str, role: Role) -> bool: ...


def _role_of(caller: CallerContext) -> Role | None:
    """Caller role as a Role member; None for unknown role names."""
    try:
        return Role.parse(caller.role)
    except ValueError:
        return None


@dataclass
class AuthorizationGate:
    """Answer "is user X a STUDENT/TEACHER of class Y" from membership rows."""

    repo: MembershipRepoProtocol

    def is_in_class(self, class_id: str, user_id: str, role: Role) -> bool:
        if not class_id or not user_id:
            return False
        return bool(self.repo.is_member(class_id, user_id, Role.parse(role)))

    def require_member(self, caller: CallerContext | None, class_id: str, role: Role) -> CallerContext:
        """Return the caller when it holds `role` in `class_id`, else raise.

        The caller's own role must match the required role; a teacher who also
        appears in the enrollment table does not act as a student.
        """
        required = Role.parse(role)
        if caller is None or not caller.user_id or _role_of(caller) is not required:
            _log.info("Authorization denied: role_mismatch class=%s", class_id)
            raise Unauthorized("forbidden")
        if not self.is_in_class(class_id, caller.user_id, required):
            _log.info("Authorization denied: not_member class=%s user=%s", class_id, caller.user_id)
            raise Unauthorized("forbidden")
        return caller


__all__ = ["AuthorizationGate", "MembershipRepoProtocol"]
