"""
Identity domain constants and the explicit caller context.

Why:
- One Role enum parses roles for both services and the web layer.
- Core operations receive the caller as an argument instead of reading it from
  ambient session state, so authorization stays testable without a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Accept enum members or case-insensitive role names."""
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError as exc:
            raise ValueError("invalid_role") from exc


@dataclass(frozen=True)
class CallerContext:
    """Identity of the current caller as supplied by the identity provider."""

    user_id: str
    role: Role


@dataclass
class User:
    id: str
    email: str
    full_name: str
    role: Role


__all__ = ["CallerContext", "Role", "User"]
