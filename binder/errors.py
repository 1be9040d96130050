"""
Typed errors raised by the classroom core.

Why:
    Services signal failures with short machine codes (e.g. "url_too_long")
    so web adapters can map them to stable HTTP payloads. Each error derives
    from the builtin the services would otherwise raise, which keeps plain
    `except LookupError` / `except ValueError` handlers working.
"""
from __future__ import annotations


class InvalidAttachment(ValueError):
    """Attachment metadata failed validation (missing field, unsafe URL)."""


class StorageFailure(RuntimeError):
    """Writing an uploaded file failed or violated a naming-safety check."""


class NotFound(LookupError):
    """Referenced assignment, submission, post or attachment is absent."""


class Unauthorized(PermissionError):
    """Caller lacks the required classroom membership or role."""


__all__ = ["InvalidAttachment", "StorageFailure", "NotFound", "Unauthorized"]
