"""
Helpers that shape stored attachment names and references.

Why:
    Keep the on-disk name opaque (random id + whitelisted extension) while the
    human-readable name travels separately in the reference's `name` query
    parameter. Nothing derived from user input ever reaches a disk path.

Conventions:
    - On disk: {sandbox_root}/attachments/{uuid}{ext}
    - Reference: attachments/{uuid}{ext}?name={url-encoded display name}

Security:
    - Display names keep only [A-Za-z0-9._-]; `..` runs collapse and leading
      dots are stripped, so a display name can never address a parent dir.
"""
from __future__ import annotations

import re
from urllib.parse import quote, unquote_plus, urlsplit

from binder.storage.config import ATTACHMENTS_SUBDIR

_CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "text/plain": ".txt",
}

_DISPLAY_NAME_RE = re.compile(r"[^A-Za-z0-9._-]")
_DIR_SEPARATORS_RE = re.compile(r"[\\/]")
MAX_DISPLAY_NAME_LENGTH = 120
DEFAULT_DISPLAY_NAME = "attachment"


def extension_for_content_type(content_type: str | None) -> str:
    """Map a content type to a whitelisted extension ('' when unknown)."""
    return _CONTENT_TYPE_EXTENSIONS.get((content_type or "").strip().lower(), "")


def sanitize_display_name(original_name: str | None, fallback: str = DEFAULT_DISPLAY_NAME) -> str:
    """Normalize an uploaded filename for safe display.

    Behavior:
        - Directory components are dropped (both `/` and `\\`).
        - Characters outside [A-Za-z0-9._-] become `_`.
        - `..` collapses to `.` until none remain; leading dots are stripped.
        - Result is truncated to 120 characters; empty results use `fallback`.

    The function is idempotent for a fixed fallback.
    """
    fallback = fallback or DEFAULT_DISPLAY_NAME
    base = original_name or ""
    name = fallback if not base.strip() else _DIR_SEPARATORS_RE.split(base)[-1]
    sanitized = _DISPLAY_NAME_RE.sub("_", name)
    while ".." in sanitized:
        sanitized = sanitized.replace("..", ".")
    sanitized = sanitized.lstrip(".")
    if not sanitized:
        sanitized = fallback
    return sanitized[:MAX_DISPLAY_NAME_LENGTH]


def make_attachment_reference(stored_filename: str, display_name: str) -> str:
    """Build the relative reference handed to callers and persisted as URL."""
    return f"{ATTACHMENTS_SUBDIR}/{stored_filename}?name={quote(display_name, safe='')}"


def filename_from_url(url: str | None) -> str:
    """Recover a human-readable filename from an attachment URL or reference.

    Order: `name` query parameter, then the last path segment, then the last
    segment of the percent-decoded input, finally "attachment".
    """
    if not url or not url.strip():
        return DEFAULT_DISPLAY_NAME
    trimmed = url.strip()
    try:
        parts = urlsplit(trimmed)
    except ValueError:
        parts = None
    if parts is not None:
        for pair in (parts.query or "").split("&"):
            key, sep, value = pair.partition("=")
            if not sep or not key or key.lower() != "name":
                continue
            if value.strip():
                return unquote_plus(value)
            break
        path = parts.path or ""
        if path.strip():
            name = _DIR_SEPARATORS_RE.split(path)[-1]
            if name.strip():
                return name
    decoded = unquote_plus(trimmed)
    name = _DIR_SEPARATORS_RE.split(decoded)[-1]
    return name if name.strip() else DEFAULT_DISPLAY_NAME


__all__ = [
    "DEFAULT_DISPLAY_NAME",
    "MAX_DISPLAY_NAME_LENGTH",
    "extension_for_content_type",
    "filename_from_url",
    "make_attachment_reference",
    "sanitize_display_name",
]
