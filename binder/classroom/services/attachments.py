"""Attachment metadata service: validation plus CRUD by id."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional, Protocol
from urllib.parse import unquote_plus, urlsplit
from uuid import uuid4

from binder.classroom.domain import Attachment, AttachmentType
from binder.errors import InvalidAttachment

_log = logging.getLogger("binder.classroom")

MAX_URL_LENGTH = 2048
_PATH_TRAVERSAL = re.compile(r"(^|[\\/])\.\.([\\/]|$)")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
# Characters a URI parser refuses outright, plus malformed percent escapes.
_URI_ILLEGAL = re.compile(r'[\s"<>{}|^`]|%(?![0-9A-Fa-f]{2})')
_ALLOWED_SCHEMES = frozenset({"http", "https"})
_RELATIVE_TYPES = frozenset({AttachmentType.FILE, AttachmentType.IMAGE})


class AttachmentRepoProtocol(Protocol):
    def insert_attachment(self, attachment: Attachment) -> Attachment: ...

    def save_attachment(self, attachment: Attachment) -> Attachment: ...

    def delete_attachment(self, attachment_id: str) -> bool: ...

    def get_attachment(self, attachment_id: str) -> Optional[Attachment]: ...


def _coerce_type(value: object) -> AttachmentType:
    if value is None:
        raise InvalidAttachment("type_required")
    if isinstance(value, AttachmentType):
        return value
    try:
        return AttachmentType(str(value).strip().upper())
    except ValueError as exc:
        raise InvalidAttachment("invalid_type") from exc


def validate_attachment_url(url: Optional[str], attachment_type: AttachmentType) -> str:
    """Return the trimmed URL when it is safe to store for `attachment_type`."""
    if url is None or not url.strip():
        raise InvalidAttachment("url_required")
    trimmed = url.strip()
    if len(trimmed) > MAX_URL_LENGTH:
        raise InvalidAttachment("url_too_long")
    if _CONTROL_CHARS.search(trimmed):
        raise InvalidAttachment("control_characters")
    if "\\" in trimmed:
        raise InvalidAttachment("invalid_characters")
    if _PATH_TRAVERSAL.search(trimmed) or _PATH_TRAVERSAL.search(unquote_plus(trimmed)):
        raise InvalidAttachment("path_traversal")
    if _URI_ILLEGAL.search(trimmed):
        raise InvalidAttachment("invalid_url")
    try:
        scheme = urlsplit(trimmed).scheme
    except ValueError as exc:
        raise InvalidAttachment("invalid_url") from exc
    if scheme:
        if scheme.lower() not in _ALLOWED_SCHEMES:
            raise InvalidAttachment("unsupported_scheme")
    elif attachment_type not in _RELATIVE_TYPES:
        raise InvalidAttachment("absolute_url_required")
    return trimmed


def validate_attachment(attachment: Optional[Attachment]) -> Attachment:
    """Validate required fields and URL safety; return a normalized copy."""
    if attachment is None:
        raise InvalidAttachment("attachment_required")
    attachment_type = _coerce_type(attachment.type)
    if not attachment.owner_user_id:
        raise InvalidAttachment("owner_required")
    url = validate_attachment_url(attachment.url, attachment_type)
    return replace(attachment, type=attachment_type, url=url)


@dataclass
class AttachmentStore:
    """Persist validated attachment rows; callers hold references by id."""

    repo: AttachmentRepoProtocol

    def upload(self, attachment: Attachment) -> Attachment:
        record = validate_attachment(attachment)
        if record.id is None:
            record.id = str(uuid4())
        if record.uploaded_at is None:
            record.uploaded_at = datetime.now(timezone.utc)
        stored = self.repo.insert_attachment(record)
        _log.info("Attachment row created id=%s type=%s", stored.id, stored.type.value)
        return stored

    def update(self, attachment: Attachment) -> Attachment:
        """Insert when `attachment.id` is None, else overwrite the existing row.

        An id that names no row raises NotFound; new ids are minted by the store,
        never taken from the caller.
        """
        record = validate_attachment(attachment)
        if record.id is None:
            record.id = str(uuid4())
            if record.uploaded_at is None:
                record.uploaded_at = datetime.now(timezone.utc)
            return self.repo.insert_attachment(record)
        return self.repo.save_attachment(record)

    def delete(self, attachment_id: Optional[str]) -> None:
        if not attachment_id:
            return
        if self.repo.delete_attachment(attachment_id):
            _log.info("Attachment row deleted id=%s", attachment_id)

    def get(self, attachment_id: Optional[str]) -> Optional[Attachment]:
        if not attachment_id:
            return None
        return self.repo.get_attachment(attachment_id)


__all__ = [
    "AttachmentRepoProtocol",
    "AttachmentStore",
    "MAX_URL_LENGTH",
    "validate_attachment",
    "validate_attachment_url",
]
