"""
Attachment URL acceptance: http(s) absolute URLs for every type, relative
references only for FILE/IMAGE, and no traversal or control characters.
"""
from __future__ import annotations

import pytest

from binder.classroom.domain import Attachment, AttachmentType
from binder.classroom.services.attachments import (
    MAX_URL_LENGTH,
    validate_attachment,
    validate_attachment_url,
)
from binder.errors import InvalidAttachment


@pytest.mark.parametrize(
    "url,attachment_type",
    [
        ("https://example.org/a.pdf", AttachmentType.LINK),
        ("HTTP://example.org/", AttachmentType.LINK),
        ("https://example.org/a.png", AttachmentType.IMAGE),
        ("attachments/abc.png?name=My_Photo.png", AttachmentType.IMAGE),
        ("attachments/abc.pdf", AttachmentType.FILE),
        ("  https://example.org/x  ", AttachmentType.LINK),
    ],
)
def test_accepted_urls(url, attachment_type):
    assert validate_attachment_url(url, attachment_type) == url.strip()


@pytest.mark.parametrize(
    "url,attachment_type,code",
    [
        (None, AttachmentType.FILE, "url_required"),
        ("   ", AttachmentType.FILE, "url_required"),
        ("attachments/a\x00b", AttachmentType.FILE, "control_characters"),
        ("attachments/a\x7fb", AttachmentType.FILE, "control_characters"),
        ("attachments\\a.png", AttachmentType.FILE, "invalid_characters"),
        ("../secret.txt", AttachmentType.FILE, "path_traversal"),
        ("attachments/../x", AttachmentType.FILE, "path_traversal"),
        ("https://example.org/a/..", AttachmentType.LINK, "path_traversal"),
        ("attachments/%2e%2e/x", AttachmentType.FILE, "path_traversal"),
        ("attachments/a b.png", AttachmentType.FILE, "invalid_url"),
        ("attachments/a%zz.png", AttachmentType.FILE, "invalid_url"),
        ("javascript:alert(1)", AttachmentType.LINK, "unsupported_scheme"),
        ("file:///etc/passwd", AttachmentType.FILE, "unsupported_scheme"),
        ("ftp://example.org/a", AttachmentType.LINK, "unsupported_scheme"),
        ("attachments/a.png", AttachmentType.LINK, "absolute_url_required"),
    ],
)
def test_rejected_urls(url, attachment_type, code):
    with pytest.raises(InvalidAttachment) as exc:
        validate_attachment_url(url, attachment_type)
    assert str(exc.value) == code


def test_url_length_limit():
    base = "https://example.org/"
    ok = base + "a" * (MAX_URL_LENGTH - len(base))
    assert validate_attachment_url(ok, AttachmentType.LINK) == ok
    with pytest.raises(InvalidAttachment) as exc:
        validate_attachment_url(ok + "a", AttachmentType.LINK)
    assert str(exc.value) == "url_too_long"


def test_validate_attachment_requires_fields():
    with pytest.raises(InvalidAttachment, match="attachment_required"):
        validate_attachment(None)
    with pytest.raises(InvalidAttachment, match="type_required"):
        validate_attachment(Attachment(type=None, url="https://x.org", owner_user_id="u"))
    with pytest.raises(InvalidAttachment, match="invalid_type"):
        validate_attachment(Attachment(type="VIDEO", url="https://x.org", owner_user_id="u"))  # type: ignore[arg-type]
    with pytest.raises(InvalidAttachment, match="owner_required"):
        validate_attachment(Attachment(type=AttachmentType.LINK, url="https://x.org", owner_user_id=None))


def test_validate_attachment_returns_trimmed_copy():
    original = Attachment(type="link", url=" https://x.org/a ", owner_user_id="u")  # type: ignore[arg-type]
    out = validate_attachment(original)
    assert out.type is AttachmentType.LINK
    assert out.url == "https://x.org/a"
    assert original.url == " https://x.org/a "


def test_invalid_attachment_is_a_value_error():
    with pytest.raises(ValueError):
        validate_attachment_url("", AttachmentType.FILE)
