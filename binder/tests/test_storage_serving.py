"""Resolving stored attachment references for download."""
from __future__ import annotations

import pytest

from binder.errors import InvalidAttachment
from binder.storage.serving import resolve_stored_reference


def test_relative_reference_resolves_inside_sandbox(sandbox):
    target = resolve_stored_reference(sandbox, "attachments/abc.png?name=My_Photo.png")
    assert target.redirect_url is None
    assert target.path == sandbox / "attachments" / "abc.png"
    assert target.filename == "My_Photo.png"


def test_absolute_url_becomes_redirect(sandbox):
    target = resolve_stored_reference(sandbox, "https://cdn.example.org/a/report.pdf")
    assert target.redirect_url == "https://cdn.example.org/a/report.pdf"
    assert target.path is None
    assert target.filename == "report.pdf"


@pytest.mark.parametrize("url", ["attachments/../../secret.txt", "/etc/passwd", "../x"])
def test_escaping_reference_is_refused(sandbox, url):
    with pytest.raises(InvalidAttachment) as exc:
        resolve_stored_reference(sandbox, url)
    assert str(exc.value) == "path_escape"


def test_empty_path_is_invalid(sandbox):
    with pytest.raises(InvalidAttachment) as exc:
        resolve_stored_reference(sandbox, "?name=x")
    assert str(exc.value) == "invalid_url"
