"""
Resolve stored attachment references for download/inline serving.

Why:
    Relative attachment URLs are opaque references into the sandbox. Serving
    must never trust the path content: resolve against the sandbox root,
    normalize and refuse anything that escapes it. Absolute http(s) URLs are
    redirected by the caller, never fetched server-side.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from binder.errors import InvalidAttachment
from binder.storage.keys import filename_from_url


@dataclass(frozen=True)
class ServingTarget:
    """Where an attachment should be served from."""

    redirect_url: Optional[str] = None
    path: Optional[Path] = None
    filename: str = "attachment"


def resolve_stored_reference(sandbox_root: Path, url: str) -> ServingTarget:
    """Classify an attachment URL as redirect or local file inside the sandbox.

    Raises:
        InvalidAttachment("invalid_url") when the URL cannot be parsed or has
        no path, InvalidAttachment("path_escape") when the normalized path
        leaves the sandbox root.
    """
    trimmed = (url or "").strip()
    try:
        parts = urlsplit(trimmed)
    except ValueError as exc:
        raise InvalidAttachment("invalid_url") from exc
    if parts.scheme:
        return ServingTarget(redirect_url=trimmed, filename=filename_from_url(trimmed))
    if not parts.path.strip():
        raise InvalidAttachment("invalid_url")
    base = Path(os.path.abspath(os.path.normpath(str(sandbox_root))))
    # os.path.join discards `base` for absolute paths; the escape check catches it.
    candidate = Path(os.path.normpath(os.path.join(str(base), parts.path)))
    try:
        common = os.path.commonpath([str(base), str(candidate)])
    except ValueError as exc:
        raise InvalidAttachment("path_escape") from exc
    if common != str(base):
        raise InvalidAttachment("path_escape")
    return ServingTarget(path=candidate, filename=filename_from_url(trimmed))


__all__ = ["ServingTarget", "resolve_stored_reference"]
