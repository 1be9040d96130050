"""
Sandboxed writer for uploaded attachment files.

Intent:
    Persist an uploaded byte stream below `{sandbox_root}/attachments/` under a
    generated name and hand back the relative reference stored as the
    attachment URL.

Security:
    - The on-disk name is `{uuid4}{ext}`; the extension comes from a fixed
      content-type whitelist, never from the client filename.
    - The normalized destination must stay inside the attachments directory.
    - The real (symlink-resolved) attachments directory must equal the real
      parent of the destination, so a swapped-in symlink cannot redirect writes.
    - Files are created exclusively (`xb`); an existing destination, including
      a dangling symlink, is a hard failure and is never overwritten.

Failure:
    Every refusal or I/O error raises `StorageFailure` with a reason code. A
    partially written file is removed before raising.
"""
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Optional
from uuid import uuid4

from binder.errors import StorageFailure
from binder.storage.config import ATTACHMENTS_SUBDIR, get_attachments_max_upload_bytes
from binder.storage.keys import (
    extension_for_content_type,
    make_attachment_reference,
    sanitize_display_name,
)

_log = logging.getLogger("binder.storage")

_CHUNK_SIZE = 64 * 1024


def _default_id() -> str:
    return str(uuid4())


def _is_within(base: Path, target: Path) -> bool:
    try:
        return os.path.commonpath([str(base), str(target)]) == str(base)
    except ValueError:
        return False


@dataclass
class SecureFileWriter:
    """Write uploads into the sandbox with traversal/symlink/collision guards."""

    sandbox_root: Path
    max_size_bytes: int = field(default_factory=get_attachments_max_upload_bytes)
    id_factory: Callable[[], str] = _default_id

    @property
    def attachments_dir(self) -> Path:
        root = Path(os.path.abspath(os.path.normpath(str(self.sandbox_root))))
        return root / ATTACHMENTS_SUBDIR

    def store(self, stream: BinaryIO, content_type: Optional[str], original_name: Optional[str]) -> str:
        """Copy `stream` into the sandbox and return its relative reference.

        Returns: attachments/{id}{ext}?name={url-encoded display name}
        Raises: StorageFailure on any naming-safety violation or I/O error.
        """
        attachment_id = self.id_factory()
        filename = f"{attachment_id}{extension_for_content_type(content_type)}"
        display_name = sanitize_display_name(original_name, fallback=filename)
        base_dir = self.attachments_dir
        destination = Path(os.path.normpath(str(base_dir / filename)))

        if destination.parent != base_dir or not _is_within(base_dir, destination):
            _log.warning("Attachment write refused: path_escape id=%s", attachment_id)
            raise StorageFailure("path_escape")

        try:
            base_dir.mkdir(parents=True, exist_ok=True)
            real_root = base_dir.parent.resolve(strict=True)
            real_base = base_dir.resolve(strict=True)
            real_parent = destination.parent.resolve(strict=True)
        except OSError as exc:
            _log.warning("Attachment directory unavailable: %s", exc.__class__.__name__)
            raise StorageFailure("directory_unavailable") from exc
        # The attachments dir itself must not be a symlink out of the sandbox.
        if real_base != real_root / ATTACHMENTS_SUBDIR or real_parent != real_base:
            _log.warning("Attachment write refused: symlinked_directory id=%s", attachment_id)
            raise StorageFailure("symlinked_directory")

        if os.path.lexists(destination):
            _log.warning("Attachment write refused: destination_exists id=%s", attachment_id)
            raise StorageFailure("destination_exists")

        try:
            fh = open(destination, "xb")
        except FileExistsError as exc:
            _log.warning("Attachment write refused: destination_exists id=%s", attachment_id)
            raise StorageFailure("destination_exists") from exc
        except OSError as exc:
            _log.warning("Attachment open failed: %s", exc.__class__.__name__)
            raise StorageFailure("io_error") from exc

        try:
            with fh:
                self._copy_bounded(stream, fh)
        except StorageFailure:
            self._discard(destination)
            raise
        except OSError as exc:
            self._discard(destination)
            _log.warning("Attachment write failed: %s id=%s", exc.__class__.__name__, attachment_id)
            raise StorageFailure("io_error") from exc

        _log.info("Attachment stored id=%s", attachment_id)
        return make_attachment_reference(filename, display_name)

    def _copy_bounded(self, source: BinaryIO, target: BinaryIO) -> None:
        if self.max_size_bytes <= 0:
            shutil.copyfileobj(source, target, _CHUNK_SIZE)
            return
        total = 0
        for chunk in iter(lambda: source.read(_CHUNK_SIZE), b""):
            total += len(chunk)
            if total > self.max_size_bytes:
                raise StorageFailure("size_exceeded")
            target.write(chunk)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:  # pragma: no cover - best effort cleanup
            _log.warning("Could not remove partial attachment: %s", exc.__class__.__name__)


__all__ = ["SecureFileWriter"]
