"""
Centralized storage configuration for attachment uploads.

Intent:
    Provide a single source of truth for the sandbox root and the upload size
    cap so the file writer, the download route and tests never drift apart.

Behavior:
    - STORAGE_DIR_DEFAULT mirrors the historical `uploads` directory.
    - get_storage_dir() reads ATTACHMENTS_STORAGE_DIR and returns an absolute,
      normalized path (the directory is not created here).
    - get_attachments_max_upload_bytes() reads ATTACHMENTS_MAX_UPLOAD_BYTES,
      clamped to the contract maximum.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os
from pathlib import Path


STORAGE_DIR_DEFAULT = "uploads"
ATTACHMENTS_SUBDIR = "attachments"


def get_storage_dir() -> Path:
    """Return the configured sandbox root as an absolute, normalized path.

    Env:
        ATTACHMENTS_STORAGE_DIR – optional override; otherwise defaults to
        STORAGE_DIR_DEFAULT relative to the working directory.
    """
    raw = (os.getenv("ATTACHMENTS_STORAGE_DIR") or STORAGE_DIR_DEFAULT).strip() or STORAGE_DIR_DEFAULT
    return Path(os.path.abspath(os.path.normpath(raw)))


def storage_dir_is_explicit() -> bool:
    return bool((os.getenv("ATTACHMENTS_STORAGE_DIR") or "").strip())


__all__ = [
    "ATTACHMENTS_SUBDIR",
    "STORAGE_DIR_DEFAULT",
    "get_storage_dir",
    "storage_dir_is_explicit",
]

# --- Size limits --------------------------------------------------------------

def _parse_int_env(name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_attachments_max_upload_bytes() -> int:
    """Maximum size of a single uploaded attachment (default/clamped 20 MiB)."""
    contract_max = 20 * 1024 * 1024
    return _parse_int_env("ATTACHMENTS_MAX_UPLOAD_BYTES", contract_max, contract_max=contract_max)


__all__ += ["get_attachments_max_upload_bytes"]
