"""
Service wiring for the web adapter.

Repository selection: a Postgres repository when BINDER_DATABASE_URL or
DATABASE_URL is set, otherwise the in-memory repository. Tests swap both the
repository and the sandbox root via `set_repo` / `set_storage_dir`.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from binder.classroom.repo_memory import InMemoryClassroomRepo
from binder.classroom.services.attachments import AttachmentStore
from binder.classroom.services.authorization import AuthorizationGate
from binder.classroom.services.grading import GradingWorkflow
from binder.classroom.services.post_attachments import PostAttachmentBinder
from binder.classroom.services.submissions import SubmissionWorkflow
from binder.storage.config import get_storage_dir
from binder.storage.files import SecureFileWriter

logger = logging.getLogger("binder.web")


def _database_configured() -> bool:
    return any((os.getenv(name) or "").strip() for name in ("BINDER_DATABASE_URL", "DATABASE_URL"))


def _build_default_repo():
    """Prefer the DB-backed repo when a DSN is configured; else in-memory."""
    if not _database_configured():
        return InMemoryClassroomRepo()
    from binder.classroom.repo_db import DBClassroomRepo

    try:
        return DBClassroomRepo()
    except Exception as exc:  # pragma: no cover - exercised when DSN unusable
        logger.warning("Classroom repo unavailable (%s); using in-memory fallback", exc.__class__.__name__)
        return InMemoryClassroomRepo()


_REPO = None
_STORAGE_DIR: Path | None = None


def get_repo():
    global _REPO
    if _REPO is None:
        _REPO = _build_default_repo()
    return _REPO


def set_repo(repo) -> None:
    """Allow tests to swap the classroom repository implementation."""
    global _REPO
    _REPO = repo


def get_sandbox_root() -> Path:
    return _STORAGE_DIR if _STORAGE_DIR is not None else get_storage_dir()


def set_storage_dir(path: Path | str | None) -> None:
    """Allow tests to point uploads at a temporary sandbox (None resets)."""
    global _STORAGE_DIR
    _STORAGE_DIR = Path(path) if path is not None else None


def get_writer() -> SecureFileWriter:
    return SecureFileWriter(sandbox_root=get_sandbox_root())


def get_attachment_store() -> AttachmentStore:
    return AttachmentStore(get_repo())


def get_gate() -> AuthorizationGate:
    return AuthorizationGate(get_repo())


def get_submission_workflow() -> SubmissionWorkflow:
    return SubmissionWorkflow(
        writer=get_writer(),
        store=get_attachment_store(),
        gate=get_gate(),
        repo=get_repo(),
    )


def get_grading_workflow() -> GradingWorkflow:
    return GradingWorkflow(gate=get_gate(), repo=get_repo())


def get_post_binder() -> PostAttachmentBinder:
    return PostAttachmentBinder(
        writer=get_writer(),
        store=get_attachment_store(),
        gate=get_gate(),
        repo=get_repo(),
    )
