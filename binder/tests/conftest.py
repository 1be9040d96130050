"""
Pytest configuration for Binder tests.

Why: Force AnyIO to use the asyncio backend and give every test a fresh
in-memory repository plus a temporary attachment sandbox, so no test touches
a real database or the working directory.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from binder.classroom.domain import AssignmentDetails, Post, PostKind
from binder.classroom.repo_memory import InMemoryClassroomRepo
from binder.classroom.services.attachments import AttachmentStore
from binder.classroom.services.authorization import AuthorizationGate
from binder.identity_access.domain import CallerContext, Role, User
from binder.storage.files import SecureFileWriter
from binder.tests.utils.seed import (
    ASSIGNMENT_ID,
    CLASS_ID,
    FOREIGN_ASSIGNMENT_ID,
    OTHER_CLASS_ID,
    RESOURCE_ID,
    STUDENT_ID,
    TEACHER_ID,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep configuration and web wiring deterministic per test."""
    for name in ("BINDER_DATABASE_URL", "DATABASE_URL", "ATTACHMENTS_MAX_UPLOAD_BYTES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BINDER_ENV", "dev")
    monkeypatch.setenv("ATTACHMENTS_STORAGE_DIR", str(tmp_path / "sandbox"))
    from binder.web import deps

    deps.set_repo(None)
    deps.set_storage_dir(None)
    yield
    deps.set_repo(None)
    deps.set_storage_dir(None)


@pytest.fixture
def sandbox(tmp_path):
    root = tmp_path / "sandbox"
    root.mkdir()
    return root


@pytest.fixture
def writer(sandbox) -> SecureFileWriter:
    return SecureFileWriter(sandbox_root=sandbox)


@pytest.fixture
def repo() -> InMemoryClassroomRepo:
    """Repo seeded with one class, a teacher, a student and two posts."""
    r = InMemoryClassroomRepo()
    r.add_user(User(id=TEACHER_ID, email="t@example.org", full_name="Tess Teacher", role=Role.TEACHER))
    r.add_user(User(id=STUDENT_ID, email="s@example.org", full_name="Sam Student", role=Role.STUDENT))
    r.add_member(CLASS_ID, TEACHER_ID, Role.TEACHER)
    r.add_member(CLASS_ID, STUDENT_ID, Role.STUDENT)
    now = datetime.now(timezone.utc)
    r.save_post(
        Post(
            id=ASSIGNMENT_ID,
            class_id=CLASS_ID,
            kind=PostKind.ASSIGNMENT,
            title="Essay",
            creator_teacher_id=TEACHER_ID,
            created_at=now,
            assignment=AssignmentDetails(max_marks=100),
        )
    )
    r.save_post(
        Post(
            id=RESOURCE_ID,
            class_id=CLASS_ID,
            kind=PostKind.RESOURCE,
            title="Reading list",
            creator_teacher_id=TEACHER_ID,
            created_at=now,
        )
    )
    r.save_post(
        Post(
            id=FOREIGN_ASSIGNMENT_ID,
            class_id=OTHER_CLASS_ID,
            kind=PostKind.ASSIGNMENT,
            title="Elsewhere",
            creator_teacher_id="teacher-x",
            created_at=now,
            assignment=AssignmentDetails(max_marks=10),
        )
    )
    return r


@pytest.fixture
def gate(repo) -> AuthorizationGate:
    return AuthorizationGate(repo)


@pytest.fixture
def store(repo) -> AttachmentStore:
    return AttachmentStore(repo)


@pytest.fixture
def teacher() -> CallerContext:
    return CallerContext(user_id=TEACHER_ID, role=Role.TEACHER)


@pytest.fixture
def student() -> CallerContext:
    return CallerContext(user_id=STUDENT_ID, role=Role.STUDENT)
