"""
PostAttachmentBinder: attach/replace/remove attachments on posts; per-file
storage failures are skipped, authorization failures change nothing.
"""
from __future__ import annotations

import pytest

from binder.classroom.services.post_attachments import PostAttachmentBinder
from binder.errors import NotFound, Unauthorized
from binder.storage.files import SecureFileWriter
from binder.tests.utils.seed import CLASS_ID, FOREIGN_ASSIGNMENT_ID, RESOURCE_ID
from binder.tests.utils.uploads import empty_upload, make_upload


@pytest.fixture
def binder_service(writer, store, gate, repo) -> PostAttachmentBinder:
    return PostAttachmentBinder(writer=writer, store=store, gate=gate, repo=repo)


def test_attach_adds_stored_files_and_skips_empty(binder_service, repo):
    post = repo.get_post(RESOURCE_ID)
    ids = binder_service.attach_files_if_present(
        post, [make_upload(b"a", "a.txt"), empty_upload(), None], "teacher-1"
    )
    assert len(ids) == 1
    assert post.attachment_ids == ids
    assert len(repo.attachments) == 1


def test_attach_unions_without_replace(binder_service, repo):
    post = repo.get_post(RESOURCE_ID)
    post.attachment_ids = {"existing"}
    new = binder_service.attach_files_if_present(post, [make_upload()], "teacher-1")
    assert post.attachment_ids == {"existing"} | new


def test_replace_sets_exactly_new_ids(binder_service, repo):
    post = repo.get_post(RESOURCE_ID)
    post.attachment_ids = {"old-1", "old-2"}
    new = binder_service.attach_files_if_present(
        post, [make_upload(b"1", "1.txt"), make_upload(b"2", "2.txt")], "teacher-1", replace_existing=True
    )
    assert len(new) == 2
    assert post.attachment_ids == new


def test_replace_with_nothing_stored_keeps_existing(binder_service, repo):
    post = repo.get_post(RESOURCE_ID)
    post.attachment_ids = {"old-1"}
    new = binder_service.attach_files_if_present(post, [empty_upload()], "teacher-1", replace_existing=True)
    assert new == set()
    assert post.attachment_ids == {"old-1"}


def test_failed_file_is_skipped_and_others_proceed(sandbox, store, gate, repo):
    ids = iter(["dup", "dup", "fresh"])
    writer = SecureFileWriter(sandbox_root=sandbox, id_factory=lambda: next(ids))
    service = PostAttachmentBinder(writer=writer, store=store, gate=gate, repo=repo)
    post = repo.get_post(RESOURCE_ID)

    new = service.attach_files_if_present(
        post,
        [make_upload(b"1", "1.txt"), make_upload(b"2", "2.txt"), make_upload(b"3", "3.txt")],
        "teacher-1",
    )

    assert len(new) == 2
    assert (sandbox / "attachments" / "dup.txt").read_bytes() == b"1"


def test_attach_is_noop_without_post_files_or_owner(binder_service, repo):
    post = repo.get_post(RESOURCE_ID)
    assert binder_service.attach_files_if_present(None, [make_upload()], "teacher-1") == set()
    assert binder_service.attach_files_if_present(post, [], "teacher-1") == set()
    assert binder_service.attach_files_if_present(post, [make_upload()], None) == set()
    assert repo.attachments == {}


def test_remove_ignores_unknown_ids(binder_service, repo):
    post = repo.get_post(RESOURCE_ID)
    post.attachment_ids = {"a", "b"}
    removed = binder_service.remove_attachments_if_present(post, ["a", "zzz"])
    assert removed == {"a"}
    assert post.attachment_ids == {"b"}
    assert binder_service.remove_attachments_if_present(post, None) == set()


def test_update_post_attachments_persists(binder_service, repo, teacher):
    post = repo.get_post(RESOURCE_ID)
    post.attachment_ids = {"old"}
    repo.save_post(post)

    saved = binder_service.update_post_attachments(
        teacher, CLASS_ID, RESOURCE_ID, files=[make_upload()], remove_attachment_ids=["old"]
    )

    assert "old" not in saved.attachment_ids
    assert len(saved.attachment_ids) == 1
    assert repo.get_post(RESOURCE_ID).attachment_ids == saved.attachment_ids


def test_update_post_attachments_requires_teacher(binder_service, repo, student, sandbox):
    with pytest.raises(Unauthorized):
        binder_service.update_post_attachments(student, CLASS_ID, RESOURCE_ID, files=[make_upload()])
    assert repo.attachments == {}
    assert not (sandbox / "attachments").exists()


def test_update_post_attachments_rejects_post_from_other_class(binder_service, repo, teacher, sandbox):
    with pytest.raises(NotFound):
        binder_service.update_post_attachments(
            teacher, CLASS_ID, FOREIGN_ASSIGNMENT_ID, files=[make_upload()]
        )
    with pytest.raises(NotFound):
        binder_service.update_post_attachments(teacher, CLASS_ID, "missing", files=[make_upload()])
    assert repo.attachments == {}
