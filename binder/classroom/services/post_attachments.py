"""
Attach and detach uploaded files on classroom posts.

Why:
    Assignments and resources share one attachment workflow: store each
    uploaded file, then add the new attachments to the post or replace the
    post's set with them. Detaching only drops the reference; attachment rows
    are removed exclusively through the attachment store.

Failure policy:
    A file that fails storage or validation is skipped and logged; the rest of
    the batch proceeds. Persistence errors propagate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence, Set

from binder.classroom.domain import Post, UploadedFile
from binder.classroom.services.attachments import AttachmentStore
from binder.classroom.services.authorization import AuthorizationGate
from binder.classroom.services.uploads import store_uploaded_file
from binder.errors import InvalidAttachment, NotFound, StorageFailure
from binder.identity_access.domain import CallerContext, Role
from binder.storage.files import SecureFileWriter

_log = logging.getLogger("binder.classroom")


class PostRepoProtocol(Protocol):
    def get_post(self, post_id: str) -> Optional[Post]: ...

    def save_post(self, post: Post) -> Post: ...


@dataclass
class PostAttachmentBinder:
    """Store uploads and maintain a post's attachment id set."""

    writer: SecureFileWriter
    store: AttachmentStore
    gate: AuthorizationGate
    repo: PostRepoProtocol

    def attach_files_if_present(
        self,
        post: Optional[Post],
        files: Optional[Sequence[Optional[UploadedFile]]],
        owner_id: Optional[str],
        replace_existing: bool = False,
    ) -> Set[str]:
        """Store non-empty files and link them to `post`; return the new ids.

        With `replace_existing` the post's set becomes exactly the new set, but
        only when at least one file was stored.
        """
        if post is None or not files or not owner_id:
            return set()
        stored = self._store_all(files, owner_id)
        if not stored:
            return set()
        if replace_existing:
            post.attachment_ids = set(stored)
        else:
            post.attachment_ids |= stored
        return stored

    def remove_attachments_if_present(
        self, post: Optional[Post], attachment_ids: Optional[Iterable[str]]
    ) -> Set[str]:
        """Drop matching ids from the post's set; unknown ids are ignored."""
        if post is None or not attachment_ids:
            return set()
        wanted = {str(aid) for aid in attachment_ids if aid}
        removed = post.attachment_ids & wanted
        post.attachment_ids -= removed
        return removed

    def update_post_attachments(
        self,
        caller: CallerContext,
        class_id: str,
        post_id: str,
        *,
        files: Sequence[Optional[UploadedFile]] = (),
        remove_attachment_ids: Iterable[str] = (),
        replace_existing: bool = False,
    ) -> Post:
        """Teacher-only edit of a post's attachments, persisted in one save.

        Permissions:
            Caller must be a TEACHER member of `class_id`; the post must belong
            to that class (otherwise NotFound, before any file is written).
        """
        self.gate.require_member(caller, class_id, Role.TEACHER)
        post = self.repo.get_post(post_id)
        if post is None or post.class_id != class_id:
            raise NotFound("post_not_found")
        self.remove_attachments_if_present(post, remove_attachment_ids)
        self.attach_files_if_present(post, files, caller.user_id, replace_existing)
        return self.repo.save_post(post)

    def _store_all(self, files: Sequence[Optional[UploadedFile]], owner_id: str) -> Set[str]:
        stored: Set[str] = set()
        for upload in files:
            if upload is None or upload.is_empty():
                continue
            try:
                attachment = store_uploaded_file(self.writer, self.store, upload, owner_id)
            except (StorageFailure, InvalidAttachment) as exc:
                _log.warning("Post attachment skipped: %s", str(exc) or exc.__class__.__name__)
                continue
            stored.add(attachment.id)
        return stored


__all__ = ["PostAttachmentBinder", "PostRepoProtocol"]
