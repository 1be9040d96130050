"""
Student submissions: submit, resubmit and the read models built on them.

Invariants:
    - At most one submission row per (assignment, student). The repository
      performs the lookup-and-write as one atomic upsert.
    - A resubmission updates the existing row in place, so a grade keyed by the
      submission id survives it.
    - Authorization and the class check run before any file is written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Set

from binder.classroom.domain import (
    Post,
    Submission,
    SubmissionResult,
    SubmissionReview,
    UploadedFile,
)
from binder.classroom.services.attachments import AttachmentStore
from binder.classroom.services.authorization import AuthorizationGate
from binder.classroom.services.uploads import store_uploaded_file
from binder.errors import InvalidAttachment, NotFound, StorageFailure
from binder.identity_access.domain import CallerContext, Role
from binder.storage.files import SecureFileWriter

_log = logging.getLogger("binder.classroom")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionRepoProtocol(Protocol):
    def get_post(self, post_id: str) -> Optional[Post]: ...

    def upsert_submission(
        self,
        *,
        assignment_id: str,
        student_id: str,
        submission_time: datetime,
        attachment_id: object = ...,
    ) -> Submission:
        """Create or update the (assignment, student) row atomically.

        `attachment_id=...` keeps the current attachment; None clears it.
        """
        ...

    def list_submission_reviews(self, class_id: str) -> List[SubmissionReview]: ...

    def list_submission_results(self, class_id: str, student_id: str) -> List[SubmissionResult]: ...

    def list_submitted_assignment_ids(self, class_id: str, student_id: str) -> Set[str]: ...


@dataclass
class SubmissionWorkflow:
    writer: SecureFileWriter
    store: AttachmentStore
    gate: AuthorizationGate
    repo: SubmissionRepoProtocol
    clock: Callable[[], datetime] = field(default=_utcnow)

    def submit(
        self,
        caller: CallerContext,
        class_id: str,
        assignment_id: str,
        file: Optional[UploadedFile] = None,
        mark_complete: bool = False,
        remove_attachment: bool = False,
    ) -> Optional[Submission]:
        """Submit (or resubmit) an assignment as the calling student.

        Behavior:
            - Returns None without touching state when there is no non-empty
              file and neither flag is set.
            - A stored file replaces the attachment; otherwise
              `remove_attachment` clears it. A file that fails to store leaves
              the attachment as it was.
            - The submission time is refreshed on every accepted call.

        Raises:
            Unauthorized when the caller is not a STUDENT member of the class;
            NotFound when the assignment is absent or in another class.
        """
        self.gate.require_member(caller, class_id, Role.STUDENT)
        has_file = file is not None and not file.is_empty()
        if not (has_file or mark_complete or remove_attachment):
            return None
        self._require_assignment(class_id, assignment_id)

        attachment_id: object = ...
        if has_file:
            try:
                attachment_id = store_uploaded_file(self.writer, self.store, file, caller.user_id).id
            except (StorageFailure, InvalidAttachment) as exc:
                _log.warning("Submission file skipped: %s assignment=%s", str(exc), assignment_id)
        elif remove_attachment:
            attachment_id = None

        submission = self.repo.upsert_submission(
            assignment_id=assignment_id,
            student_id=caller.user_id,
            submission_time=self.clock(),
            attachment_id=attachment_id,
        )
        _log.info("Submission saved id=%s assignment=%s", submission.id, assignment_id)
        return submission

    def list_reviews(self, caller: CallerContext, class_id: str) -> List[SubmissionReview]:
        """Every submission in the class, ordered by student name, newest first."""
        self.gate.require_member(caller, class_id, Role.TEACHER)
        return self.repo.list_submission_reviews(class_id)

    def list_results(self, caller: CallerContext, class_id: str) -> List[SubmissionResult]:
        self.gate.require_member(caller, class_id, Role.STUDENT)
        return self.repo.list_submission_results(class_id, caller.user_id)

    def submitted_assignment_ids(self, caller: CallerContext, class_id: str) -> Set[str]:
        self.gate.require_member(caller, class_id, Role.STUDENT)
        return set(self.repo.list_submitted_assignment_ids(class_id, caller.user_id))

    def _require_assignment(self, class_id: str, assignment_id: str) -> Post:
        post = self.repo.get_post(assignment_id) if assignment_id else None
        if post is None or not post.is_assignment or post.class_id != class_id:
            raise NotFound("assignment_not_found")
        return post


__all__ = ["SubmissionRepoProtocol", "SubmissionWorkflow"]
