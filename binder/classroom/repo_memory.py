"""
In-memory classroom repository for development and tests.

Implements every repository protocol used by the classroom services. All
reads and writes go through one re-entrant lock, which makes the submission
and grade upserts atomic lookup-and-write operations. Records are copied on
the way in and out so callers never mutate stored state by accident.
"""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple
from uuid import uuid4

from binder.classroom.domain import (
    Attachment,
    Grade,
    Post,
    Submission,
    SubmissionResult,
    SubmissionReview,
)
from binder.errors import NotFound
from binder.identity_access.domain import Role, User


def _copy_post(post: Post) -> Post:
    return replace(post, attachment_ids=set(post.attachment_ids))


class InMemoryClassroomRepo:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.users: Dict[str, User] = {}
        # memberships[(class_id, role)] = {user_id, ...}
        self.memberships: Dict[Tuple[str, Role], Set[str]] = {}
        self.posts: Dict[str, Post] = {}
        self.attachments: Dict[str, Attachment] = {}
        self.submissions: Dict[str, Submission] = {}
        self._submission_ids: Dict[Tuple[str, str], str] = {}
        self.grades: Dict[str, Grade] = {}

    # --- Users & membership -----------------------------------------------------

    def add_user(self, user: User) -> User:
        with self._lock:
            self.users[user.id] = replace(user)
            return user

    def add_member(self, class_id: str, user_id: str, role: Role | str) -> None:
        with self._lock:
            self.memberships.setdefault((class_id, Role.parse(role)), set()).add(user_id)

    def is_member(self, class_id: str, user_id: str, role: Role) -> bool:
        with self._lock:
            return user_id in self.memberships.get((class_id, Role.parse(role)), set())

    # --- Posts ------------------------------------------------------------------

    def get_post(self, post_id: str) -> Optional[Post]:
        with self._lock:
            post = self.posts.get(post_id)
            return _copy_post(post) if post else None

    def save_post(self, post: Post) -> Post:
        with self._lock:
            self.posts[post.id] = _copy_post(post)
            return _copy_post(post)

    # --- Attachments ------------------------------------------------------------

    def insert_attachment(self, attachment: Attachment) -> Attachment:
        with self._lock:
            if attachment.id in self.attachments:
                raise ValueError("duplicate_attachment")
            self.attachments[attachment.id] = replace(attachment)
            return replace(attachment)

    def save_attachment(self, attachment: Attachment) -> Attachment:
        with self._lock:
            if attachment.id not in self.attachments:
                raise NotFound("attachment_not_found")
            current = self.attachments[attachment.id]
            updated = replace(attachment, uploaded_at=attachment.uploaded_at or current.uploaded_at)
            self.attachments[attachment.id] = updated
            return replace(updated)

    def delete_attachment(self, attachment_id: str) -> bool:
        with self._lock:
            if self.attachments.pop(attachment_id, None) is None:
                return False
            # Mirror ON DELETE SET NULL / cascade on the referencing rows.
            for post in self.posts.values():
                post.attachment_ids.discard(attachment_id)
            for sub in self.submissions.values():
                if sub.attachment_id == attachment_id:
                    sub.attachment_id = None
            return True

    def get_attachment(self, attachment_id: str) -> Optional[Attachment]:
        with self._lock:
            att = self.attachments.get(attachment_id)
            return replace(att) if att else None

    # --- Submissions ------------------------------------------------------------

    def upsert_submission(
        self,
        *,
        assignment_id: str,
        student_id: str,
        submission_time: datetime,
        attachment_id: object = ...,
    ) -> Submission:
        with self._lock:
            key = (assignment_id, student_id)
            sid = self._submission_ids.get(key)
            if sid is None:
                sub = Submission(
                    id=str(uuid4()),
                    assignment_id=assignment_id,
                    student_id=student_id,
                    submission_time=submission_time,
                    attachment_id=None if attachment_id is ... else attachment_id,
                )
                self.submissions[sub.id] = sub
                self._submission_ids[key] = sub.id
            else:
                sub = self.submissions[sid]
                sub.submission_time = submission_time
                if attachment_id is not ...:
                    sub.attachment_id = attachment_id
            return replace(sub)

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        with self._lock:
            sub = self.submissions.get(submission_id)
            return replace(sub) if sub else None

    def list_submission_reviews(self, class_id: str) -> List[SubmissionReview]:
        with self._lock:
            rows: List[SubmissionReview] = []
            for sub, post, grade, url in self._class_rows(class_id):
                user = self.users.get(sub.student_id)
                rows.append(
                    SubmissionReview(
                        submission_id=sub.id,
                        assignment_id=sub.assignment_id,
                        assignment_title=post.title or "",
                        max_marks=post.max_marks,
                        student_id=sub.student_id,
                        student_name=user.full_name if user else "",
                        student_email=user.email if user else "",
                        submission_time=sub.submission_time,
                        attachment_id=sub.attachment_id,
                        attachment_url=url,
                        marks_scored=grade.marks_scored if grade else None,
                        feedback=(grade.feedback if grade else None) or "",
                    )
                )
            rows.sort(key=lambda r: r.submission_time.timestamp() if r.submission_time else 0.0, reverse=True)
            rows.sort(key=lambda r: r.student_name)
            return rows

    def list_submission_results(self, class_id: str, student_id: str) -> List[SubmissionResult]:
        with self._lock:
            rows = [
                SubmissionResult(
                    submission_id=sub.id,
                    assignment_id=sub.assignment_id,
                    assignment_title=post.title or "",
                    max_marks=post.max_marks,
                    submission_time=sub.submission_time,
                    attachment_id=sub.attachment_id,
                    attachment_url=url,
                    marks_scored=grade.marks_scored if grade else None,
                    feedback=(grade.feedback if grade else None) or "",
                )
                for sub, post, grade, url in self._class_rows(class_id)
                if sub.student_id == student_id
            ]
            rows.sort(key=lambda r: r.submission_time.timestamp() if r.submission_time else 0.0, reverse=True)
            rows.sort(key=lambda r: r.assignment_title)
            return rows

    def list_submitted_assignment_ids(self, class_id: str, student_id: str) -> Set[str]:
        with self._lock:
            return {
                sub.assignment_id
                for sub, _, _, _ in self._class_rows(class_id)
                if sub.student_id == student_id
            }

    def _class_rows(self, class_id: str):
        for sub in self.submissions.values():
            post = self.posts.get(sub.assignment_id)
            if post is None or not post.is_assignment or post.class_id != class_id:
                continue
            att = self.attachments.get(sub.attachment_id) if sub.attachment_id else None
            yield sub, post, self.grades.get(sub.id), (att.url if att and att.url else "")

    # --- Grades -----------------------------------------------------------------

    def get_grading_context(self, submission_id: str) -> Optional[Tuple[str, Optional[int]]]:
        with self._lock:
            sub = self.submissions.get(submission_id)
            post = self.posts.get(sub.assignment_id) if sub else None
            if post is None or not post.is_assignment:
                return None
            return post.class_id, post.max_marks

    def upsert_grade(self, grade: Grade) -> Grade:
        with self._lock:
            if grade.submission_id not in self.submissions:
                raise NotFound("submission_not_found")
            self.grades[grade.submission_id] = replace(grade)
            return replace(grade)

    def get_grade(self, submission_id: str) -> Optional[Grade]:
        with self._lock:
            grade = self.grades.get(submission_id)
            return replace(grade) if grade else None


__all__ = ["InMemoryClassroomRepo"]
