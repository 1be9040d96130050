"""
Classroom domain records shared by services and repositories.

Design:
- Posts are one tagged record (`PostKind`) with an optional assignment payload
  instead of an Assignment/Resource class hierarchy.
- Posts and submissions reference attachments by id; the attachment row has
  its own lifetime and is only removed through the attachment store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO, Optional, Set


class AttachmentType(str, Enum):
    FILE = "FILE"
    IMAGE = "IMAGE"
    LINK = "LINK"

    @classmethod
    def for_content_type(cls, content_type: Optional[str]) -> "AttachmentType":
        return cls.IMAGE if (content_type or "").strip().lower().startswith("image/") else cls.FILE


class PostKind(str, Enum):
    ASSIGNMENT = "ASSIGNMENT"
    RESOURCE = "RESOURCE"


@dataclass
class Attachment:
    type: Optional[AttachmentType]
    url: Optional[str]
    owner_user_id: Optional[str]
    id: Optional[str] = None
    uploaded_at: Optional[datetime] = None


@dataclass
class AssignmentDetails:
    time_to_complete: Optional[str] = None
    due_date: Optional[datetime] = None
    max_marks: Optional[int] = None


@dataclass
class Post:
    id: str
    class_id: str
    kind: PostKind
    title: str
    creator_teacher_id: str
    created_at: datetime
    description: Optional[str] = None
    attachment_ids: Set[str] = field(default_factory=set)
    assignment: Optional[AssignmentDetails] = None

    @property
    def is_assignment(self) -> bool:
        return self.kind is PostKind.ASSIGNMENT

    @property
    def max_marks(self) -> Optional[int]:
        return self.assignment.max_marks if self.assignment else None


@dataclass
class Grade:
    submission_id: str
    teacher_id: str
    marks_scored: Optional[int] = None
    feedback: Optional[str] = None


@dataclass
class Submission:
    id: str
    assignment_id: str
    student_id: str
    submission_time: datetime
    attachment_id: Optional[str] = None


@dataclass(frozen=True)
class SubmissionReview:
    """Teacher-facing row: one submission with student and grade details."""

    submission_id: str
    assignment_id: str
    assignment_title: str
    max_marks: Optional[int]
    student_id: str
    student_name: str
    student_email: str
    submission_time: Optional[datetime]
    attachment_id: Optional[str]
    attachment_url: str
    marks_scored: Optional[int]
    feedback: str


@dataclass(frozen=True)
class SubmissionResult:
    """Student-facing row: own submission with grade details."""

    submission_id: str
    assignment_id: str
    assignment_title: str
    max_marks: Optional[int]
    submission_time: Optional[datetime]
    attachment_id: Optional[str]
    attachment_url: str
    marks_scored: Optional[int]
    feedback: str


@dataclass
class UploadedFile:
    """An uploaded file as handed over by the web adapter."""

    stream: BinaryIO
    filename: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None

    def is_empty(self) -> bool:
        if self.size is not None:
            return self.size <= 0
        return not (self.filename or "").strip()
