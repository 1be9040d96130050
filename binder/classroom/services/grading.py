"""Grading of submissions by class teachers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from binder.classroom.domain import Grade
from binder.classroom.services.authorization import AuthorizationGate
from binder.errors import NotFound
from binder.identity_access.domain import CallerContext, Role

_log = logging.getLogger("binder.classroom")


class GradeRepoProtocol(Protocol):
    def get_grading_context(self, submission_id: str) -> Optional[Tuple[str, Optional[int]]]:
        """Return (class_id, max_marks) of the submission's assignment, or None."""
        ...

    def upsert_grade(self, grade: Grade) -> Grade: ...

    def get_grade(self, submission_id: str) -> Optional[Grade]: ...


def clamp_marks(marks_scored: Optional[int], max_marks: Optional[int]) -> Optional[int]:
    """Clamp into [0, max_marks]; None passes through, None max means unbounded."""
    if marks_scored is None:
        return None
    clamped = max(0, int(marks_scored))
    if max_marks is not None:
        clamped = min(clamped, int(max_marks))
    return clamped


def blank_to_null(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


@dataclass
class GradingWorkflow:
    gate: AuthorizationGate
    repo: GradeRepoProtocol

    def grade(
        self,
        caller: CallerContext,
        class_id: str,
        submission_id: str,
        marks_scored: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> Grade:
        """Create or overwrite the grade of a submission; last writer wins.

        Raises Unauthorized for non-teachers of the class and NotFound when the
        submission is absent or belongs to another class.
        """
        self.gate.require_member(caller, class_id, Role.TEACHER)
        context = self.repo.get_grading_context(submission_id) if submission_id else None
        if context is None or context[0] != class_id:
            raise NotFound("submission_not_found")
        _, max_marks = context
        grade = self.repo.upsert_grade(
            Grade(
                submission_id=submission_id,
                teacher_id=caller.user_id,
                marks_scored=clamp_marks(marks_scored, max_marks),
                feedback=blank_to_null(feedback),
            )
        )
        _log.info("Grade saved submission=%s", submission_id)
        return grade

    def get_grade(self, submission_id: str) -> Optional[Grade]:
        if not submission_id:
            return None
        return self.repo.get_grade(submission_id)


__all__ = ["GradeRepoProtocol", "GradingWorkflow", "blank_to_null", "clamp_marks"]
