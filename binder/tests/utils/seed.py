"""Fixed ids of the classroom seeded by conftest's `repo` fixture.

Class and post ids are UUIDs because the HTTP layer rejects anything else.
"""
from __future__ import annotations

CLASS_ID = "0c1a5500-0000-4000-8000-000000000001"
OTHER_CLASS_ID = "0c1a5500-0000-4000-8000-000000000002"
TEACHER_ID = "teacher-1"
STUDENT_ID = "student-1"
ASSIGNMENT_ID = "0a551900-0000-4000-8000-000000000001"
RESOURCE_ID = "04e50a4c-0000-4000-8000-000000000001"
FOREIGN_ASSIGNMENT_ID = "0a551900-0000-4000-8000-0000000000f2"
UNKNOWN_ID = "0dead000-0000-4000-8000-000000000000"

__all__ = [
    "ASSIGNMENT_ID",
    "CLASS_ID",
    "FOREIGN_ASSIGNMENT_ID",
    "OTHER_CLASS_ID",
    "RESOURCE_ID",
    "STUDENT_ID",
    "TEACHER_ID",
    "UNKNOWN_ID",
]
