"""
Postgres-backed classroom repository (psycopg 3).

Design:
- Minimal psycopg usage; each call opens a short-lived connection and commits
  its single statement (or small statement group) as one transaction.
- Submission and grade writes are single `insert ... on conflict ... do update`
  statements, so concurrent submits by the same student cannot create a
  second row and concurrent grades resolve as last writer wins.
- Schema migration is out of scope; the expected tables are:

    users(user_id uuid pk, email text unique, full_name text, role text)
    enrollments(class_id uuid, student_id uuid, primary key (class_id, student_id))
    classroom_teachers(class_id uuid, teacher_id uuid, primary key (class_id, teacher_id))
    attachments(attachment_id uuid pk, attachment_type text, url text,
                uploaded_at timestamptz, user_owner uuid)
    posts(post_id uuid pk, class_id uuid, kind text, title text, description text,
          creator_teacher_id uuid, created_at timestamptz,
          time_to_complete text, due_date timestamptz, maximum_marks int)
    post_attachments(post_id uuid, attachment_id uuid references attachments on delete cascade,
                     primary key (post_id, attachment_id))
    assignment_submissions(submission_id uuid pk, assignment_id uuid, student_id uuid,
                           submission_time timestamptz, attachment_id uuid null
                             references attachments on delete set null,
                           unique (assignment_id, student_id))
    grades(submission_id uuid pk references assignment_submissions, teacher_id uuid,
           marks_scored int, feedback text)
"""
from __future__ import annotations

import os
from datetime import datetime
from typing import List, Optional, Set, Tuple
from uuid import uuid4

import psycopg

from binder.classroom.domain import (
    AssignmentDetails,
    Attachment,
    AttachmentType,
    Grade,
    Post,
    PostKind,
    Submission,
    SubmissionResult,
    SubmissionReview,
)
from binder.errors import NotFound
from binder.identity_access.domain import Role


def _dsn() -> str:
    for name in ("BINDER_DATABASE_URL", "DATABASE_URL"):
        dsn = (os.getenv(name) or "").strip()
        if dsn:
            return dsn
    raise RuntimeError("Database DSN unavailable for DBClassroomRepo")


_MEMBERSHIP_SQL = {
    Role.STUDENT: "select 1 from enrollments where class_id = %s and student_id = %s",
    Role.TEACHER: "select 1 from classroom_teachers where class_id = %s and teacher_id = %s",
}

_ATTACHMENT_COLUMNS_SQL = "attachment_id::text, attachment_type, url, user_owner::text, uploaded_at"

_SUBMISSION_COLUMNS_SQL = (
    "submission_id::text, assignment_id::text, student_id::text, submission_time, attachment_id::text"
)


def _attachment_from_row(row: Tuple) -> Attachment:
    return Attachment(
        id=row[0],
        type=AttachmentType(row[1]),
        url=row[2],
        owner_user_id=row[3],
        uploaded_at=row[4],
    )


def _submission_from_row(row: Tuple) -> Submission:
    return Submission(
        id=row[0],
        assignment_id=row[1],
        student_id=row[2],
        submission_time=row[3],
        attachment_id=row[4],
    )


class DBClassroomRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        """Does not open a connection eagerly; connections are per-call."""
        self._dsn = dsn or _dsn()

    # --- Membership -------------------------------------------------------------

    def is_member(self, class_id: str, user_id: str, role: Role) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(_MEMBERSHIP_SQL[Role.parse(role)], (class_id, user_id))
                return cur.fetchone() is not None

    # --- Posts ------------------------------------------------------------------

    def get_post(self, post_id: str) -> Optional[Post]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select post_id::text, class_id::text, kind, title, description,
                           creator_teacher_id::text, created_at,
                           time_to_complete, due_date, maximum_marks
                      from posts
                     where post_id = %s
                    """,
                    (post_id,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                cur.execute(
                    "select attachment_id::text from post_attachments where post_id = %s",
                    (post_id,),
                )
                attachment_ids = {r[0] for r in cur.fetchall()}
        kind = PostKind(row[2])
        assignment = None
        if kind is PostKind.ASSIGNMENT:
            assignment = AssignmentDetails(
                time_to_complete=row[7],
                due_date=row[8],
                max_marks=int(row[9]) if row[9] is not None else None,
            )
        return Post(
            id=row[0],
            class_id=row[1],
            kind=kind,
            title=row[3] or "",
            description=row[4],
            creator_teacher_id=row[5],
            created_at=row[6],
            attachment_ids=attachment_ids,
            assignment=assignment,
        )

    def save_post(self, post: Post) -> Post:
        details = post.assignment or AssignmentDetails()
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into posts (post_id, class_id, kind, title, description,
                                       creator_teacher_id, created_at,
                                       time_to_complete, due_date, maximum_marks)
                    values (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    on conflict (post_id) do update set
                        title = excluded.title,
                        description = excluded.description,
                        time_to_complete = excluded.time_to_complete,
                        due_date = excluded.due_date,
                        maximum_marks = excluded.maximum_marks
                    """,
                    (
                        post.id,
                        post.class_id,
                        post.kind.value,
                        post.title,
                        post.description,
                        post.creator_teacher_id,
                        post.created_at,
                        details.time_to_complete,
                        details.due_date,
                        details.max_marks,
                    ),
                )
                ids = sorted(post.attachment_ids)
                cur.execute(
                    "delete from post_attachments where post_id = %s and not (attachment_id::text = any(%s))",
                    (post.id, ids),
                )
                for attachment_id in ids:
                    cur.execute(
                        """
                        insert into post_attachments (post_id, attachment_id)
                        values (%s, %s)
                        on conflict do nothing
                        """,
                        (post.id, attachment_id),
                    )
                conn.commit()
        return post

    # --- Attachments ------------------------------------------------------------

    def insert_attachment(self, attachment: Attachment) -> Attachment:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    insert into attachments (attachment_id, attachment_type, url, uploaded_at, user_owner)
                    values (%s, %s, %s, %s, %s)
                    returning {_ATTACHMENT_COLUMNS_SQL}
                    """,
                    (
                        attachment.id,
                        attachment.type.value,
                        attachment.url,
                        attachment.uploaded_at,
                        attachment.owner_user_id,
                    ),
                )
                row = cur.fetchone()
                conn.commit()
        return _attachment_from_row(row)

    def save_attachment(self, attachment: Attachment) -> Attachment:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    update attachments
                       set attachment_type = %s,
                           url = %s,
                           user_owner = %s,
                           uploaded_at = coalesce(%s, uploaded_at)
                     where attachment_id = %s
                    returning {_ATTACHMENT_COLUMNS_SQL}
                    """,
                    (
                        attachment.type.value,
                        attachment.url,
                        attachment.owner_user_id,
                        attachment.uploaded_at,
                        attachment.id,
                    ),
                )
                row = cur.fetchone()
                conn.commit()
        if not row:
            raise NotFound("attachment_not_found")
        return _attachment_from_row(row)

    def delete_attachment(self, attachment_id: str) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from attachments where attachment_id = %s", (attachment_id,))
                deleted = cur.rowcount == 1
                conn.commit()
        return deleted

    def get_attachment(self, attachment_id: str) -> Optional[Attachment]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_ATTACHMENT_COLUMNS_SQL} from attachments where attachment_id = %s",
                    (attachment_id,),
                )
                row = cur.fetchone()
        return _attachment_from_row(row) if row else None

    # --- Submissions ------------------------------------------------------------

    def upsert_submission(
        self,
        *,
        assignment_id: str,
        student_id: str,
        submission_time: datetime,
        attachment_id: object = ...,
    ) -> Submission:
        keep_attachment = attachment_id is ...
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    insert into assignment_submissions
                        (submission_id, assignment_id, student_id, submission_time, attachment_id)
                    values (%s, %s, %s, %s, %s)
                    on conflict (assignment_id, student_id) do update set
                        submission_time = excluded.submission_time,
                        attachment_id = case when %s
                                             then assignment_submissions.attachment_id
                                             else excluded.attachment_id end
                    returning {_SUBMISSION_COLUMNS_SQL}
                    """,
                    (
                        str(uuid4()),
                        assignment_id,
                        student_id,
                        submission_time,
                        None if keep_attachment else attachment_id,
                        keep_attachment,
                    ),
                )
                row = cur.fetchone()
                conn.commit()
        return _submission_from_row(row)

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_SUBMISSION_COLUMNS_SQL} from assignment_submissions where submission_id = %s",
                    (submission_id,),
                )
                row = cur.fetchone()
        return _submission_from_row(row) if row else None

    def list_submission_reviews(self, class_id: str) -> List[SubmissionReview]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select s.submission_id::text, s.assignment_id::text, p.title, p.maximum_marks,
                           s.student_id::text, u.full_name, u.email, s.submission_time,
                           s.attachment_id::text, att.url, g.marks_scored, g.feedback
                      from assignment_submissions s
                      join posts p on p.post_id = s.assignment_id and p.kind = 'ASSIGNMENT'
                      join users u on u.user_id = s.student_id
                      left join grades g on g.submission_id = s.submission_id
                      left join attachments att on att.attachment_id = s.attachment_id
                     where p.class_id = %s
                     order by u.full_name, s.submission_time desc
                    """,
                    (class_id,),
                )
                rows = cur.fetchall()
        return [
            SubmissionReview(
                submission_id=r[0],
                assignment_id=r[1],
                assignment_title=r[2] or "",
                max_marks=int(r[3]) if r[3] is not None else None,
                student_id=r[4],
                student_name=r[5] or "",
                student_email=r[6] or "",
                submission_time=r[7],
                attachment_id=r[8],
                attachment_url=r[9] or "",
                marks_scored=int(r[10]) if r[10] is not None else None,
                feedback=r[11] or "",
            )
            for r in rows
        ]

    def list_submission_results(self, class_id: str, student_id: str) -> List[SubmissionResult]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select s.submission_id::text, s.assignment_id::text, p.title, p.maximum_marks,
                           s.submission_time, s.attachment_id::text, att.url,
                           g.marks_scored, g.feedback
                      from assignment_submissions s
                      join posts p on p.post_id = s.assignment_id and p.kind = 'ASSIGNMENT'
                      left join grades g on g.submission_id = s.submission_id
                      left join attachments att on att.attachment_id = s.attachment_id
                     where p.class_id = %s and s.student_id = %s
                     order by p.title, s.submission_time desc
                    """,
                    (class_id, student_id),
                )
                rows = cur.fetchall()
        return [
            SubmissionResult(
                submission_id=r[0],
                assignment_id=r[1],
                assignment_title=r[2] or "",
                max_marks=int(r[3]) if r[3] is not None else None,
                submission_time=r[4],
                attachment_id=r[5],
                attachment_url=r[6] or "",
                marks_scored=int(r[7]) if r[7] is not None else None,
                feedback=r[8] or "",
            )
            for r in rows
        ]

    def list_submitted_assignment_ids(self, class_id: str, student_id: str) -> Set[str]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select s.assignment_id::text
                      from assignment_submissions s
                      join posts p on p.post_id = s.assignment_id
                     where p.class_id = %s and s.student_id = %s
                    """,
                    (class_id, student_id),
                )
                return {r[0] for r in cur.fetchall()}

    # --- Grades -----------------------------------------------------------------

    def get_grading_context(self, submission_id: str) -> Optional[Tuple[str, Optional[int]]]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select p.class_id::text, p.maximum_marks
                      from assignment_submissions s
                      join posts p on p.post_id = s.assignment_id and p.kind = 'ASSIGNMENT'
                     where s.submission_id = %s
                    """,
                    (submission_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return row[0], (int(row[1]) if row[1] is not None else None)

    def upsert_grade(self, grade: Grade) -> Grade:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into grades (submission_id, teacher_id, marks_scored, feedback)
                    values (%s, %s, %s, %s)
                    on conflict (submission_id) do update set
                        teacher_id = excluded.teacher_id,
                        marks_scored = excluded.marks_scored,
                        feedback = excluded.feedback
                    returning submission_id::text, teacher_id::text, marks_scored, feedback
                    """,
                    (grade.submission_id, grade.teacher_id, grade.marks_scored, grade.feedback),
                )
                row = cur.fetchone()
                conn.commit()
        return Grade(submission_id=row[0], teacher_id=row[1], marks_scored=row[2], feedback=row[3])

    def get_grade(self, submission_id: str) -> Optional[Grade]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select submission_id::text, teacher_id::text, marks_scored, feedback
                      from grades
                     where submission_id = %s
                    """,
                    (submission_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return Grade(submission_id=row[0], teacher_id=row[1], marks_scored=row[2], feedback=row[3])


__all__ = ["DBClassroomRepo"]
