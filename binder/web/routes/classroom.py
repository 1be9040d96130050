"""
Classroom API routes: submissions, grading and post attachments.

Thin adapter over the classroom services. The caller comes from
`request.state.user` (set by the session middleware); every response is
marked `Cache-Control: private, no-store` because it carries user-scoped data.
"""
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from binder.classroom.domain import UploadedFile
from binder.errors import InvalidAttachment, NotFound, StorageFailure, Unauthorized
from binder.identity_access.domain import CallerContext, Role
from binder.web import deps

logger = logging.getLogger("binder.web")

classroom_router = APIRouter(tags=["Classroom"])


def _json_private(payload, *, status_code: int = 200) -> JSONResponse:
    headers = {"Cache-Control": "private, no-store"}
    return JSONResponse(content=jsonable_encoder(payload), status_code=status_code, headers=headers)


def _private_error(payload: dict, *, status_code: int) -> JSONResponse:
    """Return error JSON with private, no-store cache headers."""
    headers = {"Cache-Control": "private, no-store"}
    return JSONResponse(content=payload, status_code=status_code, headers=headers)


def error_response(exc: Exception) -> JSONResponse:
    """Map core errors to stable HTTP payloads."""
    if isinstance(exc, Unauthorized):
        return _private_error({"error": "forbidden"}, status_code=403)
    if isinstance(exc, NotFound):
        return _private_error({"error": "not_found"}, status_code=404)
    if isinstance(exc, StorageFailure):
        return _private_error({"error": "storage_unavailable", "detail": str(exc)}, status_code=503)
    if isinstance(exc, (InvalidAttachment, ValueError)):
        return _private_error({"error": "bad_request", "detail": str(exc)}, status_code=400)
    raise exc


def _is_uuid_like(value: str) -> bool:
    """Best-effort UUID format check without coercing FastAPI to return 422."""
    try:
        UUID(str(value))
    except (ValueError, TypeError):
        return False
    return True


def invalid_id_response(*values: str) -> JSONResponse | None:
    """Return a 400 when any path id is not a UUID; ids map onto uuid columns."""
    if all(_is_uuid_like(v) for v in values):
        return None
    return _private_error({"error": "bad_request", "detail": "invalid_id"}, status_code=400)


def _caller(request: Request) -> Optional[CallerContext]:
    user = getattr(request.state, "user", None)
    if not isinstance(user, dict) or not user.get("sub"):
        return None
    try:
        return CallerContext(user_id=str(user["sub"]), role=Role.parse(user.get("role")))
    except ValueError:
        return None


def _to_uploaded(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None:
        return None
    return UploadedFile(
        stream=upload.file,
        filename=upload.filename,
        content_type=upload.content_type,
        size=upload.size,
    )


class GradeRequest(BaseModel):
    marks_scored: int | None = None
    feedback: str | None = Field(default=None, max_length=10000)


@classroom_router.post("/api/classrooms/{class_id}/assignments/{assignment_id}/submission")
async def submit_assignment(
    request: Request,
    class_id: str,
    assignment_id: str,
    file: Optional[UploadFile] = File(default=None),
    mark_complete: bool = Form(default=False),
    remove_attachment: bool = Form(default=False),
):
    """Submit or resubmit an assignment as the current student.

    Responses: 200 with the submission, 204 when nothing was submitted,
    403 for non-members, 404 for unknown or foreign assignments.
    """
    bad_id = invalid_id_response(class_id, assignment_id)
    if bad_id is not None:
        return bad_id
    try:
        submission = deps.get_submission_workflow().submit(
            _caller(request),
            class_id,
            assignment_id,
            file=_to_uploaded(file),
            mark_complete=mark_complete,
            remove_attachment=remove_attachment,
        )
    except (Unauthorized, NotFound, InvalidAttachment, StorageFailure, ValueError) as exc:
        return error_response(exc)
    if submission is None:
        return Response(status_code=204, headers={"Cache-Control": "private, no-store"})
    return _json_private(asdict(submission))


@classroom_router.get("/api/classrooms/{class_id}/submissions")
async def list_submission_reviews(request: Request, class_id: str):
    bad_id = invalid_id_response(class_id)
    if bad_id is not None:
        return bad_id
    try:
        rows = deps.get_submission_workflow().list_reviews(_caller(request), class_id)
    except (Unauthorized, NotFound) as exc:
        return error_response(exc)
    return _json_private([asdict(r) for r in rows])


@classroom_router.get("/api/classrooms/{class_id}/submissions/mine")
async def list_my_submission_results(request: Request, class_id: str):
    bad_id = invalid_id_response(class_id)
    if bad_id is not None:
        return bad_id
    workflow = deps.get_submission_workflow()
    caller = _caller(request)
    try:
        rows = workflow.list_results(caller, class_id)
        submitted = workflow.submitted_assignment_ids(caller, class_id)
    except (Unauthorized, NotFound) as exc:
        return error_response(exc)
    return _json_private(
        {"results": [asdict(r) for r in rows], "submitted_assignment_ids": sorted(submitted)}
    )


@classroom_router.post("/api/classrooms/{class_id}/submissions/{submission_id}/grade")
async def grade_submission(request: Request, class_id: str, submission_id: str, payload: GradeRequest):
    bad_id = invalid_id_response(class_id, submission_id)
    if bad_id is not None:
        return bad_id
    try:
        grade = deps.get_grading_workflow().grade(
            _caller(request),
            class_id,
            submission_id,
            marks_scored=payload.marks_scored,
            feedback=payload.feedback,
        )
    except (Unauthorized, NotFound, ValueError) as exc:
        return error_response(exc)
    return _json_private(asdict(grade))


@classroom_router.post("/api/classrooms/{class_id}/posts/{post_id}/attachments")
async def update_post_attachments(
    request: Request,
    class_id: str,
    post_id: str,
    files: Optional[List[UploadFile]] = File(default=None),
    replace_existing: bool = Form(default=False),
    remove_attachment_ids: Optional[List[str]] = Form(default=None),
):
    """Attach uploaded files to a post and/or detach existing attachments.

    Files that fail storage are skipped; the response lists the post's
    resulting attachment ids.
    """
    bad_id = invalid_id_response(class_id, post_id)
    if bad_id is not None:
        return bad_id
    # Unknown ids are ignored downstream; malformed ones never reach the repo.
    remove_ids = [i for i in (remove_attachment_ids or []) if _is_uuid_like(i)]
    try:
        post = deps.get_post_binder().update_post_attachments(
            _caller(request),
            class_id,
            post_id,
            files=[_to_uploaded(f) for f in (files or [])],
            remove_attachment_ids=remove_ids,
            replace_existing=replace_existing,
        )
    except (Unauthorized, NotFound, ValueError) as exc:
        return error_response(exc)
    return _json_private({"id": post.id, "attachment_ids": sorted(post.attachment_ids)})


__all__ = ["classroom_router", "error_response", "invalid_id_response"]
