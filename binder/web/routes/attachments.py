"""
Attachment download routes.

Absolute attachment URLs are redirected; relative references are served from
the sandbox root only after normalization and an escape check.
"""
from __future__ import annotations

import logging
import mimetypes

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, RedirectResponse

from binder.errors import InvalidAttachment, NotFound
from binder.storage.serving import resolve_stored_reference
from binder.web import deps
from binder.web.routes.classroom import error_response, invalid_id_response

logger = logging.getLogger("binder.web")

attachments_router = APIRouter(tags=["Attachments"])


def _serve(attachment_id: str, *, inline: bool):
    bad_id = invalid_id_response(attachment_id)
    if bad_id is not None:
        return bad_id
    attachment = deps.get_attachment_store().get(attachment_id)
    if attachment is None or not attachment.url:
        return error_response(NotFound("attachment_not_found"))
    try:
        target = resolve_stored_reference(deps.get_sandbox_root(), attachment.url)
    except InvalidAttachment as exc:
        logger.warning("Attachment reference refused: %s id=%s", exc, attachment_id)
        return error_response(exc)
    if target.redirect_url:
        return RedirectResponse(url=target.redirect_url, status_code=302)
    if target.path is None or not target.path.is_file():
        return error_response(NotFound("attachment_file_missing"))
    media_type = mimetypes.guess_type(target.path.name)[0] or "application/octet-stream"
    return FileResponse(
        target.path,
        media_type=media_type,
        filename=target.filename,
        content_disposition_type="inline" if inline else "attachment",
        headers={"Cache-Control": "private, no-store"},
    )


@attachments_router.get("/api/attachments/{attachment_id}")
async def download_attachment(request: Request, attachment_id: str):
    return _serve(attachment_id, inline=False)


@attachments_router.get("/api/attachments/{attachment_id}/inline")
async def view_attachment_inline(request: Request, attachment_id: str):
    return _serve(attachment_id, inline=True)


__all__ = ["attachments_router"]
