"""Turn one uploaded file into a persisted attachment row."""
from __future__ import annotations

from binder.classroom.domain import Attachment, AttachmentType, UploadedFile
from binder.classroom.services.attachments import AttachmentStore
from binder.storage.files import SecureFileWriter


def store_uploaded_file(
    writer: SecureFileWriter,
    store: AttachmentStore,
    upload: UploadedFile,
    owner_id: str,
) -> Attachment:
    """Write the bytes into the sandbox, then persist the attachment row.

    Raises StorageFailure/InvalidAttachment from the writer/store. When the
    row cannot be persisted the file stays on disk; no compensating delete.
    """
    reference = writer.store(upload.stream, upload.content_type, upload.filename)
    return store.upload(
        Attachment(
            type=AttachmentType.for_content_type(upload.content_type),
            url=reference,
            owner_user_id=owner_id,
        )
    )


__all__ = ["store_uploaded_file"]
