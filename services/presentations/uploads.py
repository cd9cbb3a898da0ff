"""Storage for files attached to a booking."""

import os
from uuid import uuid4

from fastapi import UploadFile

from services.presentations.errors import SchedulingValidationError
from shared.models import FileAttachment
from shared.utils import config, ensure_directory, sanitize_filename, setup_logging

logger = setup_logging("presentation-uploads")

UPLOAD_SUBDIR = "presentations"
CHUNK_SIZE = 1024 * 1024


def allowed_mime_types() -> set[str]:
    return set(config.get_scheduling_value("uploads.allowed_mime_types", []))


def upload_directory() -> str:
    return os.path.join(config.get("upload_root"), UPLOAD_SUBDIR)


def store_upload(upload: UploadFile) -> FileAttachment:
    """
    Validate and persist an uploaded file.

    The stored name is prefixed with a random token so concurrent uploads of
    the same file name never collide. Oversized files are removed again before
    the validation error is raised.
    """
    mime_type = upload.content_type or "application/octet-stream"
    if mime_type not in allowed_mime_types():
        raise SchedulingValidationError(f"File type {mime_type} is not allowed")

    original_name = os.path.basename(upload.filename or "attachment")
    stored_name = f"{uuid4().hex}-{sanitize_filename(original_name)}"
    directory = upload_directory()
    ensure_directory(directory)
    path = os.path.join(directory, stored_name)

    max_size = config.get("max_upload_size")
    size = 0
    with open(path, "wb") as target:
        while chunk := upload.file.read(CHUNK_SIZE):
            size += len(chunk)
            if size > max_size:
                break
            target.write(chunk)

    if size > max_size:
        os.remove(path)
        raise SchedulingValidationError(f"File exceeds the maximum size of {max_size // (1024 * 1024)}MB")
    if size == 0:
        os.remove(path)
        raise SchedulingValidationError("Uploaded file is empty")

    logger.info("Stored upload %s as %s (%d bytes)", original_name, stored_name, size)
    return FileAttachment(
        original_name=original_name,
        stored_name=stored_name,
        mime_type=mime_type,
        size=size,
        path=path,
    )


def discard_upload(attachment: FileAttachment) -> None:
    """Remove a stored file whose booking did not go through."""
    try:
        os.remove(attachment.path)
    except FileNotFoundError:
        return
    logger.info("Discarded upload %s", attachment.stored_name)
