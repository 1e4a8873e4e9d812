"""
File Upload Utility - Validate and store resume files.

Supported formats:
- PDF (.pdf)
- Word (.doc, .docx)

Resumes are stored as-is in the GridFS bucket "resumes"; the record keeps
only the file id (resumeGridFsId).
"""

import logging
from typing import Optional, Tuple
from bson import ObjectId
from fastapi import UploadFile
from gridfs import GridFSBucket
from gridfs.errors import NoFile

from app.core.config import get_settings
from app.core.exceptions import NotFound, ValidationError
from app.services.mongo_service import to_object_id

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    '.pdf': 'application/pdf',
    '.doc': 'application/msword',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def max_file_size_bytes() -> int:
    return get_settings().max_resume_size_mb * 1024 * 1024


def validate_resume(filename: Optional[str], content: bytes) -> str:
    """
    Check a resume before it is stored.

    Returns:
        The content type to store it under.
    """
    if not filename:
        raise ValidationError("No filename provided")

    ext = get_file_extension(filename)
    if ext not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(f"Unsupported file type '{ext}'. Allowed: PDF, DOC, DOCX")

    if not content:
        raise ValidationError("Uploaded file is empty")

    if len(content) > max_file_size_bytes():
        raise ValidationError(f"File too large. Maximum size: {get_settings().max_resume_size_mb}MB")

    return ALLOWED_CONTENT_TYPES[ext]


async def store_resume(bucket: GridFSBucket, file: UploadFile, owner_id: str) -> Tuple[str, str]:
    """
    Validate and upload a resume.

    Returns:
        Tuple of (GridFS file id, filename)
    """
    content = await file.read()
    content_type = validate_resume(file.filename, content)
    file_id = bucket.upload_from_stream(
        file.filename,
        content,
        metadata={"ownerId": owner_id, "contentType": content_type}
    )
    return str(file_id), file.filename


def delete_resume(bucket: GridFSBucket, file_id: Optional[str]):
    """Remove a replaced resume; a missing file is not an error."""
    oid = to_object_id(file_id) if file_id else None
    if oid is None:
        return
    try:
        bucket.delete(oid)
    except NoFile:
        logger.warning(f"Previous resume {file_id} already gone")


def open_resume(bucket: GridFSBucket, file_id: str):
    """Open a stored resume for download."""
    oid: Optional[ObjectId] = to_object_id(file_id)
    if oid is None:
        raise NotFound("Resume not found")
    try:
        return bucket.open_download_stream(oid)
    except NoFile:
        raise NotFound("Resume not found")
