"""ID document uploads"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from teamreg.errors import VerificationFailure
from teamreg.models import UploadedDocument
from teamreg.utils import upload_filename


logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "application/pdf"}

# Stored extension per accepted content type; the client filename is ignored
DEFAULT_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


async def read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[UploadedDocument]:
    """
    Validate and buffer an uploaded ID document

    Args:
        upload: Multipart file field, or None when no file was sent
        max_bytes: Largest accepted file size

    Returns:
        UploadedDocument, or None when no file was provided

    Raises:
        VerificationFailure: Content type not allowed or file too large
    """
    if upload is None or not upload.filename:
        return None

    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise VerificationFailure("Invalid file type. Only JPEG, PNG, WebP, and PDF are allowed.")

    content = await upload.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise VerificationFailure(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")

    return UploadedDocument(filename=upload.filename, content_type=content_type, content=content)


class UploadStorage:
    """Writes accepted documents under a fixed uploads directory"""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    async def save(self, document: UploadedDocument) -> str:
        """Store the document and return its generated filename"""
        extension = DEFAULT_EXTENSIONS[document.content_type]
        name = upload_filename(extension)
        self.ensure_directory()
        await asyncio.to_thread((self.directory / name).write_bytes, document.content)
        logger.info(f"📎 Stored ID document {name} ({len(document.content)} bytes)")
        return name
