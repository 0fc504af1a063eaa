"""Local file storage for uploaded context files.

Files are written below <upload_dir>/uploads and addressed by their public
URL ("/uploads/<stored name>"). The rest of the system only ever passes
URLs around; resolve_path() turns one back into a filesystem path.
"""

import asyncio
import os
import secrets
import time

from shared.exceptions import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.bot import FileType

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
ALLOWED_PDF_TYPES = ["application/pdf"]
ALLOWED_TEXT_TYPES = ["text/plain", "text/markdown"]

UPLOADS_PREFIX = "uploads"


def classify_upload(mime_type: str, size: int) -> FileType:
    """Validate an upload and map its MIME type to a FileType.

    Args:
        mime_type (str): Declared MIME type of the upload.
        size (int): Size in bytes.

    Returns:
        FileType: photo for images, pdf for PDFs, other for plain text.

    Raises:
        ValidationError: If the file is too large or of an unsupported type.
    """
    if size > MAX_FILE_SIZE:
        raise ValidationError("File size exceeds 10MB limit")
    if mime_type in ALLOWED_IMAGE_TYPES:
        return FileType.PHOTO
    if mime_type in ALLOWED_PDF_TYPES:
        return FileType.PDF
    if mime_type in ALLOWED_TEXT_TYPES:
        return FileType.OTHER
    raise ValidationError("Invalid file type. Only images (JPEG, PNG, GIF, WebP), PDFs and text files are allowed")


class FileStorage:
    """Stores uploads on local disk."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        default_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "public")
        self._root = os.path.abspath(helper_config.get_string_val("STORAGE_UPLOAD_DIR", default=default_dir))

    def _make_stored_name(self, file_name: str) -> str:
        extension = file_name.rsplit(".", 1)[-1] if "." in file_name else "bin"
        return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"

    def resolve_path(self, url: str) -> str:
        """Turn a storage URL ("/uploads/x.pdf") into an absolute filesystem path.

        Raises:
            ValidationError: If the URL points outside the upload directory.
        """
        relative = url.lstrip("/")
        path = os.path.abspath(os.path.join(self._root, relative))
        if os.path.commonpath([path, self._root]) != self._root:
            raise ValidationError(f"Invalid document path '{url}'.")
        return path

    def _write(self, path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as handle:
            handle.write(data)

    async def do_save(self, file_name: str, data: bytes) -> str:
        """Write an upload to disk under a unique name.

        Args:
            file_name (str): Original file name, only its extension is kept.
            data (bytes): File content.

        Returns:
            str: The storage URL of the written file.
        """
        url = f"/{UPLOADS_PREFIX}/{self._make_stored_name(file_name)}"
        await asyncio.to_thread(self._write, self.resolve_path(url), data)
        self.logging.debug("Stored upload '%s' as %s (%d bytes)", file_name, url, len(data))
        return url

    async def do_delete(self, url: str) -> bool:
        """Delete a stored file. Returns False if it did not exist."""
        path = self.resolve_path(url)
        if not os.path.exists(path):
            return False
        await asyncio.to_thread(os.remove, path)
        return True
