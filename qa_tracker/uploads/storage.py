"""Screenshot storage on the local filesystem."""

import os
from pathlib import Path
from typing import List, Tuple

import structlog

from ..core.errors import ValidationError
from ..db.base import generate_ulid

logger = structlog.get_logger()

ALLOWED_SCREENSHOT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

SCREENSHOTS_DIR = "screenshots"
PUBLIC_PREFIX = "/uploads"


class ScreenshotStorage:
    """Validates and stores uploaded screenshots under ``<upload_dir>/screenshots``."""

    def __init__(self, upload_dir: str, max_files: int, max_file_size: int):
        self.root = Path(upload_dir)
        self.max_files = max_files
        self.max_file_size = max_file_size

    @property
    def directory(self) -> Path:
        return self.root / SCREENSHOTS_DIR

    def check_count(self, count: int) -> None:
        if not count:
            raise ValidationError("No files were uploaded")
        if count > self.max_files:
            raise ValidationError(f"Too many files, the limit is {self.max_files} images")

    def validate(self, files: List[Tuple[str, str, bytes]]) -> None:
        """Check count, type and size of ``(filename, content_type, data)`` tuples."""
        self.check_count(len(files))

        limit_mb = self.max_file_size // (1024 * 1024)
        for filename, content_type, data in files:
            if content_type not in ALLOWED_SCREENSHOT_TYPES:
                raise ValidationError(
                    f"File type not allowed for '{filename}'. Only JPG, PNG, GIF and WEBP are accepted"
                )
            if len(data) > self.max_file_size:
                raise ValidationError(f"'{filename}' exceeds the maximum size of {limit_mb}MB")

    def save(self, files: List[Tuple[str, str, bytes]]) -> List[str]:
        """Validate and write all files. Returns their public URLs."""
        self.validate(files)
        self.directory.mkdir(parents=True, exist_ok=True)

        urls = []
        for filename, content_type, data in files:
            stored_name = f"{generate_ulid().lower()}{_extension(filename, content_type)}"
            (self.directory / stored_name).write_bytes(data)
            urls.append(f"{PUBLIC_PREFIX}/{SCREENSHOTS_DIR}/{stored_name}")

        logger.info("screenshots_stored", count=len(urls))
        return urls


def _extension(filename: str, content_type: str) -> str:
    extension = os.path.splitext(filename or "")[1].lower()
    if extension in {".jpg", ".jpeg", ".png", ".gif", ".webp"}:
        return extension
    return ALLOWED_SCREENSHOT_TYPES[content_type]
