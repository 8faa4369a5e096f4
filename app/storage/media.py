"""
Local media storage for lesson files and course thumbnails

Files live under UPLOAD_DIR and are served by the /uploads static mount.
Removal is best-effort: callers schedule `discard` as a background task after
the database write, so a failed unlink never fails the request.
"""

import logging
import os
import secrets
import time
from typing import Iterable, Optional

from fastapi import UploadFile

from app import config
from app.errors import ValidationError

logger = logging.getLogger(__name__)

LESSON_PREFIX = "/uploads/lessons"
THUMBNAIL_PREFIX = "/uploads/thumbnails"


class MediaStorage:
    def __init__(self, upload_dir: str):
        self.upload_dir = upload_dir
        self.lesson_dir = os.path.join(upload_dir, "lessons")
        self.thumbnail_dir = os.path.join(upload_dir, "thumbnails")

    def ensure_dirs(self):
        os.makedirs(self.lesson_dir, exist_ok=True)
        os.makedirs(self.thumbnail_dir, exist_ok=True)

    async def save_lesson_file(self, upload: UploadFile) -> str:
        """Store a lesson video or PDF attachment, return its public URL"""
        content_type = upload.content_type or ""
        if not (content_type == "application/pdf" or content_type.startswith("video/")):
            raise ValidationError("Only PDF and video files are allowed")

        return await self._write(upload, self.lesson_dir, LESSON_PREFIX, config.MAX_VIDEO_BYTES)

    async def save_thumbnail(self, upload: UploadFile) -> str:
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            raise ValidationError("Only image files are allowed for thumbnails")

        return await self._write(upload, self.thumbnail_dir, THUMBNAIL_PREFIX, config.MAX_THUMBNAIL_BYTES)

    async def _write(self, upload: UploadFile, directory: str, prefix: str, max_bytes: int) -> str:
        data = await upload.read()
        if len(data) > max_bytes:
            raise ValidationError(f"File too large. Max {max_bytes // (1024 * 1024)}MB allowed.")

        _, ext = os.path.splitext(upload.filename or "")
        filename = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext.lower()}"

        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, filename), "wb") as f:
            f.write(data)

        return f"{prefix}/{filename}"

    def local_path(self, url: Optional[str]) -> Optional[str]:
        """Map a public /uploads URL back to a file on disk"""
        if not url:
            return None

        # basename only, a stored URL must never point outside the upload dir
        filename = os.path.basename(url)
        if url.startswith(LESSON_PREFIX + "/"):
            return os.path.join(self.lesson_dir, filename)
        if url.startswith(THUMBNAIL_PREFIX + "/"):
            return os.path.join(self.thumbnail_dir, filename)
        return None

    def discard(self, urls: Iterable[Optional[str]]) -> int:
        """Remove stored files, logging failures instead of raising"""
        removed = 0
        for url in urls:
            path = self.local_path(url)
            if not path:
                continue
            try:
                if os.path.exists(path):
                    os.remove(path)
                    removed += 1
            except OSError as e:
                logger.warning("Could not remove media file %s: %s", path, e)
        return removed
