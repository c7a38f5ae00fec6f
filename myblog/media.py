"""
Media intake: upload validation, naming and retrieval of stored files.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from myblog.auth import Principal
from myblog.db import to_iso, utcnow
from myblog.errors import Forbidden, InvalidInput, NotFound
from myblog.policy import Operation, Policy, enforce
from myblog.storage import MediaStorage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
VIDEO_EXTENSIONS = (".mp4", ".webm", ".ogg", ".mov")
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS + VIDEO_EXTENSIONS

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "video/ogg",
    ".mov": "video/quicktime",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"
CACHE_CONTROL = "public, max-age=31536000"

MAX_FILES = 10
MAX_FILE_BYTES = 50 * 1024 * 1024


@dataclass
class IncomingFile:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass
class StoredMedia:
    filename: str
    original_name: str
    mimetype: str
    size: int
    path: str
    uploaded_at: datetime
    uploaded_by: str

    @property
    def type(self) -> str:
        return "image" if self.mimetype.startswith("image/") else "video"

    def as_dict(self) -> dict:
        return {
            "id": self.filename,
            "originalName": self.original_name,
            "filename": self.filename,
            "mimetype": self.mimetype,
            "size": self.size,
            "path": self.path,
            "type": self.type,
            "uploadedAt": to_iso(self.uploaded_at),
            "uploadedBy": self.uploaded_by,
        }


def extension_of(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(extension_of(filename), DEFAULT_CONTENT_TYPE)


def mimetype_for(upload: IncomingFile) -> str:
    declared = (upload.content_type or "").lower()
    if declared.startswith(("image/", "video/")):
        return declared
    return content_type_for(upload.filename)


def check_filename(filename: str) -> str:
    """Reject names that could address anything outside the media area."""
    if (
        not filename
        or "/" in filename
        or "\\" in filename
        or ".." in filename
        or filename.startswith(".")
    ):
        raise Forbidden("Access denied")
    return filename


class MediaService:
    def __init__(
        self,
        storage: MediaStorage,
        policy: Policy,
        *,
        path_prefix: str = "/api/media/file",
        max_files: int = MAX_FILES,
        max_file_bytes: int = MAX_FILE_BYTES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.policy = policy
        self.path_prefix = path_prefix.rstrip("/")
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes
        self.clock = clock

    def _validate(self, files: list[IncomingFile]) -> None:
        if not files:
            raise InvalidInput("No files uploaded")
        if len(files) > self.max_files:
            raise InvalidInput(f"Too many files. Maximum is {self.max_files} files.")
        for upload in files:
            if extension_of(upload.filename) not in ALLOWED_EXTENSIONS:
                raise InvalidInput(
                    "Invalid file type. Only images and videos are allowed."
                )
            if len(upload.data) > self.max_file_bytes:
                limit_mb = self.max_file_bytes // (1024 * 1024)
                raise InvalidInput(f"File too large. Maximum size is {limit_mb}MB.")

    def _generate_name(self, original: str, now: datetime) -> str:
        millis = int(now.timestamp() * 1000)
        return f"media-{millis}-{uuid.uuid4().hex[:12]}{extension_of(original)}"

    def upload(
        self, principal: Optional[Principal], files: list[IncomingFile]
    ) -> list[StoredMedia]:
        enforce(self.policy.decide(Operation.UPLOAD_MEDIA, principal))
        # Validate the whole batch before any byte is written.
        self._validate(files)

        stored: list[StoredMedia] = []
        for upload in files:
            now = self.clock()
            key = self.storage.save(upload.data, self._generate_name(upload.filename, now))
            stored.append(
                StoredMedia(
                    filename=key,
                    original_name=upload.filename,
                    mimetype=mimetype_for(upload),
                    size=len(upload.data),
                    path=f"{self.path_prefix}/{key}",
                    uploaded_at=now,
                    uploaded_by=principal.id,
                )
            )
        logger.info("%d media file(s) uploaded by %s", len(stored), principal.id)
        return stored

    def open(self, filename: str) -> tuple[bytes, str]:
        check_filename(filename)
        try:
            data = self.storage.read(filename)
        except FileNotFoundError:
            raise NotFound("File not found")
        except PermissionError:
            raise Forbidden("Access denied")
        return data, content_type_for(filename)

    def delete(self, principal: Optional[Principal], filename: str) -> None:
        enforce(self.policy.decide(Operation.DELETE_MEDIA, principal))
        check_filename(filename)
        try:
            self.storage.delete(filename)
        except FileNotFoundError:
            raise NotFound("File not found")
        except PermissionError:
            raise Forbidden("Access denied")
        logger.info("Media file %s deleted by %s", filename, principal.id)
