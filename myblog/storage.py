"""
Media byte storage: local disk, S3-compatible buckets and in-memory testing.

Keys are flat file names chosen by the media service. ``read`` and
``delete`` raise ``FileNotFoundError`` for unknown keys and
``PermissionError`` for keys that would escape the storage root.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from myblog.errors import ServiceUnavailable

logger = logging.getLogger(__name__)


class MediaStorage(Protocol):
    """Defines the operations the API needs from media storage."""

    def save(self, data: bytes, key: str) -> str:
        ...

    def read(self, key: str) -> bytes:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass
class InMemoryMediaStorage:
    """Test double for storage interactions."""

    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def save(self, data: bytes, key: str) -> str:
        self.stored_objects[key] = bytes(data)
        return key

    def read(self, key: str) -> bytes:
        stored = self.stored_objects.get(key)
        if stored is None:
            raise FileNotFoundError(key)
        return stored

    def delete(self, key: str) -> None:
        if key not in self.stored_objects:
            raise FileNotFoundError(key)
        del self.stored_objects[key]


class LocalMediaStorage:
    """Stores files in a directory on local disk."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path.parent != self.root:
            raise PermissionError(key)
        return path

    def save(self, data: bytes, key: str) -> str:
        self._path(key).write_bytes(data)
        return key

    def read(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        return path.read_bytes()

    def delete(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        path.unlink()


@dataclass
class S3MediaStorage:
    """
    S3-compatible storage client (AWS S3, Tencent COS, MinIO).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    prefix: str = "media/"
    addressing_style: str = "virtual"
    timeout_seconds: float = 5.0

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": self.addressing_style},
            signature_version="s3v4",
            connect_timeout=self.timeout_seconds,
            read_timeout=self.timeout_seconds,
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def _object_key(self, key: str) -> str:
        if "/" in key or "\\" in key:
            raise PermissionError(key)
        return f"{self.prefix}{key}"

    def _raise_for(self, exc: Exception, key: str):
        if isinstance(exc, ClientError):
            code = exc.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise FileNotFoundError(key) from exc
        logger.error("Object storage call failed for %s: %s", key, exc)
        raise ServiceUnavailable("Media storage unavailable") from exc

    def save(self, data: bytes, key: str) -> str:
        object_key = self._object_key(key)
        try:
            self._client.put_object(Bucket=self.bucket, Key=object_key, Body=data)
        except (BotoCoreError, ClientError) as exc:
            self._raise_for(exc, key)
        return key

    def read(self, key: str) -> bytes:
        object_key = self._object_key(key)
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=object_key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            self._raise_for(exc, key)

    def delete(self, key: str) -> None:
        object_key = self._object_key(key)
        try:
            # S3 deletes are silent for missing keys, so check first.
            self._client.head_object(Bucket=self.bucket, Key=object_key)
            self._client.delete_object(Bucket=self.bucket, Key=object_key)
        except (BotoCoreError, ClientError) as exc:
            self._raise_for(exc, key)
