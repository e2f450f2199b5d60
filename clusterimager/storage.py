"""Interface for object storage of images."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import BinaryIO


class StorageBackend(str, Enum):
    """Kinds of object storage."""

    MINIO = "minio"
    S3 = "s3"
    LOCAL = "local"


@dataclass
class ObjectMetadata:
    """Facts about a stored object."""

    content_type: str = ""
    size: int = 0
    etag: str = ""
    last_modified: datetime | None = None


@dataclass
class StorageConfig:
    """Settings for connecting to object storage."""

    type: StorageBackend = StorageBackend.LOCAL
    endpoint: str = ""
    bucket: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    use_ssl: bool = False
    local_path: str = ""


class Storage(ABC):
    """Object storage for uploaded and processed images."""

    @abstractmethod
    def upload(self, key: str, data: BinaryIO, content_type: str) -> None:
        """Store the contents of data under key."""

    @abstractmethod
    def download(self, key: str) -> BinaryIO:
        """Return a readable stream of the object; the caller closes it."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the object."""

    @abstractmethod
    def get_url(self, key: str, expiry: timedelta) -> str:
        """Return a URL for the object, possibly signed and valid for expiry."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Report whether the object exists."""