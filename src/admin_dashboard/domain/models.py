"""Domain models for department and professor images."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import ClassVar
from uuid import UUID


@dataclass(frozen=True)
class RemoteReference:
    """Stable locator of an object stored in the remote backend."""

    bucket: str
    path: str

    @property
    def locator(self) -> str:
        return f"{self.bucket}/{self.path}"

    @classmethod
    def parse(cls, locator: str) -> "RemoteReference":
        """Parse a `bucket/path` locator."""
        bucket, _, path = locator.partition("/")
        if not bucket or not path:
            raise ValueError(f"Invalid remote locator: {locator!r}")
        return cls(bucket=bucket, path=path)


class OwnerKind(StrEnum):
    """Kinds of records that carry an image."""

    DEPARTMENT = "department"
    PROFESSOR = "professor"

    @property
    def collection(self) -> str:
        """Table name and storage folder for this kind."""
        return f"{self.value}s"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ImageOwner:
    """Versioned record stored in the authoritative store."""

    kind: ClassVar[OwnerKind]

    id: UUID
    name: str
    image_reference: RemoteReference | None = None
    version: int = 1


@dataclass(frozen=True)
class Department(ImageOwner):
    kind: ClassVar[OwnerKind] = OwnerKind.DEPARTMENT


@dataclass(frozen=True)
class Professor(ImageOwner):
    kind: ClassVar[OwnerKind] = OwnerKind.PROFESSOR


@dataclass(frozen=True)
class CachedDepartment:
    """Cache entry annotated with the time it was read from the store."""

    department: ImageOwner
    cached_at: datetime


@dataclass(frozen=True)
class UploadCredentials:
    """Identity/secret pair used to open storage sessions."""

    identity: str | None
    secret: str | None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"UploadCredentials(identity={self.identity!r}, secret='***')"


@dataclass(frozen=True)
class StorageSession:
    """Authenticated, time-bounded handle to the storage backend."""

    access_token: str
    expires_at: datetime
    account_id: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class UploadContent:
    """Finite byte payload of a transfer."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)
