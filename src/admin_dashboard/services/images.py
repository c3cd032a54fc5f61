"""Image upload, removal and retrieval for departments and professors."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import uuid4

from admin_dashboard.domain.errors import (
    BindingConflictError,
    DashboardError,
    FileTooLargeError,
    InvalidDestinationError,
    InvalidLocatorError,
    UnsupportedFileTypeError,
)
from admin_dashboard.domain.models import (
    ImageOwner,
    RemoteReference,
    UploadContent,
    UploadCredentials,
)
from admin_dashboard.services.connections import ConnectionManager
from admin_dashboard.services.credentials import validate_credentials
from admin_dashboard.services.departments import DepartmentResolver
from admin_dashboard.services.uploads import UploadExecutor, validate_destination

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePolicy:
    """Size and type limits applied before any network call."""

    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_types: frozenset[str] = DEFAULT_IMAGE_TYPES


@dataclass(frozen=True)
class ImageFile:
    """Inbound file payload."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def check_image_file(content_type: str, size: int, policy: ImagePolicy) -> str:
    """Reject disallowed types and oversized files; return the normalized type."""
    normalized = content_type.strip().lower()
    if normalized not in policy.allowed_types:
        raise UnsupportedFileTypeError(content_type, policy.allowed_types)
    if size > policy.max_bytes:
        raise FileTooLargeError(size, policy.max_bytes)
    return normalized


def new_upload_token() -> str:
    return uuid4().hex[:8]


def build_destination(owner: ImageOwner, file_name: str, token: str) -> str:
    """Build a per-upload object path such as `departments/<id>/Math-1a2b3c4d.png`."""
    stem = re.sub(r"[^a-zA-Z0-9\s-]", "", owner.name)
    stem = re.sub(r"\s+", "_", stem.strip()) or owner.kind.value
    _, dot, extension = file_name.rpartition(".")
    extension = re.sub(r"[^a-z0-9]", "", extension.lower()) if dot else ""
    return f"{owner.kind.collection}/{owner.id}/{stem}-{token}.{extension or 'jpg'}"


@dataclass
class ImageBindingService:
    """Resolves, uploads and binds images for one owner kind.

    Every upload goes to a fresh path, so a failed or conflicting request never
    touches the object that is currently bound. Replaced and removed objects
    are deleted only after the record stops pointing at them.
    """

    resolver: DepartmentResolver
    connections: ConnectionManager
    executor: UploadExecutor
    credentials: UploadCredentials
    policy: ImagePolicy = field(default_factory=ImagePolicy)
    new_token: Callable[[], str] = new_upload_token

    def check_file(self, content_type: str, size: int) -> str:
        """Apply the image policy to a file that has not been read yet."""
        return check_image_file(content_type, size, self.policy)

    async def upload_image(self, reference: str, image: ImageFile) -> RemoteReference:
        """Upload an image for a record and bind its reference."""
        content_type = self.check_file(image.content_type, image.size)
        owner = self.resolver.resolve(reference)
        validate_credentials(self.credentials)
        session = await self.connections.get_session()
        remote = await self.executor.upload(
            session,
            build_destination(owner, image.name, self.new_token()),
            UploadContent(data=image.data, content_type=content_type),
        )
        try:
            self.resolver.bind(owner, remote)
        except BindingConflictError:
            # TODO: reconcile orphaned objects once uploads carry an idempotency key.
            _logger.warning(
                "Uploaded %s but %s %s changed before binding; "
                "remote object is orphaned",
                remote.locator,
                owner.kind.value,
                owner.id,
            )
            raise

        previous = owner.image_reference
        if previous is not None and previous != remote:
            await self._discard(previous)
        return remote

    async def remove_image(self, reference: str) -> ImageOwner:
        """Clear a record's image reference, then delete the remote object."""
        owner = self.resolver.resolve(reference)
        previous = owner.image_reference
        if previous is None:
            return owner
        validate_credentials(self.credentials)
        cleared = self.resolver.clear(owner)
        await self._discard(previous)
        return cleared

    async def _discard(self, reference: RemoteReference) -> None:
        try:
            session = await self.connections.get_session()
            await self.executor.delete(session, reference)
        except DashboardError:
            _logger.warning(
                "Failed to delete unbound image %s; remote object is orphaned",
                reference.locator,
                exc_info=True,
            )


@dataclass
class ImageFetcher:
    """Streams stored images back to clients by their locator."""

    connections: ConnectionManager
    executor: UploadExecutor
    credentials: UploadCredentials
    bucket: str

    async def fetch(self, locator: str) -> UploadContent:
        """Download the image stored under `locator` in the configured bucket."""
        try:
            reference = RemoteReference.parse(locator)
            validate_destination(reference.path)
        except (ValueError, InvalidDestinationError) as exc:
            raise InvalidLocatorError(locator) from exc
        if reference.bucket != self.bucket:
            raise InvalidLocatorError(locator)
        validate_credentials(self.credentials)
        session = await self.connections.get_session()
        return await self.executor.fetch(session, reference)
