"""Error taxonomy shared by services, adapters and the API layer."""

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from admin_dashboard.domain.models import RemoteReference


class DashboardError(Exception):
    """Base error carrying a machine-readable kind and an HTTP status."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(DashboardError):
    """Storage credentials are missing or malformed."""

    kind = "configuration"
    status_code = 500


class MissingCredentialsError(ConfigurationError):
    def __init__(self, missing_fields: Sequence[str]) -> None:
        self.missing_fields = tuple(missing_fields)
        super().__init__(
            "Storage credentials not configured. Missing: "
            f"{', '.join(self.missing_fields)}. "
            "Set them in the environment and restart the server."
        )


class MalformedCredentialsError(ConfigurationError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Storage credentials are malformed: {reason}")


class ValidationError(DashboardError):
    """Bad input from the caller. Never retried."""

    kind = "validation"
    status_code = 400


class InvalidDestinationError(ValidationError):
    def __init__(self, destination: str) -> None:
        self.destination = destination
        super().__init__(f"Invalid destination path: {destination!r}")


class FileTooLargeError(ValidationError):
    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"File size is {size / (1024 * 1024):.2f}MB. "
            f"Maximum allowed size is {max_size / (1024 * 1024):.0f}MB."
        )


class UnsupportedFileTypeError(ValidationError):
    def __init__(self, content_type: str, allowed: Sequence[str]) -> None:
        self.content_type = content_type
        super().__init__(
            f'File type "{content_type}" is not supported. '
            f"Allowed types: {', '.join(sorted(allowed))}."
        )


class InvalidEmailError(ValidationError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("Invalid email format")


class InvalidLocatorError(ValidationError):
    def __init__(self, locator: str) -> None:
        self.locator = locator
        super().__init__(f"Invalid image locator: {locator!r}")


class TransientNetworkError(DashboardError):
    """Failure that may succeed on retry (timeouts, resets, 5xx)."""

    kind = "transient_network"
    status_code = 503


class SessionInvalidError(TransientNetworkError):
    """The storage session was rejected mid-operation."""


class PermanentRemoteError(DashboardError):
    """Failure that retrying will not fix (auth rejected, quota exceeded)."""

    kind = "permanent_remote"
    status_code = 502


class AuthenticationRejectedError(PermanentRemoteError):
    pass


class IdentityUnauthorizedError(PermanentRemoteError):
    kind = "unauthorized"
    status_code = 401


class ObjectExistsError(PermanentRemoteError):
    """The destination already holds an object and overwrites are disabled."""

    def __init__(self, reference: "RemoteReference") -> None:
        self.reference = reference
        super().__init__(f"Remote object {reference.locator} already exists")


class StorageConnectionError(DashboardError):
    """Terminal failure to establish a storage session."""

    kind = "connection"

    def __init__(
        self, attempts: int, cause: Exception, *, retries_exhausted: bool
    ) -> None:
        self.attempts = attempts
        self.cause = cause
        self.retries_exhausted = retries_exhausted
        self.status_code = 503 if retries_exhausted else 502
        if retries_exhausted:
            message = (
                "Unable to connect to the storage service. "
                "Please check your internet connection and try again."
            )
        else:
            message = f"Storage service rejected the connection: {cause}"
        super().__init__(message)


class UploadError(DashboardError):
    """Terminal failure of a transfer."""

    kind = "upload"

    def __init__(
        self,
        destination: str,
        attempts: int,
        cause: Exception,
        *,
        action: str = "upload",
    ) -> None:
        self.destination = destination
        self.attempts = attempts
        self.cause = cause
        transient = isinstance(cause, TransientNetworkError) or getattr(
            cause, "retries_exhausted", False
        )
        self.status_code = 503 if transient else 502
        super().__init__(f"Failed to {action} image: {cause}")


class ResolutionError(DashboardError):
    kind = "resolution"
    status_code = 404


class DepartmentNotFoundError(ResolutionError):
    kind = "not_found"

    def __init__(self, reference: str, owner: str = "Department") -> None:
        self.reference = reference
        super().__init__(f'{owner} "{reference}" does not exist.')


class AmbiguousDepartmentError(ResolutionError):
    kind = "ambiguous"
    status_code = 409

    def __init__(
        self,
        reference: str,
        candidate_ids: Sequence[str],
        owner: str = "Department",
    ) -> None:
        self.reference = reference
        self.candidate_ids = tuple(candidate_ids)
        super().__init__(
            f'{owner} name "{reference}" matches {len(self.candidate_ids)} '
            f"records; use one of the ids: {', '.join(self.candidate_ids)}."
        )


class BindingConflictError(ResolutionError):
    kind = "conflict"
    status_code = 409

    def __init__(self, department_id: str, owner: str = "Department") -> None:
        self.department_id = department_id
        super().__init__(
            f"{owner} {department_id} changed or was deleted; resolve it again."
        )


class ImageNotFoundError(ResolutionError):
    kind = "not_found"

    def __init__(self, locator: str) -> None:
        self.locator = locator
        super().__init__(f"Image {locator} not found")


class UserNotFoundError(ResolutionError):
    kind = "not_found"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"User {email} not found")
