"""Upload executor for remote storage transfers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from admin_dashboard.domain.errors import (
    InvalidDestinationError,
    ObjectExistsError,
    ResolutionError,
    SessionInvalidError,
    UploadError,
)
from admin_dashboard.domain.models import RemoteReference, StorageSession, UploadContent
from admin_dashboard.domain.uploads import Attempt, UploadAttempt
from admin_dashboard.services.connections import ConnectionManager
from admin_dashboard.services.retry import RetryFailedError, RetryPolicy, RetryRunner

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class StorageGateway(Protocol):
    """Interface for object operations against remote storage."""

    async def put_object(
        self, session: StorageSession, destination: str, content: UploadContent
    ) -> RemoteReference:
        """Store `content` at `destination` and return its reference."""

    async def delete_object(
        self, session: StorageSession, reference: RemoteReference
    ) -> None:
        """Delete the referenced object. Missing objects are not an error."""

    async def get_object(
        self, session: StorageSession, reference: RemoteReference
    ) -> UploadContent:
        """Download the referenced object."""


def validate_destination(destination: str) -> str:
    """Reject empty, absolute or traversing destination paths."""
    if not destination or destination.startswith("/") or "\\" in destination:
        raise InvalidDestinationError(destination)
    if any(segment in {"", ".", ".."} for segment in destination.split("/")):
        raise InvalidDestinationError(destination)
    return destination


@dataclass
class UploadExecutor:
    """Performs transfers under a timeout with bounded retries.

    The given session is reused across retries unless the backend reports it
    invalid, in which case it is discarded from the connection manager and a
    fresh one is obtained for the next attempt. Nothing is persisted here.
    """

    gateway: StorageGateway
    connections: ConnectionManager
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def upload(
        self,
        session: StorageSession,
        destination: str,
        content: UploadContent,
        attempt_log: list[UploadAttempt] | None = None,
    ) -> RemoteReference:
        """Upload `content` and return the reference of the successful attempt."""
        validate_destination(destination)
        attempts: list[Attempt] = []

        async def put(active: StorageSession) -> RemoteReference:
            try:
                return await self.gateway.put_object(active, destination, content)
            except ObjectExistsError as exc:
                # Destinations are unique per upload, so an existing object on a
                # retry was written by an attempt whose response was lost.
                if len(attempts) == 1:
                    raise
                _logger.info(
                    "%s was stored by an earlier timed-out attempt",
                    exc.reference.locator,
                )
                return exc.reference

        try:
            reference = await self._run(
                session,
                action=f"Upload {destination}",
                call=put,
                attempts=attempts,
            )
        except RetryFailedError as exc:
            raise UploadError(destination, len(exc.attempts), exc.cause) from exc.cause
        finally:
            if attempt_log is not None:
                attempt_log.extend(
                    UploadAttempt(
                        number=attempt.number,
                        destination=destination,
                        byte_length=content.size,
                        state=attempt.state,
                        elapsed_seconds=attempt.elapsed_seconds,
                        error=attempt.error,
                    )
                    for attempt in attempts
                )
        _logger.info(
            "Uploaded %s bytes to %s after %s attempt(s)",
            content.size,
            reference.locator,
            len(attempts),
        )
        return reference

    async def delete(self, session: StorageSession, reference: RemoteReference) -> None:
        """Delete a remote object with the same retry policy as uploads."""
        attempts: list[Attempt] = []
        try:
            await self._run(
                session,
                action=f"Delete {reference.locator}",
                call=lambda active: self.gateway.delete_object(active, reference),
                attempts=attempts,
            )
        except RetryFailedError as exc:
            raise UploadError(
                reference.path, len(exc.attempts), exc.cause, action="delete"
            ) from exc.cause

    async def fetch(
        self, session: StorageSession, reference: RemoteReference
    ) -> UploadContent:
        """Download a remote object with the same retry policy as uploads."""
        attempts: list[Attempt] = []
        try:
            return await self._run(
                session,
                action=f"Fetch {reference.locator}",
                call=lambda active: self.gateway.get_object(active, reference),
                attempts=attempts,
            )
        except RetryFailedError as exc:
            if isinstance(exc.cause, ResolutionError):
                raise exc.cause from None
            raise UploadError(
                reference.path, len(exc.attempts), exc.cause, action="fetch"
            ) from exc.cause

    async def _run(
        self,
        session: StorageSession,
        *,
        action: str,
        call: Callable[[StorageSession], Awaitable[T]],
        attempts: list[Attempt],
    ) -> T:
        current: StorageSession | None = session

        async def attempt() -> T:
            nonlocal current
            if current is None:
                current = await self.connections.get_session()
            active = current
            try:
                return await call(active)
            except SessionInvalidError:
                self.connections.invalidate(active)
                current = None
                raise

        runner = RetryRunner(policy=self.policy, action=action, sleep=self.sleep)
        return await runner.run(attempt, attempts)
