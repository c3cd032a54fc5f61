"""Shared storage session management."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from admin_dashboard.domain.errors import StorageConnectionError
from admin_dashboard.domain.models import StorageSession, UploadCredentials
from admin_dashboard.services.credentials import validate_credentials
from admin_dashboard.services.retry import RetryFailedError, RetryPolicy, RetryRunner

_logger = logging.getLogger(__name__)


class StorageConnector(Protocol):
    """Interface for opening authenticated storage sessions."""

    async def connect(self, credentials: UploadCredentials) -> StorageSession:
        """Authenticate and return a new session."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ConnectionManager:
    """Owns the single cached storage session.

    Establishment is single-flight: concurrent callers share one in-progress
    attempt. Invalidation is a compare-and-clear on the cached session, so a
    caller holding an older session can never evict a newer one.
    """

    connector: StorageConnector
    credentials: UploadCredentials
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    now: Callable[[], datetime] = _utcnow
    _session: StorageSession | None = field(default=None, init=False, repr=False)
    _pending: "asyncio.Task[StorageSession] | None" = field(
        default=None, init=False, repr=False
    )

    @property
    def cached_session(self) -> StorageSession | None:
        """Return the cached session if it is still usable."""
        session = self._session
        if session is None or session.is_expired(self.now()):
            return None
        return session

    async def get_session(self) -> StorageSession:
        """Return a live session, establishing one if needed."""
        session = self.cached_session
        if session is not None:
            return session
        if self._session is not None:
            _logger.info("Cached storage session expired; reconnecting")
            self.invalidate(self._session)

        validate_credentials(self.credentials)
        if self._pending is None:
            task = asyncio.create_task(self._establish())
            task.add_done_callback(self._establishment_done)
            self._pending = task
        # Shielded so one cancelled waiter does not abort the shared attempt.
        return await asyncio.shield(self._pending)

    def invalidate(self, session: StorageSession) -> bool:
        """Discard `session` if it is the cached one. Returns True if cleared."""
        if self._session is not session:
            return False
        self._session = None
        _logger.info("Storage session invalidated")
        return True

    async def _establish(self) -> StorageSession:
        runner = RetryRunner(
            policy=self.policy, action="Storage connection", sleep=self.sleep
        )
        try:
            session = await runner.run(
                lambda: self.connector.connect(self.credentials)
            )
        except RetryFailedError as exc:
            raise StorageConnectionError(
                attempts=len(exc.attempts),
                cause=exc.cause,
                retries_exhausted=exc.retries_exhausted,
            ) from exc.cause
        finally:
            self._pending = None
        self._session = session
        return session

    def _establishment_done(self, task: "asyncio.Task[StorageSession]") -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled():
            task.exception()
