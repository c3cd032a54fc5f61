"""Identity-provider user administration."""

import logging
from dataclasses import dataclass
from typing import Protocol

from admin_dashboard.domain.errors import InvalidEmailError
from admin_dashboard.services.credentials import EMAIL_PATTERN

_logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Interface for identity-provider account operations."""

    async def delete_user(self, email: str) -> None:
        """Delete the account registered under `email`."""


@dataclass
class UserAdminService:
    """Application service for deleting user accounts."""

    provider: IdentityProvider

    async def delete_user(self, email: str) -> None:
        """Validate the email locally, then delete the account."""
        cleaned = email.strip()
        if not EMAIL_PATTERN.match(cleaned):
            raise InvalidEmailError(email)
        await self.provider.delete_user(cleaned)
        _logger.info("Deleted user %s from identity provider", cleaned)
