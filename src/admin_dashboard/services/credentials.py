"""Storage credential validation."""

import re

from admin_dashboard.domain.errors import (
    MalformedCredentialsError,
    MissingCredentialsError,
)
from admin_dashboard.domain.models import UploadCredentials

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_SECRET_LENGTH = 8

_FIELD_NAMES = {"identity": "STORAGE_EMAIL", "secret": "STORAGE_PASSWORD"}


def validate_credentials(credentials: UploadCredentials) -> None:
    """Fail fast when credentials are absent or obviously wrong. No I/O."""
    missing = [
        env_name
        for attr, env_name in _FIELD_NAMES.items()
        if not (getattr(credentials, attr) or "").strip()
    ]
    if missing:
        raise MissingCredentialsError(missing)

    identity = credentials.identity or ""
    secret = credentials.secret or ""
    if not EMAIL_PATTERN.match(identity):
        raise MalformedCredentialsError(
            f'STORAGE_EMAIL "{identity}" is not a valid email address'
        )
    if secret != secret.strip():
        raise MalformedCredentialsError(
            "STORAGE_PASSWORD has leading or trailing whitespace"
        )
    if len(secret) < MIN_SECRET_LENGTH:
        raise MalformedCredentialsError(
            f"STORAGE_PASSWORD must be at least {MIN_SECRET_LENGTH} characters"
        )
