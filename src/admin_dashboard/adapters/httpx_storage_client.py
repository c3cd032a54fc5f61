"""Supabase Storage client for department images."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import httpx

from admin_dashboard.adapters.http_errors import raise_for_status, send
from admin_dashboard.domain.errors import (
    AuthenticationRejectedError,
    ImageNotFoundError,
    ObjectExistsError,
    PermanentRemoteError,
    SessionInvalidError,
)
from admin_dashboard.domain.models import (
    RemoteReference,
    StorageSession,
    UploadContent,
    UploadCredentials,
)
from admin_dashboard.services.connections import StorageConnector
from admin_dashboard.services.uploads import StorageGateway

_SERVICE = "Storage service"
# Sessions are retired slightly before the server-side expiry.
_EXPIRY_MARGIN = timedelta(seconds=30)
_HTTP_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class HttpxStorageClient(StorageConnector, StorageGateway):
    """Storage connector and gateway implemented with httpx."""

    base_url: str
    api_key: str
    bucket: str
    http_client: httpx.AsyncClient
    now: Callable[[], datetime] = field(default=_utcnow, repr=False)

    @classmethod
    def create(cls, base_url: str, api_key: str, bucket: str) -> "HttpxStorageClient":
        """Create a storage client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            api_key=api_key,
            bucket=bucket,
            http_client=httpx.AsyncClient(timeout=_HTTP_TIMEOUT),
        )

    async def connect(self, credentials: UploadCredentials) -> StorageSession:
        """Sign in with the password grant and return a session."""
        response = await send(
            self.http_client,
            "POST",
            f"{self.base_url}/auth/v1/token",
            service=_SERVICE,
            params={"grant_type": "password"},
            json={"email": credentials.identity, "password": credentials.secret},
            headers={"apikey": self.api_key},
        )
        if response.status_code in {400, 401, 403}:
            raise AuthenticationRejectedError(
                "Storage credentials were rejected. Check STORAGE_EMAIL and "
                "STORAGE_PASSWORD."
            )
        raise_for_status(response, service=_SERVICE)
        payload = response.json()
        expires_in = int(payload.get("expires_in") or 3600)
        user = payload.get("user") or {}
        return StorageSession(
            access_token=payload["access_token"],
            expires_at=self.now() + timedelta(seconds=expires_in) - _EXPIRY_MARGIN,
            account_id=user.get("id") or credentials.metadata.get("account_id"),
        )

    async def put_object(
        self, session: StorageSession, destination: str, content: UploadContent
    ) -> RemoteReference:
        """Upload bytes to a path that must not hold an object yet."""
        response = await send(
            self.http_client,
            "POST",
            self._object_url(self.bucket, destination),
            service=_SERVICE,
            content=content.data,
            headers={
                **self._auth_headers(session),
                "content-type": content.content_type,
                "x-upsert": "false",
            },
        )
        reference = RemoteReference(bucket=self.bucket, path=destination)
        if _is_duplicate(response):
            raise ObjectExistsError(reference)
        self._check(response)
        return reference

    async def delete_object(
        self, session: StorageSession, reference: RemoteReference
    ) -> None:
        """Delete an object; a missing object counts as deleted."""
        response = await send(
            self.http_client,
            "DELETE",
            self._object_url(reference.bucket, reference.path),
            service=_SERVICE,
            headers=self._auth_headers(session),
        )
        if response.status_code == 404:
            return
        self._check(response)

    async def get_object(
        self, session: StorageSession, reference: RemoteReference
    ) -> UploadContent:
        """Download an object through the authenticated endpoint."""
        response = await send(
            self.http_client,
            "GET",
            f"{self.base_url}/storage/v1/object/authenticated/"
            f"{reference.bucket}/{reference.path}",
            service=_SERVICE,
            headers=self._auth_headers(session),
        )
        if _is_missing(response):
            raise ImageNotFoundError(reference.locator)
        self._check(response)
        return UploadContent(
            data=response.content,
            content_type=response.headers.get(
                "content-type", "application/octet-stream"
            ),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{bucket}/{path}"

    def _auth_headers(self, session: StorageSession) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "authorization": f"Bearer {session.access_token}",
        }

    def _check(self, response: httpx.Response) -> None:
        if _is_session_rejection(response):
            raise SessionInvalidError("Storage session expired or was revoked")
        if response.status_code == 413:
            raise PermanentRemoteError("Storage size limit or quota exceeded")
        raise_for_status(response, service=_SERVICE)


def _payload(response: httpx.Response) -> dict[str, object]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _is_session_rejection(response: httpx.Response) -> bool:
    if response.status_code == 401:
        return True
    if response.status_code != 400:
        return False
    message = str(_payload(response).get("message", ""))
    return "jwt expired" in message.lower()


# Storage reports some failures as 400 with the real status in the body.
def _embedded_status(response: httpx.Response) -> str:
    if response.status_code != 400:
        return str(response.status_code)
    return str(_payload(response).get("statusCode", 400))


def _is_duplicate(response: httpx.Response) -> bool:
    return _embedded_status(response) == "409"


def _is_missing(response: httpx.Response) -> bool:
    return _embedded_status(response) == "404"
