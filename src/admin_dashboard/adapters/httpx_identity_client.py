"""Identity-provider admin client."""

from dataclasses import dataclass

import httpx

from admin_dashboard.adapters.http_errors import raise_for_status, send
from admin_dashboard.domain.errors import IdentityUnauthorizedError, UserNotFoundError
from admin_dashboard.services.users import IdentityProvider

_SERVICE = "Identity provider"
_PAGE_SIZE = 200


@dataclass
class HttpxIdentityClient(IdentityProvider):
    """Auth admin API client implemented with httpx."""

    base_url: str
    service_key: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(cls, base_url: str, service_key: str) -> "HttpxIdentityClient":
        """Create an identity client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            service_key=service_key,
            http_client=httpx.AsyncClient(),
        )

    async def delete_user(self, email: str) -> None:
        """Look the account up by email and delete it."""
        user_id = await self._find_user_id(email)
        if user_id is None:
            raise UserNotFoundError(email)
        response = await self._request("DELETE", f"/auth/v1/admin/users/{user_id}")
        if response.status_code == 404:
            raise UserNotFoundError(email)
        self._check(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _find_user_id(self, email: str) -> str | None:
        wanted = email.lower()
        page = 1
        while True:
            response = await self._request(
                "GET",
                "/auth/v1/admin/users",
                params={"page": page, "per_page": _PAGE_SIZE},
            )
            self._check(response)
            users = response.json().get("users") or []
            for user in users:
                if (user.get("email") or "").lower() == wanted:
                    return user["id"]
            if len(users) < _PAGE_SIZE:
                return None
            page += 1

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await send(
            self.http_client,
            method,
            f"{self.base_url}{path}",
            service=_SERVICE,
            headers={
                "apikey": self.service_key,
                "authorization": f"Bearer {self.service_key}",
            },
            timeout=self.timeout_seconds,
            **kwargs,
        )

    def _check(self, response: httpx.Response) -> None:
        if response.status_code in {401, 403}:
            raise IdentityUnauthorizedError(
                "Identity provider rejected the service credentials"
            )
        raise_for_status(response, service=_SERVICE)
