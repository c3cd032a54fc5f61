"""Translation of httpx failures into the dashboard error taxonomy."""

import httpx

from admin_dashboard.domain.errors import PermanentRemoteError, TransientNetworkError

_RETRYABLE_STATUS = {408, 425, 429}


async def send(
    client: httpx.AsyncClient, method: str, url: str, *, service: str, **kwargs
) -> httpx.Response:
    """Send a request, mapping transport failures to transient errors."""
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise TransientNetworkError(f"{service} request timed out") from exc
    except httpx.TransportError as exc:
        raise TransientNetworkError(f"{service} connection failed: {exc}") from exc


def raise_for_status(response: httpx.Response, *, service: str) -> None:
    """Classify an unsuccessful response as transient or permanent."""
    if response.is_success:
        return
    status_code = response.status_code
    detail = _error_detail(response)
    if status_code >= 500 or status_code in _RETRYABLE_STATUS:
        raise TransientNetworkError(f"{service} unavailable ({status_code}): {detail}")
    raise PermanentRemoteError(f"{service} rejected request ({status_code}): {detail}")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        for key in ("message", "msg", "error_description", "error"):
            value = payload.get(key)
            if value:
                return str(value)
    return str(payload)[:200]
