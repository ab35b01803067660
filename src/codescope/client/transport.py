"""HTTP transport shared by HTTP-based capability providers.

Wraps one ``httpx.AsyncClient`` per base URL and maps transport outcomes onto
the provider error taxonomy:

- 401/403 -> ``AuthError``
- 429 -> ``RateLimitedError`` (``Retry-After`` seconds when present)
- >= 500, timeouts and connection errors -> ``ServerError``
- any other 4xx or a non-JSON body -> ``MalformedResponseError``
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from codescope.constants import NETWORK_TIMEOUT
from codescope.core.exceptions import (
    AuthError,
    MalformedResponseError,
    RateLimitedError,
    ServerError,
)

logger = logging.getLogger(__name__)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds; None if absent or invalid."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class HTTPTransport:
    """JSON-over-HTTP calls with a bearer credential."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = NETWORK_TIMEOUT,
        provider: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.provider = provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout
        )

    async def post_json(
        self,
        path: str,
        body: dict[str, Any],
        *,
        credential: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST ``body`` as JSON and return the decoded JSON object."""
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        if credential:
            request_headers["Authorization"] = f"Bearer {credential}"

        try:
            response = await self._client.post(path, json=body, headers=request_headers)
        except httpx.TimeoutException as e:
            raise ServerError(
                f"Request to {path} timed out", provider=self.provider
            ) from e
        except httpx.HTTPError as e:
            raise ServerError(
                f"Transport error calling {path}: {e}", provider=self.provider
            ) from e

        self._raise_for_status(response, path)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Response from {path} is not valid JSON", provider=self.provider
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Response from {path} is not a JSON object", provider=self.provider
            )
        return data

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        status = response.status_code
        if status < 400:
            return
        logger.debug("HTTP %d from %s%s", status, self.base_url, path)
        if status in (401, 403):
            raise AuthError(
                f"HTTP {status}: credential rejected for {path}", provider=self.provider
            )
        if status == 429:
            raise RateLimitedError(
                f"HTTP 429: rate limited on {path}",
                provider=self.provider,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status >= 500:
            raise ServerError(f"HTTP {status} from {path}", provider=self.provider)
        raise MalformedResponseError(
            f"HTTP {status}: request to {path} was not accepted", provider=self.provider
        )

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
