"""
HTTP client adapter backed by httpx.
"""

import logging
from typing import Mapping

import httpx

from studio_oauth.core.exceptions import TransportError
from studio_oauth.core.ports import HttpResponse


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpxClient:
    """
    HttpClient implementation using httpx.AsyncClient.

    Non-2xx responses are returned as-is: providers report token errors
    in 4xx bodies and the flow needs to read them.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self._timeout = timeout
        self._client = client

    async def _send(self, client: httpx.AsyncClient, method, url, headers, body):
        return await client.request(
            method, url, headers=dict(headers or {}), content=body
        )

    async def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> HttpResponse:
        try:
            if self._client is not None:
                response = await self._send(self._client, method, url, headers, body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._send(client, method, url, headers, body)
        except httpx.RequestError as e:
            logger.error(f"Network error calling {method} {url}: {e}")
            raise TransportError(f"Network error: {e}") from e

        return HttpResponse(status_code=response.status_code, body=response.content)

    async def aclose(self) -> None:
        """Close the shared client, if one was injected."""
        if self._client is not None:
            await self._client.aclose()
