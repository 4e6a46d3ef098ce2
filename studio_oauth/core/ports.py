"""
Port definitions (interfaces) for the core domain.

Ports define the contracts between the authorization code flow and
external systems. Infrastructure adapters implement these ports.
"""

from dataclasses import dataclass
from typing import Mapping, Protocol

from studio_oauth.core.domain import Token


@dataclass(frozen=True)
class HttpResponse:
    """Raw response returned by an HttpClient."""

    status_code: int
    body: bytes


class HttpClient(Protocol):
    """
    Port (interface) for performing HTTP requests.

    Timeouts, retries and cancellation are the implementation's concern.
    The flow only needs the status and the raw body.
    """

    async def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> HttpResponse:
        """
        Perform a request.

        Args:
            method: HTTP method
            url: Absolute URL, query string included
            headers: Request headers
            body: Raw request body

        Returns:
            Status code and body, for any status

        Raises:
            TransportError: If no response could be obtained
        """
        ...


class TokenStorage(Protocol):
    """
    Port (interface) for token and state persistence.

    Entries are keyed by service (provider) name. Implementations must
    scope storage per user session so concurrent login attempts never
    overwrite each other's state.
    """

    async def store_authorization_state(self, service: str, state: str) -> None:
        """Persist the pending state for a service, replacing any previous one."""
        ...

    async def retrieve_authorization_state(self, service: str) -> str | None:
        """Return the pending state, or None if there is none."""
        ...

    async def clear_authorization_state(self, service: str) -> None:
        """Forget the pending state."""
        ...

    async def store_token(self, service: str, token: Token) -> None:
        """Persist the token issued by a service."""
        ...

    async def retrieve_token(self, service: str) -> Token | None:
        """Return the stored token, or None."""
        ...

    async def clear_token(self, service: str) -> bool:
        """
        Delete the stored token.

        Returns:
            True if deleted, False if not found
        """
        ...
