"""
Core service for handling OAuth 2.0 authorization code flows.

One AuthorizationCodeFlow serves every provider; the differences between
providers live in the OAuthProvider value it is built with.
"""

import hmac
import logging
from typing import Iterable, Mapping, Protocol
from urllib.parse import urljoin

from authlib.common.security import generate_token
from authlib.common.urls import add_params_to_uri, url_encode

from studio_oauth.core.domain import (
    BearerDelivery,
    Credentials,
    ErrorKind,
    FlowError,
    FlowStatus,
    Token,
    TokenResult,
)
from studio_oauth.core.exceptions import TransportError
from studio_oauth.core.ports import HttpClient, HttpResponse, TokenStorage


logger = logging.getLogger(__name__)


class OAuthProvider(Protocol):
    """A protocol for the provider facts the flow depends on."""

    name: str
    default_scopes: tuple[str, ...]
    bearer_delivery: BearerDelivery
    extra_auth_headers: Mapping[str, str]
    extra_api_headers: Mapping[str, str]
    authorization_params: Mapping[str, str]
    send_grant_type: bool

    def authorization_endpoint(self) -> str: ...

    def token_endpoint(self) -> str: ...

    def base_api_endpoint(self) -> str: ...

    def parse_token_response(self, raw_body: bytes | str) -> TokenResult: ...


class AuthorizationCodeFlow:
    """
    OAuth2 authorization code grant against a single provider.

    Lifecycle: IDLE -> AUTHORIZATION_REQUESTED -> TOKEN_OBTAINED, or
    FAILED on any error. Nothing is retried here; retry and timeout
    policies belong to the HttpClient.
    """

    # ~256 bits from the 62-character alphabet
    STATE_LENGTH = 43

    def __init__(
        self,
        provider: OAuthProvider,
        credentials: Credentials,
        http_client: HttpClient,
        storage: TokenStorage,
        scopes: Iterable[str] | None = None,
        base_api_uri: str | None = None,
    ):
        self.provider = provider
        self._credentials = credentials
        self._http_client = http_client
        self._storage = storage

        # Caller scopes replace the defaults, never merge with them
        requested = tuple(dict.fromkeys(scopes or ()))
        self.scopes: tuple[str, ...] = requested or provider.default_scopes
        self.base_api_uri = base_api_uri or provider.base_api_endpoint()
        self.status = FlowStatus.IDLE

    @property
    def service_name(self) -> str:
        return self.provider.name

    def _fail(self, error: FlowError) -> FlowError:
        self.status = FlowStatus.FAILED
        logger.warning(
            f"OAuth flow failed for {self.service_name}: {error.message}",
            extra={"provider": self.service_name, "error_kind": error.kind.value},
        )
        return error

    async def build_authorization_url(
        self, extra_params: Mapping[str, str] | None = None
    ) -> str:
        """
        Build the URL the user is redirected to, and store its state.

        Args:
            extra_params: Additional query parameters. Protocol parameters
                (client_id, redirect_uri, scope, state, ...) always win.

        Returns:
            Authorization endpoint URL with the query string attached
        """
        params = dict(extra_params or {})
        params["client_id"] = self._credentials.client_id
        params["response_type"] = "code"
        if self.provider.send_grant_type:
            params["grant_type"] = "authorization_code"
        params["redirect_uri"] = self._credentials.callback_url
        params["scope"] = " ".join(self.scopes)
        params.update(self.provider.authorization_params)

        state = generate_token(self.STATE_LENGTH)
        params["state"] = state
        await self._storage.store_authorization_state(self.service_name, state)

        self.status = FlowStatus.AUTHORIZATION_REQUESTED
        logger.info(
            f"Authorization requested for {self.service_name}",
            extra={"provider": self.service_name, "scope": params["scope"]},
        )
        return add_params_to_uri(self.provider.authorization_endpoint(), params)

    async def _validate_state(self, received_state: str | None) -> bool:
        stored = await self._storage.retrieve_authorization_state(self.service_name)
        if not stored or not received_state:
            return False
        return hmac.compare_digest(stored.encode(), received_state.encode())

    async def exchange_code(self, code: str, received_state: str | None) -> TokenResult:
        """
        Exchange an authorization code for a token.

        The callback state is checked against the stored one before any
        request is made. On success the token is written to storage.

        Args:
            code: Authorization code from the callback
            received_state: State echoed back by the provider

        Returns:
            Token, or FlowError (STATE_MISMATCH, TRANSPORT_ERROR,
            PROVIDER_ERROR or MALFORMED_RESPONSE)
        """
        if not await self._validate_state(received_state):
            return self._fail(
                FlowError(
                    ErrorKind.STATE_MISMATCH,
                    "Authorization state does not match the stored value.",
                )
            )
        await self._storage.clear_authorization_state(self.service_name)

        body = url_encode(
            [
                ("code", code),
                ("client_id", self._credentials.client_id),
                ("client_secret", self._credentials.client_secret),
                ("redirect_uri", self._credentials.callback_url),
                ("grant_type", "authorization_code"),
            ]
        )
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            **self.provider.extra_auth_headers,
        }

        try:
            response = await self._http_client.request(
                "POST", self.provider.token_endpoint(), headers, body.encode()
            )
        except TransportError as e:
            return self._fail(FlowError(ErrorKind.TRANSPORT_ERROR, e.message))

        if response.status_code >= 500:
            return self._fail(
                FlowError(
                    ErrorKind.TRANSPORT_ERROR,
                    f"Token endpoint returned HTTP {response.status_code}",
                )
            )

        result = self.provider.parse_token_response(response.body)
        if isinstance(result, FlowError):
            return self._fail(result)

        await self._storage.store_token(self.service_name, result)
        self.status = FlowStatus.TOKEN_OBTAINED
        logger.info(
            f"Obtained {self.service_name} token",
            extra={"provider": self.service_name},
        )
        return result

    def authorize_request(self, url: str, token: Token) -> tuple[str, dict[str, str]]:
        """
        Attach a token to an API request the way the provider expects.

        Returns:
            The (possibly rewritten) URL and the headers to send
        """
        headers = dict(self.provider.extra_api_headers)
        if self.provider.bearer_delivery is BearerDelivery.QUERY_STRING:
            url = add_params_to_uri(url, [("access_token", token.access_token)])
        else:
            headers["Authorization"] = f"Bearer {token.access_token}"
        return url, headers

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: bytes | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> HttpResponse | FlowError:
        """
        Call the provider API with the stored token.

        Args:
            path: Path relative to the base API URI, or an absolute URL
            method: HTTP method
            body: Raw request body
            extra_headers: Headers merged over the provider's API headers

        Returns:
            HttpResponse, or FlowError (MISSING_TOKEN, TOKEN_EXPIRED,
            TRANSPORT_ERROR)
        """
        token = await self._storage.retrieve_token(self.service_name)
        if token is None:
            return FlowError(
                ErrorKind.MISSING_TOKEN, f"No token stored for {self.service_name}"
            )
        if token.is_expired():
            return FlowError(
                ErrorKind.TOKEN_EXPIRED, f"Token for {self.service_name} has expired"
            )

        target = path if "://" in path else path.lstrip("/")
        url, headers = self.authorize_request(urljoin(self.base_api_uri, target), token)
        headers.update(extra_headers or {})

        try:
            return await self._http_client.request(method, url, headers, body)
        except TransportError as e:
            return FlowError(ErrorKind.TRANSPORT_ERROR, e.message)

    async def get_token(self) -> Token | None:
        """Return the stored token for this provider, if any."""
        return await self._storage.retrieve_token(self.service_name)

    async def disconnect(self) -> bool:
        """Forget the stored token. Returns False if there was none."""
        deleted = await self._storage.clear_token(self.service_name)
        if deleted:
            logger.info(
                f"Disconnected {self.service_name}",
                extra={"provider": self.service_name},
            )
        return deleted
