"""
Domain exceptions for the authorization code flow.

Core operations return FlowError values instead of raising. These
exceptions exist for the edges: the HTTP client adapter raises
TransportError, and the web layer converts FlowError results into
exceptions that are caught by centralized handlers in main.py.
"""

from studio_oauth.core.domain import ErrorKind


class OAuthFlowError(Exception):
    """Base exception for a failed authorization attempt."""

    kind: ErrorKind

    def __init__(self, message: str, description: str | None = None):
        super().__init__(message)
        self.message = message
        self.description = description


class MalformedResponseError(OAuthFlowError):
    """
    Raised when the token endpoint answered with something unusable.

    Covers bodies that are not JSON, not a JSON object, or lack an
    access_token.
    """

    kind = ErrorKind.MALFORMED_RESPONSE


class ProviderError(OAuthFlowError):
    """Raised when the provider returned an explicit `error` field."""

    kind = ErrorKind.PROVIDER_ERROR


class StateMismatchError(OAuthFlowError):
    """
    Raised when the callback state does not match the stored value.

    This is a client-side error and should result in a 400 response.
    """

    kind = ErrorKind.STATE_MISMATCH


class TransportError(OAuthFlowError):
    """Raised for network/HTTP-layer failures talking to the provider."""

    kind = ErrorKind.TRANSPORT_ERROR


class MissingTokenError(OAuthFlowError):
    """No token stored for the service."""

    kind = ErrorKind.MISSING_TOKEN


class TokenExpiredError(OAuthFlowError):
    """Stored token is past its end of life."""

    kind = ErrorKind.TOKEN_EXPIRED


EXCEPTIONS_BY_KIND: dict[ErrorKind, type[OAuthFlowError]] = {
    cls.kind: cls
    for cls in (
        MalformedResponseError,
        ProviderError,
        StateMismatchError,
        TransportError,
        MissingTokenError,
        TokenExpiredError,
    )
}
