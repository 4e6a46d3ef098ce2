"""
Core domain models for the OAuth2 authorization code flow.

These models represent the business domain and are independent of
any infrastructure or delivery mechanism.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

if TYPE_CHECKING:
    from studio_oauth.core.exceptions import OAuthFlowError


class BearerDelivery(str, Enum):
    """How an access token is attached to API requests."""

    QUERY_STRING = "query_string"
    HEADER_BEARER = "header_bearer"


class FlowStatus(str, Enum):
    """Lifecycle of a single authorization attempt."""

    IDLE = "idle"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    TOKEN_OBTAINED = "token_obtained"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Failure categories returned by the flow."""

    MALFORMED_RESPONSE = "malformed_response"
    PROVIDER_ERROR = "provider_error"
    STATE_MISMATCH = "state_mismatch"
    TRANSPORT_ERROR = "transport_error"
    MISSING_TOKEN = "missing_token"
    TOKEN_EXPIRED = "token_expired"


@dataclass(frozen=True)
class Credentials:
    """
    OAuth client credentials supplied by the host application.

    The secret is kept out of repr() so credentials can be logged safely.
    """

    client_id: str
    client_secret: str = field(repr=False)
    callback_url: str

    def __post_init__(self):
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.callback_url:
            raise ValueError("callback_url must not be empty")


@dataclass(frozen=True)
class FlowError:
    """
    A failed step of the flow, returned instead of raised.

    Attributes:
        kind: Failure category
        message: Human readable message (provider error code for PROVIDER_ERROR)
        description: Optional provider-supplied error_description
    """

    kind: ErrorKind
    message: str
    description: str | None = None

    def to_exception(self) -> "OAuthFlowError":
        """Build the typed exception matching this error."""
        from studio_oauth.core.exceptions import EXCEPTIONS_BY_KIND

        return EXCEPTIONS_BY_KIND[self.kind](self.message, self.description)


class Token(BaseModel):
    """
    OAuth2 token issued by a provider.

    Built only by parse_token_response. Fields the provider returned
    beyond access_token, expires_in and refresh_token are kept verbatim
    in extra_params (token_type, scope, id_token, ...), exposed read-only.
    """

    access_token: str = Field(min_length=1, description="OAuth2 access token")
    lifetime_seconds: int | None = Field(
        default=None, description="Lifetime from expires_in, in seconds"
    )
    refresh_token: str | None = Field(
        default=None, description="OAuth2 refresh token for token renewal"
    )
    extra_params: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Remaining provider fields",
    )
    issued_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the token was parsed",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("extra_params", mode="after")
    @classmethod
    def _freeze_extra_params(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("extra_params")
    def _dump_extra_params(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    @property
    def expires_at(self) -> datetime | None:
        """
        End of life of the token.

        None when the provider gave no lifetime, or a zero/negative one
        (GitHub tokens do not expire).
        """
        if self.lifetime_seconds is None or self.lifetime_seconds <= 0:
            return None
        return self.issued_at + timedelta(seconds=self.lifetime_seconds)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the access token is expired."""
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= expires_at


T = TypeVar("T")

TokenResult = Token | FlowError


def unwrap(result: T | FlowError) -> T:
    """
    Return the successful value or raise the matching exception.

    Args:
        result: Value returned by a flow operation

    Raises:
        OAuthFlowError: The typed exception for a FlowError
    """
    if isinstance(result, FlowError):
        raise result.to_exception()
    return result
