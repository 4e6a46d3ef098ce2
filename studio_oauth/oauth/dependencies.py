"""
FastAPI dependencies for OAuth endpoints.

Provides dependency injection for the flow, its collaborators and
provider validation.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from studio_oauth.core.oauth_service import AuthorizationCodeFlow
from studio_oauth.core.ports import HttpClient, TokenStorage
from studio_oauth.infrastructure.http_client import HttpxClient
from studio_oauth.infrastructure.oauth_providers import SUPPORTED_PROVIDERS
from studio_oauth.infrastructure.token_storage import SessionTokenStorage
from studio_oauth.oauth.config import OAuthConfig, create_flow, get_oauth_config


logger = logging.getLogger(__name__)


Config = Annotated[OAuthConfig, Depends(get_oauth_config)]


@lru_cache()
def get_http_client() -> HttpClient:
    """
    Provide the HTTP client dependency.

    Uses lru_cache for singleton behavior - same instance across requests.
    """
    return HttpxClient(timeout=get_oauth_config().http_timeout)


def get_storage(request: Request) -> TokenStorage:
    """Provide token storage scoped to the caller's session."""
    return SessionTokenStorage(request.session)


async def validate_provider(provider: str, config: Config) -> str:
    """
    Validate that the provider is supported and configured.

    Args:
        provider: OAuth provider name from path
        config: OAuth configuration

    Returns:
        Validated provider name

    Raises:
        HTTPException: If provider is invalid or not configured
    """
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}",
        )

    if not config.is_provider_configured(provider):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Provider '{provider}' is not configured",
        )

    return provider


ValidProvider = Annotated[str, Depends(validate_provider)]


def get_flow(
    provider: ValidProvider,
    config: Config,
    http_client: Annotated[HttpClient, Depends(get_http_client)],
    storage: Annotated[TokenStorage, Depends(get_storage)],
) -> AuthorizationCodeFlow:
    """Provide an authorization code flow for the requested provider."""
    return create_flow(provider, http_client, storage, config)


# Type aliases for cleaner dependency injection
Flow = Annotated[AuthorizationCodeFlow, Depends(get_flow)]
