"""
OAuth2 API endpoints.

- GET /oauth/providers - List configured providers
- GET /oauth/{provider}/connect - Start the authorization code flow
- GET /oauth/{provider}/callback - Validate state, exchange the code, store the token
- DELETE /oauth/{provider} - Forget the stored token

Flow failures are raised as OAuthFlowError subclasses and turned into
responses by the handlers registered in main.py.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import RedirectResponse

from studio_oauth.core.domain import unwrap
from studio_oauth.core.exceptions import ProviderError
from studio_oauth.oauth.dependencies import Config, Flow, ValidProvider


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth"])


@router.get("/providers")
async def list_providers(config: Config):
    """List providers that have credentials configured."""
    return {
        "status": "success",
        "providers": config.get_configured_providers(),
    }


@router.get("/{provider}/connect")
async def connect(provider: ValidProvider, flow: Flow):
    """
    Start OAuth2 authorization flow.

    Stores a fresh state in the session and redirects the user to the
    provider's authorization page.
    """
    logger.info(
        f"Starting OAuth flow for provider: {provider}",
        extra={"provider": provider},
    )
    url = await flow.build_authorization_url()
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


@router.get("/{provider}/callback")
async def callback(
    provider: ValidProvider,
    flow: Flow,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
):
    """
    Handle OAuth2 callback from provider.

    Args:
        provider: OAuth provider name
        flow: Flow bound to the provider and the caller's session
        code: Authorization code
        state: State echoed back by the provider
        error: Set by the provider when the user denied access

    Raises:
        ProviderError: If the provider reported an error
        StateMismatchError: If the state does not match the session
        HTTPException: If the code is missing
    """
    if error:
        raise ProviderError(error, error_description)

    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing authorization code",
        )

    token = unwrap(await flow.exchange_code(code, state))

    logger.info(
        f"Successfully connected {provider}",
        extra={"provider": provider},
    )

    expires_at = token.expires_at
    return {
        "status": "success",
        "provider": provider,
        "expires_at": expires_at.isoformat() if expires_at else None,
        "scope": token.extra_params.get("scope"),
    }


@router.delete("/{provider}")
async def disconnect(provider: ValidProvider, flow: Flow):
    """
    Disconnect an OAuth service.

    Removes the stored token for the provider.
    """
    if not await flow.disconnect():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No connection found for provider: {provider}",
        )

    return {
        "status": "success",
        "message": f"Disconnected from {provider}",
    }
