"""
FastAPI application hosting the OAuth2 login endpoints.

This module wires dependencies and configures the application.
The flow lives in studio_oauth/core, adapters in studio_oauth/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager

# Configure logging FIRST, before other local imports
from studio_oauth.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
from fastapi import FastAPI, Request, status  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from studio_oauth.core.exceptions import (  # noqa: E402
    MalformedResponseError,
    MissingTokenError,
    OAuthFlowError,
    ProviderError,
    StateMismatchError,
    TokenExpiredError,
    TransportError,
)
from studio_oauth.infrastructure.encryption import is_encryption_configured  # noqa: E402
from studio_oauth.oauth import router as oauth_router  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Lifecycle
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Dependencies are lazy-loaded, so there is nothing to open or close.
    """
    logger.info("Application starting up...")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Studio OAuth",
    description="OAuth2 authorization code login for GitHub, Discord, Spotify and Battle.net",
    version="1.0.0",
    lifespan=lifespan,
)

# Session middleware holds the pending state and issued tokens
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
if not SESSION_SECRET_KEY:
    raise ValueError("SESSION_SECRET_KEY is not set in the environment.")
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET_KEY)

# Tokens in the session are encrypted with this key
if not is_encryption_configured():
    raise ValueError("TOKEN_ENCRYPTION_KEY is not set in the environment.")


# ============================================================================
# Centralized Exception Handlers
# ============================================================================

ERROR_STATUS_CODES: dict[type[OAuthFlowError], int] = {
    StateMismatchError: status.HTTP_400_BAD_REQUEST,
    ProviderError: status.HTTP_401_UNAUTHORIZED,
    MissingTokenError: status.HTTP_401_UNAUTHORIZED,
    TokenExpiredError: status.HTTP_401_UNAUTHORIZED,
    MalformedResponseError: status.HTTP_502_BAD_GATEWAY,
    TransportError: status.HTTP_502_BAD_GATEWAY,
}


@app.exception_handler(OAuthFlowError)
async def oauth_flow_error_handler(request: Request, exc: OAuthFlowError):
    """
    Handle failed authorization attempts.

    State mismatches are the client's fault (400), provider refusals
    mean the user is not authorized (401), and unusable provider answers
    are an upstream failure (502). None of them is retried.
    """
    status_code = ERROR_STATUS_CODES.get(
        type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    logger.error(
        f"OAuth error: {exc.message}",
        extra={"error_kind": exc.kind.value, "path": request.url.path},
    )

    content = {
        "status": "error",
        "error": exc.kind.value,
        "message": exc.message,
    }
    if exc.description:
        content["description"] = exc.description
    return JSONResponse(status_code=status_code, content=content)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(oauth_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
