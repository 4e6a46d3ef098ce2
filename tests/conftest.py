"""
Shared test configuration and fixtures.
"""

import json
import os
from unittest.mock import patch

import pytest

TEST_ENCRYPTION_KEY = "3xpo7t61pLEqmOiHEZs4qIvrPjieKmO1Pg5OSdwDRAI="

# Environment must be set before importing the app
with patch.dict(
    os.environ,
    {
        "SESSION_SECRET_KEY": "test-secret",
        "TOKEN_ENCRYPTION_KEY": TEST_ENCRYPTION_KEY,
        "BASE_URL": "http://testserver",
    },
):
    from studio_oauth.main import app  # noqa: F401

from studio_oauth.core.domain import Credentials
from studio_oauth.core.ports import HttpResponse
from studio_oauth.infrastructure.encryption import reset_encryption
from studio_oauth.infrastructure.token_storage import InMemoryTokenStorage


@pytest.fixture(autouse=True)
def encryption_key():
    """Give every test the same token encryption key and a fresh Fernet."""
    reset_encryption()
    with patch.dict(os.environ, {"TOKEN_ENCRYPTION_KEY": TEST_ENCRYPTION_KEY}):
        yield TEST_ENCRYPTION_KEY
    reset_encryption()


class SpyHttpClient:
    """
    HttpClient test double.

    Records every call and answers with a fixed response, or raises the
    configured error.
    """

    def __init__(self, response: HttpResponse, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def request(self, method, url, headers=None, body=None):
        self.calls.append(
            {"method": method, "url": url, "headers": dict(headers or {}), "body": body}
        )
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def make_http_client():
    """
    Factory for SpyHttpClient.

    Pass `payload` for a JSON body, `body` for raw bytes, or `error` to
    make every request raise.
    """

    def _make(payload=None, status_code=200, body=None, error=None):
        if body is None:
            body = json.dumps(payload if payload is not None else {}).encode()
        return SpyHttpClient(HttpResponse(status_code=status_code, body=body), error)

    return _make


@pytest.fixture
def credentials():
    """Client credentials for a test app."""
    return Credentials(
        client_id="test-client-id",
        client_secret="test-client-secret",
        callback_url="http://testserver/oauth/github/callback",
    )


@pytest.fixture
def storage():
    """Fresh in-memory storage for each test."""
    return InMemoryTokenStorage()


@pytest.fixture
def token_payload():
    """Typical successful token endpoint payload."""
    return {
        "access_token": "abc",
        "expires_in": 3600,
        "refresh_token": "r1",
        "token_type": "Bearer",
        "scope": "identify",
    }


@pytest.fixture
def http_client(make_http_client, token_payload):
    """Spy HTTP client answering with a successful token payload."""
    return make_http_client(token_payload)
