"""
Tests for OAuth router endpoints.
"""

import base64
import json
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from studio_oauth.main import app
from studio_oauth.oauth.config import OAuthConfig, ProviderCredentials, get_oauth_config
from studio_oauth.oauth.dependencies import get_http_client


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def oauth_config():
    """Config with Discord and GitHub configured."""
    return OAuthConfig(
        base_url="http://testserver",
        providers={
            "discord": ProviderCredentials("dc-id", "dc-secret"),
            "github": ProviderCredentials("gh-id", "gh-secret"),
        },
    )


@pytest.fixture
def make_client(oauth_config):
    """Build a TestClient whose token endpoint answers through a spy."""

    def _make(http_client):
        app.dependency_overrides[get_oauth_config] = lambda: oauth_config
        app.dependency_overrides[get_http_client] = lambda: http_client
        return TestClient(app)

    yield _make

    app.dependency_overrides.pop(get_oauth_config, None)
    app.dependency_overrides.pop(get_http_client, None)


@pytest.fixture
def client(make_client, http_client):
    return make_client(http_client)


def start_flow(client: TestClient, provider: str = "discord") -> str:
    """Hit the connect endpoint and return the issued state."""
    response = client.get(f"/oauth/{provider}/connect", follow_redirects=False)
    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    return query["state"][0]


# ============================================================================
# GET /oauth/providers Tests
# ============================================================================


class TestProvidersEndpoint:
    """Tests for the GET /oauth/providers endpoint."""

    def test_lists_configured_providers(self, client):
        """Test only providers with credentials are listed."""
        response = client.get("/oauth/providers")

        assert response.status_code == 200
        assert response.json() == {
            "status": "success",
            "providers": ["github", "discord"],
        }


# ============================================================================
# GET /oauth/{provider}/connect Tests
# ============================================================================


class TestOAuthConnectEndpoint:
    """Tests for the GET /oauth/{provider}/connect endpoint."""

    def test_connect_redirects_to_provider(self, client):
        """Test connect redirects to the provider's authorization page."""
        response = client.get("/oauth/discord/connect", follow_redirects=False)

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("https://discordapp.com/api/oauth2/authorize?")

        query = parse_qs(urlparse(location).query)
        assert query["client_id"] == ["dc-id"]
        assert query["redirect_uri"] == ["http://testserver/oauth/discord/callback"]
        assert query["scope"] == ["identify"]
        assert query["prompt"] == ["none"]
        assert query["state"][0]

    def test_connect_unknown_provider_returns_404(self, client):
        """Test connect with unknown provider returns 404."""
        response = client.get("/oauth/unknown/connect", follow_redirects=False)

        assert response.status_code == 404

    def test_connect_unconfigured_provider_returns_503(self, client):
        """Test connect with a supported but unconfigured provider returns 503."""
        response = client.get("/oauth/spotify/connect", follow_redirects=False)

        assert response.status_code == 503
        assert "not configured" in response.json()["detail"]


# ============================================================================
# GET /oauth/{provider}/callback Tests
# ============================================================================


class TestOAuthCallbackEndpoint:
    """Tests for the GET /oauth/{provider}/callback endpoint."""

    def test_callback_success(self, client, http_client):
        """Test a valid callback exchanges the code and reports success."""
        state = start_flow(client)

        response = client.get(
            "/oauth/discord/callback", params={"code": "the-code", "state": state}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["provider"] == "discord"
        assert data["scope"] == "identify"
        assert data["expires_at"] is not None
        assert "abc" not in response.text

        assert len(http_client.calls) == 1
        assert http_client.calls[0]["url"] == "https://discordapp.com/api/oauth2/token"

    def test_session_cookie_does_not_expose_tokens(self, make_client, make_http_client):
        """Test the signed session cookie carries the token only encrypted."""
        client = make_client(
            make_http_client(
                {
                    "access_token": "ACCESS-SECRET",
                    "refresh_token": "REFRESH-SECRET",
                    "expires_in": 3600,
                }
            )
        )
        state = start_flow(client)
        client.get("/oauth/discord/callback", params={"code": "c", "state": state})

        # Starlette cookie: base64(json) "." timestamp "." signature
        payload = base64.b64decode(client.cookies["session"].split(".")[0])
        session = json.loads(payload)

        assert "ACCESS-SECRET" not in payload.decode()
        assert "REFRESH-SECRET" not in payload.decode()
        assert isinstance(session["oauth_tokens"]["discord"], str)
        assert client.delete("/oauth/discord").status_code == 200

    def test_callback_state_mismatch(self, client, http_client):
        """Test a forged state is rejected without contacting the provider."""
        start_flow(client)

        response = client.get(
            "/oauth/discord/callback", params={"code": "the-code", "state": "forged"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "state_mismatch"
        assert http_client.calls == []

    def test_callback_without_connect(self, client, http_client):
        """Test a callback with no pending authorization is rejected."""
        response = client.get(
            "/oauth/discord/callback", params={"code": "the-code", "state": "any"}
        )

        assert response.status_code == 400
        assert http_client.calls == []

    def test_callback_state_replay(self, client, http_client):
        """Test the same callback cannot be used twice."""
        state = start_flow(client)
        params = {"code": "the-code", "state": state}

        assert client.get("/oauth/discord/callback", params=params).status_code == 200
        assert client.get("/oauth/discord/callback", params=params).status_code == 400
        assert len(http_client.calls) == 1

    def test_callback_provider_error_body(self, make_client, make_http_client):
        """Test an error from the token endpoint returns 401."""
        client = make_client(make_http_client({"error": "invalid_grant"}, status_code=400))
        state = start_flow(client)

        response = client.get(
            "/oauth/discord/callback", params={"code": "the-code", "state": state}
        )

        assert response.status_code == 401
        assert response.json() == {
            "status": "error",
            "error": "provider_error",
            "message": "invalid_grant",
        }

    def test_callback_access_denied(self, client, http_client):
        """Test the provider's error redirect returns 401 with the description."""
        response = client.get(
            "/oauth/discord/callback",
            params={"error": "access_denied", "error_description": "User said no"},
        )

        assert response.status_code == 401
        data = response.json()
        assert data["message"] == "access_denied"
        assert data["description"] == "User said no"
        assert http_client.calls == []

    def test_callback_missing_code(self, client):
        """Test a callback without a code returns 400."""
        response = client.get("/oauth/discord/callback", params={"state": "s"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing authorization code"

    def test_callback_malformed_response(self, make_client, make_http_client):
        """Test an unusable token response returns 502."""
        client = make_client(make_http_client(body=b"<html>oops</html>"))
        state = start_flow(client)

        response = client.get(
            "/oauth/discord/callback", params={"code": "the-code", "state": state}
        )

        assert response.status_code == 502
        assert response.json()["error"] == "malformed_response"


# ============================================================================
# DELETE /oauth/{provider} Tests
# ============================================================================


class TestOAuthDisconnectEndpoint:
    """Tests for the DELETE /oauth/{provider} endpoint."""

    def test_disconnect_after_connect(self, client):
        """Test disconnecting removes the session token."""
        state = start_flow(client)
        client.get("/oauth/discord/callback", params={"code": "c", "state": state})

        response = client.delete("/oauth/discord")

        assert response.status_code == 200
        assert response.json()["message"] == "Disconnected from discord"
        assert client.delete("/oauth/discord").status_code == 404

    def test_disconnect_without_connection(self, client):
        """Test disconnecting an unconnected provider returns 404."""
        response = client.delete("/oauth/github")

        assert response.status_code == 404


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_endpoint(self, client):
        """Test the /health endpoint returns healthy status."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
