"""
OAuth2 configuration and flow factory.

Credentials for each provider family (GitHub, Discord, Spotify,
Battle.net) are loaded from environment variables. Providers without
credentials are simply not offered.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from studio_oauth.core.domain import Credentials
from studio_oauth.core.oauth_service import AuthorizationCodeFlow
from studio_oauth.core.ports import HttpClient, TokenStorage
from studio_oauth.infrastructure.http_client import DEFAULT_TIMEOUT
from studio_oauth.infrastructure.oauth_providers import (
    BATTLENET_REGIONS,
    get_provider,
)


logger = logging.getLogger(__name__)

PROVIDER_FAMILIES = ("github", "discord", "spotify", "battlenet")


def _family(provider: str) -> str:
    """Map a provider name to the credential family it uses."""
    if provider.startswith("battlenet"):
        return "battlenet"
    return provider


def _scopes_from_env(name: str) -> tuple[str, ...]:
    return tuple(os.getenv(name, "").split())


@dataclass
class ProviderCredentials:
    """Client credentials and optional scope override for one family."""

    client_id: str | None = None
    client_secret: str | None = None
    scopes: tuple[str, ...] = ()

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class OAuthConfig:
    """
    OAuth configuration settings.

    Loaded from environment variables. Validates required settings at startup.
    """

    base_url: str
    providers: dict[str, ProviderCredentials] = field(default_factory=dict)
    battlenet_region: str = "us"
    http_timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        if self.battlenet_region not in BATTLENET_REGIONS:
            raise ValueError(
                f"Unknown Battle.net region: {self.battlenet_region}. "
                f"Supported: {list(BATTLENET_REGIONS)}"
            )

    @classmethod
    def from_env(cls) -> "OAuthConfig":
        """Load configuration from environment variables."""
        providers = {}
        for family in PROVIDER_FAMILIES:
            prefix = family.upper()
            providers[family] = ProviderCredentials(
                client_id=os.getenv(f"{prefix}_CLIENT_ID"),
                client_secret=os.getenv(f"{prefix}_CLIENT_SECRET"),
                scopes=_scopes_from_env(f"{prefix}_SCOPES"),
            )

        return cls(
            base_url=os.getenv("BASE_URL", ""),
            providers=providers,
            battlenet_region=os.getenv("BATTLENET_REGION", "us"),
            http_timeout=float(os.getenv("OAUTH_HTTP_TIMEOUT", DEFAULT_TIMEOUT)),
        )

    def _entry(self, provider: str) -> ProviderCredentials:
        return self.providers.get(_family(provider)) or ProviderCredentials()

    def get_callback_url(self, provider: str) -> str:
        """Generate callback URL for a provider."""
        return f"{self.base_url}/oauth/{provider}/callback"

    def is_provider_configured(self, provider: str) -> bool:
        """Check if a provider has valid credentials configured."""
        if provider not in self.get_offered_providers():
            return False
        return self._entry(provider).is_configured

    def get_offered_providers(self) -> list[str]:
        """Provider names exposed by this deployment, configured or not."""
        region = self.battlenet_region
        return [
            "github",
            "discord",
            "spotify",
            f"battlenet_{region}",
            f"battlenet_light_{region}",
        ]

    def get_configured_providers(self) -> list[str]:
        """List all providers with valid configuration."""
        return [
            p for p in self.get_offered_providers() if self.is_provider_configured(p)
        ]

    def get_credentials(self, provider: str) -> Credentials:
        """
        Build Credentials for a provider.

        Raises:
            ValueError: If the provider is not configured
        """
        if not self.is_provider_configured(provider):
            raise ValueError(f"Provider '{provider}' is not configured")
        entry = self._entry(provider)
        return Credentials(
            client_id=entry.client_id,
            client_secret=entry.client_secret,
            callback_url=self.get_callback_url(provider),
        )

    def get_scopes(self, provider: str) -> tuple[str, ...]:
        """Scopes configured for a provider; empty means provider defaults."""
        return self._entry(provider).scopes


@lru_cache()
def get_oauth_config() -> OAuthConfig:
    """Get OAuth configuration singleton."""
    return OAuthConfig.from_env()


def create_flow(
    provider: str,
    http_client: HttpClient,
    storage: TokenStorage,
    config: OAuthConfig | None = None,
) -> AuthorizationCodeFlow:
    """
    Create an authorization code flow for a configured provider.

    Args:
        provider: Provider name (github, discord, spotify, battlenet_<region>, ...)
        http_client: Transport for the token exchange
        storage: Per-session token/state storage
        config: OAuth configuration (uses default if not provided)

    Returns:
        Flow bound to the provider's descriptor and credentials
    """
    if config is None:
        config = get_oauth_config()

    flow = AuthorizationCodeFlow(
        provider=get_provider(provider),
        credentials=config.get_credentials(provider),
        http_client=http_client,
        storage=storage,
        scopes=config.get_scopes(provider),
    )
    logger.debug(f"Created OAuth flow for {provider}")
    return flow
