"""
OAuth 2.0 provider descriptors.

Every supported identity provider is a ProviderDescriptor value: fixed
endpoints, default scopes, header requirements and a small overlay of
extra authorization parameters. All of them run through the same
AuthorizationCodeFlow.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

from studio_oauth.core.domain import BearerDelivery, TokenResult
from studio_oauth.core.tokens import parse_token_response


def _frozen(mapping: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Fixed facts that distinguish one identity provider from another.

    URL templates may contain a `{region}` placeholder, filled from
    `region` (Battle.net).
    """

    name: str
    authorization_url: str
    token_url: str
    base_api_url: str
    default_scopes: tuple[str, ...]
    bearer_delivery: BearerDelivery = BearerDelivery.HEADER_BEARER
    extra_auth_headers: Mapping[str, str] = field(default_factory=_frozen)
    extra_api_headers: Mapping[str, str] = field(default_factory=_frozen)
    authorization_params: Mapping[str, str] = field(default_factory=_frozen)
    send_grant_type: bool = True
    region: str | None = None
    token_parser: Callable[[bytes | str], TokenResult] = field(
        default=parse_token_response, repr=False, compare=False
    )

    def _expand(self, template: str) -> str:
        if "{region}" in template:
            return template.format(region=self.region)
        return template

    def authorization_endpoint(self) -> str:
        return self._expand(self.authorization_url)

    def token_endpoint(self) -> str:
        return self._expand(self.token_url)

    def base_api_endpoint(self) -> str:
        return self._expand(self.base_api_url)

    def parse_token_response(self, raw_body: bytes | str) -> TokenResult:
        """Parse the token endpoint response for this provider."""
        return self.token_parser(raw_body)


GITHUB = ProviderDescriptor(
    name="github",
    authorization_url="https://github.com/login/oauth/authorize",
    token_url="https://github.com/login/oauth/access_token",
    base_api_url="https://api.github.com/",
    # Empty scope grants read-only access to public information
    default_scopes=("",),
    # GitHub answers form-encoded unless JSON is asked for
    extra_auth_headers=_frozen({"Accept": "application/json"}),
    extra_api_headers=_frozen({"Accept": "application/vnd.github.v3+json"}),
    send_grant_type=False,
)

DISCORD = ProviderDescriptor(
    name="discord",
    authorization_url="https://discordapp.com/api/oauth2/authorize",
    token_url="https://discordapp.com/api/oauth2/token",
    base_api_url="https://discordapp.com/api/",
    default_scopes=("identify",),
    # Skip the consent screen for users who already authorized the app
    authorization_params=_frozen({"prompt": "none"}),
)

SPOTIFY = ProviderDescriptor(
    name="spotify",
    authorization_url="https://accounts.spotify.com/authorize",
    token_url="https://accounts.spotify.com/token",
    base_api_url="https://api.spotify.com/v1/",
    default_scopes=("user-read-email",),
    authorization_params=_frozen({"show_dialog": "false"}),
)

BATTLENET_REGIONS = ("us", "eu", "kr", "tw", "apac")

BATTLENET_AUTHORIZATION_URL = "https://{region}.battle.net/oauth/authorize"
BATTLENET_TOKEN_URL = "https://{region}.battle.net/oauth/token"
BATTLENET_BASE_API_URL = "https://{region}.battle.net/"


def _check_region(region: str) -> str:
    if region not in BATTLENET_REGIONS:
        raise ValueError(
            f"Unknown Battle.net region: {region}. Supported: {list(BATTLENET_REGIONS)}"
        )
    return region


def battlenet(region: str) -> ProviderDescriptor:
    """Battle.net game profile login for a region (wow.profile scope)."""
    return ProviderDescriptor(
        name=f"battlenet_{_check_region(region)}",
        authorization_url=BATTLENET_AUTHORIZATION_URL,
        token_url=BATTLENET_TOKEN_URL,
        base_api_url=BATTLENET_BASE_API_URL,
        default_scopes=("wow.profile",),
        bearer_delivery=BearerDelivery.QUERY_STRING,
        region=region,
    )


def battlenet_light(region: str) -> ProviderDescriptor:
    """Battle.net account login for a region (account.public scope)."""
    return ProviderDescriptor(
        name=f"battlenet_light_{_check_region(region)}",
        authorization_url=BATTLENET_AUTHORIZATION_URL,
        token_url=BATTLENET_TOKEN_URL,
        base_api_url=BATTLENET_BASE_API_URL,
        default_scopes=("account.public",),
        bearer_delivery=BearerDelivery.QUERY_STRING,
        region=region,
    )


PROVIDERS: dict[str, ProviderDescriptor] = {
    descriptor.name: descriptor
    for descriptor in (
        GITHUB,
        DISCORD,
        SPOTIFY,
        *(battlenet(region) for region in BATTLENET_REGIONS),
        *(battlenet_light(region) for region in BATTLENET_REGIONS),
    )
}

# List of supported providers (for validation)
SUPPORTED_PROVIDERS = list(PROVIDERS)


def get_provider(name: str) -> ProviderDescriptor:
    """
    Look up a provider descriptor by name.

    Raises:
        KeyError: If the provider is not supported
    """
    try:
        return PROVIDERS[name]
    except KeyError:
        raise KeyError(f"Unknown provider: {name}. Supported: {SUPPORTED_PROVIDERS}")
