"""
TokenStorage implementations.

Includes an in-memory implementation for testing and development, and a
session-backed implementation that keeps the pending state and issued
tokens in the Starlette session of the user attempting the login.
"""

import logging
from typing import Any, MutableMapping

from pydantic import ValidationError

from studio_oauth.core.domain import Token
from studio_oauth.infrastructure.encryption import (
    EncryptionError,
    decrypt_token,
    encrypt_token,
)


logger = logging.getLogger(__name__)


class InMemoryTokenStorage:
    """
    In-memory implementation of TokenStorage.

    One instance holds one user's entries. Data is lost when the
    application restarts.
    """

    def __init__(self):
        self._states: dict[str, str] = {}
        self._tokens: dict[str, Token] = {}

    async def store_authorization_state(self, service: str, state: str) -> None:
        self._states[service] = state

    async def retrieve_authorization_state(self, service: str) -> str | None:
        return self._states.get(service)

    async def clear_authorization_state(self, service: str) -> None:
        self._states.pop(service, None)

    async def store_token(self, service: str, token: Token) -> None:
        self._tokens[service] = token
        logger.info(f"Saved {service} token")

    async def retrieve_token(self, service: str) -> Token | None:
        return self._tokens.get(service)

    async def clear_token(self, service: str) -> bool:
        if service not in self._tokens:
            return False
        del self._tokens[service]
        logger.info(f"Deleted {service} token")
        return True


class SessionTokenStorage:
    """
    TokenStorage over a session mapping (e.g. `request.session`).

    Starlette sessions are signed but readable by the client, so tokens
    are stored as Fernet-encrypted JSON (see encryption.py) and
    validated back into Token on read. Authorization states are stored
    as is; they are single-use and useless without the session.
    """

    STATE_KEY = "oauth_state"
    TOKEN_KEY = "oauth_tokens"

    def __init__(self, session: MutableMapping[str, Any]):
        self._session = session

    def _bucket(self, key: str) -> dict[str, Any]:
        # Reassign so session backends notice the change
        bucket = dict(self._session.get(key) or {})
        self._session[key] = bucket
        return bucket

    async def store_authorization_state(self, service: str, state: str) -> None:
        self._bucket(self.STATE_KEY)[service] = state

    async def retrieve_authorization_state(self, service: str) -> str | None:
        return (self._session.get(self.STATE_KEY) or {}).get(service)

    async def clear_authorization_state(self, service: str) -> None:
        self._bucket(self.STATE_KEY).pop(service, None)

    async def store_token(self, service: str, token: Token) -> None:
        self._bucket(self.TOKEN_KEY)[service] = encrypt_token(token.model_dump_json())
        logger.info(f"Saved {service} token to session")

    async def retrieve_token(self, service: str) -> Token | None:
        data = (self._session.get(self.TOKEN_KEY) or {}).get(service)
        if data is None:
            return None
        try:
            return Token.model_validate_json(decrypt_token(data))
        except (EncryptionError, ValidationError) as e:
            logger.warning(f"Discarding unreadable {service} token from session: {e}")
            return None

    async def clear_token(self, service: str) -> bool:
        bucket = self._bucket(self.TOKEN_KEY)
        if service not in bucket:
            return False
        del bucket[service]
        logger.info(f"Deleted {service} token from session")
        return True
