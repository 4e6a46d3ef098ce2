"""
Token endpoint response parsing.

Providers disagree on the shape of their error payloads (`error` can be
a string or a list of strings) but agree on the success shape, so one
parser serves every provider.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from studio_oauth.core.domain import ErrorKind, FlowError, Token, TokenResult


logger = logging.getLogger(__name__)

# Keys mapped onto Token fields; everything else lands in extra_params.
CONSUMED_KEYS = frozenset({"access_token", "expires_in", "refresh_token"})

ERROR_SEPARATOR = ", "

UNKNOWN_PROVIDER_ERROR = "Unknown provider error"


def _error_message(value: Any) -> str:
    if isinstance(value, list):
        message = ERROR_SEPARATOR.join(str(item) for item in value if item is not None)
    elif value is None:
        message = ""
    else:
        message = str(value)
    return message or UNKNOWN_PROVIDER_ERROR


def parse_token_response(raw_body: bytes | str) -> TokenResult:
    """
    Turn a token endpoint response body into a Token.

    Args:
        raw_body: Response body, expected to be a JSON object

    Returns:
        Token on success, FlowError (MALFORMED_RESPONSE or PROVIDER_ERROR)
        otherwise
    """
    try:
        data = json.loads(raw_body)
    except ValueError:
        logger.warning("Token response is not valid JSON")
        return FlowError(ErrorKind.MALFORMED_RESPONSE, "Unable to parse response.")

    if not isinstance(data, dict):
        logger.warning(f"Token response is a JSON {type(data).__name__}, not an object")
        return FlowError(ErrorKind.MALFORMED_RESPONSE, "Unable to parse response.")

    # Must be checked before any other field is read
    if "error" in data:
        description = data.get("error_description")
        return FlowError(
            ErrorKind.PROVIDER_ERROR,
            _error_message(data["error"]),
            description if isinstance(description, str) else None,
        )

    if not data.get("access_token"):
        return FlowError(
            ErrorKind.MALFORMED_RESPONSE, "Token response is missing access_token."
        )

    try:
        return Token(
            access_token=data["access_token"],
            lifetime_seconds=data.get("expires_in"),
            refresh_token=data.get("refresh_token"),
            extra_params={k: v for k, v in data.items() if k not in CONSUMED_KEYS},
        )
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        logger.warning(f"Token response has invalid fields: {fields}")
        return FlowError(
            ErrorKind.MALFORMED_RESPONSE, f"Invalid token response fields: {fields}"
        )
