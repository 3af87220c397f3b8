from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from stytch_portal.auth import AuthClient

logger = logging.getLogger(__name__)


class TokenType(StrEnum):
    PASSWORD_RESET = "multi_tenant_passwords"
    MAGIC_LINK = "multi_tenant_magic_links"
    OAUTH = "oauth"


@dataclass(frozen=True)
class CallbackOutcome:
    token_type: TokenType
    authenticated: bool = False
    error: str | None = None


def dispatch_callback(client: AuthClient, params: Mapping[str, str]) -> CallbackOutcome | None:
    """Handle a redirect back from Stytch carrying ``token`` and ``stytch_token_type``.

    Returns ``None`` when the request is not a recognized callback, in which
    case the caller falls through to the session probe.
    """

    token = (params.get("token") or "").strip()
    raw_type = (params.get("stytch_token_type") or "").strip()
    if not token:
        return None

    try:
        token_type = TokenType(raw_type)
    except ValueError:
        logger.info("Ignoring callback with unrecognized token type %r", raw_type)
        return None

    logger.info("Handling %s callback", token_type.value)

    if token_type is TokenType.PASSWORD_RESET:
        client.accept_reset_token(token)
        return CallbackOutcome(token_type)

    if token_type is TokenType.MAGIC_LINK:
        authenticated = client.authenticate_magic_link(token)
    else:
        authenticated = client.authenticate_oauth(token)

    error = client.view.error_message if client.view.error else None
    return CallbackOutcome(token_type, authenticated=authenticated, error=error)
