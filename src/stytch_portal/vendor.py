"""Boundary around the Stytch B2B SDK.

Everything above this module talks to :class:`IdentityProvider` and sees
plain ``dict`` responses plus :class:`VendorError`. The production
implementation wraps ``stytch.B2BClient``; tests substitute a fake.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol
from urllib.parse import urlencode

import stytch
from stytch.core.response_base import StytchError

from stytch_portal.config import StytchSettings

logger = logging.getLogger(__name__)

SDK_LOAD_TIMEOUT_SECONDS = 10.0

_API_BASE = {
    "test": "https://test.stytch.com",
    "live": "https://api.stytch.com",
}


class VendorError(Exception):
    """A failed vendor call, normalized to its classification string."""

    def __init__(
        self, message: str, *, error_type: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code


class IdentityProvider(Protocol):
    def oauth_start_url(
        self,
        provider: str,
        *,
        organization_id: str,
        organization_slug: str,
        login_redirect_url: str,
        signup_redirect_url: str,
        custom_scopes: Sequence[str],
    ) -> str: ...

    def send_magic_link(
        self,
        *,
        organization_id: str,
        email_address: str,
        login_redirect_url: str,
        signup_redirect_url: str,
    ) -> dict[str, Any]: ...

    def authenticate_magic_link(
        self, *, token: str, session_duration_minutes: int
    ) -> dict[str, Any]: ...

    def authenticate_oauth(
        self, *, token: str, session_duration_minutes: int
    ) -> dict[str, Any]: ...

    def authenticate_password(
        self,
        *,
        organization_id: str,
        email_address: str,
        password: str,
        session_duration_minutes: int,
    ) -> dict[str, Any]: ...

    def start_password_reset(
        self,
        *,
        organization_id: str,
        email_address: str,
        login_redirect_url: str,
        reset_password_redirect_url: str,
        reset_password_expiration_minutes: int,
    ) -> dict[str, Any]: ...

    def complete_password_reset(
        self, *, token: str, password: str, session_duration_minutes: int
    ) -> dict[str, Any]: ...

    def get_session(self, *, session_token: str) -> dict[str, Any] | None: ...

    def revoke_session(self, *, session_token: str) -> None: ...


ProviderFactory = Callable[[StytchSettings], IdentityProvider]


def _as_dict(response: Any) -> dict[str, Any]:
    if isinstance(response, dict):
        return response
    # stytch response objects are pydantic models
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return response.dict()


class StytchB2BProvider:
    def __init__(self, client: stytch.B2BClient, settings: StytchSettings) -> None:
        self._client = client
        self._settings = settings

    def _call(self, fn: Callable[..., Any], **kwargs: Any) -> dict[str, Any]:
        try:
            return _as_dict(fn(**kwargs))
        except StytchError as exc:
            details = exc.details
            raise VendorError(
                details.error_message or str(exc),
                error_type=details.error_type,
                status_code=details.status_code,
            ) from exc
        except Exception as exc:
            # Transport failures from the SDK's HTTP layer carry no classification.
            raise VendorError(str(exc) or type(exc).__name__) from exc

    def oauth_start_url(
        self,
        provider: str,
        *,
        organization_id: str,
        organization_slug: str,
        login_redirect_url: str,
        signup_redirect_url: str,
        custom_scopes: Sequence[str],
    ) -> str:
        params: dict[str, str] = {"public_token": self._settings.public_token}
        if organization_id:
            params["organization_id"] = organization_id
        elif organization_slug:
            params["slug"] = organization_slug
        params["login_redirect_url"] = login_redirect_url
        params["signup_redirect_url"] = signup_redirect_url
        if custom_scopes:
            params["custom_scopes"] = " ".join(custom_scopes)

        base = _API_BASE[self._settings.environment]
        return f"{base}/v1/b2b/public/oauth/{provider}/start?{urlencode(params)}"

    def send_magic_link(
        self,
        *,
        organization_id: str,
        email_address: str,
        login_redirect_url: str,
        signup_redirect_url: str,
    ) -> dict[str, Any]:
        return self._call(
            self._client.magic_links.email.login_or_signup,
            organization_id=organization_id,
            email_address=email_address,
            login_redirect_url=login_redirect_url,
            signup_redirect_url=signup_redirect_url,
        )

    def authenticate_magic_link(
        self, *, token: str, session_duration_minutes: int
    ) -> dict[str, Any]:
        return self._call(
            self._client.magic_links.authenticate,
            magic_links_token=token,
            session_duration_minutes=session_duration_minutes,
        )

    def authenticate_oauth(self, *, token: str, session_duration_minutes: int) -> dict[str, Any]:
        return self._call(
            self._client.oauth.authenticate,
            oauth_token=token,
            session_duration_minutes=session_duration_minutes,
        )

    def authenticate_password(
        self,
        *,
        organization_id: str,
        email_address: str,
        password: str,
        session_duration_minutes: int,
    ) -> dict[str, Any]:
        return self._call(
            self._client.passwords.authenticate,
            organization_id=organization_id,
            email_address=email_address,
            password=password,
            session_duration_minutes=session_duration_minutes,
        )

    def start_password_reset(
        self,
        *,
        organization_id: str,
        email_address: str,
        login_redirect_url: str,
        reset_password_redirect_url: str,
        reset_password_expiration_minutes: int,
    ) -> dict[str, Any]:
        return self._call(
            self._client.passwords.email.reset_start,
            organization_id=organization_id,
            email_address=email_address,
            login_redirect_url=login_redirect_url,
            reset_password_redirect_url=reset_password_redirect_url,
            reset_password_expiration_minutes=reset_password_expiration_minutes,
        )

    def complete_password_reset(
        self, *, token: str, password: str, session_duration_minutes: int
    ) -> dict[str, Any]:
        return self._call(
            self._client.passwords.email.reset,
            password_reset_token=token,
            password=password,
            session_duration_minutes=session_duration_minutes,
        )

    def get_session(self, *, session_token: str) -> dict[str, Any] | None:
        data = self._call(self._client.sessions.authenticate, session_token=session_token)
        if not data.get("member_session") and not data.get("member"):
            return None
        return data

    def revoke_session(self, *, session_token: str) -> None:
        self._call(self._client.sessions.revoke, session_token=session_token)


def build_stytch_provider(settings: StytchSettings) -> IdentityProvider:
    client = stytch.B2BClient(
        project_id=settings.project_id,
        secret=settings.secret,
        environment=settings.environment,
    )
    return StytchB2BProvider(client, settings)


async def connect_provider(
    settings: StytchSettings,
    factory: ProviderFactory,
    *,
    timeout: float = SDK_LOAD_TIMEOUT_SECONDS,
) -> IdentityProvider:
    """Construct the vendor client off the event loop, bounded by ``timeout``.

    Raises ``TimeoutError`` when the deadline passes. Cancelling the awaiting
    task abandons the construction.
    """

    logger.info("Connecting to Stytch (%s environment)", settings.environment)
    return await asyncio.wait_for(asyncio.to_thread(factory, settings), timeout=timeout)
