from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from stytch_portal import messages
from stytch_portal.config import StytchSettings
from stytch_portal.errors import (
    ConfigurationError,
    InputValidationError,
    NotInitializedError,
    PortalError,
)
from stytch_portal.identity import AuthIdentity, classify_identity, is_authenticated_response
from stytch_portal.presenter import PageView
from stytch_portal.validation import require_credentials, require_email, require_new_password
from stytch_portal.vendor import IdentityProvider, VendorError

logger = logging.getLogger(__name__)

SESSION_COOKIE: Final[str] = "stytch_session"
RESET_COOKIE: Final[str] = "stytch_reset_token"
FLASH_COOKIE: Final[str] = "portal_flash"

# Session lookups failing with these are an ordinary "not signed in".
SESSION_MISSING_ERRORS: Final[frozenset[str]] = frozenset(
    {"session_not_found", "session_expired", "unauthorized_credentials", "invalid_session_token"}
)


@dataclass
class AuthContext:
    """Per-browser state: the vendor handle plus the session and reset tokens."""

    provider: IdentityProvider | None
    session_token: str | None = None
    reset_token: str | None = None
    _loaded: tuple[str | None, str | None] = field(default=(None, None), repr=False)

    @classmethod
    def from_cookies(
        cls, provider: IdentityProvider | None, cookies: Mapping[str, str]
    ) -> AuthContext:
        session_token = cookies.get(SESSION_COOKIE) or None
        reset_token = cookies.get(RESET_COOKIE) or None
        return cls(
            provider=provider,
            session_token=session_token,
            reset_token=reset_token,
            _loaded=(session_token, reset_token),
        )

    @property
    def session_changed(self) -> bool:
        return self.session_token != self._loaded[0]

    @property
    def reset_changed(self) -> bool:
        return self.reset_token != self._loaded[1]


def _session_payload(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Normalize a session lookup to the ``member``/``organization`` shape."""

    if not data:
        return None
    if data.get("member"):
        return data
    session = data.get("member_session") or data
    member_id = session.get("member_id") if isinstance(session, dict) else None
    if not member_id:
        return None
    return {
        "member": {"member_id": member_id},
        "organization": data.get("organization")
        or {"organization_id": session.get("organization_id")},
    }


class AuthClient:
    """Runs one user action against the vendor and presents the outcome on ``view``."""

    def __init__(
        self,
        settings: StytchSettings,
        context: AuthContext,
        view: PageView,
        *,
        redirect_url: str,
    ) -> None:
        self.settings = settings
        self.context = context
        self.view = view
        self.redirect_url = redirect_url

    def _provider(self) -> IdentityProvider:
        if self.context.provider is None:
            logger.error("Stytch client not initialized")
            raise NotInitializedError()
        return self.context.provider

    def _vendor_call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except VendorError:
            raise
        except Exception as exc:
            logger.warning("Stytch call %s raised unexpectedly", fn.__name__, exc_info=True)
            raise VendorError(str(exc) or type(exc).__name__) from exc

    def _fail(self, exc: PortalError) -> None:
        self.view.show_error(exc.message, status_code=exc.status_code)

    def _sign_in(self, response: dict[str, Any]) -> bool:
        if not is_authenticated_response(response):
            return False
        token = response.get("session_token")
        if token:
            self.context.session_token = str(token)
        self.view.show_authenticated(classify_identity(response))
        return True

    def start_oauth(self, provider_name: str) -> str | None:
        """Return the vendor URL that begins the OAuth flow, or ``None`` on failure."""

        try:
            if provider_name not in self.settings.oauth_providers:
                raise InputValidationError(f"OAuth provider '{provider_name}' is not enabled.")
            provider = self._provider()
            if not self.settings.public_token:
                raise ConfigurationError(messages.CONFIG_MISSING)
            try:
                url = self._vendor_call(
                    provider.oauth_start_url,
                    provider_name,
                    organization_id=self.settings.organization_id,
                    organization_slug=self.settings.organization_slug,
                    login_redirect_url=self.redirect_url,
                    signup_redirect_url=self.redirect_url,
                    custom_scopes=self.settings.custom_scopes,
                )
            except VendorError as exc:
                logger.error("OAuth start failed: %s", exc.error_type or exc.message)
                raise messages.describe_vendor_error(
                    exc, messages.OAUTH_START_ERRORS, messages.OAUTH_START_FALLBACK
                ) from exc
        except PortalError as exc:
            self._fail(exc)
            return None

        logger.info("Starting %s OAuth flow", provider_name)
        return url

    def send_magic_link(self, raw_email: str | None) -> bool:
        try:
            email = require_email(raw_email)
            provider = self._provider()
            try:
                self._vendor_call(
                    provider.send_magic_link,
                    organization_id=self.settings.organization_id,
                    email_address=email,
                    login_redirect_url=self.redirect_url,
                    signup_redirect_url=self.redirect_url,
                )
            except VendorError as exc:
                logger.error("Magic link send failed: %s", exc.error_type or exc.message)
                raise messages.describe_vendor_error(
                    exc, messages.MAGIC_LINK_ERRORS, messages.MAGIC_LINK_FALLBACK
                ) from exc
        except PortalError as exc:
            self._fail(exc)
            return False

        logger.info("Magic link sent")
        self.view.show_magic_link_sent()
        return True

    def login_with_password(self, raw_email: str | None, password: str | None) -> bool:
        try:
            email, password = require_credentials(raw_email, password)
            provider = self._provider()
            try:
                response = self._vendor_call(
                    provider.authenticate_password,
                    organization_id=self.settings.organization_id,
                    email_address=email,
                    password=password,
                    session_duration_minutes=self.settings.session_duration_minutes,
                )
            except VendorError as exc:
                logger.error("Password authentication failed: %s", exc.error_type or exc.message)
                raise messages.describe_vendor_error(
                    exc, messages.PASSWORD_LOGIN_ERRORS, messages.PASSWORD_LOGIN_FALLBACK
                ) from exc
        except PortalError as exc:
            self._fail(exc)
            return False

        return self._sign_in(response)

    def request_password_reset(self, raw_email: str | None) -> bool:
        self.view.show_password_reset_form()
        try:
            email = require_email(raw_email)
            provider = self._provider()
            try:
                self._vendor_call(
                    provider.start_password_reset,
                    organization_id=self.settings.organization_id,
                    email_address=email,
                    login_redirect_url=self.redirect_url,
                    reset_password_redirect_url=self.redirect_url,
                    reset_password_expiration_minutes=(
                        self.settings.reset_password_expiration_minutes
                    ),
                )
            except VendorError as exc:
                logger.error("Password reset request failed: %s", exc.error_type or exc.message)
                raise messages.describe_vendor_error(
                    exc, messages.RESET_START_ERRORS, messages.RESET_START_FALLBACK
                ) from exc
        except PortalError as exc:
            self._fail(exc)
            return False

        logger.info("Password reset email sent")
        self.view.show_reset_email_sent()
        return True

    def accept_reset_token(self, token: str) -> None:
        self.context.reset_token = token
        self.view.show_new_password_form()

    def complete_password_reset(
        self, new_password: str | None, confirm_password: str | None
    ) -> bool:
        self.view.show_new_password_form()
        try:
            password = require_new_password(new_password, confirm_password)
            if not self.context.reset_token:
                raise InputValidationError(messages.RESET_TOKEN_MISSING)
            provider = self._provider()
            try:
                response = self._vendor_call(
                    provider.complete_password_reset,
                    token=self.context.reset_token,
                    password=password,
                    session_duration_minutes=self.settings.session_duration_minutes,
                )
            except VendorError as exc:
                logger.error("Password reset failed: %s", exc.error_type or exc.message)
                raise messages.describe_vendor_error(
                    exc, messages.RESET_COMPLETE_ERRORS, messages.RESET_COMPLETE_FALLBACK
                ) from exc
        except PortalError as exc:
            self._fail(exc)
            return False

        logger.info("Password reset completed")
        self.context.reset_token = None
        if self._sign_in(response):
            return True
        self.view.show_password_login()
        self.view.show_unauthenticated()
        return True

    def _authenticate_token(self, label: str, call_name: str, token: str) -> bool:
        try:
            provider = self._provider()
            try:
                response = self._vendor_call(
                    getattr(provider, call_name),
                    token=token,
                    session_duration_minutes=self.settings.session_duration_minutes,
                )
            except VendorError as exc:
                logger.error("%s authentication failed: %s", label, exc.error_type or exc.message)
                raise messages.describe_vendor_error(
                    exc,
                    messages.CALLBACK_ERRORS,
                    messages.CALLBACK_FALLBACK,
                    echo_message=False,
                ) from exc
        except PortalError as exc:
            self._fail(exc)
            return False

        return self._sign_in(response)

    def authenticate_magic_link(self, token: str) -> bool:
        return self._authenticate_token("Magic link", "authenticate_magic_link", token)

    def authenticate_oauth(self, token: str) -> bool:
        return self._authenticate_token("OAuth", "authenticate_oauth", token)

    def probe_session(self) -> AuthIdentity | None:
        """Render the state of any existing session.

        Every failure ends up as "unauthenticated"; only failures other than
        an ordinary missing session are logged.
        """

        provider = self.context.provider
        token = self.context.session_token
        data: dict[str, Any] | None = None

        if provider is not None and token:
            try:
                data = provider.get_session(session_token=token)
            except VendorError as exc:
                if exc.error_type not in SESSION_MISSING_ERRORS:
                    logger.warning("Session lookup failed: %s", exc.error_type or exc.message)
            except Exception:
                logger.warning("Session lookup raised unexpectedly", exc_info=True)

        payload = _session_payload(data)
        if payload is None:
            if token:
                self.context.session_token = None
            self.view.show_unauthenticated()
            return None

        identity = classify_identity(payload)
        self.view.show_authenticated(identity)
        return identity

    def logout(self) -> bool:
        provider = self.context.provider
        token = self.context.session_token

        if provider is not None and token:
            try:
                self._vendor_call(provider.revoke_session, session_token=token)
            except VendorError as exc:
                logger.error("Logout failed: %s", exc.error_type or exc.message)
                self.probe_session()
                self.view.show_error(messages.LOGOUT_FAILED, status_code=502)
                return False

        self.context.session_token = None
        self.view.show_unauthenticated()
        self.view.clear_user_info()
        logger.info("Logout successful")
        return True
