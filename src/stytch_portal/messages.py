"""User-facing messages, keyed by the vendor's ``error_type`` per operation."""

from __future__ import annotations

from typing import Final

from stytch_portal.errors import AuthenticationError
from stytch_portal.vendor import VendorError

NOT_REGISTERED: Final[str] = (
    "This email is not registered with the organization. "
    "Please contact your administrator to get invited."
)
NOT_A_MEMBER: Final[str] = (
    "You are not a member of this organization. Please contact your administrator for access."
)
ORG_NOT_FOUND: Final[str] = "Organization not found. Please check your configuration."

CONFIG_MISSING: Final[str] = "Stytch configuration missing. Please set your Stytch Public Token."
SDK_LOAD_FAILED: Final[str] = (
    "Failed to load Stytch B2B SDK. Please check your internet connection and refresh."
)

OAUTH_START_ERRORS: Final[dict[str, str]] = {
    "organization_not_found": ORG_NOT_FOUND,
}
OAUTH_START_FALLBACK: Final[str] = "Failed to start OAuth flow. Please try again."

MAGIC_LINK_ERRORS: Final[dict[str, str]] = {
    "email_jit_provisioning_not_allowed": NOT_REGISTERED,
    "organization_not_found": ORG_NOT_FOUND,
}
MAGIC_LINK_FALLBACK: Final[str] = "Failed to send magic link. Please try again."

PASSWORD_LOGIN_ERRORS: Final[dict[str, str]] = {
    "invalid_credentials": "Invalid email or password. Please try again.",
    "email_jit_provisioning_not_allowed": NOT_REGISTERED,
    "organization_not_found": ORG_NOT_FOUND,
}
PASSWORD_LOGIN_FALLBACK: Final[str] = "Failed to authenticate. Please try again."

RESET_START_ERRORS: Final[dict[str, str]] = {
    "member_not_found": "This email is not registered with the organization.",
}
RESET_START_FALLBACK: Final[str] = "Failed to send password reset email. Please try again."

RESET_COMPLETE_ERRORS: Final[dict[str, str]] = {
    "reset_password_token_not_found": (
        "Invalid or expired reset token. Please request a new password reset."
    ),
    "password_too_weak": "Password is too weak. Please choose a stronger password.",
}
RESET_COMPLETE_FALLBACK: Final[str] = "Failed to reset password. Please try again."
RESET_TOKEN_MISSING: Final[str] = (
    "Password reset token not found. Please request a new reset email."
)

CALLBACK_ERRORS: Final[dict[str, str]] = {
    "email_jit_provisioning_not_allowed": NOT_REGISTERED,
    "member_not_found": NOT_A_MEMBER,
}
CALLBACK_FALLBACK: Final[str] = "Failed to authenticate. Please try logging in again."

LOGOUT_FAILED: Final[str] = "Failed to logout. Please try again."


def describe_vendor_error(
    exc: VendorError,
    table: dict[str, str],
    fallback: str,
    *,
    echo_message: bool = True,
) -> AuthenticationError:
    """Translate a vendor error into the message shown in the error banner.

    Known ``error_type`` values map through ``table``. Anything else shows the
    vendor's own message (when ``echo_message``) or ``fallback``.
    """

    if exc.error_type and exc.error_type in table:
        message = table[exc.error_type]
    elif echo_message and exc.message:
        message = f"Error: {exc.message}"
    else:
        message = fallback

    return AuthenticationError(message, error_type=exc.error_type)
