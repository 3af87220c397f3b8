from __future__ import annotations

import re
from typing import Final

from stytch_portal.errors import InputValidationError

EMAIL_RE: Final[re.Pattern[str]] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH: Final[int] = 8


def is_valid_email(value: str) -> bool:
    return EMAIL_RE.match(value) is not None


def require_email(raw: str | None) -> str:
    email = (raw or "").strip()
    if not email:
        raise InputValidationError("Please enter your email address.")
    if not is_valid_email(email):
        raise InputValidationError("Please enter a valid email address.")
    return email


def require_credentials(raw_email: str | None, password: str | None) -> tuple[str, str]:
    email = (raw_email or "").strip()
    if not email or not password:
        raise InputValidationError("Please enter both email and password.")
    if not is_valid_email(email):
        raise InputValidationError("Please enter a valid email address.")
    return email, password


def require_new_password(new_password: str | None, confirm_password: str | None) -> str:
    if not new_password or not confirm_password:
        raise InputValidationError("Please enter and confirm your new password.")
    if new_password != confirm_password:
        raise InputValidationError("Passwords do not match. Please try again.")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise InputValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    return new_password
