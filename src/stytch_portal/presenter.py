from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Final

from stytch_portal.identity import AuthIdentity, display_lines

MAGIC_LINK_BANNER_MS: Final[int] = 10_000
RESET_BANNER_MS: Final[int] = 5_000

AUTHENTICATED_FALLBACK_LINE: Final[str] = "Authenticated successfully"


class LoginForm(StrEnum):
    PASSWORD_LOGIN = "password_login"
    RESET_REQUEST = "reset_request"
    NEW_PASSWORD = "new_password"


@dataclass
class PageView:
    """Visibility state for the login page.

    ``loading``, ``authenticated`` and ``unauthenticated`` are the baseline
    panels and at most one of them is shown. ``error`` is an overlay that every
    baseline transition hides again.
    """

    loading: bool = False
    authenticated: bool = False
    unauthenticated: bool = False
    error: bool = False
    error_message: str = ""
    status_code: int = 200

    form: LoginForm = LoginForm.PASSWORD_LOGIN
    magic_link_sent: bool = False
    reset_email_sent: bool = False
    user_lines: list[tuple[str, str]] = field(default_factory=list)

    def show_loading(self) -> None:
        self.loading = True
        self.authenticated = False
        self.unauthenticated = False
        self.error = False

    def hide_loading(self) -> None:
        self.loading = False

    def show_authenticated(self, identity: AuthIdentity) -> None:
        self.loading = False
        self.authenticated = True
        self.unauthenticated = False
        self.error = False
        self.user_lines = display_lines(identity) or [("", AUTHENTICATED_FALLBACK_LINE)]

    def show_unauthenticated(self) -> None:
        self.loading = False
        self.authenticated = False
        self.unauthenticated = True
        self.error = False

    def show_error(self, message: str, *, status_code: int | None = None) -> None:
        self.error = True
        self.error_message = message
        if status_code is not None:
            self.status_code = status_code

    def clear_user_info(self) -> None:
        self.user_lines = []

    def show_password_login(self) -> None:
        self.form = LoginForm.PASSWORD_LOGIN
        self.reset_email_sent = False

    def show_password_reset_form(self) -> None:
        self.form = LoginForm.RESET_REQUEST
        self.reset_email_sent = False
        self.error = False

    def show_new_password_form(self) -> None:
        self.show_unauthenticated()
        self.form = LoginForm.NEW_PASSWORD

    def show_magic_link_sent(self) -> None:
        self.magic_link_sent = True
        self.error = False

    def show_reset_email_sent(self) -> None:
        # The banner replaces the reset form; the page script flips back to
        # the login form once the banner hides.
        self.reset_email_sent = True
        self.form = LoginForm.PASSWORD_LOGIN
        self.error = False

    @property
    def show_social_login(self) -> bool:
        """OAuth button, magic-link form and dividers."""
        return self.form is not LoginForm.NEW_PASSWORD

    def template_context(self) -> dict[str, Any]:
        return {
            "view": self,
            "forms": LoginForm,
            "magic_link_banner_ms": MAGIC_LINK_BANNER_MS,
            "reset_banner_ms": RESET_BANNER_MS,
        }
