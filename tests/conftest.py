from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from stytch_portal.app import create_app
from stytch_portal.config import PortalConfig, ServerSettings, StytchSettings
from stytch_portal.vendor import VendorError

MEMBER_RESPONSE: dict[str, Any] = {
    "member_id": "member-test-0123456789",
    "session_token": "session-token-abc",
    "member": {
        "member_id": "member-test-0123456789",
        "email_address": "ada@example.com",
        "name": "Ada Lovelace",
    },
    "organization": {
        "organization_id": "organization-test-1",
        "organization_name": "Analytical Engines",
        "organization_slug": "engines",
    },
}


class FakeProvider:
    """Records every vendor call and replays scripted results."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.results: dict[str, Any] = {}
        self.sessions: dict[str, dict[str, Any]] = {}
        self.revoked: list[str] = []

    def script(self, name: str, result: Any) -> None:
        self.results[name] = result

    def _run(self, name: str, kwargs: dict[str, Any], default: Any) -> Any:
        self.calls.append((name, kwargs))
        result = self.results.get(name, default)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, dict) and result.get("session_token"):
            self.sessions[result["session_token"]] = result
        return result

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def oauth_start_url(self, provider: str, **kwargs: Any) -> str:
        kwargs["provider"] = provider
        url = f"https://test.stytch.com/v1/b2b/public/oauth/{provider}/start"
        return self._run("oauth_start_url", kwargs, url)

    def send_magic_link(self, **kwargs: Any) -> dict[str, Any]:
        return self._run("send_magic_link", kwargs, {"status_code": 200})

    def authenticate_magic_link(self, **kwargs: Any) -> dict[str, Any]:
        return self._run("authenticate_magic_link", kwargs, dict(MEMBER_RESPONSE))

    def authenticate_oauth(self, **kwargs: Any) -> dict[str, Any]:
        return self._run("authenticate_oauth", kwargs, dict(MEMBER_RESPONSE))

    def authenticate_password(self, **kwargs: Any) -> dict[str, Any]:
        return self._run("authenticate_password", kwargs, dict(MEMBER_RESPONSE))

    def start_password_reset(self, **kwargs: Any) -> dict[str, Any]:
        return self._run("start_password_reset", kwargs, {"status_code": 200})

    def complete_password_reset(self, **kwargs: Any) -> dict[str, Any]:
        return self._run("complete_password_reset", kwargs, dict(MEMBER_RESPONSE))

    def get_session(self, *, session_token: str) -> dict[str, Any] | None:
        self.calls.append(("get_session", {"session_token": session_token}))
        if "get_session" in self.results:
            result = self.results["get_session"]
            if isinstance(result, BaseException):
                raise result
            return result
        if session_token not in self.sessions:
            raise VendorError("Session not found", error_type="session_not_found", status_code=404)
        return self.sessions[session_token]

    def revoke_session(self, *, session_token: str) -> None:
        self._run("revoke_session", {"session_token": session_token}, None)
        self.sessions.pop(session_token, None)
        self.revoked.append(session_token)


def make_config(**stytch_overrides: Any) -> PortalConfig:
    stytch = {
        "public_token": "public-token-test-0123456789abcdef",
        "organization_id": "organization-test-1",
        "organization_slug": "engines",
        "redirect_url": "http://localhost:3000",
        "project_id": "project-test-1",
        "secret": "secret-test-1",
    }
    stytch.update(stytch_overrides)
    return PortalConfig(stytch=StytchSettings(**stytch), server=ServerSettings())


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def settings() -> StytchSettings:
    return make_config().stytch


@pytest.fixture
def client(provider: FakeProvider) -> Iterator[TestClient]:
    app = create_app(make_config(), provider_factory=lambda _settings: provider)
    with TestClient(app) as c:
        yield c
