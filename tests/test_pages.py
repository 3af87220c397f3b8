from __future__ import annotations

from fastapi.testclient import TestClient

from stytch_portal.app import create_app
from stytch_portal.vendor import VendorError

from conftest import FakeProvider, make_config


def _panel(html: str, name: str) -> bool:
    if f'id="{name}" data-visible="true"' in html:
        return True
    assert f'id="{name}" data-visible="false"' in html
    return False


def test_get_root_without_session_is_unauthenticated(
    client: TestClient, provider: FakeProvider
) -> None:
    r = client.get("/")

    assert r.status_code == 200
    assert _panel(r.text, "unauthenticated")
    assert not _panel(r.text, "loading")
    assert not _panel(r.text, "error")
    assert not _panel(r.text, "authenticated")
    assert r.text.count('id="google-login-btn"') == 1
    assert provider.calls == []


def test_config_js_served_from_bundled_static(client: TestClient) -> None:
    r = client.get("/config.js")
    assert r.status_code == 200
    assert "window.STYTCH_PUBLIC_TOKEN = 'public-token-test-0123456789abcdef';" in r.text
    assert "const STYTCH_CONFIG" in r.text


def test_oauth_callback_signs_in_and_strips_query(
    client: TestClient, provider: FakeProvider
) -> None:
    r = client.get("/?token=oauth-token&stytch_token_type=oauth", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/"
    assert "stytch_session" in r.headers["set-cookie"]

    page = client.get(r.headers["location"])
    assert page.status_code == 200
    assert _panel(page.text, "authenticated")
    assert "ada@example.com" in page.text
    assert "Analytical Engines" in page.text
    assert provider.call_names() == ["authenticate_oauth", "get_session"]


def test_callback_error_is_shown_once_after_redirect(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.script(
        "authenticate_magic_link",
        VendorError("jit off", error_type="email_jit_provisioning_not_allowed"),
    )

    page = client.get("/?token=t&stytch_token_type=multi_tenant_magic_links")

    assert page.status_code == 200
    assert str(page.url).endswith("/")
    assert _panel(page.text, "error")
    assert _panel(page.text, "unauthenticated")
    assert "This email is not registered with the organization." in page.text

    again = client.get("/")
    assert not _panel(again.text, "error")


def test_password_reset_flow(client: TestClient, provider: FakeProvider) -> None:
    page = client.get("/?token=reset-token-1&stytch_token_type=multi_tenant_passwords")
    assert 'id="new-password-form"' in page.text
    assert 'id="magic-link-form"' not in page.text

    bad = client.post(
        "/auth/password/reset",
        data={"new_password": "short", "confirm_password": "short"},
    )
    assert bad.status_code == 400
    assert "Password must be at least 8 characters long." in bad.text
    assert provider.calls == []

    done = client.post(
        "/auth/password/reset",
        data={"new_password": "long-enough", "confirm_password": "long-enough"},
    )
    assert done.status_code == 200
    assert _panel(done.text, "authenticated")
    assert provider.calls[0] == (
        "complete_password_reset",
        {"token": "reset-token-1", "password": "long-enough", "session_duration_minutes": 60},
    )
    assert "stytch_reset_token" not in client.cookies


def test_password_login_then_logout(client: TestClient, provider: FakeProvider) -> None:
    bad = client.post("/auth/password", data={"email": "a@b", "password": "x"})
    assert bad.status_code == 400
    assert "Please enter a valid email address." in bad.text
    assert 'value="a@b"' in bad.text

    ok = client.post("/auth/password", data={"email": "ada@example.com", "password": "pw"})
    assert ok.status_code == 200
    assert _panel(ok.text, "authenticated")

    out = client.post("/auth/logout")
    assert out.status_code == 200
    assert _panel(out.text, "unauthenticated")
    assert provider.revoked == ["session-token-abc"]
    assert "stytch_session" not in client.cookies


def test_magic_link_form_shows_banner(client: TestClient) -> None:
    r = client.post("/auth/magic-link", data={"email": "ada@example.com"})
    assert r.status_code == 200
    assert 'id="magic-link-success"' in r.text
    assert 'data-autohide-ms="10000"' in r.text


def test_forgot_password_and_reset_start(client: TestClient, provider: FakeProvider) -> None:
    form = client.get("/password/forgot")
    assert 'id="password-reset-form"' in form.text

    r = client.post("/auth/password/reset-start", data={"email": "ada@example.com"})
    assert r.status_code == 200
    assert 'id="password-reset-success"' in r.text
    assert 'data-autohide-ms="5000"' in r.text
    assert provider.call_names() == ["start_password_reset"]


def test_oauth_start_redirects_to_vendor(client: TestClient) -> None:
    r = client.post("/auth/oauth/google/start", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("https://test.stytch.com/")


def test_missing_public_token_blocks_actions(provider: FakeProvider) -> None:
    app = create_app(make_config(public_token=""), provider_factory=lambda _s: provider)

    with TestClient(app) as client:
        page = client.get("/?token=t&stytch_token_type=oauth")
        assert page.status_code == 500
        assert _panel(page.text, "error")
        assert _panel(page.text, "unauthenticated")
        assert "Stytch configuration missing." in page.text

        r = client.post("/auth/magic-link", data={"email": "ada@example.com"})
        assert "Stytch configuration missing." in r.text

    assert provider.calls == []


def test_sdk_load_failure_is_reported() -> None:
    def _broken(_settings):
        raise RuntimeError("cannot reach stytch")

    app = create_app(make_config(), provider_factory=_broken)

    with TestClient(app) as client:
        page = client.get("/")
        assert page.status_code == 503
        assert "Failed to load Stytch B2B SDK." in page.text


def test_without_sdk_credentials_actions_report_not_initialized() -> None:
    app = create_app(make_config(project_id="", secret=""))

    with TestClient(app) as client:
        page = client.get("/")
        assert _panel(page.text, "unauthenticated")
        assert not _panel(page.text, "error")

        r = client.post("/auth/password", data={"email": "ada@example.com", "password": "pw"})
        assert r.status_code == 503
        assert "Authentication service not initialized." in r.text


def test_transport_failure_renders_error_banner(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.script("authenticate_password", ConnectionError("connection refused"))

    r = client.post("/auth/password", data={"email": "ada@example.com", "password": "pw"})

    assert r.status_code == 401
    assert _panel(r.text, "error")
    assert _panel(r.text, "unauthenticated")
    assert "Error: connection refused" in r.text
    assert "stytch_session" not in client.cookies


def test_callback_transport_failure_uses_fixed_message(
    client: TestClient, provider: FakeProvider
) -> None:
    provider.script("authenticate_oauth", TimeoutError("read timed out"))

    page = client.get("/?token=t&stytch_token_type=oauth")

    assert _panel(page.text, "error")
    assert "Failed to authenticate. Please try logging in again." in page.text
    assert "read timed out" not in page.text


def test_reset_link_opened_while_signed_in(client: TestClient, provider: FakeProvider) -> None:
    client.post("/auth/password", data={"email": "ada@example.com", "password": "pw"})
    assert "stytch_session" in client.cookies

    page = client.get("/?token=reset-token-2&stytch_token_type=multi_tenant_passwords")

    assert 'id="new-password-form"' in page.text
    assert _panel(page.text, "unauthenticated")
    assert not _panel(page.text, "authenticated")

    done = client.post(
        "/auth/password/reset",
        data={"new_password": "long-enough", "confirm_password": "long-enough"},
    )
    assert _panel(done.text, "authenticated")
    assert provider.calls[-2][1]["token"] == "reset-token-2"
    assert "stytch_reset_token" not in client.cookies


def test_redirect_url_defaults_to_origin_without_trailing_slash(provider: FakeProvider) -> None:
    app = create_app(make_config(redirect_url=None), provider_factory=lambda _s: provider)

    with TestClient(app) as client:
        client.post("/auth/magic-link", data={"email": "ada@example.com"})

    name, kwargs = provider.calls[0]
    assert name == "send_magic_link"
    assert kwargs["login_redirect_url"] == "http://testserver"
    assert kwargs["signup_redirect_url"] == "http://testserver"


def test_reset_cookie_lives_as_long_as_reset_token(provider: FakeProvider) -> None:
    app = create_app(
        make_config(reset_password_expiration_minutes=30),
        provider_factory=lambda _s: provider,
    )

    with TestClient(app) as client:
        r = client.get(
            "/?token=reset-token-1&stytch_token_type=multi_tenant_passwords",
            follow_redirects=False,
        )

    assert r.status_code == 303
    assert "stytch_reset_token=reset-token-1" in r.headers["set-cookie"]
    assert "Max-Age=1800" in r.headers["set-cookie"]
