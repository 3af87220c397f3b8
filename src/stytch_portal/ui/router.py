from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from stytch_portal.auth import (
    FLASH_COOKIE,
    RESET_COOKIE,
    SESSION_COOKIE,
    AuthClient,
    AuthContext,
)
from stytch_portal.callback import dispatch_callback
from stytch_portal.config import PortalConfig
from stytch_portal.errors import PortalError
from stytch_portal.presenter import PageView

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["ui"])


def _config(request: Request) -> PortalConfig:
    return request.app.state.portal_config


def _startup_error(request: Request) -> PortalError | None:
    return getattr(request.app.state, "startup_error", None)


def _redirect_url(request: Request) -> str:
    configured = _config(request).stytch.redirect_url
    return configured or str(request.base_url).rstrip("/")


def _client(request: Request, view: PageView) -> AuthClient:
    context = AuthContext.from_cookies(
        getattr(request.app.state, "provider", None), request.cookies
    )
    return AuthClient(
        _config(request).stytch, context, view, redirect_url=_redirect_url(request)
    )


def _persist(response: Response, request: Request, context: AuthContext) -> Response:
    config = _config(request)
    secure = config.server.secure_cookies

    if context.session_changed:
        if context.session_token:
            response.set_cookie(
                SESSION_COOKIE,
                context.session_token,
                httponly=True,
                samesite="lax",
                secure=secure,
                max_age=config.stytch.session_duration_minutes * 60,
            )
        else:
            response.delete_cookie(SESSION_COOKIE)

    if context.reset_changed:
        if context.reset_token:
            response.set_cookie(
                RESET_COOKIE,
                context.reset_token,
                httponly=True,
                samesite="lax",
                secure=secure,
                max_age=config.stytch.reset_password_expiration_minutes * 60,
            )
        else:
            response.delete_cookie(RESET_COOKIE)

    return response


def _render(
    request: Request,
    client: AuthClient,
    *,
    form_values: dict[str, str] | None = None,
) -> Response:
    view = client.view
    ctx: dict[str, Any] = {
        "title": "Sign in • Stytch Portal",
        "settings": _config(request).stytch,
        "form_values": form_values or {},
        **view.template_context(),
    }
    response = templates.TemplateResponse(
        request, "index.html", ctx, status_code=view.status_code
    )
    return _persist(response, request, client.context)


def _home(request: Request, client: AuthClient) -> Response:
    response = RedirectResponse(url="/", status_code=303)
    return _persist(response, request, client.context)


def _blocked(request: Request, view: PageView) -> bool:
    """Startup failures block every action; show them once and stop."""

    error = _startup_error(request)
    if error is None:
        return False
    view.show_unauthenticated()
    view.show_error(error.message, status_code=error.status_code)
    return True


@router.get("/", response_class=HTMLResponse)
async def page(request: Request) -> Response:
    view = PageView()
    view.show_loading()
    client = _client(request, view)

    if _blocked(request, view):
        return _render(request, client)

    outcome = await run_in_threadpool(dispatch_callback, client, request.query_params)
    if outcome is not None:
        # Strip the token from the address bar; carry any error across the redirect.
        response = RedirectResponse(url=request.url.path, status_code=303)
        if outcome.error:
            response.set_cookie(FLASH_COOKIE, quote(outcome.error), httponly=True, samesite="lax")
        return _persist(response, request, client.context)

    if client.context.reset_token:
        view.show_new_password_form()
    else:
        await run_in_threadpool(client.probe_session)
    view.hide_loading()

    flash = request.cookies.get(FLASH_COOKIE)
    if flash:
        view.show_error(unquote(flash))

    response = _render(request, client)
    if flash:
        response.delete_cookie(FLASH_COOKIE)
    return response


@router.get("/password/forgot", response_class=HTMLResponse)
async def password_forgot(request: Request) -> Response:
    view = PageView()
    client = _client(request, view)
    if not _blocked(request, view):
        view.show_unauthenticated()
        view.show_password_reset_form()
    return _render(request, client)


@router.get("/password/cancel")
async def password_cancel(request: Request) -> RedirectResponse:
    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(RESET_COOKIE)
    return response


@router.post("/auth/oauth/{provider}/start", response_model=None)
async def oauth_start(request: Request, provider: str) -> Response:
    view = PageView()
    view.show_unauthenticated()
    client = _client(request, view)
    if _blocked(request, view):
        return _render(request, client)

    url = await run_in_threadpool(client.start_oauth, provider)
    if url is None:
        return _render(request, client)
    return RedirectResponse(url=url, status_code=303)


@router.post("/auth/magic-link", response_model=None)
async def magic_link(request: Request, email: str = Form(default="")) -> Response:
    view = PageView()
    view.show_unauthenticated()
    client = _client(request, view)
    if _blocked(request, view):
        return _render(request, client)

    sent = await run_in_threadpool(client.send_magic_link, email)
    return _render(request, client, form_values={} if sent else {"magic_email": email})


@router.post("/auth/password", response_model=None)
async def password_login(
    request: Request,
    email: str = Form(default=""),
    password: str = Form(default=""),
) -> Response:
    view = PageView()
    view.show_unauthenticated()
    client = _client(request, view)
    if _blocked(request, view):
        return _render(request, client)

    ok = await run_in_threadpool(client.login_with_password, email, password)
    if ok:
        return _home(request, client)
    return _render(request, client, form_values={"password_email": email})


@router.post("/auth/password/reset-start", response_model=None)
async def password_reset_start(request: Request, email: str = Form(default="")) -> Response:
    view = PageView()
    view.show_unauthenticated()
    client = _client(request, view)
    if _blocked(request, view):
        return _render(request, client)

    sent = await run_in_threadpool(client.request_password_reset, email)
    return _render(request, client, form_values={} if sent else {"reset_email": email})


@router.post("/auth/password/reset", response_model=None)
async def password_reset(
    request: Request,
    new_password: str = Form(default=""),
    confirm_password: str = Form(default=""),
) -> Response:
    view = PageView()
    view.show_unauthenticated()
    client = _client(request, view)
    if _blocked(request, view):
        return _render(request, client)

    ok = await run_in_threadpool(client.complete_password_reset, new_password, confirm_password)
    if ok:
        return _home(request, client)
    return _render(request, client)


@router.post("/auth/logout", response_model=None)
async def logout(request: Request) -> Response:
    view = PageView()
    client = _client(request, view)

    ok = await run_in_threadpool(client.logout)
    if ok:
        return _home(request, client)
    return _render(request, client)
