from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from starlette.responses import PlainTextResponse

from stytch_portal import __version__, messages
from stytch_portal.config import PortalConfig, load_portal_config, log_config_summary
from stytch_portal.errors import ConfigurationError, ProviderUnavailableError
from stytch_portal.static_files import StaticContentServer, injected_globals
from stytch_portal.static_files import router as static_router
from stytch_portal.ui.router import STATIC_DIR as UI_STATIC_DIR
from stytch_portal.ui.router import router as ui_router
from stytch_portal.vendor import (
    SDK_LOAD_TIMEOUT_SECONDS,
    ProviderFactory,
    build_stytch_provider,
    connect_provider,
)

logger = logging.getLogger(__name__)


def _install_common(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error("Unhandled error for %s", request.url.path, exc_info=exc)
        return PlainTextResponse("Internal server error", status_code=500)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}


def create_app(
    config: PortalConfig | None = None,
    *,
    provider_factory: ProviderFactory | None = None,
    sdk_timeout: float = SDK_LOAD_TIMEOUT_SECONDS,
) -> FastAPI:
    """Login page plus the static tree it loads its assets from."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        cfg = config or load_portal_config()
        log_config_summary(cfg)
        logger.info("Stytch portal starting up")

        web_root = cfg.server.web_root or UI_STATIC_DIR
        app.state.portal_config = cfg
        app.state.static_server = StaticContentServer(web_root, injected_globals(cfg.stytch))
        app.state.provider = None
        app.state.startup_error = None

        factory = provider_factory
        if factory is None and cfg.stytch.has_sdk_credentials:
            factory = build_stytch_provider

        if not cfg.stytch.public_token:
            app.state.startup_error = ConfigurationError(messages.CONFIG_MISSING)
        elif factory is not None:
            try:
                app.state.provider = await connect_provider(
                    cfg.stytch, factory, timeout=sdk_timeout
                )
            except Exception:
                logger.exception("Failed to initialize Stytch client")
                app.state.startup_error = ProviderUnavailableError(messages.SDK_LOAD_FAILED)
            else:
                logger.info("Stytch client initialized")

        yield

        logger.info("Stytch portal shutting down")

    app = FastAPI(title="Stytch Portal", version=__version__, lifespan=_lifespan)
    _install_common(app)
    app.include_router(ui_router)
    # Catch-all; must stay last.
    app.include_router(static_router)
    return app


def create_static_app(root: Path, config: PortalConfig | None = None) -> FastAPI:
    """Development file server only: ``root`` with ``/config.js`` injection."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        cfg = config or load_portal_config()
        log_config_summary(cfg)
        app.state.portal_config = cfg
        app.state.static_server = StaticContentServer(root, injected_globals(cfg.stytch))
        logger.info("Serving %s", app.state.static_server.root)
        yield

    app = FastAPI(title="Stytch Portal (static)", version=__version__, lifespan=_lifespan)
    _install_common(app)
    app.include_router(static_router)
    return app
