from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000


class StytchSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    public_token: str = Field(default="")
    organization_id: str = Field(default="")
    organization_slug: str = Field(default="")
    redirect_url: str | None = Field(
        default=None,
        description="OAuth and magic-link redirect target; defaults to the page origin.",
    )

    # Server-side SDK credentials.
    project_id: str = Field(default="")
    secret: str = Field(default="")
    environment: Literal["test", "live"] = Field(default="test")

    session_duration_minutes: int = Field(default=60, ge=5)
    reset_password_expiration_minutes: int = Field(default=60, ge=5)
    oauth_providers: tuple[str, ...] = Field(default=("google",))
    custom_scopes: tuple[str, ...] = Field(default=("openid", "email", "profile"))

    @property
    def has_sdk_credentials(self) -> bool:
        return bool(self.project_id and self.secret)


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    web_root: Path | None = Field(
        default=None,
        description="Directory served by the static handler; defaults to the bundled ui/static.",
    )
    secure_cookies: bool = Field(default=False)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    log_dir: Path | None = Field(default=None)
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class PortalConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    stytch: StytchSettings = Field(default_factory=StytchSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_env_file(path: Path) -> bool:
    """Load ``path`` into ``os.environ``. File values win over the process environment."""

    if not path.is_file():
        return False
    return load_dotenv(path, override=True)


def _env_flag(raw: str | None) -> bool:
    return (raw or "").strip().lower() in {"1", "true", "yes", "on"}


def load_portal_config(environ: Mapping[str, str] | None = None) -> PortalConfig:
    """Build the config record from environment variables.

    Unset variables fall back to defaults; invalid values raise
    ``pydantic.ValidationError``.
    """

    env = os.environ if environ is None else environ

    def _get(name: str) -> str:
        return (env.get(name) or "").strip()

    stytch: dict[str, object] = {
        "public_token": _get("STYTCH_PUBLIC_TOKEN"),
        "organization_id": _get("STYTCH_ORGANIZATION_ID"),
        "organization_slug": _get("STYTCH_ORGANIZATION_SLUG"),
        "project_id": _get("STYTCH_PROJECT_ID"),
        "secret": _get("STYTCH_SECRET"),
    }
    if _get("STYTCH_REDIRECT_URL"):
        stytch["redirect_url"] = _get("STYTCH_REDIRECT_URL")
    if _get("STYTCH_ENVIRONMENT"):
        stytch["environment"] = _get("STYTCH_ENVIRONMENT").lower()

    server: dict[str, object] = {"secure_cookies": _env_flag(env.get("PORTAL_SECURE_COOKIES"))}
    if _get("PORTAL_HOST"):
        server["host"] = _get("PORTAL_HOST")
    if _get("PORT"):
        server["port"] = _get("PORT")
    if _get("PORTAL_WEB_ROOT"):
        server["web_root"] = Path(_get("PORTAL_WEB_ROOT")).expanduser().resolve()

    logging_cfg: dict[str, object] = {}
    if _get("PORTAL_LOG_LEVEL"):
        logging_cfg["level"] = _get("PORTAL_LOG_LEVEL").upper()
    if _get("PORTAL_LOG_DIR"):
        logging_cfg["log_dir"] = Path(_get("PORTAL_LOG_DIR")).expanduser()

    return PortalConfig.model_validate(
        {"stytch": stytch, "server": server, "logging": logging_cfg}
    )


def log_config_summary(config: PortalConfig) -> None:
    stytch = config.stytch

    if not stytch.public_token:
        logger.warning(
            "STYTCH_PUBLIC_TOKEN not set; add it to a .env file or export it before starting"
        )
    else:
        logger.info("Stytch public token configured: %s...", stytch.public_token[:20])

    if stytch.organization_id:
        logger.info("Stytch organization id configured: %s...", stytch.organization_id[:20])
    else:
        logger.info("No organization id set; OAuth will use the organization slug or discovery")

    if stytch.organization_slug:
        logger.info("Stytch organization slug configured: %s", stytch.organization_slug)

    if not stytch.has_sdk_credentials:
        logger.warning("STYTCH_PROJECT_ID/STYTCH_SECRET not set; authentication is disabled")
