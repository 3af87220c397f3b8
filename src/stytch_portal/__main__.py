from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn

from stytch_portal.app import create_app, create_static_app
from stytch_portal.config import PortalConfig, load_env_file, load_portal_config


def configure_logging(config: PortalConfig) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    log_dir = config.logging.log_dir
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_dir / "portal.log",
                maxBytes=config.logging.max_size_mb * 1024 * 1024,
                backupCount=config.logging.backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def main() -> None:
    p = argparse.ArgumentParser(description="Stytch B2B login portal")
    p.add_argument("--env-file", default=".env", help="KEY=VALUE file loaded before startup")
    p.add_argument("--host", help="Bind address (default: PORTAL_HOST or 127.0.0.1)")
    p.add_argument("--port", type=int, help="Port (default: PORT or 3000)")
    p.add_argument(
        "--static-only",
        action="store_true",
        help="Only serve files from --root, with /config.js injection",
    )
    p.add_argument("--root", default=".", help="Directory served in --static-only mode")

    args = p.parse_args()

    load_env_file(Path(args.env_file))
    config = load_portal_config()
    configure_logging(config)

    host = args.host or config.server.host
    port = args.port or config.server.port

    if args.static_only:
        app = create_static_app(Path(args.root).expanduser(), config)
    else:
        app = create_app(config)

    logging.getLogger(__name__).info("Server running at http://%s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
