from __future__ import annotations

import errno
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import PlainTextResponse, Response

from stytch_portal.config import StytchSettings

logger = logging.getLogger(__name__)

ROOT_DOCUMENT: Final[str] = "index.html"
CONFIG_SCRIPT: Final[str] = "config.js"

MIME_TYPES: Final[dict[str, str]] = {
    ".html": "text/html",
    ".js": "text/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"


class ForbiddenPathError(Exception):
    pass


@dataclass(frozen=True)
class StaticFile:
    content: bytes
    content_type: str


def injected_globals(settings: StytchSettings) -> dict[str, str]:
    return {
        "STYTCH_PUBLIC_TOKEN": settings.public_token,
        "STYTCH_ORGANIZATION_ID": settings.organization_id,
        "STYTCH_ORGANIZATION_SLUG": settings.organization_slug,
    }


def _js_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


class StaticContentServer:
    """Serves files under ``root`` by request path.

    ``/config.js`` is rewritten so the page sees the Stytch settings as
    ``window.*`` globals before its own code runs.
    """

    def __init__(self, root: Path, injected: Mapping[str, str]) -> None:
        self._root = root.resolve()
        self._injected = dict(injected)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, request_path: str) -> Path:
        relative = request_path.lstrip("/") or ROOT_DOCUMENT
        try:
            candidate = (self._root / relative).resolve()
        except (OSError, ValueError) as exc:
            raise ForbiddenPathError(request_path) from exc
        if not candidate.is_relative_to(self._root):
            raise ForbiddenPathError(request_path)
        return candidate

    def render_config_script(self, original: str) -> str:
        lines = ["", "// Injected environment variables"]
        for name, value in self._injected.items():
            lines.append(f"window.{name} = {_js_string(value)};")
        lines.append("")
        lines.append(original)
        return "\n".join(lines)

    def load(self, request_path: str) -> StaticFile:
        """Read the file for ``request_path``.

        Raises ``ForbiddenPathError`` for paths escaping the root and the
        underlying ``OSError`` (``FileNotFoundError`` included) on read failure.
        """

        path = self.resolve(request_path)

        if request_path.lstrip("/") == CONFIG_SCRIPT:
            original = path.read_text(encoding="utf-8")
            return StaticFile(
                content=self.render_config_script(original).encode("utf-8"),
                content_type=MIME_TYPES[".js"],
            )

        return StaticFile(content=path.read_bytes(), content_type=content_type_for(path))


router = APIRouter(tags=["static"])


@router.get("/{file_path:path}", include_in_schema=False)
async def serve_static(request: Request, file_path: str) -> Response:
    server: StaticContentServer = request.app.state.static_server

    try:
        static_file = await run_in_threadpool(server.load, file_path)
    except ForbiddenPathError:
        logger.warning("Rejected path outside web root: %s", file_path)
        return PlainTextResponse("Forbidden", status_code=403)
    except FileNotFoundError:
        return PlainTextResponse("404 - File Not Found", status_code=404)
    except OSError as exc:
        code = errno.errorcode.get(exc.errno or 0, "EIO")
        logger.error("Failed to read %s: %s", file_path, code)
        return PlainTextResponse(f"Server Error: {code}", status_code=500)

    return Response(content=static_file.content, media_type=static_file.content_type)
