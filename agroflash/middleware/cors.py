"""Cross-origin resource sharing headers for whitelisted origins."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from agroflash.middleware.chain import Middleware, WSGIApp

_CORS_HEADERS = (
    ("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type, Authorization, X-Request-ID"),
    ("Access-Control-Max-Age", "86400"),
    ("Vary", "Origin"),
)


def cors(allowed_origins: Iterable[str] | None) -> Middleware:
    """Emit CORS headers for allowed origins and answer every OPTIONS with 204."""
    allowed = frozenset(allowed_origins or ())

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            origin = environ.get("HTTP_ORIGIN", "")
            extra: list[tuple[str, str]] = []
            if origin and origin in allowed:
                extra = [("Access-Control-Allow-Origin", origin), *_CORS_HEADERS]

            if environ.get("REQUEST_METHOD") == "OPTIONS":
                start_response("204 No Content", extra)
                return []

            if not extra:
                return app(environ, start_response)

            names = {name.lower() for name, _ in extra}

            def patched(status: str, headers: list, exc_info: Any = None) -> Any:
                kept = [(n, v) for n, v in headers if n.lower() not in names]
                return start_response(status, kept + extra, exc_info)

            return app(environ, patched)

        return wrapped

    return middleware