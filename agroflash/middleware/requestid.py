"""Request identifiers carried in X-Request-ID."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from typing import Any

from agroflash.middleware.chain import WSGIApp

REQUEST_ID_KEY = "agroflash.request_id"


def request_id(app: WSGIApp) -> WSGIApp:
    """Reuse the client's X-Request-ID or make one, and echo it in the response."""

    def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
        ident = environ.get("HTTP_X_REQUEST_ID") or secrets.token_hex(16)
        environ[REQUEST_ID_KEY] = ident

        def patched(status: str, headers: list, exc_info: Any = None) -> Any:
            kept = [(n, v) for n, v in headers if n.lower() != "x-request-id"]
            return start_response(status, kept + [("X-Request-ID", ident)], exc_info)

        return app(environ, patched)

    return wrapped


def get_request_id(environ: dict[str, Any]) -> str:
    """Return the current request id, or an empty string."""
    value = environ.get(REQUEST_ID_KEY)
    return value if isinstance(value, str) else ""