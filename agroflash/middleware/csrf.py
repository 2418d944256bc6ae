"""Origin checks on state-changing requests."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any
from urllib.parse import urlsplit

from agroflash.middleware.chain import Middleware, WSGIApp

_MUTATING = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_FORBIDDEN_BODY = (
    b'{"type":"about:blank","title":"Forbidden","status":403,"detail":"invalid or missing origin"}'
)


def _extract_origin(environ: dict[str, Any]) -> str:
    origin = environ.get("HTTP_ORIGIN", "")
    if origin:
        return origin.rstrip("/")
    referer = environ.get("HTTP_REFERER", "")
    if referer:
        try:
            parts = urlsplit(referer)
        except ValueError:
            return ""
        if parts.netloc:
            return f"{parts.scheme}://{parts.netloc}"
    return ""


def _origin_allowed(origin: str, allowed: list[str], environ: dict[str, Any]) -> bool:
    if allowed:
        return any(a.rstrip("/").lower() == origin.lower() for a in allowed)
    host = environ.get("HTTP_HOST", "")
    if not host:
        return False
    scheme = "https" if environ.get("wsgi.url_scheme") == "https" else "http"
    return origin.lower() == f"{scheme}://{host}".lower()


def csrf(allowed_origins: Iterable[str] | None, is_dev: bool) -> Middleware:
    """Reject mutating requests whose Origin or Referer is not trusted.

    Without a whitelist only the server's own host is trusted. In development
    a request with no origin at all is let through.
    """
    allowed = list(allowed_origins or ())

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            method = environ.get("REQUEST_METHOD", "GET")
            path = environ.get("PATH_INFO", "")
            if method not in _MUTATING or path.startswith("/auth/google"):
                return app(environ, start_response)
            origin = _extract_origin(environ)
            if not origin:
                if is_dev:
                    return app(environ, start_response)
            elif _origin_allowed(origin, allowed, environ):
                return app(environ, start_response)
            start_response(
                "403 Forbidden",
                [
                    ("Content-Type", "application/problem+json"),
                    ("Content-Length", str(len(_FORBIDDEN_BODY))),
                ],
            )
            return [_FORBIDDEN_BODY]

        return wrapped

    return middleware