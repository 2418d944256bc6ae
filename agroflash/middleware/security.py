"""Hardened response headers and request body limits."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from werkzeug.exceptions import RequestEntityTooLarge

from agroflash.middleware.chain import Middleware, WSGIApp

_CSP = (
    "default-src 'self';"
    " script-src 'self';"
    " style-src 'self' 'unsafe-inline' https://fonts.googleapis.com;"
    " img-src 'self' https://lh3.googleusercontent.com data:;"
    " connect-src 'self';"
    " font-src 'self' https://fonts.gstatic.com;"
    " object-src 'none';"
    " worker-src 'self';"
    " manifest-src 'self';"
    " frame-ancestors 'none';"
    " base-uri 'self';"
    " form-action 'self' https://accounts.google.com"
)

_BASE_HEADERS = (
    ("Content-Security-Policy", _CSP),
    ("X-Frame-Options", "DENY"),
    ("X-Content-Type-Options", "nosniff"),
    ("Referrer-Policy", "strict-origin-when-cross-origin"),
    ("Permissions-Policy", "camera=(), microphone=(), geolocation=()"),
    ("X-XSS-Protection", "0"),
)
_HSTS = ("Strict-Transport-Security", "max-age=31536000; includeSubDomains")


def security_headers(prod: bool) -> Middleware:
    """Set hardened headers on every response; HSTS only when prod is true."""
    extra = list(_BASE_HEADERS) + ([_HSTS] if prod else [])
    names = {name.lower() for name, _ in extra}

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            def patched(status: str, headers: list, exc_info: Any = None) -> Any:
                kept = [(n, v) for n, v in headers if n.lower() not in names]
                return start_response(status, extra + kept, exc_info)

            return app(environ, patched)

        return wrapped

    return middleware


class _LimitedInput:
    """Wraps wsgi.input and raises RequestEntityTooLarge past the limit."""

    def __init__(self, stream: Any, limit: int) -> None:
        self._stream = stream
        self._remaining = limit

    def _check(self, data: bytes) -> bytes:
        if len(data) > self._remaining:
            self._remaining = 0
            raise RequestEntityTooLarge()
        self._remaining -= len(data)
        return data

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            return self._check(self._stream.read(self._remaining + 1))
        return self._check(self._stream.read(min(size, self._remaining + 1)))

    def readline(self, size: int = -1) -> bytes:
        cap = self._remaining + 1 if size is None or size < 0 else min(size, self._remaining + 1)
        return self._check(self._stream.readline(cap))

    def readlines(self, hint: int = -1) -> list[bytes]:
        return list(self)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            line = self.readline()
            if not line:
                return
            yield line


def max_body(max_bytes: int) -> Middleware:
    """Limit request bodies to max_bytes; multipart uploads are exempt."""

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            stream = environ.get("wsgi.input")
            if stream is not None and not environ.get("CONTENT_TYPE", "").startswith("multipart/"):
                environ["wsgi.input"] = _LimitedInput(stream, max_bytes)
            return app(environ, start_response)

        return wrapped

    return middleware