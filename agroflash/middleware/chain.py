"""Composition of WSGI middleware."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

WSGIApp = Callable[..., Any]
Middleware = Callable[[WSGIApp], WSGIApp]


def chain(*middlewares: Middleware) -> Middleware:
    """Combine middlewares into one; the first given is the outermost."""

    def wrap(final: WSGIApp) -> WSGIApp:
        for middleware in reversed(middlewares):
            final = middleware(final)
        return final

    return wrap