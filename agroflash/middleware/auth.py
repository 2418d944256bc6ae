"""Cookie-token authentication and role checks."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import jwt
from werkzeug.http import parse_cookie

from agroflash.middleware.chain import Middleware, WSGIApp
from agroflash.models import AuthInfo

AUTH_INFO_KEY = "agroflash.auth_info"
_ALGORITHMS = ["HS256", "HS384", "HS512"]


def _problem(start_response: Callable[..., Any], status: int, title: str) -> list[bytes]:
    body = json.dumps({"type": "about:blank", "title": title, "status": status}).encode()
    start_response(
        f"{status} {title}",
        [("Content-Type", "application/problem+json"), ("Content-Length", str(len(body)))],
    )
    return [body]


def _decode(token: str, jwt_secret: bytes | str) -> AuthInfo | None:
    try:
        claims = jwt.decode(token, jwt_secret, algorithms=_ALGORITHMS)
    except jwt.PyJWTError:
        return None
    subject = claims.get("sub", "")
    roles = claims.get("roles") or []
    if not isinstance(subject, str) or not isinstance(roles, list):
        return None
    if not all(isinstance(role, str) for role in roles):
        return None
    return AuthInfo(user_id=subject, roles=list(roles))


def require_auth(jwt_secret: bytes | str) -> Middleware:
    """Validate the access_token cookie and store the identity in the environ.

    Failures answer 401 with an opaque body.
    """

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            cookies = parse_cookie(environ.get("HTTP_COOKIE", ""))
            token = cookies.get("access_token")
            if token is None:
                return _problem(start_response, 401, "Unauthorized")
            info = _decode(token, jwt_secret)
            if info is None:
                return _problem(start_response, 401, "Unauthorized")
            return app(with_auth_info(environ, info), start_response)

        return wrapped

    return middleware


def require_role(*allowed: str) -> Middleware:
    """Require an authenticated user holding at least one of the allowed roles.

    Answers 401 without identity and 403 when no role matches.
    """

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            info = get_auth_info(environ)
            if info is None:
                return _problem(start_response, 401, "Unauthorized")
            if not info.has_any_role(*allowed):
                return _problem(start_response, 403, "Forbidden")
            return app(environ, start_response)

        return wrapped

    return middleware


def get_auth_info(environ: dict[str, Any]) -> AuthInfo | None:
    """Return the authenticated identity, or None when there is none."""
    info = environ.get(AUTH_INFO_KEY)
    return info if isinstance(info, AuthInfo) else None


def with_auth_info(environ: dict[str, Any], info: AuthInfo) -> dict[str, Any]:
    """Return a copy of environ carrying info as the authenticated identity."""
    updated = dict(environ)
    updated[AUTH_INFO_KEY] = info
    return updated