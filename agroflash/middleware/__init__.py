"""WSGI middleware: authentication, CORS, CSRF, access logging, rate limiting, request ids, security headers and body limits."""

__all__ = [
    "access_log",
    "auth",
    "chain",
    "cors",
    "csrf",
    "ratelimit",
    "requestid",
    "security",
]