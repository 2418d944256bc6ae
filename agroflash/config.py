"""Server configuration read from environment variables."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta

_TRUE_WORDS = frozenset({"true", "1", "yes"})
_FALSE_WORDS = frozenset({"false", "0", "no"})

_MIN_JWT_SECRET_LEN = 32

_FLOAT_FALLBACK = 10.0
_INT_FALLBACK = 20
_INT64_FALLBACK = 1 << 20
_DURATION_FALLBACK = timedelta(seconds=5)

_INT_PATTERN = re.compile(r"[+-]?\d+")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "\u00b5s": 1e-6,
    "\u03bcs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")

# Checked in this order; the first one missing is reported.
_REQUIRED_KEYS = (
    "DATABASE_URL",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URL",
    "JWT_SECRET",
)

_VAPID_KEY_NAMES = ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY")


class ConfigError(Exception):
    """Raised when the environment cannot produce a usable configuration."""


@dataclass
class Config:
    """Every setting the server needs, already parsed."""

    port: str
    database_url: str
    allowed_origins: list[str]
    log_level: int
    auth_rate_limit_rps: float
    auth_rate_limit_burst: int
    api_rate_limit_rps: float
    api_rate_limit_burst: int
    rate_limit_rps: float
    rate_limit_burst: int
    read_timeout: timedelta
    write_timeout: timedelta
    idle_timeout: timedelta
    max_body_size: int
    environment: str
    google_client_id: str
    google_client_secret: str = field(repr=False)
    google_redirect_url: str
    jwt_secret: str = field(repr=False)
    jwt_expiry: timedelta
    admin_emails: frozenset[str]
    cookie_secure: bool
    trusted_proxy: bool
    vapid_public_key: str
    vapid_private_key: str = field(repr=False)
    vapid_subject: str
    push_notify_hour: int


def load(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from environ (the process environment by default).

    Raises ConfigError when a required variable is missing or the JWT secret
    is too short.
    """
    env = os.environ if environ is None else environ

    def get(key: str, fallback: str) -> str:
        return env.get(key) or fallback

    def require(key: str) -> str:
        value = env.get(key) or ""
        if not value:
            raise ConfigError(f"required environment variable not set: {key}")
        return value

    port = get("PORT", "8080")
    required = [require(key) for key in _REQUIRED_KEYS]
    (
        database_url,
        google_client_id,
        google_client_secret,
        google_redirect_url,
        jwt_secret,
    ) = required
    environment = get("ENVIRONMENT", "development")
    vapid_public_key, vapid_private_key = (get(key, "") for key in _VAPID_KEY_NAMES)

    cfg = Config(
        port=port,
        database_url=database_url,
        allowed_origins=parse_origins(get("ALLOWED_ORIGINS", "")),
        log_level=parse_log_level(get("LOG_LEVEL", "info")),
        auth_rate_limit_rps=_parse_float(get("AUTH_RATE_LIMIT_RPS", "0.5")),
        auth_rate_limit_burst=_parse_int(get("AUTH_RATE_LIMIT_BURST", "5"), _INT_FALLBACK),
        api_rate_limit_rps=_parse_float(get("API_RATE_LIMIT_RPS", "2")),
        api_rate_limit_burst=_parse_int(get("API_RATE_LIMIT_BURST", "20"), _INT_FALLBACK),
        rate_limit_rps=_parse_float(get("RATE_LIMIT_RPS", "2")),
        rate_limit_burst=_parse_int(get("RATE_LIMIT_BURST", "20"), _INT_FALLBACK),
        read_timeout=parse_duration(get("READ_TIMEOUT", "5s")),
        write_timeout=parse_duration(get("WRITE_TIMEOUT", "10s")),
        idle_timeout=parse_duration(get("IDLE_TIMEOUT", "120s")),
        max_body_size=_parse_int(get("MAX_BODY_SIZE", "1048576"), _INT64_FALLBACK),
        environment=environment,
        google_client_id=google_client_id,
        google_client_secret=google_client_secret,
        google_redirect_url=google_redirect_url,
        jwt_secret=jwt_secret,
        jwt_expiry=parse_duration(get("JWT_EXPIRY", "24h")),
        admin_emails=parse_email_set(get("ADMIN_EMAILS", "")),
        cookie_secure=parse_bool_flag(get("COOKIE_SECURE", ""), environment),
        trusted_proxy=parse_bool_flag(get("TRUSTED_PROXY", ""), environment),
        vapid_public_key=vapid_public_key,
        vapid_private_key=vapid_private_key,
        vapid_subject=get("VAPID_SUBJECT", "mailto:admin@example.com"),
        push_notify_hour=_parse_int(get("PUSH_NOTIFY_HOUR", "8"), _INT_FALLBACK),
    )
    _validate(cfg)
    return cfg


def _validate(cfg: Config) -> None:
    length = len(cfg.jwt_secret.encode("utf-8"))
    if length < _MIN_JWT_SECRET_LEN:
        raise ConfigError(
            f"JWT_SECRET is too short: minimum {_MIN_JWT_SECRET_LEN} characters required, got {length}"
        )


def parse_origins(raw: str) -> list[str]:
    """Split a comma-separated origin list, dropping blank entries."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_log_level(raw: str) -> int:
    """Map a level name to a logging level; unknown names give INFO."""
    return {
        "debug": logging.DEBUG,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }.get(raw.lower(), logging.INFO)


def _parse_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        return _FLOAT_FALLBACK


def _parse_int(raw: str, fallback: int) -> int:
    if not _INT_PATTERN.fullmatch(raw):
        return fallback
    return int(raw)


def _duration(raw: str) -> timedelta:
    text = raw
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {raw!r}")
    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {raw!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(seconds=sign * total)


def parse_duration(raw: str) -> timedelta:
    """Parse a duration such as '5s', '1h30m' or '250ms'; invalid input gives 5 seconds."""
    try:
        return _duration(raw)
    except ValueError:
        return _DURATION_FALLBACK


def parse_bool_flag(raw: str, environment: str) -> bool:
    """Read a true/false flag; when unset or unrecognised it is on only in production."""
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return environment == "production"


def parse_email_set(raw: str) -> frozenset[str]:
    """Split a comma-separated list of e-mail addresses into a lower-cased set."""
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())