"""Per-IP token-bucket rate limiting by URL prefix."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from agroflash.middleware.chain import Middleware, WSGIApp

_TOO_MANY = b'{"type":"about:blank","title":"Too Many Requests","status":429}'
_CLEANUP_INTERVAL = 60.0
_MAX_IDLE = 180.0


@dataclass(frozen=True)
class TieredConfig:
    """A path prefix and its limit; the first matching prefix wins."""

    prefix: str
    rps: float
    burst: int


class TokenBucket:
    """A bucket holding up to burst tokens, refilled at rate tokens per second."""

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock
        self._tokens = float(self.burst)
        self._last = clock()
        self._lock = threading.Lock()

    def allow(self) -> bool:
        """Take one token if available."""
        with self._lock:
            if math.isinf(self.rate) and self.rate > 0:
                return True
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._last = now
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False


@dataclass
class _Entry:
    bucket: TokenBucket
    last_seen: float


class _Tier:
    def __init__(self, config: TieredConfig) -> None:
        self.config = config
        self.entries: dict[str, _Entry] = {}


class RateLimiterStore:
    """Independent per-IP buckets for each configured prefix tier."""

    def __init__(
        self,
        tiers: Iterable[TieredConfig],
        trusted_proxy: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tiers = [_Tier(t) for t in tiers]
        self.trusted_proxy = trusted_proxy
        self._clock = clock
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    @classmethod
    def single(cls, rps: float, burst: int) -> RateLimiterStore:
        """A store with one pool covering every path."""
        return cls([TieredConfig(prefix="/", rps=rps, burst=burst)])

    def allow(self, ip: str, path: str) -> bool:
        """Return whether the request may proceed; unmatched paths always may."""
        now = self._clock()
        if now - self._last_cleanup >= _CLEANUP_INTERVAL:
            self._last_cleanup = now
            self.prune(_MAX_IDLE)
        for tier in self._tiers:
            if path.startswith(tier.config.prefix):
                with self._lock:
                    entry = tier.entries.get(ip)
                    if entry is None:
                        bucket = TokenBucket(tier.config.rps, tier.config.burst, self._clock)
                        entry = tier.entries[ip] = _Entry(bucket, now)
                    else:
                        entry.last_seen = now
                return entry.bucket.allow()
        return True

    def prune(self, max_idle: float = _MAX_IDLE) -> int:
        """Forget IPs idle for more than max_idle seconds; return how many."""
        now = self._clock()
        removed = 0
        with self._lock:
            for tier in self._tiers:
                stale = [ip for ip, e in tier.entries.items() if now - e.last_seen > max_idle]
                for ip in stale:
                    del tier.entries[ip]
                removed += len(stale)
        return removed


def _split_host(remote: str) -> str:
    if remote.startswith("["):
        end = remote.find("]:")
        if end != -1 and remote[end + 2:].isdigit():
            return remote[1:end]
        return remote
    host, sep, port = remote.rpartition(":")
    if sep and ":" not in host and port.isdigit():
        return host
    return remote


def client_ip(environ: dict[str, Any], trusted: bool) -> str:
    """Return the client IP, honouring forwarding headers only when trusted."""
    if trusted:
        forwarded = environ.get("HTTP_X_FORWARDED_FOR", "")
        if forwarded:
            for part in reversed(forwarded.split(",")):
                if part.strip():
                    return part.strip()
        real = environ.get("HTTP_X_REAL_IP", "")
        if real:
            return real.strip()
    return _split_host(environ.get("REMOTE_ADDR", ""))


def rate_limit(store: RateLimiterStore) -> Middleware:
    """Answer 429 when the client has used up its allowance for the path."""

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
            ip = client_ip(environ, store.trusted_proxy)
            if not store.allow(ip, environ.get("PATH_INFO", "")):
                start_response(
                    "429 Too Many Requests",
                    [("Content-Type", "application/problem+json"), ("Content-Length", str(len(_TOO_MANY)))],
                )
                return [_TOO_MANY]
            return app(environ, start_response)

        return wrapped

    return middleware