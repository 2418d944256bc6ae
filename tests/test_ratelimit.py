from werkzeug.test import EnvironBuilder, run_wsgi_app

from agroflash.middleware.ratelimit import (
    RateLimiterStore,
    TieredConfig,
    TokenBucket,
    client_ip,
    rate_limit,
)


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_bucket_allows_burst_then_refills():
    clock = Clock()
    bucket = TokenBucket(1, 2, clock)
    assert [bucket.allow() for _ in range(3)] == [True, True, False]
    clock.now += 1.0
    assert bucket.allow() is True
    assert bucket.allow() is False


def test_infinite_rate_always_allows():
    bucket = TokenBucket(float("inf"), 0)
    assert all(bucket.allow() for _ in range(5))


def test_store_tiers_and_unmatched_paths():
    clock = Clock()
    store = RateLimiterStore([TieredConfig("/auth/", 0, 1), TieredConfig("/api/", 0, 2)], clock=clock)
    assert store.allow("a", "/auth/google") is True
    assert store.allow("a", "/auth/google") is False
    assert store.allow("b", "/auth/google") is True
    assert store.allow("a", "/api/x") is True
    assert all(store.allow("a", "/static/x") for _ in range(10))


def test_prune_forgets_idle_ips():
    clock = Clock()
    store = RateLimiterStore([TieredConfig("/", 0, 1)], clock=clock)
    assert store.allow("a", "/") is True
    assert store.allow("a", "/") is False
    clock.now += 1000
    assert store.prune(180) == 1
    assert store.allow("a", "/") is True


def test_single_covers_all_paths():
    store = RateLimiterStore.single(0, 1)
    assert store.allow("a", "/anything") is True
    assert store.allow("a", "/other") is False


def test_client_ip_untrusted_ignores_headers():
    environ = {"REMOTE_ADDR": "10.0.0.1:5555", "HTTP_X_FORWARDED_FOR": "1.1.1.1"}
    assert client_ip(environ, False) == "10.0.0.1"


def test_client_ip_trusted_uses_rightmost_forwarded():
    environ = {"REMOTE_ADDR": "10.0.0.1", "HTTP_X_FORWARDED_FOR": "1.1.1.1, 2.2.2.2, "}
    assert client_ip(environ, True) == "2.2.2.2"


def test_client_ip_trusted_real_ip_and_bare_remote():
    assert client_ip({"REMOTE_ADDR": "10.0.0.1", "HTTP_X_REAL_IP": " 3.3.3.3 "}, True) == "3.3.3.3"
    assert client_ip({"REMOTE_ADDR": "10.0.0.1"}, True) == "10.0.0.1"


def test_middleware_answers_429():
    def ok(environ, start_response):
        start_response("200 OK", [])
        return [b""]

    app = rate_limit(RateLimiterStore.single(0, 1))(ok)
    statuses = []
    for _ in range(2):
        environ = EnvironBuilder(path="/api/x").get_environ()
        body, status, headers = run_wsgi_app(app, environ)
        data = b"".join(body)
        statuses.append(status.split()[0])
    assert statuses == ["200", "429"]
    assert b'"status":429' in data
    assert headers["Content-Type"] == "application/problem+json"