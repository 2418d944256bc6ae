from werkzeug.test import EnvironBuilder, run_wsgi_app

from agroflash.middleware.cors import cors

ALLOWED = ["https://app.example.com"]


def inner(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"inner"]


def call(method, origin=None, allowed=ALLOWED):
    headers = {"Origin": origin} if origin else {}
    environ = EnvironBuilder(method=method, path="/api/decks", headers=headers).get_environ()
    body, status, hdrs = run_wsgi_app(cors(allowed)(inner), environ)
    return int(status.split()[0]), hdrs, b"".join(body)


def test_allowed_origin_gets_headers():
    status, headers, body = call("GET", "https://app.example.com")
    assert status == 200
    assert body == b"inner"
    assert headers["Access-Control-Allow-Origin"] == "https://app.example.com"
    assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert headers["Vary"] == "Origin"


def test_foreign_origin_gets_no_headers():
    status, headers, _ = call("GET", "https://evil.example.com")
    assert status == 200
    assert "Access-Control-Allow-Origin" not in headers


def test_empty_whitelist_allows_nothing():
    _, headers, _ = call("GET", "https://app.example.com", allowed=None)
    assert "Access-Control-Allow-Origin" not in headers


def test_options_short_circuits():
    status, headers, body = call("OPTIONS", "https://app.example.com")
    assert status == 204
    assert body == b""
    assert headers["Access-Control-Allow-Origin"] == "https://app.example.com"