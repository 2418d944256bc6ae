import time

import jwt
import pytest
from werkzeug.test import EnvironBuilder, run_wsgi_app

from agroflash.middleware.auth import get_auth_info, require_auth, require_role, with_auth_info
from agroflash.middleware.chain import chain
from agroflash.models import AuthInfo

jwt_secret = "secret"
wrong_secret = "token"


def make_token(key, user_id, roles, ttl):
    now = int(time.time())
    claims = {"sub": user_id, "iat": now, "exp": now + ttl, "roles": roles}
    return jwt.encode(claims, key, algorithm="HS256")


def ok_app(environ, start_response):
    start_response("200 OK", [])
    return [b""]


def call(app, cookie=None, environ=None):
    if environ is None:
        headers = {"Cookie": f"access_token={cookie}"} if cookie is not None else {}
        environ = EnvironBuilder(path="/test", headers=headers).get_environ()
    body, status, headers = run_wsgi_app(app, environ)
    return int(status.split()[0]), headers, b"".join(body)


@pytest.mark.parametrize(
    "cookie, want",
    [
        (None, 401),
        ("not.a.jwt", 401),
        (make_token(jwt_secret, "u1", ["student"], -3600), 401),
        (make_token(wrong_secret, "u1", ["student"], 3600), 401),
        (make_token(jwt_secret, "u1", ["student"], 3600), 200),
    ],
)
def test_require_auth(cookie, want):
    assert call(require_auth(jwt_secret)(ok_app), cookie)[0] == want


def test_require_auth_sets_identity():
    seen = {}

    def app(environ, start_response):
        seen["info"] = get_auth_info(environ)
        start_response("200 OK", [])
        return [b""]

    tok = make_token(jwt_secret, "user-42", ["admin", "professor"], 3600)
    assert call(require_auth(jwt_secret)(app), tok)[0] == 200
    assert seen["info"] == AuthInfo(user_id="user-42", roles=["admin", "professor"])


def test_require_role_without_auth():
    assert call(require_role("admin")(ok_app))[0] == 401


@pytest.mark.parametrize(
    "roles, allowed, want",
    [
        (["student"], ["admin"], 403),
        (["student"], ["professor", "admin"], 403),
        (["professor"], ["professor", "admin"], 200),
        (["admin"], ["professor", "admin"], 200),
        (["admin"], ["admin"], 200),
        (["professor"], ["admin"], 403),
        (["student", "professor"], ["professor"], 200),
    ],
)
def test_require_role(roles, allowed, want):
    tok = make_token(jwt_secret, "u1", roles, 3600)
    app = chain(require_auth(jwt_secret), require_role(*allowed))(ok_app)
    assert call(app, tok)[0] == want


@pytest.mark.parametrize(
    "roles, want",
    [(["student"], 403), (["professor"], 403), (["admin"], 200), (None, 401)],
)
def test_admin_only_with_context(roles, want):
    environ = EnvironBuilder(path="/api/admin/users").get_environ()
    if roles is not None:
        environ = with_auth_info(environ, AuthInfo(user_id="00000000-0000-0000-0000-000000000099", roles=roles))
    assert call(chain(require_role("admin"))(ok_app), environ=environ)[0] == want


SENSITIVE = ["cookie", "token", "jwt", "secret", "bearer", "claim", "role", "student", "professor"]


def test_401_body_is_opaque():
    status, headers, body = call(require_auth(jwt_secret)(ok_app))
    assert status == 401
    text = body.decode().lower()
    assert not [w for w in SENSITIVE if w in text]
    assert headers["Content-Type"] == "application/problem+json"


def test_403_body_is_opaque():
    tok = make_token(jwt_secret, "u1", ["student"], 3600)
    status, headers, body = call(chain(require_auth(jwt_secret), require_role("admin"))(ok_app), tok)
    assert status == 403
    text = body.decode().lower()
    assert not [w for w in SENSITIVE if w in text]
    assert headers["Content-Type"] == "application/problem+json"


def test_with_auth_info_does_not_mutate_original():
    environ = {}
    updated = with_auth_info(environ, AuthInfo(user_id="x"))
    assert get_auth_info(environ) is None
    assert get_auth_info(updated).user_id == "x"