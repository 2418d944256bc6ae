# agroflash

Building blocks for a flashcard study service that runs as a WSGI
application. The package contains:

- **`agroflash.models`**: dataclasses for the domain records (cards, decks,
  classes, reviews, uploads, users, push subscriptions and statistics), the
  `CardType` and `Role` enums, the length limits `MAX_QUESTION_LEN`,
  `MAX_ANSWER_LEN`, `MAX_TOPIC_LEN`, `MAX_SOURCE_LEN` and
  `MAX_DECK_NAME_LEN`, and the small rules around them: `is_valid_card_type`,
  `is_valid_role`, `AuthInfo.has_any_role`, `Deck.is_owned_by`,
  `Deck.effectively_active` and `ProblemDetail.to_dict`.
- **`agroflash.config`**: `load(environ)` builds a `Config` from
  environment variables (the process environment when `environ` is `None`)
  and raises `ConfigError` when a required value is missing or the JWT
  secret is shorter than 32 bytes. The helpers `parse_origins`,
  `parse_log_level`, `parse_duration`, `parse_email_set` and
  `parse_bool_flag` are exposed as well.
- **`agroflash.csvparse`**: `parse(stream, options)` reads and validates a
  CSV of cards. It returns a `Result` of `Row` objects and raises
  `CsvParseError` for structural problems.
- **`agroflash.responses`**: `json_response(status, data)` and
  `error_response(status, detail)`, both returning a Werkzeug `Response`.
  Errors follow RFC 7807 (`application/problem+json`).
- **`agroflash.middleware`**: WSGI middleware for request ids, access
  logging, security headers, CORS, CSRF, body size limits, tiered per-IP
  rate limiting and JWT cookie authentication with role checks.
- **`agroflash.migrate`**: `run(connection, migrations_dir)` applies pending
  `NNN_name.up.sql` files in version order through a DB-API connection. It
  records them in a `schema_migrations` table and raises `MigrationError`
  on failure.

Validation messages produced by the CSV parser are in Portuguese.

## Card types and roles

Cards have one of four types: `conceito`, `processo`, `aplicacao` or
`comparacao`. Users hold any of the roles `student`, `professor` and
`admin`.

```python
from agroflash.models import AuthInfo, is_valid_card_type

is_valid_card_type("processo")      # True
is_valid_card_type("flashcard")     # False

info = AuthInfo(user_id="u1", roles=["student", "professor"])
info.has_any_role("professor", "admin")   # True
info.has_any_role("admin")                # False
```

`Deck.effectively_active(now)` is true when the deck is active and its
`expires_at`, if set, is not before `now` (the current UTC time when `now`
is omitted).

## Importing cards from CSV

The header row must contain `type`, `question` and `answer`. It may also
contain `deck`, `subject`, `topic` and `source`; header names are matched
case-insensitively, extra columns are ignored and a leading UTF-8 BOM is
dropped. If the file has no `deck` column, give a default deck name in
`ParseOptions(default_deck=...)`; with `force_deck=True` that name replaces
the deck of every row. The input may be a text or binary file object, a
`str` or `bytes`.

Values are trimmed and null bytes removed; runs of whitespace in the deck
name and question are collapsed to one space. Problems in a single row do
not stop the parse: they are recorded on that row, whose `status` is then
`"error"` and whose `error` lists every problem found.

```python
import io
from agroflash.csvparse import ParseOptions, parse

data = io.StringIO(
    "type,question,answer,topic\n"
    "conceito,O que é DNA?,Ácido desoxirribonucleico,Genética\n"
)
result = parse(data, ParseOptions(default_deck="Biologia"))
for row in result.rows:
    print(row.line, row.deck, row.status)
print(result.to_dict())
```

Line numbers start at 2, the first data row. A file may hold at most
`MAX_ROWS` (2000) data rows; more raises `CsvParseError`.

## Assembling the middleware stack

Every middleware factory returns a function that wraps a WSGI application.
`chain` composes them so that the first one listed is the outermost.
`request_id` is itself such a wrapper and is passed as is.

```python
import logging

from agroflash.middleware.access_log import access_logger
from agroflash.middleware.auth import require_auth, require_role
from agroflash.middleware.chain import chain
from agroflash.middleware.cors import cors
from agroflash.middleware.csrf import csrf
from agroflash.middleware.ratelimit import RateLimiterStore, TieredConfig, rate_limit
from agroflash.middleware.requestid import request_id
from agroflash.middleware.security import max_body, security_headers

jwt_secret = "secret"
origins = ["https://app.example.com"]

store = RateLimiterStore(
    [
        TieredConfig(prefix="/auth/", rps=0.5, burst=5),
        TieredConfig(prefix="/api/", rps=2, burst=20),
    ],
    trusted_proxy=False,
)

stack = chain(
    request_id,
    access_logger(logging.getLogger("http")),
    security_headers(True),
    cors(origins),
    csrf(origins, False),
    max_body(1 << 20),
    rate_limit(store),
)

staff_only = chain(require_auth(jwt_secret), require_role("professor", "admin"))


def inner_app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"ok"]


application = stack(staff_only(inner_app))
```

What each piece does:

- `require_auth` reads the `access_token` cookie, checks the HMAC-signed JWT
  (HS256/384/512, including expiry) and stores the caller's `AuthInfo`,
  taken from the `sub` and `roles` claims, in the WSGI environ. Handlers
  read it with `get_auth_info(environ)`; `with_auth_info(environ, info)`
  returns a copy of an environ carrying an identity. A missing or invalid
  token gets an opaque 401 problem response.
- `require_role` answers 401 when there is no identity and 403 when the
  caller holds none of the listed roles.
- `csrf` checks only POST, PUT, PATCH and DELETE; paths under
  `/auth/google` are exempt. It compares the `Origin` header, or the origin
  of the `Referer` header when `Origin` is absent, with the allowed list,
  case-insensitively. When the list is empty, the request's own scheme and
  host are accepted instead. With `is_dev=True` a request carrying no
  origin at all is let through; otherwise it gets 403.
- `cors` adds the CORS headers when the `Origin` is in the list, and answers
  every `OPTIONS` request with 204 itself.
- `security_headers` sets Content-Security-Policy, X-Frame-Options,
  X-Content-Type-Options, Referrer-Policy, Permissions-Policy and
  X-XSS-Protection, plus Strict-Transport-Security when `prod` is true.
- `max_body` wraps `wsgi.input` so that reading beyond the limit raises
  Werkzeug's `RequestEntityTooLarge`; multipart requests are not limited.
- `rate_limit` answers 429 once a client has used up the token bucket of
  the first tier whose prefix matches the path; unmatched paths are never
  limited. `client_ip` uses `REMOTE_ADDR`, or, when the store trusts a
  proxy, the rightmost `X-Forwarded-For` entry or `X-Real-IP`.
  `RateLimiterStore.single(rps, burst)` makes a one-tier store for all
  paths, and idle clients are forgotten after three minutes
  (`prune(max_idle)` does this on demand).
- `request_id` reuses the client's `X-Request-ID` or makes a random 32-digit
  hex id, echoes it in the response and exposes it via
  `get_request_id(environ)`.
- `access_logger` logs `"http request"` once the response body has been
  sent, with request id, method, path, status, size, duration and user
  agent as `extra` fields.

## Configuration

`load` reads `DATABASE_URL`, `GOOGLE_CLIENT_ID`, `GOOGLE_CLIENT_SECRET`,
`GOOGLE_REDIRECT_URL` and `JWT_SECRET` as required values. Optional values
include `PORT`, `ALLOWED_ORIGINS`, `LOG_LEVEL`, the `AUTH_RATE_LIMIT_*` and
`API_RATE_LIMIT_*` pairs, `RATE_LIMIT_RPS`/`RATE_LIMIT_BURST`, the
`READ_TIMEOUT`, `WRITE_TIMEOUT`, `IDLE_TIMEOUT` and `JWT_EXPIRY` durations
(such as `5s` or `1h30m`), `MAX_BODY_SIZE`, `ENVIRONMENT`, `ADMIN_EMAILS`
(for example `admin@example.com`), `COOKIE_SECURE`, `TRUSTED_PROXY`,
`VAPID_PUBLIC_KEY`, `VAPID_PRIVATE_KEY`, `VAPID_SUBJECT` and
`PUSH_NOTIFY_HOUR`. Unparseable numbers and durations fall back to fixed
defaults rather than failing. When `COOKIE_SECURE` or `TRUSTED_PROXY` is not
set, it is on in production and off everywhere else.

## Migrations

```python
import sqlite3
from agroflash.migrate import run

connection = sqlite3.connect("app.db")
applied = run(connection, "migrations")   # e.g. [1, 2, 3]
```

The version is the leading number of the file name. Versions already
recorded as clean are skipped. Each migration runs in its own transaction
and is marked dirty until it completes. The SQL is split into statements
on semicolons outside quotes, comments and dollar-quoted blocks. The
bookkeeping SQL uses `ON CONFLICT`, so the database must support it.

## What this package does not do

It provides no HTTP server, URL routing or request handlers, no database
access layer beyond the migration runner, no Google sign-in flow, no
spaced-repetition scheduling, no push notification delivery and no
command-line program. Those are left to the application that assembles
these pieces.