"""JSON and problem-detail HTTP responses."""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from werkzeug.http import HTTP_STATUS_CODES
from werkzeug.wrappers import Response

from agroflash.models import ProblemDetail

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return _jsonable(value.to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _jsonable(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if f.repr
        }
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if isinstance(value, datetime):
        text = value.isoformat()
        return text[:-6] + "Z" if text.endswith("+00:00") else text
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _encode(data: Any) -> str:
    text = json.dumps(_jsonable(data), ensure_ascii=False, separators=(",", ":"))
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text + "\n"


def json_response(status: int, data: Any) -> Response:
    """Return data encoded as JSON with the given status."""
    return Response(_encode(data), status=status, content_type="application/json")


def error_response(status: int, detail: str) -> Response:
    """Return an RFC 7807 problem body with the given status and detail."""
    problem = ProblemDetail(
        type="about:blank",
        title=HTTP_STATUS_CODES.get(status, ""),
        status=status,
        detail=detail,
    )
    return Response(_encode(problem), status=status, content_type="application/problem+json")