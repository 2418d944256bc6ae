"""Structured access logging of every request."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

from agroflash.middleware.chain import Middleware, WSGIApp
from agroflash.middleware.requestid import get_request_id


def access_logger(logger: logging.Logger) -> Middleware:
    """Log method, path, status, size and duration once each response is sent."""

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterator[bytes]:
            start = time.monotonic()
            state = {"status": 200, "size": 0}

            def recording(status: str, headers: list, exc_info: Any = None) -> Any:
                state["status"] = int(status.split(None, 1)[0])
                return start_response(status, headers, exc_info)

            result = app(environ, recording)
            try:
                for chunk in result:
                    state["size"] += len(chunk)
                    yield chunk
            finally:
                close = getattr(result, "close", None)
                if close is not None:
                    close()
                logger.info(
                    "http request",
                    extra={
                        "request_id": get_request_id(environ),
                        "method": environ.get("REQUEST_METHOD", ""),
                        "path": environ.get("PATH_INFO", ""),
                        "status": state["status"],
                        "size": state["size"],
                        "duration_ms": int((time.monotonic() - start) * 1000),
                        "user_agent": environ.get("HTTP_USER_AGENT", ""),
                    },
                )

        return wrapped

    return middleware