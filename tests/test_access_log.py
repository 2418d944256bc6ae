import logging

from werkzeug.test import EnvironBuilder, run_wsgi_app

from agroflash.middleware.access_log import access_logger


def created_app(environ, start_response):
    start_response("201 Created", [])
    return [b"abc", b"de"]


def test_logs_status_size_and_path(caplog):
    logger = logging.getLogger("agroflash.test.access")
    environ = EnvironBuilder(method="POST", path="/api/decks", headers={"User-Agent": "probe"}).get_environ()
    with caplog.at_level(logging.INFO, logger=logger.name):
        body, status, _ = run_wsgi_app(access_logger(logger)(created_app), environ)
        data = b"".join(body)
        body.close()
    assert data == b"abcde"
    assert status.startswith("201")
    records = [r for r in caplog.records if r.getMessage() == "http request"]
    assert len(records) == 1
    record = records[0]
    assert record.status == 201
    assert record.size == len(data)
    assert record.method == "POST"
    assert record.path == "/api/decks"
    assert record.user_agent == "probe"
    assert record.duration_ms >= 0