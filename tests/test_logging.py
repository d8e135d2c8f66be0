import json
import logging
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from journal import create_app
from journal.core.config import settings
from journal.core.logging import JsonLogFormatter, configure_logging
from journal.core.security import encode_basic_credentials
from journal.db.session import build_engine
from journal.middlewares import accepted_request_id, principal_ctx_var, request_id_ctx_var

JD = {"username": "jd", "name": "John Doe", "email": "john.doe@protonmail.com", "password": "123"}
NEW_YEAR = {"timezone": "+02:00", "localTime": "2021-01-01 02:00:17", "content": "Happy New Year!"}


class _JsonLines(logging.Handler):
    """Formats while the record is emitted, so context variables are read in the request."""

    def __init__(self):
        super().__init__()
        self.setFormatter(JsonLogFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(self.format(record)))


@pytest.fixture()
def captured():
    handler = _JsonLines()
    loggers = [logging.getLogger(name) for name in ("journal.crud.entries", "journal.http", "journal.deps.auth")]
    previous = [(lg, lg.level) for lg in loggers]
    for lg in loggers:
        lg.addHandler(handler)
        lg.setLevel(logging.INFO)
    yield handler.lines
    for lg, level in previous:
        lg.removeHandler(handler)
        lg.setLevel(level)


def _record(**extra):
    record = logging.LogRecord("journal.crud.users", logging.INFO, __file__, 1, "user.created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_extra_data():
    request_token = request_id_ctx_var.set("req-1")
    principal_token = principal_ctx_var.set("user:1")
    try:
        line = JsonLogFormatter().format(_record(extra_data={"user_id": 1}))
    finally:
        request_id_ctx_var.reset(request_token)
        principal_ctx_var.reset(principal_token)

    payload = json.loads(line)
    assert payload["message"] == "user.created"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "journal.crud.users"
    assert payload["service"] == settings.APP_NAME
    assert payload["env"] == settings.APP_ENV
    assert payload["request_id"] == "req-1"
    assert payload["principal"] == "user:1"
    assert payload["user_id"] == 1
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_without_request_context():
    payload = json.loads(JsonLogFormatter().format(_record()))
    assert "request_id" not in payload
    assert "principal" not in payload


def test_configure_logging_installs_json_handler_and_quiets_access_log():
    root = logging.getLogger()
    access = logging.getLogger("uvicorn.access")
    saved = (root.handlers[:], root.level, access.level)
    try:
        configure_logging("debug")
        assert isinstance(root.handlers[0].formatter, JsonLogFormatter)
        assert root.level == logging.DEBUG
        assert access.level == logging.WARNING
    finally:
        root.handlers = saved[0]
        root.setLevel(saved[1])
        access.setLevel(saved[2])


@pytest.mark.parametrize("incoming", [None, "", "x" * 65, "has space", "line\nbreak"])
def test_unsafe_request_ids_are_replaced(incoming):
    generated = accepted_request_id(incoming)
    assert generated != incoming
    assert len(generated) == 32


def test_safe_request_id_is_kept():
    assert accepted_request_id("abc-123.x_y") == "abc-123.x_y"


def test_endpoint_log_lines_carry_the_request_and_principal(captured):
    app = create_app(build_engine("sqlite://"))
    with TestClient(app) as client:
        client.post("/api/users", json=JD)
        auth = {"Authorization": encode_basic_credentials(JD["email"], JD["password"])}
        response = client.post("/api/entries", json=NEW_YEAR, headers={**auth, "X-Request-ID": "req-42"})
        assert response.status_code == 201
        client.get("/api/entries", headers={"Authorization": encode_basic_credentials(JD["email"], "nope")})

    created = next(line for line in captured if line["message"] == "entry.created")
    assert created["principal"] == "user:1"
    assert created["request_id"] == "req-42"
    assert created["entry_id"] == 1

    requests = [line for line in captured if line["message"] == "http.request" and line["path"] == "/api/entries"]
    assert requests[0]["status"] == 201
    assert requests[0]["principal"] == "user:1"
    assert requests[0]["level"] == "INFO"
    assert requests[1]["status"] == 401
    assert requests[1]["level"] == "WARNING"
    assert "principal" not in requests[1]
    assert any(line["message"] == "auth.failed" and line["reason"] == "WrongSecret" for line in captured)
