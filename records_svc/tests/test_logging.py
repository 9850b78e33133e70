"""
Tests for structured logging and request id propagation.
"""
import json
import logging

from core.logging_config import JSONFormatter, bind_principal, bind_request, clear_request_context, redact


def test_redact_masks_nested_credentials():
    payload = {"email": "a@b.test", "password": "pw", "nested": {"Authorization": "Bearer x"}}
    assert redact(payload) == {"email": "a@b.test", "password": "***", "nested": {"Authorization": "***"}}


def test_formatter_includes_context_and_masks_extras():
    record = logging.makeLogRecord({
        "name": "services.auth_service",
        "levelno": logging.INFO,
        "levelname": "INFO",
        "msg": "Signed in",
        "token": "secret-token",
        "email": "a@b.test",
    })
    bind_request("req-1")
    bind_principal("user-1")
    try:
        entry = json.loads(JSONFormatter().format(record))
    finally:
        clear_request_context()

    assert entry["message"] == "Signed in"
    assert entry["request_id"] == "req-1"
    assert entry["principal_id"] == "user-1"
    assert entry["extra"] == {"token": "***", "email": "a@b.test"}


def test_request_id_is_generated(client):
    response = client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 8


def test_inbound_request_id_is_reused(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-abc.123"})
    assert response.headers["X-Request-ID"] == "trace-abc.123"


def test_malformed_request_id_is_replaced(client):
    response = client.get("/health", headers={"X-Request-ID": "bad id!"})
    assert response.headers["X-Request-ID"] != "bad id!"
