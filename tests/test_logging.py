"""Tests for log formatting and request context propagation."""

import json
import logging
import sys

from loginguard.core.logging import (
    ConsoleFormatter,
    StructuredFormatter,
    client_ip_ctx,
    get_logger,
    request_id_ctx,
)


def make_record(msg="Login blocked", data=None, exc_info=None):
    record = logging.LogRecord(
        "loginguard.limiter.guard", logging.WARNING, __file__, 1, msg, None, exc_info
    )
    if data is not None:
        record.data = data
    return record


def test_structured_includes_request_context():
    rid = request_id_ctx.set("abc12345-req")
    ip = client_ip_ctx.set("203.0.113.9")
    try:
        payload = json.loads(StructuredFormatter().format(make_record(data={"layer": "ip"})))
    finally:
        client_ip_ctx.reset(ip)
        request_id_ctx.reset(rid)

    assert payload["level"] == "WARNING"
    assert payload["message"] == "Login blocked"
    assert payload["request_id"] == "abc12345-req"
    assert payload["client_ip"] == "203.0.113.9"
    assert payload["data"] == {"layer": "ip"}
    assert payload["timestamp"].endswith("Z")


def test_structured_without_context():
    payload = json.loads(StructuredFormatter().format(make_record()))
    assert "request_id" not in payload
    assert "client_ip" not in payload
    assert "data" not in payload


def test_structured_exception():
    try:
        raise RuntimeError("db down")
    except RuntimeError:
        record = make_record(exc_info=sys.exc_info())
    payload = json.loads(StructuredFormatter().format(record))
    assert "RuntimeError: db down" in payload["exception"]


def test_console_line_layout():
    ip = client_ip_ctx.set("203.0.113.9")
    try:
        line = ConsoleFormatter(use_color=False).format(make_record(data={"attempts": 5}))
    finally:
        client_ip_ctx.reset(ip)

    parts = [part.strip() for part in line.split(" | ")]
    assert parts[1] == "WARNING"
    assert parts[2] == "-"
    assert parts[3] == "203.0.113.9"
    assert parts[4] == "loginguard.limiter.guard"
    assert parts[5] == "Login blocked"
    assert parts[6] == "{'attempts': 5}"


def test_context_logger_passes_data(caplog):
    logger = get_logger("loginguard.tests")
    with caplog.at_level(logging.INFO, logger="loginguard.tests"):
        logger.info("Cleared login attempts", data={"deleted": 3})
    [record] = caplog.records
    assert record.data == {"deleted": 3}
