"""Tests for the structured JSON log format."""

import json
import logging

import pytest

from schooltalk.logging_config import (
    StructuredJsonFormatter, get_logger, log_with_context, request_id_var,
)

pytestmark = pytest.mark.unit


class CaptureHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.setFormatter(StructuredJsonFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


@pytest.fixture
def captured():
    handler = CaptureHandler()
    logger = get_logger("roster")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler
    logger.removeHandler(handler)


def test_entry_shape(captured):
    logger, handler = captured
    token = request_id_var.set("req-123")
    try:
        log_with_context(logger, "INFO", "Student added",
                         context={"account_id": "15550001111"},
                         extra_data={"duration_ms": 1.5})
    finally:
        request_id_var.reset(token)

    entry = json.loads(handler.lines[-1])
    assert entry["level"] == "INFO"
    assert entry["channel"] == "roster"
    assert entry["message"] == "Student added"
    assert entry["context"] == {"request_id": "req-123", "account_id": "15550001111"}
    assert entry["extra"] == {"duration_ms": 1.5}
    assert entry["timestamp"].endswith("Z")


def test_secrets_are_redacted(captured):
    logger, handler = captured
    log_with_context(logger, "WARNING", "oops",
                     context={"secret": "1234"},
                     extra_data={"to_secret": "9876", "password": "hunter22"})

    line = handler.lines[-1]
    assert "1234" not in line
    assert "9876" not in line
    assert "hunter22" not in line
    assert json.loads(line)["context"]["secret"] == "***"


def test_unknown_level_falls_back_to_info(captured):
    logger, handler = captured
    log_with_context(logger, "NOTALEVEL", "still logged")
    assert json.loads(handler.lines[-1])["level"] == "INFO"
