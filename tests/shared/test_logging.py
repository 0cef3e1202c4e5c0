"""
Unit tests for structured logging helpers.
"""

import json
import logging

from shared.logging import clear_context, configure_logging, get_logger, request_id_var, set_request_id


def test_set_request_id_generates_uuid():
    request_id = set_request_id()
    try:
        assert len(request_id) == 36
        assert request_id_var.get() == request_id
    finally:
        clear_context()


def test_set_request_id_keeps_given_value():
    assert set_request_id("req-1") == "req-1"
    clear_context()
    assert request_id_var.get() is None


def test_log_lines_are_json_with_context(caplog):
    configure_logging("proxy", "info")
    set_request_id("req-42")
    try:
        with caplog.at_level(logging.INFO):
            get_logger("proxy.test").info("Cache stored", key="GET:https://x.example")
    finally:
        clear_context()

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "Cache stored"
    assert payload["request_id"] == "req-42"
    assert payload["service"] == "proxy"
    assert payload["key"] == "GET:https://x.example"
