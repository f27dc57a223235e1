import json
import logging

import pytest

from dinebot.core.logging_setup import JsonFormatter, mask_phone, redact
from dinebot.core.metrics import BotMetrics, RequestMetrics
from dinebot.core.request_context import clear_request_context, set_request_context
from dinebot.core.startup_checks import validate_database_environment
from dinebot.whatsapp.base import safe_json, sanitize_payload


def test_mask_phone_keeps_last_four_digits():
    assert mask_phone("15551234567") == "****4567"
    assert mask_phone("123") == "****"
    assert mask_phone(None) == ""


def test_redact_hides_tokens_and_phone_numbers():
    text = redact("Authorization: Bearer EAAB123.xyz access_token=abc123 sent to +15551234567")

    assert "EAAB123" not in text
    assert "abc123" not in text
    assert "15551234567" not in text
    assert "****4567" in text


def test_json_formatter_includes_message_context():
    set_request_context(request_id="req-1", restaurant_id=1, conversation_id=9)
    record = logging.LogRecord("dinebot.test", logging.INFO, __file__, 1, "state %s", ("browsing_menu",), None)
    record.status_code = 200
    try:
        entry = json.loads(JsonFormatter().format(record))
    finally:
        clear_request_context()

    assert entry["message"] == "state browsing_menu"
    assert entry["request_id"] == "req-1"
    assert entry["restaurant_id"] == "1"
    assert entry["conversation_id"] == "9"
    assert entry["status_code"] == 200
    assert "wa_message_id" not in entry


def test_request_metrics_group_by_route_and_status_class():
    metrics = RequestMetrics()
    metrics.record("POST", "/webhook/whatsapp", 200, 12.0)
    metrics.record("POST", "/webhook/whatsapp", 503, 30.0)

    stats = metrics.snapshot()["POST /webhook/whatsapp"]

    assert stats["count"] == 2
    assert stats["errors"] == 1
    assert stats["avg_ms"] == 21.0
    assert stats["max_ms"] == 30.0
    assert stats["statuses"] == {"2xx": 1, "5xx": 1}


def test_bot_metrics_count_outcomes_per_restaurant():
    metrics = BotMetrics()
    metrics.increment("processed", 1)
    metrics.increment("processed", 1)
    metrics.increment("duplicate")

    assert metrics.snapshot() == {"1": {"processed": 2}, "unknown": {"duplicate": 1}}


def test_sqlite_is_refused_in_production():
    with pytest.raises(RuntimeError):
        validate_database_environment("sqlite:///./dinebot.db", is_prod=True)
    validate_database_environment("sqlite:///./dinebot.db", is_prod=False)
    validate_database_environment("postgresql://db/dinebot", is_prod=True)


def test_sanitize_payload_masks_credentials_only():
    payload = {"to": "15551234567", "meta": [{"access_token": "EAABsecret1234"}], "text": {"body": "hi"}}

    clean = sanitize_payload(payload)

    assert clean["to"] == "15551234567"
    assert clean["meta"][0]["access_token"] == "****1234"
    assert clean["text"] == {"body": "hi"}
    assert json.loads(safe_json(clean)) == clean
