# backend/tests/test_correlation_id.py
"""
Tests for request tracing and logging context.

Test Coverage:
- Correlation id taken from X-Correlation-ID / X-Request-ID or generated
- Correlation id echoed in error bodies
- Context cleared between requests
- Log records stamped with correlation id and user id
"""

import json
import logging
import uuid

import pytest

from tracker.utils.context import (
    clear_correlation_id,
    clear_user_id,
    get_correlation_id,
    get_user_id,
    set_correlation_id,
    set_user_id,
)
from tracker.utils.logging import CorrelationIdFilter, JsonFormatter, parse_log_level
from tests.conftest import auth_headers


class TestCorrelationIdMiddleware:

    def test_incoming_id_is_echoed(self, client):
        response = client.get("/health/live", headers={"X-Correlation-ID": "trace-42"})
        assert response.headers["X-Correlation-ID"] == "trace-42"

    def test_request_id_header_is_accepted(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "req-7"})
        assert response.headers["X-Correlation-ID"] == "req-7"

    def test_id_is_generated_when_absent(self, client):
        response = client.get("/health/live")
        uuid.UUID(response.headers["X-Correlation-ID"])

    def test_error_body_carries_the_id(self, client, other_user, sample_portfolio):
        response = client.get(
            f"/portfolios/{sample_portfolio.id}",
            headers={**auth_headers(other_user), "X-Correlation-ID": "trace-404"},
        )

        assert response.status_code == 404
        assert response.json()["correlation_id"] == "trace-404"

    def test_context_is_cleared_after_request(self, client, sample_user):
        client.get("/portfolios/", headers={**auth_headers(sample_user), "X-Correlation-ID": "trace-1"})

        assert get_correlation_id() is None
        assert get_user_id() is None


class TestContext:

    def test_set_and_clear(self):
        set_correlation_id("abc")
        set_user_id(5)
        try:
            assert get_correlation_id() == "abc"
            assert get_user_id() == 5
        finally:
            clear_correlation_id()
            clear_user_id()

        assert get_correlation_id() is None
        assert get_user_id() is None


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("tracker.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:

    def test_filter_stamps_context(self):
        set_correlation_id("trace-9")
        set_user_id(3)
        try:
            record = make_record()
            assert CorrelationIdFilter().filter(record) is True
        finally:
            clear_correlation_id()
            clear_user_id()

        assert record.correlation_id == "trace-9"
        assert record.user_id == 3

    def test_filter_outside_request(self):
        record = make_record()
        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "-"
        assert record.user_id == "-"

    def test_json_formatter_includes_extra(self):
        record = make_record("Refresh complete", prices_updated=4)
        CorrelationIdFilter().filter(record)

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "Refresh complete"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "tracker.test"
        assert entry["extra"] == {"prices_updated": 4}

    @pytest.mark.parametrize("name,level", [("debug", logging.DEBUG), (" WARN ", logging.WARNING)])
    def test_parse_log_level(self, name, level):
        assert parse_log_level(name) == level

    def test_parse_unknown_level(self):
        with pytest.raises(ValueError):
            parse_log_level("LOUD")
