"""Unit tests for the contextual logger and the JSON formatter."""

import json
import logging


def _capture(logger):
    records = []

    class _ListHandler(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = _ListHandler()
    logger.logger.addHandler(handler)
    return records, handler


class TestContextualLogger:
    """Tests for ContextualLogger.with_context()."""

    def test_dimensions_merge_and_none_is_dropped(self):
        """Test child loggers inherit dimensions and skip None values."""
        from privgate.core.logging import logger

        parent = logger.with_context(request_id="req-1")
        child = parent.with_context(subscription_id="sub-1", actor=None)

        assert child.dimensions == {"request_id": "req-1", "subscription_id": "sub-1"}
        assert parent.dimensions == {"request_id": "req-1"}

    def test_dimensions_reach_the_record(self):
        """Test dimensions and per-call extras are attached to emitted records."""
        from privgate.core.logging import logger

        log = logger.with_context(subscription_id="sub-1")
        records, handler = _capture(log)
        try:
            log.warning("Privilege denied", extra={"reason": "quota_exhausted"})
        finally:
            log.logger.removeHandler(handler)

        assert len(records) == 1
        assert records[0].subscription_id == "sub-1"
        assert records[0].reason == "quota_exhausted"


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_renders_dimensions(self):
        """Test records render as one JSON document with their dimensions."""
        from privgate.core.logging import JSONFormatter

        record = logging.LogRecord(
            name="privgate",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Used %d units",
            args=(2,),
            exc_info=None,
        )
        record.subscription_id = "sub-1"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Used 2 units"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "privgate"
        assert payload["subscription_id"] == "sub-1"
        assert "timestamp" in payload
        assert "args" not in payload
