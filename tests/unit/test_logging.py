"""Tests for structured logging helpers."""
import io
import json
import logging

from collectory.observability import get_logger, setup_logging, with_log_context
from collectory.observability.logging import CustomJsonFormatter, LogContextFilter


def _capture(name: str) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    handler.addFilter(LogContextFilter())
    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, stream


def test_with_log_context_drops_empty_values():
    extra = with_log_context(module_key="books", provider_key=None, attempt=2)

    assert extra == {"module_key": "books", "attempt": 2}


def test_json_line_carries_context_fields():
    """Test context given per call ends up in the JSON record."""
    _, stream = _capture("collectory.test.json")
    logger = get_logger("collectory.test.json")

    logger.warning("Provider fetch failed", extra=with_log_context(provider_key="openlibrary", lookup_id="abc"))

    record = json.loads(stream.getvalue())
    assert record["message"] == "Provider fetch failed"
    assert record["level"] == "WARNING"
    assert record["logger"] == "collectory.test.json"
    assert record["provider_key"] == "openlibrary"
    assert record["lookup_id"] == "abc"
    # Unset context fields are omitted
    assert "module_key" not in record
    assert "source_name" not in record


def test_adapter_merges_call_extra_over_its_own():
    _, stream = _capture("collectory.test.adapter")
    adapter = get_logger("collectory.test.adapter")
    adapter.extra = {"module_key": "base", "source_name": "a.xml"}

    adapter.info("Loaded", extra={"module_key": "books"})

    record = json.loads(stream.getvalue())
    assert record["module_key"] == "books"
    assert record["source_name"] == "a.xml"


def test_setup_logging_installs_single_json_handler(monkeypatch):
    monkeypatch.setenv("COLLECTORY_LOG_LEVEL", "DEBUG")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging()

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, CustomJsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
