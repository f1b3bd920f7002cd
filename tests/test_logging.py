"""Tests for the structured logging system (inventory_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import InsufficientStockError, ItemNotFoundError
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured; restore the suite configuration afterwards."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "inventory_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("sale_committed", extra={"line_count": 3, "grand_total": 12.5})

        record = _parse_log(stream)
        assert record["line_count"] == 3
        assert record["grand_total"] == 12.5

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        tenant = uuid4()
        LogContext.set(correlation_id="abc-123", tenant_id=str(tenant))
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["tenant_id"] == str(tenant)

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "operation_id" not in record

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientStockError("Hammer", 2, 5)
        except InsufficientStockError:
            get_logger("test").warning("sale_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INSUFFICIENT_STOCK"
        assert record["exc_type"] == "InsufficientStockError"
        assert record["exc_item_name"] == "Hammer"
        assert record["exc_available"] == 2
        assert record["exc_requested"] == 5

    def test_not_found_carries_id(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        item_id = str(uuid4())
        try:
            raise ItemNotFoundError(item_id)
        except ItemNotFoundError:
            get_logger("test").warning("lookup_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_item_id"] == item_id
        assert record["exc_message"] == f"Item with ID {item_id} not found"

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"item_id": uid})

        assert _parse_log(stream)["item_id"] == str(uid)

    def test_debug_filtered_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", entry_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "entry_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(operation_id="outer")
        with LogContext.bind(operation_id="inner"):
            assert LogContext.get_all()["operation_id"] == "inner"
        assert LogContext.get_all()["operation_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(correlation_id="temp"):
            assert LogContext.get_all()["correlation_id"] == "temp"
        assert "correlation_id" not in LogContext.get_all()

    def test_bind_stringifies_and_skips_none(self):
        uid = uuid4()
        with LogContext.bind(actor_id=uid, entry_id=None):
            ctx = LogContext.get_all()
        assert ctx == {"actor_id": str(uid)}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="Unknown log context field: event_id"):
            LogContext.set(event_id="x")
        with pytest.raises(TypeError):
            LogContext.bind(trace_id="x")

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            tenant_id="t",
            actor_id="a",
            entry_id="e",
            operation_id="o",
        )
        assert len(LogContext.get_all()) == 5


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("inventory_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("services.sale").name == "inventory_kernel.services.sale"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("ingestion.import_service").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "inventory_kernel.ingestion.import_service"

    def test_reset(self):
        configure_logging()
        reset_logging()
        root = logging.getLogger("inventory_kernel")
        assert root.handlers == []
        assert root.level == logging.WARNING
        assert root.propagate is True
