"""
Tests for correlation IDs in log records.
"""

import logging

from docingest.observability.correlation import (
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)
from docingest.observability.logger import CorrelationIdFilter


class TestCorrelationIdFilter:
    """Test suite for CorrelationIdFilter."""

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("docingest.test", logging.INFO, __file__, 1, "msg", (), None)

    def test_record_gets_current_correlation_id(self):
        set_correlation_id("job-123")
        try:
            record = self._record()
            assert CorrelationIdFilter().filter(record) is True
            assert record.correlation_id == "job-123"
        finally:
            clear_correlation_id()

    def test_record_without_context_gets_placeholder(self):
        clear_correlation_id()
        record = self._record()

        CorrelationIdFilter().filter(record)

        assert get_correlation_id() == ""
        assert record.correlation_id == "-"

    def test_generated_id_when_none_given(self):
        generated = set_correlation_id()
        try:
            assert generated
            assert get_correlation_id() == generated
        finally:
            clear_correlation_id()


class TestCorrelationScope:
    """Test suite for correlation_scope."""

    def test_nested_scope_restores_outer_id(self):
        clear_correlation_id()

        with correlation_scope("request-1") as outer:
            with correlation_scope("job-9") as inner:
                assert get_correlation_id() == inner == "job-9"
            assert get_correlation_id() == outer == "request-1"

        assert get_correlation_id() == ""

    def test_empty_id_is_generated(self):
        with correlation_scope("") as value:
            assert len(value) == 32
