"""Unit tests for logging configuration."""

import logging

from thingstore.core.logging import (
    LoggingContextFilter,
    configure_logging,
    log_context,
    correlation_id_var,
    org_id_var,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("thingstore", logging.INFO, __file__, 1, "msg", None, None)


def test_filter_uses_placeholders_without_context():
    record = _record()
    assert LoggingContextFilter().filter(record)
    assert record.correlation_id == "-"
    assert record.org_id == "-"


def test_filter_injects_context():
    cid_token = correlation_id_var.set("req-1")
    org_token = org_id_var.set("org-9")
    try:
        record = _record()
        LoggingContextFilter().filter(record)
        assert record.correlation_id == "req-1"
        assert record.org_id == "org-9"
    finally:
        correlation_id_var.reset(cid_token)
        org_id_var.reset(org_token)


def test_configure_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging(logging.DEBUG)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert any(isinstance(f, LoggingContextFilter) for f in root.handlers[0].filters)
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)


def test_log_context_binds_and_restores():
    with log_context(correlation_id="req-2", org_id="org-3"):
        record = _record()
        LoggingContextFilter().filter(record)
        assert (record.correlation_id, record.org_id) == ("req-2", "org-3")
    assert correlation_id_var.get() is None
    assert org_id_var.get() is None


def test_log_context_keeps_outer_value_for_unset_ids():
    with log_context(org_id="org-1"):
        with log_context(correlation_id="req-5"):
            assert org_id_var.get() == "org-1"
            assert correlation_id_var.get() == "req-5"
        assert correlation_id_var.get() is None
        assert org_id_var.get() == "org-1"


def test_log_context_restores_after_error():
    try:
        with log_context(correlation_id="req-6"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert correlation_id_var.get() is None
