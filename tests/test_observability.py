"""Tests for tracing helpers without a configured SDK."""

import pytest

from draft_engine.utils.observability import (
    get_session_id,
    get_unit_id,
    trace_operation,
    trace_session,
)


def test_trace_session_exposes_baggage_only_inside_block():
    with trace_session("save", unit_id="index", session_id="s-1") as (span, session_id):
        assert session_id == "s-1"
        assert get_session_id() == "s-1"
        assert get_unit_id() == "index"

    assert get_unit_id() is None


def test_trace_session_generates_session_id():
    with trace_session("publish") as (_, session_id):
        assert session_id
        assert get_unit_id() is None


def test_trace_operation_reraises_errors():
    with pytest.raises(ValueError):
        with trace_operation("draft_engine.commit", unit_id="about") as (_, record):
            record("commit_started", {"unit_id": "about", "skipped": None})
            raise ValueError("boom")
