"""Tests for result formatting helpers."""

import json

from draft_engine.models import PublishResult, PublishStatus, SaveResult, SaveStatus, ValidationError
from draft_engine.models.results import UnitFailure
from draft_engine.utils.result_formatter import (
    calculate_publish_stats,
    format_publish_result,
    format_save_result,
    format_staged_changes,
    save_result,
)


def test_staged_changes_message():
    assert format_staged_changes(["index", "about"], True) == "Modified pages: about, index; Modified global settings"
    assert format_staged_changes(["globals"], True) == "Modified global settings"
    assert format_staged_changes([]) == "No changes detected"


def test_format_invalid_save():
    result = SaveResult(
        unit_id="index",
        status=SaveStatus.INVALID,
        errors=[ValidationError(component_id="heroKey-0", field_path="title", message="This field is required")],
    )
    output = format_save_result(result)
    assert output["ok"] is False
    assert output["error_count"] == 1
    assert output["details"]["errors"][0]["field_path"] == "title"


def test_format_partial_publish():
    result = PublishResult(
        status=PublishStatus.PARTIAL,
        successes=["index"],
        failures=[UnitFailure(unit_id="about", error="boom", error_type="RemoteCommitError")],
    )
    output = format_publish_result(result)
    assert output["failed_units"] == ["about"]
    assert output["drafts_cleared"] is False
    assert output["details"]["failures"][0]["error_type"] == "RemoteCommitError"


def test_publish_stats():
    stats = calculate_publish_stats([
        PublishResult(status=PublishStatus.PUBLISHED),
        PublishResult(status=PublishStatus.PARTIAL),
        PublishResult(status=PublishStatus.PARTIAL),
    ])
    assert stats == {"total": 3, "published": 1, "partial": 2, "failed": 0, "invalid": 0}


def test_save_result_writes_json(tmp_path):
    path = save_result({"status": "saved"}, tmp_path / "run", "save")
    assert json.loads(path.read_text(encoding="utf-8")) == {"status": "saved"}
