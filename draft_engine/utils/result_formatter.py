"""
결과 포맷터 - 저장/발행 결과를 JSON 직렬화 가능한 dict로 변환

run_workflow.py 및 다른 스크립트에서 재사용 가능.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List

from draft_engine.models.content_unit import GLOBALS_UNIT_ID
from draft_engine.models.results import PublishResult, PublishStatus, SaveResult, SaveStatus


def format_staged_changes(page_ids: Iterable[str], globals_changed: bool = False) -> str:
    """
    기본 커밋 메시지 생성.

    Example:
        format_staged_changes(["index", "about"], True)
        # "Modified pages: about, index; Modified global settings"
    """
    pages = sorted(page_id for page_id in page_ids if page_id != GLOBALS_UNIT_ID)
    parts = []
    if pages:
        parts.append(f"Modified pages: {', '.join(pages)}")
    if globals_changed:
        parts.append("Modified global settings")
    return "; ".join(parts) if parts else "No changes detected"


def format_save_result(result: SaveResult) -> Dict[str, Any]:
    """
    저장 결과를 JSON 직렬화 가능한 dict로 변환.

    구조:
        - 상단: summary (unit_id, status, error_count)
        - 하단: details (errors, components)
    """
    output = {
        "unit_id": result.unit_id,
        "status": result.status.value,
        "ok": result.status == SaveStatus.SAVED,
        "error_count": len(result.errors),
        "latency_ms": result.latency_ms,
        "created_at": datetime.now().isoformat(),
    }

    details: Dict[str, Any] = {}
    if result.errors:
        details["errors"] = [
            {
                "component_id": e.component_id,
                "field_path": e.field_path,
                "message": e.message,
            }
            for e in result.errors
        ]
    if result.error:
        details["error"] = result.error
        details["error_type"] = result.error_type
    if result.unit is not None:
        details["components"] = [c.id for c in result.unit.components]

    output["details"] = details
    return output


def format_publish_result(result: PublishResult) -> Dict[str, Any]:
    """발행 결과를 JSON 직렬화 가능한 dict로 변환"""
    output = {
        "status": result.status.value,
        "message": result.message,
        "successes": list(result.successes),
        "failed_units": result.failed_unit_ids,
        "drafts_cleared": result.drafts_cleared,
        "promoted": result.promoted,
        "latency_ms": result.latency_ms,
        "created_at": datetime.now().isoformat(),
    }

    details: Dict[str, Any] = {}
    if result.failures:
        details["failures"] = [f.model_dump() for f in result.failures]
    if result.validation_errors:
        details["validation_errors"] = [
            e.model_dump(by_alias=True, exclude_none=True) for e in result.validation_errors
        ]

    output["details"] = details
    return output


def calculate_publish_stats(results: List[PublishResult]) -> Dict[str, int]:
    """여러 발행 시도의 상태별 통계"""
    return {
        "total": len(results),
        "published": sum(1 for r in results if r.status == PublishStatus.PUBLISHED),
        "partial": sum(1 for r in results if r.status == PublishStatus.PARTIAL),
        "failed": sum(1 for r in results if r.status == PublishStatus.FAILED),
        "invalid": sum(1 for r in results if r.status == PublishStatus.INVALID),
    }


def save_result(output: Dict[str, Any], run_dir: Path, name: str) -> Path:
    """결과 dict를 JSON 파일로 저장"""
    run_dir.mkdir(parents=True, exist_ok=True)
    path = run_dir / f"{name}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(output, f, ensure_ascii=False, indent=2)
    return path
