"""
워크플로우 노드 - 저장 파이프라인의 각 단계 구현

각 노드는 하나의 저장 단계를 담당:
- validate_node: 삭제되지 않은 모든 컴포넌트 검증 (오류 시 저장소 접근 없이 중단)
- process_assets_node: 대기 중인 파일 업로드/삭제 처리
- project_node: 번역 병합 후 저장 투영 생성
- commit_node: 원격 저장소에 쓰기
- finalize_node: 작업 사본 교체, 편집 버퍼/로컬 드래프트 정리
"""

import logging
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

from draft_engine.core.translation_merge import TranslationMergeEngine
from draft_engine.core.validator_resolver import ValidatorResolver
from draft_engine.exceptions import TransientStorageError, ValidationFailedError
from draft_engine.models.content_unit import ContentUnit
from draft_engine.models.session_state import SessionState
from draft_engine.storage.base import AssetPipeline, DraftStore, RemoteContentStore
from draft_engine.utils.edit_session import EditSession
from draft_engine.utils.observability import log_node_complete, log_node_start
from sops.validation_gate import ValidationGateSOP

logger = logging.getLogger(__name__)


@dataclass
class SaveContext:
    """저장 파이프라인 협력자 묶음 (state["context"])"""
    session: EditSession
    resolver: ValidatorResolver
    merge_engine: TranslationMergeEngine
    validation_gate: ValidationGateSOP
    asset_pipeline: AssetPipeline
    remote_store: RemoteContentStore
    draft_store: DraftStore
    message: Optional[str] = None


async def validate_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    검증 노드.

    편집 버퍼 스냅샷을 찍고 삭제되지 않은 모든 컴포넌트를 검증합니다.

    Args:
        state: 파이프라인 상태
            - context: SaveContext (필수)

    Returns:
        업데이트된 상태:
            - snapshot: 편집 버퍼 스냅샷
            - validation_decision: ValidationDecision

    Raises:
        ValidationFailedError: 잘못된 필드가 하나라도 있을 때
    """
    ctx: SaveContext = state["context"]
    session = ctx.session
    log_node_start("validate", session.unit_id)

    snapshot = session.snapshot_buffers()
    errors = ctx.resolver.validate_unit(
        session.unit,
        snapshot["form_edits"],
        snapshot["deleted_ids"]
    )
    decision = ctx.validation_gate.decide(errors, unit_id=session.unit_id)

    state["snapshot"] = snapshot
    state["validation_decision"] = decision

    if not decision.can_save:
        logger.info(decision.message)
        raise ValidationFailedError(decision.errors, unit_id=session.unit_id)

    log_node_complete("validate", session.unit_id)
    return state


async def process_assets_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    에셋 노드.

    대기 중인 업로드를 영구 참조로 바꾼 폼 데이터를 만듭니다.
    세션 버퍼는 건드리지 않습니다.

    Returns:
        업데이트된 상태:
            - form_data: componentId -> fieldName -> value
    """
    ctx: SaveContext = state["context"]
    log_node_start("process_assets", ctx.session.unit_id)

    form_edits = state["snapshot"]["form_edits"]
    state["form_data"] = await ctx.asset_pipeline.process_pending_uploads(form_edits)

    log_node_complete("process_assets", ctx.session.unit_id)
    return state


async def project_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """저장 투영 노드 - 삭제 컴포넌트 제외, 에셋 필드는 {files: [...]}"""
    ctx: SaveContext = state["context"]
    session = ctx.session
    snapshot = state["snapshot"]

    components = ctx.merge_engine.save_components(
        session.unit.components,
        state.get("form_data", snapshot["form_edits"]),
        snapshot["translation_edits"],
        snapshot["deleted_ids"]
    )
    state["projected_unit"] = session.unit.model_copy(update={"components": components})

    logger.debug(f"[{session.unit_id}] 저장 투영 생성: {len(components)}개 컴포넌트")
    return state


async def commit_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    커밋 노드.

    Raises:
        RemoteStoreError: 원격 쓰기 실패 (로컬 드래프트는 유지됨)
    """
    ctx: SaveContext = state["context"]
    unit_id = ctx.session.unit_id
    log_node_start("commit", unit_id)

    unit: ContentUnit = state["projected_unit"]
    try:
        await ctx.remote_store.save_unit(unit_id, unit, ctx.message)
    except Exception as e:
        logger.error(f"[{unit_id}] 원격 저장 실패: {e}")
        raise

    state["committed"] = True
    log_node_complete("commit", unit_id)
    return state


async def finalize_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    최종화 노드.

    저장된 형태로 작업 사본을 교체하고, 저장된 편집만 버퍼에서 제거한 뒤
    로컬 드래프트를 삭제합니다. 저장 도중 들어온 편집은 버퍼에 남습니다.
    """
    ctx: SaveContext = state["context"]
    session = ctx.session

    session.unit = state["projected_unit"]
    session.discard_applied(state["snapshot"])
    session.draft_pending = False
    session.last_saved_at = datetime.now()
    session.last_error = None

    try:
        await ctx.draft_store.clear_draft(session.unit_id)
    except TransientStorageError as e:
        logger.warning(f"[{session.unit_id}] 로컬 드래프트 삭제 실패: {e}")

    state["workflow_state"] = SessionState.READY
    logger.info(f"[{session.unit_id}] 저장 완료: {len(session.unit.components)}개 컴포넌트")
    return state


__all__ = [
    "SaveContext",
    "validate_node",
    "process_assets_node",
    "project_node",
    "commit_node",
    "finalize_node",
]
