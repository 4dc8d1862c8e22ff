"""
Publisher - 로컬 드래프트 일괄 발행

흐름:
    LIST DRAFTS → (없음) NOTHING_TO_PUBLISH
               → VALIDATE ALL → (오류) INVALID
               → COMMIT (단위별 동시 커밋, 모두 완료될 때까지 대기)
               → DECIDE (PublishGateSOP)
               → PROMOTE (실패가 없을 때만 원격 드래프트를 게시본으로 병합)
               → CLEAR (실패가 없을 때만)
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from draft_engine.core.validator_resolver import ValidatorResolver
from draft_engine.exceptions import RemoteStoreError, TransientStorageError
from draft_engine.models.content_unit import GLOBALS_UNIT_ID, ContentUnit
from draft_engine.models.results import PublishResult, PublishStatus
from draft_engine.models.validation import ValidationError
from draft_engine.storage.base import DraftStore, RemoteContentStore
from draft_engine.utils.observability import trace_operation
from draft_engine.utils.result_formatter import format_staged_changes
from sops.publish_gate import PublishGateSOP

logger = logging.getLogger(__name__)

# 커밋된 단위 id -> 커밋된 드래프트 (드래프트 삭제 후 호출)
CommittedCallback = Callable[[Dict[str, ContentUnit]], None]


def _elapsed_ms(start_time: datetime) -> int:
    return int((datetime.now() - start_time).total_seconds() * 1000)


class Publisher:
    """
    일괄 발행기.

    Example:
        publisher = Publisher(draft_store, remote_store, resolver, concurrency=5)
        result = await publisher.publish("Spring update")
        if result.status == PublishStatus.PARTIAL:
            print(result.failed_unit_ids)
    """

    def __init__(
        self,
        draft_store: DraftStore,
        remote_store: RemoteContentStore,
        resolver: Optional[ValidatorResolver] = None,
        publish_gate: Optional[PublishGateSOP] = None,
        concurrency: int = 5,
        default_message: str = "",
        on_committed: Optional[CommittedCallback] = None
    ):
        self.draft_store = draft_store
        self.remote_store = remote_store
        self.resolver = resolver
        self.publish_gate = publish_gate or PublishGateSOP()
        self.concurrency = max(int(concurrency), 1)
        self.default_message = default_message
        self.on_committed = on_committed

    async def collect_drafts(self) -> Dict[str, ContentUnit]:
        """로컬 드래프트가 있는 모든 단위 (globals 포함)"""
        drafts: Dict[str, ContentUnit] = {}
        for unit_id in await self.draft_store.list_draft_unit_ids():
            draft = await self.draft_store.get_draft(unit_id)
            if draft is not None:
                drafts[unit_id] = draft
        return drafts

    def validate_all_drafts(self, drafts: Dict[str, ContentUnit]) -> List[ValidationError]:
        if self.resolver is None:
            return []
        errors: List[ValidationError] = []
        for draft in drafts.values():
            errors.extend(self.resolver.validate_unit(draft))
        return errors

    def commit_message(self, unit_ids: List[str], message: Optional[str] = None) -> str:
        if message:
            return message
        if self.default_message:
            return self.default_message
        return format_staged_changes(unit_ids, GLOBALS_UNIT_ID in unit_ids)

    async def _commit_all(self, drafts: Dict[str, ContentUnit], message: str) -> list:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def commit_with_semaphore(unit_id: str, unit: ContentUnit) -> str:
            async with semaphore:
                with trace_operation("draft_engine.commit", unit_id=unit_id):
                    await self.remote_store.save_unit(unit_id, unit, message)
                    return unit_id

        return await asyncio.gather(
            *[commit_with_semaphore(unit_id, unit) for unit_id, unit in drafts.items()],
            return_exceptions=True
        )

    async def publish(self, message: Optional[str] = None) -> PublishResult:
        """
        모든 로컬 드래프트 발행.

        Args:
            message: 커밋 메시지 (비어 있으면 기본 메시지 사용)

        Returns:
            PublishResult
        """
        start_time = datetime.now()

        with trace_operation("draft_engine.publish") as (span, record):
            try:
                drafts = await self.collect_drafts()
            except TransientStorageError as e:
                logger.error(f"발행 실패, 로컬 드래프트 조회 불가: {e}")
                return PublishResult(
                    status=PublishStatus.FAILED,
                    message=str(e),
                    latency_ms=_elapsed_ms(start_time)
                )

            if not drafts:
                logger.info("발행할 드래프트 없음")
                return PublishResult(
                    status=PublishStatus.NOTHING_TO_PUBLISH,
                    message="No changes detected",
                    latency_ms=_elapsed_ms(start_time)
                )

            unit_ids = list(drafts.keys())
            record("drafts_collected", {"count": len(unit_ids), "unit_ids": ",".join(unit_ids)})

            errors = self.validate_all_drafts(drafts)
            if errors:
                invalid_units = sorted({e.unit_id for e in errors if e.unit_id})
                logger.warning(f"발행 차단: {len(errors)}개 필드 오류 ({', '.join(invalid_units)})")
                record("validation_failed", {"error_count": len(errors)})
                return PublishResult(
                    status=PublishStatus.INVALID,
                    validation_errors=errors,
                    message=f"{len(errors)} invalid field(s) in: {', '.join(invalid_units)}",
                    latency_ms=_elapsed_ms(start_time)
                )

            commit_message = self.commit_message(unit_ids, message)
            logger.info(f"발행 시작: {len(unit_ids)}개 단위, 동시성 {self.concurrency} ({commit_message})")

            results = await self._commit_all(drafts, commit_message)
            successes, failures = self.publish_gate.partition(unit_ids, results)
            decision = self.publish_gate.decide(successes, failures)

            promoted = False
            if decision.can_clear_drafts:
                try:
                    promoted = await self.remote_store.publish_draft(commit_message)
                except RemoteStoreError as e:
                    logger.error(f"커밋 후 게시본 병합 실패: {e}")
                    decision = self.publish_gate.decide_promotion_failure(successes, e)
            record("decided", self.publish_gate.get_summary(decision))

            drafts_cleared = False
            if decision.can_clear_drafts:
                try:
                    for unit_id in unit_ids:
                        await self.draft_store.clear_draft(unit_id)
                    drafts_cleared = True
                except TransientStorageError as e:
                    logger.warning(f"커밋 후 로컬 드래프트 삭제 실패: {e}")
            else:
                logger.error(f"발행 실패, 드래프트 유지: {decision.message}")

            if drafts_cleared and self.on_committed is not None:
                self.on_committed({unit_id: drafts[unit_id] for unit_id in successes})

            logger.info(
                f"발행 완료: {decision.status.value} "
                f"(성공 {len(successes)}, 실패 {len(failures)}, 드래프트 삭제 {drafts_cleared})"
            )

            return PublishResult(
                status=decision.status,
                successes=decision.successes,
                failures=decision.failures,
                drafts_cleared=drafts_cleared,
                promoted=promoted,
                message=commit_message,
                latency_ms=_elapsed_ms(start_time)
            )


__all__ = ["CommittedCallback", "Publisher"]
