"""
Draft Reconciler - 단위 선택 시 권위 있는 작업 사본 결정

우선순위:
    1. 로컬 드래프트 (있으면 무조건 채택, 변경 있음으로 표시)
    2. 매니페스트 동기화 (누락 컴포넌트 합성)
    3. 원격 드래프트 (있으면 캐시/초기 사본 대신 사용)

취소: await 이후마다 is_active()를 확인하고 stale이면 None을 반환합니다.
실패: 모든 조회 오류는 로그만 남기고 캐시/초기 사본으로 대체합니다.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from draft_engine.exceptions import ReconciliationError, TransientStorageError
from draft_engine.core.manifest import ManifestSynchronizer
from draft_engine.models.content_unit import ContentUnit
from draft_engine.storage.base import DraftStore, RemoteContentStore
from draft_engine.utils.observability import trace_operation

logger = logging.getLogger(__name__)

ActiveCheck = Callable[[], bool]


class ReconcileSource:
    """작업 사본 출처"""
    LOCAL_DRAFT = "local_draft"
    REMOTE_DRAFT = "remote_draft"
    CACHED = "cached"
    REMOTE = "remote"
    EMPTY = "empty"


@dataclass
class ReconcileResult:
    """조정 결과"""
    unit: ContentUnit
    source: str
    draft_pending: bool = False   # 로컬 드래프트에서 로드됨


def _always_active() -> bool:
    return True


class DraftReconciler:
    """
    드래프트 조정기.

    Example:
        reconciler = DraftReconciler(draft_store, remote_store, ManifestSynchronizer(manifest))
        result = await reconciler.reconcile("index", is_active=lambda: manager.is_selected("index"))
        if result is not None:
            session.unit = result.unit
    """

    def __init__(
        self,
        draft_store: DraftStore,
        remote_store: RemoteContentStore,
        manifest: Optional[ManifestSynchronizer] = None
    ):
        self.draft_store = draft_store
        self.remote_store = remote_store
        self.manifest = manifest or ManifestSynchronizer()

    async def _local_draft(self, unit_id: str) -> Optional[ContentUnit]:
        try:
            return await self.draft_store.get_draft(unit_id)
        except TransientStorageError as e:
            logger.warning(f"[{unit_id}] 로컬 드래프트 읽기 실패, 드래프트 없음으로 처리: {e}")
            return None

    async def reconcile(
        self,
        unit_id: str,
        cached: Optional[ContentUnit] = None,
        is_active: ActiveCheck = _always_active
    ) -> Optional[ReconcileResult]:
        """
        작업 사본 결정.

        Args:
            unit_id: 선택된 단위 ID
            cached: 캐시/초기 사본 (없으면 remote.load_unit으로 조회)
            is_active: 이 선택이 아직 유효한지 확인하는 콜백

        Returns:
            ReconcileResult, 선택이 stale이 되면 None
        """
        with trace_operation("draft_engine.reconcile", unit_id=unit_id) as (span, record):
            # Step 1: 로컬 드래프트
            draft = await self._local_draft(unit_id)
            if not is_active():
                record("stale", {"step": "local_draft"})
                return None
            if draft is not None:
                logger.info(f"[{unit_id}] 로컬 드래프트 채택")
                record("local_draft_found")
                return ReconcileResult(unit=draft, source=ReconcileSource.LOCAL_DRAFT, draft_pending=True)

            source = ReconcileSource.CACHED if cached is not None else ReconcileSource.EMPTY
            base = cached
            try:
                if base is None:
                    base = await self.remote_store.load_unit(unit_id)
                    if not is_active():
                        record("stale", {"step": "load_unit"})
                        return None
                    if base is not None:
                        source = ReconcileSource.REMOTE

                # Step 2: 매니페스트 동기화
                working = self.manifest.sync(base or ContentUnit.empty(unit_id))

                # Step 3: 원격 드래프트
                has_draft = await self.remote_store.has_unpublished_draft()
                if not is_active():
                    record("stale", {"step": "has_unpublished_draft"})
                    return None

                if has_draft:
                    remote_draft = await self.remote_store.load_remote_draft(unit_id)
                    if not is_active():
                        record("stale", {"step": "load_remote_draft"})
                        return None
                    if remote_draft is not None:
                        logger.info(f"[{unit_id}] 원격 드래프트 채택")
                        record("remote_draft_found")
                        return ReconcileResult(
                            unit=self.manifest.sync(remote_draft),
                            source=ReconcileSource.REMOTE_DRAFT
                        )

                record("resolved", {"source": source})
                return ReconcileResult(unit=working, source=source)

            except Exception as e:
                error = ReconciliationError(unit_id, e)
                logger.error(f"{error}, 캐시 사본으로 대체")
                record("fallback", {"error": str(e)})
                if not is_active():
                    return None
                fallback = self.manifest.sync(cached or ContentUnit.empty(unit_id))
                return ReconcileResult(
                    unit=fallback,
                    source=ReconcileSource.CACHED if cached is not None else ReconcileSource.EMPTY
                )


__all__ = [
    "ActiveCheck",
    "ReconcileSource",
    "ReconcileResult",
    "DraftReconciler",
]
