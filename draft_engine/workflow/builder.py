"""
워크플로우 빌더 - 편집 엔진 오케스트레이션

저장 파이프라인 흐름:
    VALIDATE → PROCESS ASSETS → PROJECT → COMMIT → FINALIZE
        ↓                                    ↓
     INVALID (저장소 접근 없음)            FAILED (드래프트 유지)

ContentEditingEngine은 단위별 EditSession, DraftReconciler, AutosaveScheduler,
SavePipeline, Publisher를 묶어 대시보드에 노출되는 인터페이스를 제공합니다.
"""

import asyncio
import logging
from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from draft_engine.core.change_detector import ChangeDetector
from draft_engine.core.manifest import ManifestSynchronizer
from draft_engine.core.schema_registry import StaticSchemaRegistry
from draft_engine.core.translation_merge import TranslationMergeEngine, TranslationStatus
from draft_engine.core.validator_resolver import ValidatorResolver
from draft_engine.exceptions import UnknownUnitError, ValidationFailedError
from draft_engine.models.content_unit import Component, ContentUnit
from draft_engine.models.results import PublishResult, SaveResult, SaveStatus
from draft_engine.models.session_state import SessionState, is_busy_state
from draft_engine.models.validation import ValidationError
from draft_engine.storage.assets import PassthroughAssetPipeline
from draft_engine.storage.base import AssetPipeline, DraftStore, RemoteContentStore, SchemaRegistry
from draft_engine.storage.local_drafts import JsonFileDraftStore
from draft_engine.utils.config import ConfigLoader, get_config_loader
from draft_engine.utils.edit_session import EditSession, EditSessionManager
from draft_engine.utils.observability import trace_session
from draft_engine.workflow.autosave import AutosaveScheduler
from draft_engine.workflow.nodes import (
    SaveContext,
    validate_node,
    process_assets_node,
    project_node,
    commit_node,
    finalize_node
)
from draft_engine.workflow.publisher import Publisher
from draft_engine.workflow.reconciler import DraftReconciler
from sops.publish_gate import PublishGateSOP
from sops.validation_gate import ValidationGateSOP

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """엔진 설정"""
    locales: List[str] = field(default_factory=lambda: ["en"])
    default_locale: str = "en"
    quiet_period_seconds: float = 1.0   # 자동 저장 디바운스
    publish_concurrency: int = 5        # 발행 동시 커밋 수
    default_commit_message: str = ""    # 비어 있으면 변경 요약 사용
    manifest: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @classmethod
    def from_loader(cls, loader: Optional[ConfigLoader] = None) -> "EngineConfig":
        loader = loader or get_config_loader()
        settings = loader.get_engine_settings()
        return cls(
            locales=loader.get_locales(),
            default_locale=loader.get_default_locale(),
            quiet_period_seconds=float(settings["autosave"]["quiet_period_seconds"]),
            publish_concurrency=int(settings["publish"]["concurrency"]),
            default_commit_message=settings["publish"].get("default_message") or "",
            manifest=loader.get_manifest(),
        )


def _elapsed_ms(start_time: datetime) -> int:
    return int((datetime.now() - start_time).total_seconds() * 1000)


class SavePipeline:
    """
    단일 단위 저장 파이프라인.

    사용 예:
        pipeline = SavePipeline(resolver, merge_engine, asset_pipeline, remote_store, draft_store)
        result = await pipeline.run(session)
        print(result.status)  # saved, invalid, failed
    """

    def __init__(
        self,
        resolver: ValidatorResolver,
        merge_engine: TranslationMergeEngine,
        asset_pipeline: AssetPipeline,
        remote_store: RemoteContentStore,
        draft_store: DraftStore,
        validation_gate: Optional[ValidationGateSOP] = None
    ):
        self.resolver = resolver
        self.merge_engine = merge_engine
        self.asset_pipeline = asset_pipeline
        self.remote_store = remote_store
        self.draft_store = draft_store
        self.validation_gate = validation_gate or ValidationGateSOP()

    async def run(self, session: EditSession, message: Optional[str] = None) -> SaveResult:
        """
        저장 실행.

        Args:
            session: 로드된 단위의 편집 세션 (READY 또는 FAILED)
            message: 커밋 메시지

        Returns:
            SaveResult (예외를 던지지 않음)
        """
        start_time = datetime.now()
        unit_id = session.unit_id

        state: Dict[str, Any] = {
            "context": SaveContext(
                session=session,
                resolver=self.resolver,
                merge_engine=self.merge_engine,
                validation_gate=self.validation_gate,
                asset_pipeline=self.asset_pipeline,
                remote_store=self.remote_store,
                draft_store=self.draft_store,
                message=message,
            ),
            "workflow_state": SessionState.SAVING,
        }

        session.transition(SessionState.SAVING)
        logger.info(f"[{unit_id}] 저장 시작")

        with trace_session("save", unit_id=unit_id, session_id=session.session_id) as (span, _):
            try:
                state = await self._run_pipeline(state)
            except ValidationFailedError as e:
                session.transition(SessionState.READY)
                return SaveResult(
                    unit_id=unit_id,
                    status=SaveStatus.INVALID,
                    errors=e.errors,
                    latency_ms=_elapsed_ms(start_time)
                )
            except Exception as e:
                logger.error(f"[{unit_id}] 저장 실패: {e}")
                session.last_error = str(e)
                session.transition(SessionState.FAILED)
                return SaveResult(
                    unit_id=unit_id,
                    status=SaveStatus.FAILED,
                    error=str(e),
                    error_type=type(e).__name__,
                    latency_ms=_elapsed_ms(start_time)
                )

        session.transition(SessionState.READY)
        return SaveResult(
            unit_id=unit_id,
            status=SaveStatus.SAVED,
            unit=session.unit,
            latency_ms=_elapsed_ms(start_time)
        )

    async def _run_pipeline(self, state: Dict[str, Any]) -> Dict[str, Any]:
        # Step 1: 검증 (실패 시 ValidationFailedError)
        state = await validate_node(state)

        # Step 2: 에셋 업로드/삭제
        state = await process_assets_node(state)

        # Step 3: 저장 투영
        state = await project_node(state)

        # Step 4: 원격 커밋
        state = await commit_node(state)

        # Step 5: 최종화
        return await finalize_node(state)


class ContentEditingEngine:
    """
    콘텐츠 편집 엔진.

    사용 예:
        engine = ContentEditingEngine(remote_store, draft_store, schema_registry)
        await engine.load_unit("index")
        engine.update_field("hero-0", "title", "Hello")
        engine.update_field("hero-0", "title", "Bonjour", locale="fr")
        result = await engine.save("index")
        publish_result = await engine.publish("Spring update")
    """

    def __init__(
        self,
        remote_store: RemoteContentStore,
        draft_store: DraftStore,
        schema_registry: SchemaRegistry,
        asset_pipeline: Optional[AssetPipeline] = None,
        config: Optional[EngineConfig] = None
    ):
        self.config = config or EngineConfig()
        self.remote_store = remote_store
        self.draft_store = draft_store
        self.schema_registry = schema_registry
        self.asset_pipeline = asset_pipeline or PassthroughAssetPipeline()

        locales = self.config.locales
        default_locale = self.config.default_locale
        self.sessions = EditSessionManager()
        self.resolver = ValidatorResolver(schema_registry, locales, default_locale)
        self.merge_engine = TranslationMergeEngine(locales, default_locale, schema_registry)
        self.change_detector = ChangeDetector(locales, default_locale)
        self.manifest = ManifestSynchronizer(self.config.manifest, self._schema_name_for)
        self.reconciler = DraftReconciler(draft_store, remote_store, self.manifest)
        self.autosave = AutosaveScheduler(draft_store, self.build_draft, self.config.quiet_period_seconds)
        self.save_pipeline = SavePipeline(
            self.resolver,
            self.merge_engine,
            self.asset_pipeline,
            remote_store,
            draft_store
        )
        self.publisher = Publisher(
            draft_store,
            remote_store,
            resolver=self.resolver,
            publish_gate=PublishGateSOP(),
            concurrency=self.config.publish_concurrency,
            default_message=self.config.default_commit_message,
            on_committed=self._adopt_committed
        )
        self._loading: Dict[str, asyncio.Task] = {}
        # 발행 중 세션별 버퍼 스냅샷 (커밋 후 반영된 편집 제거용)
        self._publish_snapshots: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def from_config(
        cls,
        remote_store: RemoteContentStore,
        draft_store: Optional[DraftStore] = None,
        loader: Optional[ConfigLoader] = None,
        asset_pipeline: Optional[AssetPipeline] = None
    ) -> "ContentEditingEngine":
        """config/*.yaml 기반 엔진 생성"""
        loader = loader or get_config_loader()
        if draft_store is None:
            draft_store = JsonFileDraftStore(loader.get_engine_settings()["storage"]["drafts_dir"])
        return cls(
            remote_store=remote_store,
            draft_store=draft_store,
            schema_registry=StaticSchemaRegistry.from_config(loader),
            asset_pipeline=asset_pipeline,
            config=EngineConfig.from_loader(loader)
        )

    def _schema_name_for(self, schema_key: str) -> str:
        get_by_key = getattr(self.schema_registry, "get_by_key", None)
        schema = get_by_key(schema_key) if get_by_key else None
        return schema.name if schema else schema_key

    # -------------------------------------------------------------------------
    # 세션 조회
    # -------------------------------------------------------------------------

    def _unit_id_or_selected(self, unit_id: Optional[str]) -> str:
        unit_id = unit_id or self.sessions.selected_unit_id
        if unit_id is None:
            raise UnknownUnitError("<none selected>")
        return unit_id

    def _loaded_session(self, unit_id: Optional[str]) -> EditSession:
        unit_id = self._unit_id_or_selected(unit_id)
        session = self.sessions.get(unit_id)
        if session is None or not session.is_loaded:
            raise UnknownUnitError(unit_id)
        return session

    # -------------------------------------------------------------------------
    # 로드 경로
    # -------------------------------------------------------------------------

    async def load_unit(
        self,
        unit_id: str,
        cached: Optional[ContentUnit] = None,
        force: bool = False
    ) -> Optional[ContentUnit]:
        """
        단위 선택 및 작업 사본 로드.

        같은 단위가 이미 로드 중이면 같은 작업을 기다립니다.

        Args:
            unit_id: 선택할 단위 ID
            cached: 캐시/초기 사본
            force: 이미 로드된 단위도 다시 조정

        Returns:
            작업 사본, 다른 단위가 선택되어 stale이 되면 None
        """
        self.sessions.select(unit_id)
        session = self.sessions.get_or_create(unit_id)

        if session.state == SessionState.SAVING:
            return session.unit
        if session.is_loaded and not force and unit_id not in self._loading:
            return session.unit

        task = self._loading.get(unit_id)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._load(session, cached))
            self._loading[unit_id] = task

            def _forget(done: asyncio.Task, unit_id: str = unit_id) -> None:
                if self._loading.get(unit_id) is done:
                    del self._loading[unit_id]

            task.add_done_callback(_forget)

        return await asyncio.shield(task)

    async def _load(self, session: EditSession, cached: Optional[ContentUnit]) -> Optional[ContentUnit]:
        unit_id = session.unit_id
        session.initial_load = True
        session.transition(SessionState.LOADING)

        try:
            result = await self.reconciler.reconcile(
                unit_id,
                cached=cached,
                is_active=lambda: self.sessions.is_selected(unit_id)
            )
        except BaseException:
            self._end_load(session)
            raise

        if result is None:
            logger.info(f"[{unit_id}] 다른 단위가 선택되어 로드 결과 폐기")
            self._end_load(session)
            return None

        session.unit = result.unit
        session.draft_pending = result.draft_pending
        self._end_load(session)
        logger.info(f"[{unit_id}] 로드 완료 ({result.source}, {len(result.unit.components)}개 컴포넌트)")
        return session.unit

    def _end_load(self, session: EditSession) -> None:
        session.initial_load = False
        session.transition(SessionState.READY if session.is_loaded else SessionState.IDLE)

    def is_loading(self, unit_id: str) -> bool:
        return unit_id in self._loading

    # -------------------------------------------------------------------------
    # 편집
    # -------------------------------------------------------------------------

    def update_field(
        self,
        component_id: str,
        field_name: str,
        value: Any,
        locale: Optional[str] = None,
        unit_id: Optional[str] = None
    ) -> None:
        """
        필드 편집 기록.

        기본 로케일(또는 locale=None)은 FormEdits, 그 외는 TranslationEdits에 기록하고
        자동 저장 타이머를 재시작합니다.

        Raises:
            UnknownUnitError: 로드되지 않은 단위
        """
        session = self._loaded_session(unit_id)
        session.set_form_value(component_id, field_name, value, locale, self.config.default_locale)
        self._notify_autosave(session)

    def delete_component(self, component_id: str, unit_id: Optional[str] = None) -> None:
        session = self._loaded_session(unit_id)
        session.mark_deleted(component_id)
        self._notify_autosave(session)

    def restore_component(self, component_id: str, unit_id: Optional[str] = None) -> None:
        session = self._loaded_session(unit_id)
        session.restore(component_id)
        self._notify_autosave(session)

    def _notify_autosave(self, session: EditSession) -> None:
        if session.initial_load:
            return
        self.autosave.notify(session.unit_id)

    def has_changes(self, unit_id: Optional[str] = None) -> bool:
        """로컬 드래프트에서 로드되었거나 버퍼에 저장 값과 다른 편집이 있음"""
        session = self.sessions.get(self._unit_id_or_selected(unit_id))
        if session is None or not session.is_loaded:
            return False
        if session.draft_pending:
            return True
        return self.change_detector.has_unsaved_changes(
            session.form_edits,
            session.translation_edits,
            session.unit.components,
            session.deleted_ids,
            session.kind
        )

    def is_saving(self, unit_id: Optional[str] = None) -> bool:
        session = self.sessions.get(self._unit_id_or_selected(unit_id))
        return session is not None and session.state == SessionState.SAVING

    @staticmethod
    def _busy_result(session: EditSession) -> SaveResult:
        return SaveResult(
            unit_id=session.unit_id,
            status=SaveStatus.FAILED,
            error=f"Unit is busy ({session.state.value})",
            error_type="UnitBusy"
        )

    def build_draft(self, unit_id: str) -> Optional[ContentUnit]:
        """
        자동 저장용 드래프트 생성.

        초기 로드 중이거나 감지된 변경이 없으면 None.
        """
        session = self.sessions.get(unit_id)
        if session is None or not session.is_loaded or session.initial_load:
            return None
        if session.state == SessionState.LOADING:
            return None
        if not self.change_detector.has_unsaved_changes(
            session.form_edits,
            session.translation_edits,
            session.unit.components,
            session.deleted_ids,
            session.kind
        ):
            return None

        components = self.merge_engine.save_components(
            session.unit.components,
            session.form_edits,
            session.translation_edits,
            session.deleted_ids
        )
        return session.unit.model_copy(update={"components": components})

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    def display_components(self, unit_id: Optional[str] = None) -> List[Component]:
        """편집을 겹친 읽기 전용 컴포넌트 목록 (삭제 표시 제외)"""
        session = self._loaded_session(unit_id)
        return [
            self.merge_engine.display_component(
                component,
                session.form_edits.get(component.id),
                session.translation_edits
            )
            for component in session.unit.components
            if component.id not in session.deleted_ids
        ]

    def field_translation_status(
        self,
        component_id: str,
        field_name: str,
        unit_id: Optional[str] = None
    ) -> TranslationStatus:
        session = self._loaded_session(unit_id)
        component = session.unit.get_component(component_id)
        if component is None:
            return TranslationStatus.MISSING
        return self.merge_engine.field_status(
            component,
            field_name,
            session.form_edits.get(component_id),
            session.translation_edits
        )

    def validate(self, unit_id: Optional[str] = None) -> List[ValidationError]:
        session = self._loaded_session(unit_id)
        return self.resolver.validate_unit(session.unit, session.form_edits, session.deleted_ids)

    # -------------------------------------------------------------------------
    # 저장 / 발행
    # -------------------------------------------------------------------------

    async def save(self, unit_id: Optional[str] = None, message: Optional[str] = None) -> SaveResult:
        """
        단일 단위 저장.

        검증 오류가 있으면 저장소에 접근하지 않고 INVALID를 반환합니다.
        실패하거나 저장 도중 새 편집이 들어오면 자동 저장을 다시 예약합니다.

        Raises:
            UnknownUnitError: 로드되지 않은 단위
        """
        session = self._loaded_session(unit_id)
        unit_id = session.unit_id

        if is_busy_state(session.state):
            return self._busy_result(session)

        self.autosave.cancel(unit_id)
        # 이미 시작된 자동 저장 쓰기가 저장 후 드래프트를 되살리지 않도록 대기
        await self.autosave.wait_for_writes(unit_id)
        if is_busy_state(session.state):
            return self._busy_result(session)

        result = await self.save_pipeline.run(session, message)

        if session.has_buffered_edits():
            self._notify_autosave(session)
        return result

    async def publish(self, message: str = "") -> PublishResult:
        """
        모든 로컬 드래프트 일괄 발행.

        대기 중인 자동 저장을 먼저 기록한 뒤 발행합니다.
        """
        snapshots = {
            unit_id: session.snapshot_buffers()
            for unit_id, session in self._loaded_sessions().items()
        }
        self._publish_snapshots = snapshots
        try:
            await self.autosave.flush()
            result = await self.publisher.publish(message)
        finally:
            self._publish_snapshots = {}

        for session in self._loaded_sessions().values():
            if session.has_buffered_edits():
                self._notify_autosave(session)
        return result

    def _loaded_sessions(self) -> Dict[str, EditSession]:
        sessions = {}
        for unit_id in self.sessions.list_sessions():
            session = self.sessions.get(unit_id)
            if session is not None and session.is_loaded:
                sessions[unit_id] = session
        return sessions

    def _adopt_committed(self, committed: Dict[str, ContentUnit]) -> None:
        """커밋된 드래프트를 작업 사본으로 채택하고 반영된 편집을 버림"""
        for unit_id, unit in committed.items():
            session = self.sessions.get(unit_id)
            if session is None or not session.is_loaded:
                continue
            session.unit = unit
            session.draft_pending = False
            session.last_saved_at = datetime.now()
            snapshot = self._publish_snapshots.get(unit_id)
            if snapshot is not None:
                session.discard_applied(snapshot)

    # -------------------------------------------------------------------------
    # 정리
    # -------------------------------------------------------------------------

    async def flush_autosave(self, unit_id: Optional[str] = None) -> List[str]:
        return await self.autosave.flush(unit_id)

    async def aclose(self) -> None:
        await self.autosave.aclose()
        loading = list(self._loading.values())
        for task in loading:
            task.cancel()
        if loading:
            await asyncio.gather(*loading, return_exceptions=True)
        await self.remote_store.aclose()


__all__ = [
    "EngineConfig",
    "SavePipeline",
    "ContentEditingEngine",
]
