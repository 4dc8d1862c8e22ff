"""
편집 세션 관리 - 콘텐츠 단위별 편집 상태

단위마다 EditSession 객체 하나가 작업 사본, 편집 버퍼(FormEdits/TranslationEdits),
삭제 표시, 로드/저장 상태를 소유합니다. 엔진은 전역 상태 대신 세션 핸들을
오케스트레이터에 전달합니다.

주요 기능:
- 단위별 격리된 편집 버퍼
- 상태 전이 검증 (idle → loading → ready → saving → ready | failed)
- 선택된 단위 기반 로드 취소 판정
- 스레드 안전 레지스트리

Example:
    manager = EditSessionManager()
    session = manager.get_or_create("index")
    session.set_form_value("hero-0", "title", "Hello")
    session.set_form_value("hero-0", "title", "Bonjour", locale="fr", default_locale="en")
"""

import copy
import uuid
import logging
import threading
from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from draft_engine.models.content_unit import ContentUnit, UnitKind, unit_kind_for
from draft_engine.models.session_state import SessionState, can_transition

logger = logging.getLogger(__name__)


@dataclass
class EditSession:
    """단위 하나의 편집 세션"""

    unit_id: str
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: SessionState = SessionState.IDLE

    # 작업 사본 (마지막으로 저장/로드된 형태)
    unit: Optional[ContentUnit] = None

    # 편집 버퍼
    form_edits: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    translation_edits: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)
    deleted_ids: Set[str] = field(default_factory=set)

    # 로컬 드래프트에서 로드됨 (저장 전까지 변경 있음으로 취급)
    draft_pending: bool = False
    # 최초 로드 중에는 자동 저장 금지
    initial_load: bool = True

    created_at: datetime = field(default_factory=datetime.now)
    last_saved_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def kind(self) -> UnitKind:
        return unit_kind_for(self.unit_id)

    @property
    def is_loaded(self) -> bool:
        return self.unit is not None

    # -------------------------------------------------------------------------
    # 상태
    # -------------------------------------------------------------------------

    def transition(self, to_state: SessionState) -> None:
        """
        상태 전이.

        Raises:
            ValueError: 허용되지 않은 전이
        """
        if self.state == to_state:
            return
        if not can_transition(self.state, to_state):
            raise ValueError(f"[{self.unit_id}] 잘못된 세션 상태 전이: {self.state.value} → {to_state.value}")
        logger.debug(f"[{self.unit_id}] 세션 상태: {self.state.value} → {to_state.value}")
        self.state = to_state

    # -------------------------------------------------------------------------
    # 편집 버퍼
    # -------------------------------------------------------------------------

    def set_form_value(
        self,
        component_id: str,
        field_name: str,
        value: Any,
        locale: Optional[str] = None,
        default_locale: Optional[str] = None
    ) -> None:
        """기본 로케일(또는 locale=None)은 FormEdits, 그 외 로케일은 TranslationEdits에 기록"""
        if locale is None or locale == default_locale:
            self.form_edits.setdefault(component_id, {})[field_name] = value
        else:
            self.translation_edits.setdefault(locale, {}).setdefault(component_id, {})[field_name] = value

    def mark_deleted(self, component_id: str) -> None:
        """소프트 삭제 (해당 컴포넌트의 폼 편집은 버림)"""
        self.deleted_ids.add(component_id)
        self.form_edits.pop(component_id, None)

    def restore(self, component_id: str) -> None:
        self.deleted_ids.discard(component_id)

    def has_buffered_edits(self) -> bool:
        return bool(self.form_edits) or any(self.translation_edits.values()) or bool(self.deleted_ids)

    def snapshot_buffers(self) -> Dict[str, Any]:
        """현재 버퍼의 독립 사본 (await 사이에 변경되어도 안전)"""
        return {
            "form_edits": copy.deepcopy(self.form_edits),
            "translation_edits": copy.deepcopy(self.translation_edits),
            "deleted_ids": set(self.deleted_ids),
        }

    def discard_applied(self, snapshot: Dict[str, Any]) -> None:
        """
        저장된 스냅샷과 같은 편집만 버퍼에서 제거.

        저장 중(await 사이)에 새로 들어온 편집은 유지됩니다.
        """
        for component_id, fields in snapshot["form_edits"].items():
            current = self.form_edits.get(component_id, {})
            for field_name, value in fields.items():
                if field_name in current and current[field_name] == value:
                    del current[field_name]
            if component_id in self.form_edits and not current:
                del self.form_edits[component_id]

        for locale, components in snapshot["translation_edits"].items():
            locale_edits = self.translation_edits.get(locale, {})
            for component_id, fields in components.items():
                current = locale_edits.get(component_id, {})
                for field_name, value in fields.items():
                    if field_name in current and current[field_name] == value:
                        del current[field_name]
                if component_id in locale_edits and not current:
                    del locale_edits[component_id]
            if locale in self.translation_edits and not locale_edits:
                del self.translation_edits[locale]

        self.deleted_ids -= snapshot["deleted_ids"]

    def summary(self) -> Dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "state": self.state.value,
            "loaded": self.is_loaded,
            "draft_pending": self.draft_pending,
            "edited_components": sorted(self.form_edits.keys()),
            "translation_locales": sorted(k for k, v in self.translation_edits.items() if v),
            "deleted": sorted(self.deleted_ids),
        }


class EditSessionManager:
    """
    편집 세션 레지스트리.

    단위별 세션을 격리하여 관리하고, 현재 선택된 단위를 추적합니다.
    """

    def __init__(self):
        self._sessions: Dict[str, EditSession] = {}
        self._lock = threading.Lock()
        self._selected_unit_id: Optional[str] = None

    def get_or_create(self, unit_id: str) -> EditSession:
        with self._lock:
            session = self._sessions.get(unit_id)
            if session is None:
                session = EditSession(unit_id=unit_id)
                self._sessions[unit_id] = session
            return session

    def get(self, unit_id: str) -> Optional[EditSession]:
        with self._lock:
            return self._sessions.get(unit_id)

    def cleanup(self, unit_id: str) -> Optional[EditSession]:
        with self._lock:
            if self._selected_unit_id == unit_id:
                self._selected_unit_id = None
            return self._sessions.pop(unit_id, None)

    def list_sessions(self) -> List[str]:
        with self._lock:
            return list(self._sessions.keys())

    # -------------------------------------------------------------------------
    # 선택 / 취소
    # -------------------------------------------------------------------------

    def select(self, unit_id: str) -> None:
        """단위 선택 (다른 단위의 진행 중 로드는 stale이 됨)"""
        with self._lock:
            self._selected_unit_id = unit_id

    def is_selected(self, unit_id: str) -> bool:
        with self._lock:
            return self._selected_unit_id == unit_id

    @property
    def selected_unit_id(self) -> Optional[str]:
        return self._selected_unit_id


__all__ = [
    "EditSession",
    "EditSessionManager",
]
