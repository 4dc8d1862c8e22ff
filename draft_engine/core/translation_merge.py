"""
Translation Merge Engine - 로케일별 편집을 필드에 병합

두 가지 투영(projection):
- Display: 저장 데이터 위에 폼/번역 편집을 겹쳐 보여줌 (저장하지 않음, 번역 상태 계산용)
- Save: 저장된 로케일 맵의 모든 로케일을 보존한 채
    1) 기본 로케일은 폼 편집 값이 있고 비어있지 않을 때만 덮어쓰고
    2) 번역 편집에 있는 로케일은 모두 덮어씀 (명시적 ""도 보존)
  기본 로케일 외 데이터가 있을 때만 로케일 맵으로 저장하고, 그 외에는 단일 값으로 저장.

Repeater는 로케일별 배열을 인덱스 단위로 병합(같은 인덱스 항목은 dict 병합)하고,
항목 _id를 유지/부여합니다.
"""

import copy
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from draft_engine.core.change_detector import FormEdits, TranslationEdits
from draft_engine.core.validators import coerce_file_value
from draft_engine.models.content_unit import Component
from draft_engine.models.field_value import (
    FieldEntry,
    LocaleMap,
    is_absent,
    normalize_field_value,
    to_locale_map,
)
from draft_engine.models.schema import FieldDef
from draft_engine.storage.base import SchemaRegistry
from draft_engine.utils.ids import generate_item_id

logger = logging.getLogger(__name__)

ITEM_ID_KEY = "_id"


class TranslationStatus(str, Enum):
    """필드 번역 상태"""
    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"


# =============================================================================
# 값 정리 헬퍼
# =============================================================================

def clean_value(value: Any) -> Any:
    """"", None은 None으로, 리스트에서는 ""/None 항목 제거"""
    if value is None or (isinstance(value, str) and value == ""):
        return None
    if isinstance(value, list):
        return [item for item in value if not is_absent(item)]
    return value


def normalize_file_value(value: Any) -> Dict[str, Any]:
    """파일 필드를 {files: [...]}로 정규화 (임시 키 제거)"""
    coerced = coerce_file_value(value)
    if not isinstance(coerced, dict) or not isinstance(coerced.get("files"), list):
        return {"files": []}
    return {"files": coerced["files"]}


def merge_repeater_items(base: Any, edits: Any) -> List[Any]:
    """
    Repeater 배열을 인덱스 단위로 병합.

    번역 편집은 희소하므로 None 항목은 "변경 없음"이고,
    같은 인덱스의 dict 항목끼리는 키 단위로 병합합니다.
    """
    base_items = list(base) if isinstance(base, list) else []
    edit_items = list(edits) if isinstance(edits, list) else []

    merged = []
    for index in range(max(len(base_items), len(edit_items))):
        current = base_items[index] if index < len(base_items) else None
        edit = edit_items[index] if index < len(edit_items) else None

        if isinstance(current, dict) and isinstance(edit, dict):
            merged.append({**current, **edit})
        elif edit is not None:
            merged.append(copy.deepcopy(edit))
        elif current is not None:
            merged.append(copy.deepcopy(current))
        else:
            merged.append({})
    return merged


def assign_item_ids(items: Any, reference: Any = None) -> Any:
    """
    Repeater 항목에 _id 부여.

    reference(기준 배열)의 같은 인덱스 항목 _id를 우선 상속하고,
    없으면 새 item_<random> id를 생성합니다. 이미 있는 _id는 유지합니다.
    """
    if not isinstance(items, list):
        return items

    reference_items = reference if isinstance(reference, list) else []
    result = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            result.append(item)
            continue
        if item.get(ITEM_ID_KEY):
            result.append(item)
            continue
        inherited = None
        if index < len(reference_items) and isinstance(reference_items[index], dict):
            inherited = reference_items[index].get(ITEM_ID_KEY)
        result.append({**item, ITEM_ID_KEY: inherited or generate_item_id()})
    return result


def merge_translation_into_entry(
    entry: FieldEntry,
    locale: Optional[str],
    default_locale: str,
    value: Any,
    field_type: Optional[str] = None
) -> FieldEntry:
    """
    필드 하나에 로케일 값 하나를 병합.

    - 현재 값이 로케일 맵(dict)이면 해당 로케일만 교체
    - 기본 로케일(또는 locale=None)이면 값을 그대로 교체
    - 그 외에는 {기본 로케일: 현재 값, locale: value} 맵으로 변환
    """
    current = entry.value
    resolved_type = field_type or entry.type or "unknown"
    extra = dict(entry.model_extra or {})

    if isinstance(current, dict) and locale is not None:
        return FieldEntry(type=resolved_type, translatable=True, value={**current, locale: value}, **extra)
    if locale is None or locale == default_locale:
        return FieldEntry(type=resolved_type, translatable=entry.translatable, value=value, **extra)
    return FieldEntry(
        type=resolved_type,
        translatable=True,
        value={default_locale: current, locale: value},
        **extra
    )


def translation_status(
    entry: Optional[FieldEntry],
    locales: Iterable[str],
    default_locale: str
) -> TranslationStatus:
    """
    필드 번역 상태 계산.

    - 번역 불가 필드이거나 값이 없으면 missing
    - 모든 로케일에 값이 있으면 complete
    - 기본 로케일이 비어있으면 missing
    - 그 외 partial
    """
    locales = list(locales)
    if entry is None or not entry.translatable:
        return TranslationStatus.MISSING

    normalized = normalize_field_value(entry.value, locales, True)
    values = to_locale_map(normalized, default_locale)
    if not values:
        return TranslationStatus.MISSING

    filled = [locale for locale in locales if not is_absent(values.get(locale))]
    if not filled:
        return TranslationStatus.MISSING
    if len(filled) == len(locales):
        return TranslationStatus.COMPLETE
    if default_locale not in filled:
        return TranslationStatus.MISSING
    return TranslationStatus.PARTIAL


# =============================================================================
# 병합 엔진
# =============================================================================

class TranslationMergeEngine:
    """
    번역 병합 엔진.

    Example:
        engine = TranslationMergeEngine(["en", "fr"], "en", registry)
        saved = engine.save_component(component, form_edits, translation_edits)
    """

    def __init__(
        self,
        locales: List[str],
        default_locale: str,
        schema_registry: Optional[SchemaRegistry] = None
    ):
        self.locales = list(locales)
        self.default_locale = default_locale
        self.schema_registry = schema_registry

    # -------------------------------------------------------------------------
    # 필드 메타
    # -------------------------------------------------------------------------

    def field_def(self, component: Component, field_name: str) -> Optional[FieldDef]:
        if self.schema_registry is None:
            return None
        return self.schema_registry.get_field(component.schema_name, field_name)

    def component_translations(
        self,
        component_id: str,
        translation_edits: Optional[TranslationEdits]
    ) -> Dict[str, Dict[str, Any]]:
        """locale -> fieldName -> value (기본 로케일 제외)"""
        result = {}
        for locale, components in (translation_edits or {}).items():
            if locale == self.default_locale:
                continue
            fields = components.get(component_id)
            if fields:
                result[locale] = fields
        return result

    # -------------------------------------------------------------------------
    # Save projection
    # -------------------------------------------------------------------------

    def merge_field(
        self,
        component: Component,
        field_name: str,
        form_values: Dict[str, Any],
        translations: Dict[str, Dict[str, Any]],
        for_display: bool = False
    ) -> FieldEntry:
        """
        필드 하나의 투영 계산.

        Args:
            component: 저장된 컴포넌트
            field_name: 필드 이름
            form_values: 이 컴포넌트의 폼 편집 (기본 로케일)
            translations: locale -> fieldName -> value
            for_display: True면 빈 폼 편집도 겹치고 id 부여/정리를 생략

        Returns:
            병합된 FieldEntry
        """
        entry = component.data.get(field_name)
        field_def = self.field_def(component, field_name)

        field_type = field_def.type if field_def else (entry.type if entry else "unknown")
        declared = bool(field_def.translatable) if field_def else bool(entry and entry.translatable)
        stored_flag = entry.translatable if entry and entry.translatable is not None else declared
        stored = normalize_field_value(entry.value if entry else None, self.locales, stored_flag)
        is_repeater = field_type == "repeater"

        has_form_edit = field_name in form_values
        form_value = form_values.get(field_name)
        locale_edits = {
            locale: fields[field_name]
            for locale, fields in translations.items()
            if field_name in fields
        }

        # 단일 값 필드
        if not (declared or isinstance(stored, LocaleMap) or locale_edits):
            value = stored.value
            if has_form_edit:
                value = form_value if for_display else clean_value(form_value)
            if is_repeater and not for_display:
                value = assign_item_ids(value, stored.value)
            if field_type == "fileUpload" and not for_display and (has_form_edit or value is not None):
                value = normalize_file_value(value)
            return self._entry(entry, field_type, entry.translatable if entry else None, value)

        # 로케일 맵 필드
        values = copy.deepcopy(to_locale_map(stored, self.default_locale))
        previous_default = values.get(self.default_locale)

        if has_form_edit and (for_display or not is_absent(form_value)):
            values[self.default_locale] = form_value if for_display else clean_value(form_value)

        for locale, edit in locale_edits.items():
            if edit is None:
                edit = ""
            if is_repeater and isinstance(edit, list):
                values[locale] = merge_repeater_items(values.get(locale), edit)
            else:
                values[locale] = edit

        if is_repeater and not for_display:
            default_items = assign_item_ids(values.get(self.default_locale), previous_default)
            if self.default_locale in values:
                values[self.default_locale] = default_items
            for locale in values:
                if locale != self.default_locale:
                    values[locale] = assign_item_ids(values[locale], default_items)

        if field_type == "fileUpload" and not for_display:
            values = {locale: normalize_file_value(value) for locale, value in values.items()}

        if len(values) > 1 or (values and self.default_locale not in values):
            return self._entry(entry, field_type, True, values)
        if values:
            translatable = True if declared else (entry.translatable if entry else None)
            return self._entry(entry, field_type, translatable, values[self.default_locale])
        return self._entry(entry, field_type, True if declared else None, None)

    def _entry(self, entry: Optional[FieldEntry], field_type: str, translatable: Optional[bool], value: Any) -> FieldEntry:
        extra = dict(entry.model_extra or {}) if entry is not None else {}
        return FieldEntry(type=field_type, translatable=translatable, value=value, **extra)

    def _project(
        self,
        component: Component,
        form_values: Optional[Dict[str, Any]],
        translation_edits: Optional[TranslationEdits],
        for_display: bool
    ) -> Component:
        form_values = form_values or {}
        translations = self.component_translations(component.id, translation_edits)

        field_names = list(component.data.keys())
        for name in form_values:
            if name not in component.data:
                field_names.append(name)
        for fields in translations.values():
            for name in fields:
                if name not in field_names:
                    field_names.append(name)

        data = {
            name: self.merge_field(component, name, form_values, translations, for_display)
            for name in field_names
        }
        return component.model_copy(update={"data": data})

    def save_component(
        self,
        component: Component,
        form_values: Optional[Dict[str, Any]] = None,
        translation_edits: Optional[TranslationEdits] = None
    ) -> Component:
        """저장용 투영 (자동 저장 드래프트와 원격 저장 공용)"""
        return self._project(component, form_values, translation_edits, for_display=False)

    def save_components(
        self,
        components: Iterable[Component],
        form_edits: Optional[FormEdits] = None,
        translation_edits: Optional[TranslationEdits] = None,
        deleted_ids: Iterable[str] = ()
    ) -> List[Component]:
        """삭제되지 않은 컴포넌트 전체의 저장 투영"""
        form_edits = form_edits or {}
        deleted = set(deleted_ids)
        return [
            self.save_component(component, form_edits.get(component.id), translation_edits)
            for component in components
            if component.id not in deleted
        ]

    # -------------------------------------------------------------------------
    # Display projection
    # -------------------------------------------------------------------------

    def display_component(
        self,
        component: Component,
        form_values: Optional[Dict[str, Any]] = None,
        translation_edits: Optional[TranslationEdits] = None
    ) -> Component:
        """편집을 겹친 읽기 전용 투영"""
        return self._project(component, form_values, translation_edits, for_display=True)

    def field_status(
        self,
        component: Component,
        field_name: str,
        form_values: Optional[Dict[str, Any]] = None,
        translation_edits: Optional[TranslationEdits] = None
    ) -> TranslationStatus:
        displayed = self.display_component(component, form_values, translation_edits)
        entry = displayed.data.get(field_name)
        field_def = self.field_def(component, field_name)
        if entry is not None and field_def is not None and field_def.translatable and not entry.translatable:
            entry = entry.model_copy(update={"translatable": True})
        return translation_status(entry, self.locales, self.default_locale)


__all__ = [
    "ITEM_ID_KEY",
    "TranslationStatus",
    "clean_value",
    "normalize_file_value",
    "merge_repeater_items",
    "assign_item_ids",
    "merge_translation_into_entry",
    "translation_status",
    "TranslationMergeEngine",
]
