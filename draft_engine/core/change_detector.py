"""
Change Detector - 저장되지 않은 변경 판정

has_unsaved_changes = 폼 변경 OR 번역 변경 OR 삭제 변경

- 폼 변경: "", None, 누락은 하나의 ABSENT로 정규화한 뒤 저장 값과 비교.
  로케일 맵 저장 값은 기본 로케일 항목과 비교하고, dict/list는 깊은 비교.
- 번역 변경: 기본 로케일이 아닌 로케일에 기록된 필드 편집이 하나라도 있음
  (명시적인 "" 편집도 변경으로 취급).
- 삭제 변경: 세션에서 삭제 표시된 컴포넌트가 있음 (페이지만 해당).

항상 현재 버퍼로 계산하므로 디바운스가 마지막 입력을 놓치지 않습니다.
"""

from typing import Any, Dict, Iterable, List, Tuple

from draft_engine.models.content_unit import Component, UnitKind
from draft_engine.models.field_value import default_locale_value, normalize_empty

FormEdits = Dict[str, Dict[str, Any]]
TranslationEdits = Dict[str, Dict[str, Dict[str, Any]]]


def values_equal(left: Any, right: Any) -> bool:
    """빈 값 정규화 후 깊은 비교"""
    return normalize_empty(left) == normalize_empty(right)


class ChangeDetector:
    """
    변경 감지기.

    Example:
        detector = ChangeDetector(locales=["en", "fr"], default_locale="en")
        detector.has_unsaved_changes(form_edits, translation_edits, components)
    """

    def __init__(self, locales: List[str], default_locale: str):
        self.locales = list(locales)
        self.default_locale = default_locale

    def stored_default_value(self, component: Component, field_name: str) -> Any:
        entry = component.data.get(field_name)
        if entry is None:
            return None
        return default_locale_value(entry.value, self.locales, self.default_locale, entry.translatable)

    def changed_form_fields(
        self,
        form_edits: FormEdits,
        components: Iterable[Component]
    ) -> List[Tuple[str, str]]:
        """저장 값과 다른 (componentId, fieldName) 목록"""
        by_id = {component.id: component for component in components}
        changed = []
        for component_id, fields in (form_edits or {}).items():
            component = by_id.get(component_id)
            for field_name, value in fields.items():
                stored = self.stored_default_value(component, field_name) if component else None
                if not values_equal(value, stored):
                    changed.append((component_id, field_name))
        return changed

    def has_form_changes(self, form_edits: FormEdits, components: Iterable[Component]) -> bool:
        return bool(self.changed_form_fields(form_edits, components))

    def has_translation_changes(self, translation_edits: TranslationEdits) -> bool:
        for locale, components in (translation_edits or {}).items():
            if locale == self.default_locale:
                continue
            for fields in components.values():
                if fields:
                    return True
        return False

    def has_deletion_changes(self, deleted_ids: Iterable[str], kind: UnitKind = UnitKind.PAGE) -> bool:
        if kind == UnitKind.GLOBALS:
            return False
        return any(True for _ in deleted_ids)

    def has_unsaved_changes(
        self,
        form_edits: FormEdits,
        translation_edits: TranslationEdits,
        components: Iterable[Component],
        deleted_ids: Iterable[str] = (),
        kind: UnitKind = UnitKind.PAGE
    ) -> bool:
        components = list(components)
        return (
            self.has_form_changes(form_edits, components)
            or self.has_translation_changes(translation_edits)
            or self.has_deletion_changes(deleted_ids, kind)
        )


__all__ = [
    "FormEdits",
    "TranslationEdits",
    "values_equal",
    "ChangeDetector",
]
