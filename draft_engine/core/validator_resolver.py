"""
Validator Resolver - 컴포넌트 단위 검증

필드 정의와 형제 폼 값으로 검증기를 만들고, 검증할 값을 다음 우선순위로 결정합니다:
1. 메모리의 폼 편집 값 (None이 아닐 때)
2. 컴포넌트에 저장된 값 (로케일 맵은 기본 로케일로 해석)

부수 효과가 없습니다.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from draft_engine.core.validators import FieldValidator
from draft_engine.models.content_unit import Component, ContentUnit
from draft_engine.models.field_value import default_locale_value
from draft_engine.models.schema import FieldDef
from draft_engine.models.validation import ValidationError
from draft_engine.storage.base import SchemaRegistry

logger = logging.getLogger(__name__)


def join_field_path(field_name: str, loc: Iterable[Any]) -> str:
    """필드 이름과 pydantic loc를 점으로 연결 (예: items.0.title)"""
    return ".".join([field_name] + [str(part) for part in loc])


class ValidatorResolver:
    """
    검증기 해석기.

    Example:
        resolver = ValidatorResolver(registry, locales=["en", "fr"], default_locale="en")
        errors = resolver.validate_component(component, form_edits.get(component.id, {}))
    """

    def __init__(
        self,
        schema_registry: SchemaRegistry,
        locales: List[str],
        default_locale: str
    ):
        self.schema_registry = schema_registry
        self.locales = list(locales)
        self.default_locale = default_locale

    def resolve(self, field_def: FieldDef, form_values: Optional[Dict[str, Any]] = None) -> FieldValidator:
        return FieldValidator.for_field(field_def, form_values)

    def resolve_value(
        self,
        field_def: FieldDef,
        component: Optional[Component],
        form_values: Optional[Dict[str, Any]] = None
    ) -> Any:
        """폼 값 우선, 없으면 저장 값의 기본 로케일 항목"""
        form_values = form_values or {}
        edited = form_values.get(field_def.name)
        if edited is not None:
            return edited

        if component is None:
            return None
        entry = component.data.get(field_def.name)
        if entry is None:
            return None
        translatable = entry.translatable if entry.translatable is not None else field_def.translatable
        return default_locale_value(entry.value, self.locales, self.default_locale, translatable)

    def current_values(
        self,
        component: Component,
        fields: List[FieldDef],
        form_values: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """검증 시점의 형제 값 (required callable 입력)"""
        return {
            field_def.name: self.resolve_value(field_def, component, form_values)
            for field_def in fields
        }

    def validate_component(
        self,
        component: Component,
        form_values: Optional[Dict[str, Any]] = None,
        unit_id: Optional[str] = None
    ) -> List[ValidationError]:
        """
        컴포넌트의 모든 데이터 필드 검증.

        Args:
            component: 검증할 컴포넌트 (저장 값)
            form_values: 이 컴포넌트의 폼 편집 값 (fieldName -> value)
            unit_id: 오류에 기록할 콘텐츠 단위 ID

        Returns:
            잘못된 리프 필드마다 하나의 ValidationError
        """
        schema = self.schema_registry.get_schema(component.schema_name)
        if schema is None:
            logger.warning(f"[{unit_id}] 스키마 없음, 검증 생략: {component.schema_name} ({component.id})")
            return []

        fields = self.schema_registry.flatten(schema.fields)
        values = self.current_values(component, fields, form_values)

        errors: List[ValidationError] = []
        for field_def in fields:
            validator = self.resolve(field_def, values)
            for loc, message in validator.validate(values[field_def.name]):
                is_repeater_issue = field_def.type == "repeater" and loc and isinstance(loc[0], int)
                errors.append(ValidationError(
                    component_id=component.id,
                    field_path=join_field_path(field_def.name, loc),
                    message=message,
                    unit_id=unit_id,
                    component_name=component.display_name(),
                    field_label=field_def.display_label(),
                    repeater_field_name=field_def.name if is_repeater_issue else None,
                    repeater_item_index=loc[0] if is_repeater_issue else None,
                ))
        return errors

    def validate_unit(
        self,
        unit: ContentUnit,
        form_edits: Optional[Dict[str, Dict[str, Any]]] = None,
        deleted_ids: Iterable[str] = ()
    ) -> List[ValidationError]:
        """삭제되지 않은 모든 컴포넌트 검증"""
        form_edits = form_edits or {}
        deleted = set(deleted_ids)

        errors: List[ValidationError] = []
        for component in unit.components:
            if component.id in deleted:
                continue
            errors.extend(self.validate_component(component, form_edits.get(component.id), unit.id))

        if errors:
            logger.info(f"[{unit.id}] 검증 실패: {len(errors)}개 필드")
        return errors


__all__ = ["ValidatorResolver", "join_field_path"]
