"""
Field Value - Normalized shape of one field's stored value

A stored field value is either a plain value or a locale map
(locale code -> value). The shape depends on runtime content, so every read
site goes through normalize_field_value() instead of inspecting dict keys.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Absent:
    """빈 값 센티널 - "", None, 누락을 하나로 취급"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class FieldEntry(BaseModel):
    """필드 저장 값 - Stored field entry ({type, translatable?, value})"""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="unknown", description="Declared field type (input, repeater, ...)")
    translatable: Optional[bool] = Field(
        default=None,
        description="True when value may be a locale map"
    )
    value: Any = Field(default=None, description="Plain value or locale map")

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type}
        if self.translatable is not None:
            data["translatable"] = self.translatable
        data["value"] = self.value
        return data


@dataclass(frozen=True)
class Scalar:
    """단일 값 (기본 로케일만 콘텐츠 보유)"""
    value: Any = None


@dataclass(frozen=True)
class LocaleMap:
    """로케일별 값 맵"""
    values: Dict[str, Any] = field(default_factory=dict)

    def get(self, locale: str, default: Any = None) -> Any:
        return self.values.get(locale, default)

    def locales(self) -> list:
        return list(self.values.keys())


FieldValue = Union[Scalar, LocaleMap]


def is_absent(value: Any) -> bool:
    """"", None, ABSENT를 비어있는 값으로 판단"""
    return value is None or value is ABSENT or (isinstance(value, str) and value == "")


def normalize_empty(value: Any) -> Any:
    """비어있는 값을 ABSENT 센티널로 통일"""
    return ABSENT if is_absent(value) else value


def looks_like_locale_map(value: Any, locales: Iterable[str]) -> bool:
    """키 집합이 설정된 로케일 집합과 정확히 일치하는 dict"""
    if not isinstance(value, dict) or not value:
        return False
    return set(value.keys()) == set(locales)


def normalize_field_value(
    value: Any,
    locales: Iterable[str],
    translatable: Optional[bool] = None
) -> FieldValue:
    """
    저장된 값을 Scalar 또는 LocaleMap으로 정규화.

    규칙:
    - dict가 아니면 Scalar
    - 키가 설정된 로케일 집합과 정확히 같으면 translatable 플래그와 무관하게 LocaleMap
      (번역 가능 여부가 선언이 아니라 추론된 필드 대응)
    - translatable=True이고 로케일 코드 키가 하나라도 있으면 LocaleMap
    - 그 외 dict (예: {"files": [...]})는 Scalar

    Args:
        value: 저장된 필드 값
        locales: 설정된 로케일 코드 목록
        translatable: 필드의 translatable 플래그

    Returns:
        Scalar 또는 LocaleMap
    """
    locales = list(locales)

    if isinstance(value, LocaleMap):
        return value
    if isinstance(value, Scalar):
        return value

    if not isinstance(value, dict):
        return Scalar(value)

    if looks_like_locale_map(value, locales):
        return LocaleMap(dict(value))

    if translatable and value and any(key in locales for key in value.keys()):
        return LocaleMap(dict(value))

    return Scalar(value)


def resolve_locale(field_value: FieldValue, locale: str, default_locale: str) -> Any:
    """
    특정 로케일의 값 조회.

    Scalar는 기본 로케일 콘텐츠로 간주하므로 기본 로케일 요청에만 값을 반환합니다.
    """
    if isinstance(field_value, LocaleMap):
        return field_value.get(locale)
    if locale == default_locale:
        return field_value.value
    return None


def to_locale_map(field_value: FieldValue, default_locale: str) -> Dict[str, Any]:
    """로케일 맵 dict로 변환 (Scalar는 기본 로케일 항목 하나, 빈 값이면 빈 맵)"""
    if isinstance(field_value, LocaleMap):
        return dict(field_value.values)
    if field_value.value is None:
        return {}
    return {default_locale: field_value.value}


def default_locale_value(
    value: Any,
    locales: Iterable[str],
    default_locale: str,
    translatable: Optional[bool] = None
) -> Any:
    """저장 값에서 기본 로케일 값을 꺼냄 (검증/변경 감지 공용)"""
    normalized = normalize_field_value(value, locales, translatable)
    return resolve_locale(normalized, default_locale, default_locale)


def to_storage_value(field_value: FieldValue) -> Any:
    """태그 유니온을 JSON 저장 형태로 되돌림"""
    if isinstance(field_value, LocaleMap):
        return dict(field_value.values)
    return field_value.value


__all__ = [
    "ABSENT",
    "FieldEntry",
    "Scalar",
    "LocaleMap",
    "FieldValue",
    "is_absent",
    "normalize_empty",
    "looks_like_locale_map",
    "normalize_field_value",
    "resolve_locale",
    "to_locale_map",
    "default_locale_value",
    "to_storage_value",
]
