"""
Content Unit - Page or singleton GlobalVariableSet
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .field_value import FieldEntry


GLOBALS_UNIT_ID = "globals"
GLOBALS_COMPONENT_ID = "globals"
GLOBALS_SCHEMA_KEY = "globals"


class UnitKind(str, Enum):
    """Content unit kinds"""
    PAGE = "page"
    GLOBALS = "globals"


def unit_kind_for(unit_id: str) -> UnitKind:
    """단위 ID로 종류 판별 (globals는 고정 ID)"""
    return UnitKind.GLOBALS if unit_id == GLOBALS_UNIT_ID else UnitKind.PAGE


class Component(BaseModel):
    """컴포넌트 - One schema-typed block of structured data"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Author-assigned or `${schemaKey}-${index}`")
    schema_name: str = Field(..., alias="schemaName", description="Schema this component uses")
    alias: Optional[str] = Field(default=None, description="User-facing rename")
    data: Dict[str, FieldEntry] = Field(
        default_factory=dict,
        description="Field name -> stored entry"
    )

    def field_value(self, field_name: str) -> Any:
        entry = self.data.get(field_name)
        return entry.value if entry is not None else None

    def display_name(self) -> str:
        return self.alias or self.schema_name

    def to_dict(self) -> Dict[str, Any]:
        """원격 문서 형태 (camelCase, 빈 alias 생략)"""
        data = {
            "id": self.id,
            "schemaName": self.schema_name,
        }
        if self.alias:
            data["alias"] = self.alias
        data["data"] = {name: entry.to_dict() for name, entry in self.data.items()}
        return data


class ContentUnit(BaseModel):
    """콘텐츠 단위 - Page (ordered components) or the GlobalVariableSet"""

    id: str = Field(..., description="Stable unit id (page id or 'globals')")
    kind: UnitKind = Field(default=UnitKind.PAGE, description="page or globals")
    components: List[Component] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "id": "index",
                "kind": "page",
                "components": [
                    {
                        "id": "hero-0",
                        "schemaName": "Hero",
                        "data": {
                            "title": {
                                "type": "input",
                                "translatable": True,
                                "value": {"en": "Hello", "fr": "Bonjour"}
                            }
                        }
                    }
                ]
            }
        }

    @classmethod
    def empty(cls, unit_id: str) -> "ContentUnit":
        return cls(id=unit_id, kind=unit_kind_for(unit_id), components=[])

    @classmethod
    def from_document(cls, unit_id: str, document: Optional[Dict[str, Any]]) -> "ContentUnit":
        """
        원격/로컬 JSON 문서에서 생성.

        페이지는 {"components": [...]}, globals는 {"variables": [...]} 형태를 모두 허용합니다.
        """
        document = document or {}
        items = document.get("components")
        if items is None:
            items = document.get("variables", [])
        return cls(
            id=unit_id,
            kind=unit_kind_for(unit_id),
            components=[Component.model_validate(item) for item in items],
        )

    def to_document(self) -> Dict[str, Any]:
        """저장용 JSON 문서"""
        items = [component.to_dict() for component in self.components]
        if self.kind == UnitKind.GLOBALS:
            return {"variables": items}
        return {"components": items}

    def get_component(self, component_id: str) -> Optional[Component]:
        for component in self.components:
            if component.id == component_id:
                return component
        return None

    def component_ids(self) -> List[str]:
        return [component.id for component in self.components]


__all__ = [
    "GLOBALS_UNIT_ID",
    "GLOBALS_COMPONENT_ID",
    "GLOBALS_SCHEMA_KEY",
    "UnitKind",
    "unit_kind_for",
    "Component",
    "ContentUnit",
]
