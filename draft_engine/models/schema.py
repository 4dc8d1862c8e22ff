"""
Schema - Component schema and field definitions
"""

from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# 레이아웃 타입은 데이터를 갖지 않고 하위 필드만 묶음
LAYOUT_TYPES = ("grid", "tabs")


class SelectOption(BaseModel):
    """Select 옵션"""
    value: str = Field(..., description="Stored option value")
    label: Optional[str] = Field(default=None, description="Display label")


class Tab(BaseModel):
    """Tabs 레이아웃의 탭 하나"""
    label: str = Field(default="", description="Tab label")
    fields: List["FieldDef"] = Field(default_factory=list)


class FieldDef(BaseModel):
    """필드 정의 - Declared field of a component schema"""

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    type: str = Field(..., description="Field type (input, textarea, repeater, grid, ...)")
    name: Optional[str] = Field(default=None, description="Data key (layouts have none)")
    label: Optional[str] = Field(default=None, description="User-facing label")

    required: Union[bool, Callable[[Dict[str, Any]], bool]] = Field(
        default=False,
        description="Static flag or predicate over sibling form values"
    )
    translatable: bool = Field(default=False, description="Value may be a locale map")

    # input / textarea / richeditor
    input_type: Optional[str] = Field(default=None, description="text, email, url, number")
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)

    # select
    options: List[SelectOption] = Field(default_factory=list)
    multiple: bool = Field(default=False)

    # repeater / grid
    fields: List["FieldDef"] = Field(default_factory=list)
    min_items: Optional[int] = Field(default=None, ge=0)
    max_items: Optional[int] = Field(default=None, ge=0)

    # tabs
    tabs: List[Tab] = Field(default_factory=list)

    # fileUpload
    max_files: Optional[int] = Field(default=None, ge=0)
    max_size: Optional[int] = Field(default=None, ge=0, description="Bytes per file")
    accept: Optional[str] = Field(default=None, description="Comma-separated types, e.g. 'image/*,.pdf'")

    # dateField
    mode: str = Field(default="single", description="single or range")
    min_date: Optional[str] = Field(default=None, description="ISO date or 'today'")
    max_date: Optional[str] = Field(default=None, description="ISO date or 'today'")

    @property
    def is_layout(self) -> bool:
        return self.type in LAYOUT_TYPES

    def display_label(self) -> str:
        return self.label or self.name or self.type

    def is_required(self, form_values: Optional[Dict[str, Any]] = None) -> bool:
        """required 판정 (callable이면 형제 폼 값으로 평가)"""
        if callable(self.required):
            return bool(self.required(form_values or {}))
        return bool(self.required)


class Schema(BaseModel):
    """컴포넌트 스키마"""
    name: str = Field(..., description="Schema name stored in Component.schemaName")
    key: str = Field(..., description="Manifest key used for synthesized ids")
    fields: List[FieldDef] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Hero",
                "key": "heroKey",
                "fields": [
                    {"type": "input", "name": "title", "required": True, "translatable": True},
                    {
                        "type": "grid",
                        "fields": [
                            {"type": "input", "name": "cta_label", "max_length": 40},
                            {"type": "input", "name": "cta_url", "input_type": "url"}
                        ]
                    }
                ]
            }
        }


Tab.model_rebuild()
FieldDef.model_rebuild()


def flatten_fields(fields: List[FieldDef]) -> List[FieldDef]:
    """
    레이아웃(grid, tabs)을 펼쳐 데이터를 가진 리프 필드만 반환.

    Repeater는 리프로 취급합니다 (하위 필드는 항목 단위로 검증).
    """
    flat: List[FieldDef] = []
    for field_def in fields:
        if field_def.type == "grid":
            flat.extend(flatten_fields(field_def.fields))
        elif field_def.type == "tabs":
            for tab in field_def.tabs:
                flat.extend(flatten_fields(tab.fields))
        elif field_def.name:
            flat.append(field_def)
    return flat


__all__ = [
    "LAYOUT_TYPES",
    "flatten_fields",
    "SelectOption",
    "Tab",
    "FieldDef",
    "Schema",
]
