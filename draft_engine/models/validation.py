"""
Validation Error - Field-level save blocker
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ValidationError(BaseModel):
    """검증 오류 - One invalid leaf field of a component"""

    model_config = ConfigDict(populate_by_name=True)

    component_id: str = Field(..., alias="componentId")
    field_path: str = Field(
        ...,
        alias="fieldPath",
        description="Dot-joined path: field.index.subfield"
    )
    message: str = Field(..., description="User-facing message")

    unit_id: Optional[str] = Field(default=None, alias="unitId")
    component_name: Optional[str] = Field(default=None, alias="componentName")
    field_label: Optional[str] = Field(default=None, alias="fieldLabel")
    repeater_field_name: Optional[str] = Field(default=None, alias="repeaterFieldName")
    repeater_item_index: Optional[int] = Field(default=None, alias="repeaterItemIndex")

    def __str__(self) -> str:
        return f"{self.component_id}.{self.field_path}: {self.message}"


__all__ = ["ValidationError"]
