"""
Gate Decision - Save/publish gate verdict schemas
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from .results import PublishStatus, UnitFailure
from .validation import ValidationError


class ValidationDecision(BaseModel):
    """검증 게이트 판정 - Whether a unit may reach storage"""

    can_save: bool = Field(..., description="True only when no field is invalid")
    error_count: int = Field(default=0, ge=0)
    errors: List[ValidationError] = Field(default_factory=list)
    errors_by_component: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="componentId -> invalid field paths"
    )
    message: str = Field(default="", description="Human-readable summary")


class PublishDecision(BaseModel):
    """발행 게이트 판정 - Partition of a batch commit"""

    status: PublishStatus = Field(..., description="Batch outcome")
    can_clear_drafts: bool = Field(..., description="True only when failures is empty")
    successes: List[str] = Field(default_factory=list)
    failures: List[UnitFailure] = Field(default_factory=list)
    message: str = Field(default="", description="Human-readable summary")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "partial",
                "can_clear_drafts": False,
                "successes": ["index", "globals"],
                "failures": [
                    {"unit_id": "about", "error": "[about] commit rejected", "error_type": "RemoteCommitError"}
                ],
                "message": "1/3 unit(s) failed: about. Drafts kept for retry."
            }
        }


__all__ = ["ValidationDecision", "PublishDecision"]
