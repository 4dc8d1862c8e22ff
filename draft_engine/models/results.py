"""
Results - Structured save/publish outcomes
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .content_unit import ContentUnit
from .validation import ValidationError


class SaveStatus(str, Enum):
    """Single-unit save outcomes"""
    SAVED = "saved"         # Remote write succeeded, draft cleared
    INVALID = "invalid"     # Validation blocked the save (no storage access)
    FAILED = "failed"       # Asset or remote write failed (draft kept)


class PublishStatus(str, Enum):
    """Batch publish outcomes"""
    PUBLISHED = "published"                 # Every unit committed, drafts cleared
    PARTIAL = "partial"                     # Some units committed, no draft cleared
    FAILED = "failed"                       # No unit committed
    NOTHING_TO_PUBLISH = "nothing_to_publish"
    INVALID = "invalid"                     # Draft validation blocked the batch


class SaveResult(BaseModel):
    """저장 결과 - Outcome of save(unit_id)"""

    unit_id: str = Field(..., description="Saved content unit")
    status: SaveStatus = Field(..., description="Save outcome")
    errors: List[ValidationError] = Field(
        default_factory=list,
        description="Every invalid leaf field (status=invalid)"
    )
    error: Optional[str] = Field(default=None, description="Underlying storage error message")
    error_type: Optional[str] = Field(default=None, description="Exception class name")
    unit: Optional[ContentUnit] = Field(default=None, description="Persisted shape (status=saved)")
    latency_ms: int = Field(default=0)

    @property
    def ok(self) -> bool:
        return self.status == SaveStatus.SAVED


class UnitFailure(BaseModel):
    """발행 실패 단위"""
    unit_id: str = Field(..., description="Unit whose commit failed")
    error: str = Field(..., description="Underlying error message")
    error_type: str = Field(default="Exception", description="Exception class name")


class PublishResult(BaseModel):
    """발행 결과 - Partial-failure-tolerant batch outcome"""

    status: PublishStatus = Field(..., description="Batch outcome")
    successes: List[str] = Field(default_factory=list, description="Committed unit ids")
    failures: List[UnitFailure] = Field(default_factory=list, description="Failed units")
    validation_errors: List[ValidationError] = Field(
        default_factory=list,
        description="Invalid drafts (status=invalid)"
    )
    drafts_cleared: bool = Field(default=False, description="True only when failures is empty")
    promoted: bool = Field(default=False, description="Remote draft merged into the published copy")
    message: str = Field(default="", description="Commit message used")
    latency_ms: int = Field(default=0)

    class Config:
        json_schema_extra = {
            "example": {
                "status": "partial",
                "successes": ["index", "globals"],
                "failures": [
                    {"unit_id": "about", "error": "[about] 409 Conflict", "error_type": "RemoteCommitError"}
                ],
                "validation_errors": [],
                "drafts_cleared": False,
                "promoted": False,
                "message": "Modified pages: about, index; Modified global settings",
                "latency_ms": 812
            }
        }

    @property
    def failed_unit_ids(self) -> List[str]:
        return [failure.unit_id for failure in self.failures]


__all__ = [
    "SaveStatus",
    "PublishStatus",
    "SaveResult",
    "UnitFailure",
    "PublishResult",
]
