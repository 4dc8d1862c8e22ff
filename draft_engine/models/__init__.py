"""
Data models for the draft reconciliation engine
"""

from .field_value import (
    ABSENT,
    FieldEntry,
    Scalar,
    LocaleMap,
    FieldValue,
    is_absent,
    normalize_empty,
    normalize_field_value,
    resolve_locale,
    to_locale_map,
    default_locale_value,
    to_storage_value,
)
from .content_unit import (
    GLOBALS_UNIT_ID,
    GLOBALS_COMPONENT_ID,
    UnitKind,
    Component,
    ContentUnit,
)
from .schema import FieldDef, Schema, SelectOption, Tab
from .validation import ValidationError
from .session_state import SessionState, is_busy_state, can_transition, VALID_TRANSITIONS
from .results import SaveStatus, PublishStatus, SaveResult, UnitFailure, PublishResult
from .gate_decision import ValidationDecision, PublishDecision

__all__ = [
    # Field values
    "ABSENT",
    "FieldEntry",
    "Scalar",
    "LocaleMap",
    "FieldValue",
    "is_absent",
    "normalize_empty",
    "normalize_field_value",
    "resolve_locale",
    "to_locale_map",
    "default_locale_value",
    "to_storage_value",

    # Content units
    "GLOBALS_UNIT_ID",
    "GLOBALS_COMPONENT_ID",
    "UnitKind",
    "Component",
    "ContentUnit",

    # Schemas
    "FieldDef",
    "Schema",
    "SelectOption",
    "Tab",

    # Validation
    "ValidationError",

    # Session state
    "SessionState",
    "is_busy_state",
    "can_transition",
    "VALID_TRANSITIONS",

    # Results
    "SaveStatus",
    "PublishStatus",
    "SaveResult",
    "UnitFailure",
    "PublishResult",

    # Gate decisions
    "ValidationDecision",
    "PublishDecision",
]
