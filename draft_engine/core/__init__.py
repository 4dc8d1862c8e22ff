"""
Core editing logic - validation, change detection, translation merge, manifest
"""

from .validators import FieldValidator, register_validator, get_validator_builder
from .validator_resolver import ValidatorResolver
from .change_detector import ChangeDetector, FormEdits, TranslationEdits
from .translation_merge import TranslationMergeEngine, TranslationStatus, translation_status
from .manifest import ManifestSynchronizer
from .schema_registry import StaticSchemaRegistry

__all__ = [
    # Validation
    "FieldValidator",
    "register_validator",
    "get_validator_builder",
    "ValidatorResolver",

    # Change detection
    "ChangeDetector",
    "FormEdits",
    "TranslationEdits",

    # Translation merge
    "TranslationMergeEngine",
    "TranslationStatus",
    "translation_status",

    # Manifest / schemas
    "ManifestSynchronizer",
    "StaticSchemaRegistry",
]
