"""
Draft reconciliation and publish engine for a content-management dashboard
"""

__version__ = "0.3.0"

from draft_engine.exceptions import (
    DraftEngineError,
    ValidationFailedError,
    TransientStorageError,
    RemoteStoreError,
    RemoteCommitError,
    ReconciliationError,
    UnknownUnitError,
)
from draft_engine.models import (
    ContentUnit,
    Component,
    FieldEntry,
    ValidationError,
    SaveResult,
    SaveStatus,
    PublishResult,
    PublishStatus,
)
from draft_engine.utils import (
    get_config,
    get_config_loader,
    get_locales,
)

__all__ = [
    "__version__",
    "ContentUnit",
    "Component",
    "FieldEntry",
    "ValidationError",
    "SaveResult",
    "SaveStatus",
    "PublishResult",
    "PublishStatus",
    "DraftEngineError",
    "ValidationFailedError",
    "TransientStorageError",
    "RemoteStoreError",
    "RemoteCommitError",
    "ReconciliationError",
    "UnknownUnitError",
    "get_config",
    "get_config_loader",
    "get_locales",
]
