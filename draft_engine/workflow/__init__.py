"""
Workflow layer - load, autosave, save and publish orchestration
"""

from .reconciler import DraftReconciler, ReconcileResult, ReconcileSource
from .autosave import AutosaveScheduler
from .publisher import Publisher
from .builder import EngineConfig, SavePipeline, ContentEditingEngine

__all__ = [
    # Load path
    "DraftReconciler",
    "ReconcileResult",
    "ReconcileSource",

    # Autosave
    "AutosaveScheduler",

    # Save / publish
    "SavePipeline",
    "Publisher",

    # Engine
    "EngineConfig",
    "ContentEditingEngine",
]
