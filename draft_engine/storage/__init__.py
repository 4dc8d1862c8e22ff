"""
Storage collaborators (remote content store, local drafts, assets)

Implementations live in their own modules:
- draft_engine.storage.local_drafts
- draft_engine.storage.remote
- draft_engine.storage.assets
"""

from .base import RemoteContentStore, DraftStore, SchemaRegistry, AssetPipeline

__all__ = [
    "RemoteContentStore",
    "DraftStore",
    "SchemaRegistry",
    "AssetPipeline",
]
