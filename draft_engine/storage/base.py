"""
Storage interfaces - Collaborators consumed by the engine

- RemoteContentStore: durable, versioned content store (e.g. a git-backed API)
- DraftStore: client-side key-value store of uncommitted ContentUnit snapshots
- SchemaRegistry: declared fields per component schema
- AssetPipeline: resolves pending binary attachments before save
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from draft_engine.models.content_unit import ContentUnit
from draft_engine.models.schema import FieldDef, Schema, flatten_fields


class RemoteContentStore(ABC):
    """원격 콘텐츠 저장소"""

    @abstractmethod
    async def load_unit(self, unit_id: str) -> Optional[ContentUnit]:
        """Published copy of a unit, None when it does not exist (404)"""

    @abstractmethod
    async def save_unit(self, unit_id: str, unit: ContentUnit, message: Optional[str] = None) -> None:
        """Commit one unit; raises RemoteStoreError on failure"""

    @abstractmethod
    async def has_unpublished_draft(self) -> bool:
        """True when a draft branch/version exists remotely"""

    @abstractmethod
    async def load_remote_draft(self, unit_id: str) -> Optional[ContentUnit]:
        """Unit content on the remote draft, None when absent"""

    async def publish_draft(self, message: Optional[str] = None) -> bool:
        """Promote the remote draft to the published copy; False when there is nothing to promote"""
        return False

    async def aclose(self) -> None:
        return None


class DraftStore(ABC):
    """로컬 드래프트 저장소 - keyed by content unit id"""

    @abstractmethod
    async def get_draft(self, unit_id: str) -> Optional[ContentUnit]:
        ...

    @abstractmethod
    async def set_draft(self, unit_id: str, unit: ContentUnit) -> None:
        ...

    @abstractmethod
    async def clear_draft(self, unit_id: str) -> None:
        ...

    @abstractmethod
    async def list_draft_unit_ids(self) -> List[str]:
        ...

    @abstractmethod
    async def clear_all_drafts(self) -> None:
        ...

    async def has_draft(self, unit_id: str) -> bool:
        return unit_id in await self.list_draft_unit_ids()


class SchemaRegistry(ABC):
    """스키마 레지스트리"""

    @abstractmethod
    def get_schema(self, schema_name: str) -> Optional[Schema]:
        ...

    def get_fields(self, schema_name: str) -> List[FieldDef]:
        schema = self.get_schema(schema_name)
        return list(schema.fields) if schema else []

    def flatten(self, fields: List[FieldDef]) -> List[FieldDef]:
        """Expand grid/tabs layouts into addressable leaf fields"""
        return flatten_fields(fields)

    def data_fields(self, schema_name: str) -> List[FieldDef]:
        return self.flatten(self.get_fields(schema_name))

    def get_field(self, schema_name: str, field_name: str) -> Optional[FieldDef]:
        for field_def in self.data_fields(schema_name):
            if field_def.name == field_name:
                return field_def
        return None

    def type_of(self, schema_name: str, field_name: str) -> Optional[str]:
        field_def = self.get_field(schema_name, field_name)
        return field_def.type if field_def else None


class AssetPipeline(ABC):
    """에셋 파이프라인"""

    @abstractmethod
    async def process_pending_uploads(
        self,
        nested_form_data: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Dict[str, Any]]:
        """
        Resolve pending attachments to their persisted reference shape.

        Args:
            nested_form_data: componentId -> fieldName -> value

        Returns:
            Same structure with pending uploads replaced
        """


__all__ = [
    "RemoteContentStore",
    "DraftStore",
    "SchemaRegistry",
    "AssetPipeline",
]
