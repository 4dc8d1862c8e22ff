"""
Schema Registry - Component schemas declared in config/schemas.yaml
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from draft_engine.models.schema import Schema
from draft_engine.storage.base import SchemaRegistry
from draft_engine.utils.config import ConfigLoader, get_config_loader

logger = logging.getLogger(__name__)


class StaticSchemaRegistry(SchemaRegistry):
    """
    고정 스키마 목록 기반 레지스트리.

    schemaName 또는 manifest key 어느 쪽으로도 조회할 수 있습니다.

    Example:
        registry = StaticSchemaRegistry.from_config()
        fields = registry.data_fields("Hero")
    """

    def __init__(self, schemas: Iterable[Schema] = ()):
        self._by_name: Dict[str, Schema] = {}
        self._by_key: Dict[str, Schema] = {}
        for schema in schemas:
            self.register(schema)

    def register(self, schema: Schema) -> None:
        if schema.name in self._by_name:
            logger.warning(f"스키마 덮어쓰기: {schema.name}")
        self._by_name[schema.name] = schema
        self._by_key[schema.key] = schema

    def get_schema(self, schema_name: str) -> Optional[Schema]:
        return self._by_name.get(schema_name) or self._by_key.get(schema_name)

    def get_by_key(self, schema_key: str) -> Optional[Schema]:
        return self._by_key.get(schema_key)

    def schema_names(self) -> List[str]:
        return sorted(self._by_name.keys())

    @classmethod
    def from_dicts(cls, declarations: List[Dict[str, Any]]) -> "StaticSchemaRegistry":
        return cls(Schema.model_validate(item) for item in declarations)

    @classmethod
    def from_config(cls, loader: Optional[ConfigLoader] = None) -> "StaticSchemaRegistry":
        """schemas.yaml에서 로드 (파일이 없으면 빈 레지스트리)"""
        loader = loader or get_config_loader()
        declarations = loader.get_schemas()
        logger.info(f"스키마 로드: {len(declarations)}개")
        return cls.from_dicts(declarations)


__all__ = ["StaticSchemaRegistry"]
