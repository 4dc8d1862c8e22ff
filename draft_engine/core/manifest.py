"""
Manifest Synthesis - 선언된 컴포넌트 발생 수에 맞춰 누락 컴포넌트 생성

manifest: unit id -> {schemaKey: occurrenceCount}
각 schemaKey마다 `schemaKey-0 .. schemaKey-(n-1)` id를 가진 컴포넌트가
존재하도록 보장합니다. id가 결정적이므로 여러 번 실행해도 결과가 같습니다.
"""

import logging
from typing import Callable, Dict, List, Optional

from draft_engine.models.content_unit import (
    GLOBALS_COMPONENT_ID,
    GLOBALS_SCHEMA_KEY,
    Component,
    ContentUnit,
    UnitKind,
)
from draft_engine.utils.ids import component_id_for

logger = logging.getLogger(__name__)

# schemaKey -> schemaName
SchemaNameResolver = Callable[[str], str]


class ManifestSynchronizer:
    """
    매니페스트 동기화.

    Example:
        sync = ManifestSynchronizer({"index": {"heroKey": 2}})
        unit = sync.sync(ContentUnit.empty("index"))
        unit.component_ids()  # ["heroKey-0", "heroKey-1"]
    """

    def __init__(
        self,
        manifest: Optional[Dict[str, Dict[str, int]]] = None,
        schema_name_for: Optional[SchemaNameResolver] = None
    ):
        self.manifest = manifest or {}
        self.schema_name_for = schema_name_for or (lambda key: key)

    def entries_for(self, unit_id: str) -> Dict[str, int]:
        return dict(self.manifest.get(unit_id, {}))

    def missing_ids(self, unit: ContentUnit) -> List[str]:
        existing = set(unit.component_ids())
        missing = []
        for schema_key, count in self.entries_for(unit.id).items():
            for index in range(max(int(count), 0)):
                component_id = component_id_for(schema_key, index)
                if component_id not in existing:
                    missing.append(component_id)
        if unit.kind == UnitKind.GLOBALS and GLOBALS_COMPONENT_ID not in existing:
            missing.append(GLOBALS_COMPONENT_ID)
        return missing

    def sync(self, unit: ContentUnit) -> ContentUnit:
        """
        누락된 컴포넌트를 빈 데이터로 추가한 새 ContentUnit 반환.

        기존 컴포넌트 순서와 내용은 그대로 유지하고, 합성된 컴포넌트는 뒤에 붙습니다.
        """
        components = list(unit.components)
        existing = set(unit.component_ids())
        synthesized = []

        if unit.kind == UnitKind.GLOBALS and GLOBALS_COMPONENT_ID not in existing:
            synthesized.append(Component(
                id=GLOBALS_COMPONENT_ID,
                schema_name=self.schema_name_for(GLOBALS_SCHEMA_KEY),
                data={},
            ))
            existing.add(GLOBALS_COMPONENT_ID)

        for schema_key, count in self.entries_for(unit.id).items():
            for index in range(max(int(count), 0)):
                component_id = component_id_for(schema_key, index)
                if component_id in existing:
                    continue
                synthesized.append(Component(
                    id=component_id,
                    schema_name=self.schema_name_for(schema_key),
                    data={},
                ))
                existing.add(component_id)

        if synthesized:
            logger.info(
                f"[{unit.id}] 매니페스트 동기화: {len(synthesized)}개 컴포넌트 생성 "
                f"({', '.join(c.id for c in synthesized)})"
            )
        return unit.model_copy(update={"components": components + synthesized})


__all__ = ["ManifestSynchronizer", "SchemaNameResolver"]
