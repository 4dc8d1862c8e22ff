"""
Local Draft Store - 클라이언트 측 드래프트 저장소

콘텐츠 단위 ID를 키로 마지막 미커밋 스냅샷(ContentUnit 전체)을 보관합니다.
드래프트 존재 = 새로고침 후에도 저장되지 않은 편집이 있음.

구현:
- InMemoryDraftStore: 프로세스 메모리 (테스트/개발용)
- JsonFileDraftStore: 단위별 JSON 파일 + 변경 단위 인덱스 파일

모든 읽기/쓰기 실패는 TransientStorageError로 변환됩니다.
"""

import asyncio
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from draft_engine.core.translation_merge import merge_translation_into_entry
from draft_engine.exceptions import TransientStorageError
from draft_engine.models.content_unit import ContentUnit
from draft_engine.models.field_value import FieldEntry
from draft_engine.storage.base import DraftStore

logger = logging.getLogger(__name__)


class InMemoryDraftStore(DraftStore):
    """메모리 드래프트 저장소 (저장 시 문서로 직렬화하여 호출자 변경과 격리)"""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def get_draft(self, unit_id: str) -> Optional[ContentUnit]:
        document = self._documents.get(unit_id)
        if document is None:
            return None
        return ContentUnit.from_document(unit_id, json.loads(json.dumps(document)))

    async def set_draft(self, unit_id: str, unit: ContentUnit) -> None:
        self._documents[unit_id] = json.loads(json.dumps(unit.to_document()))

    async def clear_draft(self, unit_id: str) -> None:
        self._documents.pop(unit_id, None)

    async def list_draft_unit_ids(self) -> List[str]:
        return list(self._documents.keys())

    async def clear_all_drafts(self) -> None:
        self._documents.clear()


class JsonFileDraftStore(DraftStore):
    """
    JSON 파일 드래프트 저장소.

    레이아웃:
        {drafts_dir}/index.json        # 드래프트가 있는 단위 ID 목록
        {drafts_dir}/{safe_unit_id}.json

    파일 I/O는 asyncio.to_thread로 이벤트 루프 밖에서 실행합니다.

    Example:
        store = JsonFileDraftStore(".drafts")
        await store.set_draft("index", unit)
        await store.list_draft_unit_ids()  # ["index"]
    """

    INDEX_FILE = "index.json"

    def __init__(self, drafts_dir: str):
        self.drafts_dir = Path(drafts_dir)
        self._lock = asyncio.Lock()

    def _path_for(self, unit_id: str) -> Path:
        safe_id = re.sub(r"[^A-Za-z0-9_.-]", "__", unit_id)
        return self.drafts_dir / f"draft_{safe_id}.json"

    # -------------------------------------------------------------------------
    # 동기 I/O (스레드에서 실행)
    # -------------------------------------------------------------------------

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write_json(self, path: Path, data: Any) -> None:
        self.drafts_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)

    def _remove(self, path: Path) -> None:
        if path.exists():
            path.unlink()

    def _read_index(self) -> List[str]:
        index = self._read_json(self.drafts_dir / self.INDEX_FILE)
        return [str(unit_id) for unit_id in index] if isinstance(index, list) else []

    def _write_index(self, unit_ids: List[str]) -> None:
        self._write_json(self.drafts_dir / self.INDEX_FILE, unit_ids)

    # -------------------------------------------------------------------------
    # DraftStore
    # -------------------------------------------------------------------------

    async def get_draft(self, unit_id: str) -> Optional[ContentUnit]:
        try:
            document = await asyncio.to_thread(self._read_json, self._path_for(unit_id))
            if document is None:
                return None
            return ContentUnit.from_document(unit_id, document)
        except (OSError, ValueError, PydanticValidationError) as e:
            raise TransientStorageError("read", unit_id, e) from e

    async def set_draft(self, unit_id: str, unit: ContentUnit) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._write_json, self._path_for(unit_id), unit.to_document())
                unit_ids = await asyncio.to_thread(self._read_index)
                if unit_id not in unit_ids:
                    unit_ids.append(unit_id)
                    await asyncio.to_thread(self._write_index, unit_ids)
            except (OSError, ValueError, TypeError) as e:
                raise TransientStorageError("write", unit_id, e) from e
        logger.debug(f"[{unit_id}] 드래프트 저장: {self._path_for(unit_id)}")

    async def clear_draft(self, unit_id: str) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._remove, self._path_for(unit_id))
                unit_ids = await asyncio.to_thread(self._read_index)
                if unit_id in unit_ids:
                    unit_ids.remove(unit_id)
                    await asyncio.to_thread(self._write_index, unit_ids)
            except (OSError, ValueError) as e:
                raise TransientStorageError("clear", unit_id, e) from e

    async def list_draft_unit_ids(self) -> List[str]:
        try:
            return await asyncio.to_thread(self._read_index)
        except (OSError, ValueError) as e:
            raise TransientStorageError("list", None, e) from e

    async def clear_all_drafts(self) -> None:
        async with self._lock:
            try:
                unit_ids = await asyncio.to_thread(self._read_index)
                for unit_id in unit_ids:
                    await asyncio.to_thread(self._remove, self._path_for(unit_id))
                await asyncio.to_thread(self._write_index, [])
            except (OSError, ValueError) as e:
                raise TransientStorageError("clear_all", None, e) from e
        logger.info(f"모든 드래프트 삭제: {len(unit_ids)}개")


async def update_draft_field(
    store: DraftStore,
    unit_id: str,
    component_id: str,
    field_name: str,
    value: Any,
    locale: Optional[str] = None,
    default_locale: str = "en"
) -> bool:
    """
    저장된 드래프트 안의 필드 하나만 갱신 (예: 단일 필드 되돌리기).

    필드가 없으면 type="unknown"으로 생성합니다.

    Returns:
        드래프트와 컴포넌트가 존재해 갱신했으면 True
    """
    draft = await store.get_draft(unit_id)
    if draft is None:
        logger.warning(f"[{unit_id}] 드래프트 없음, 필드 갱신 생략: {component_id}.{field_name}")
        return False

    components = []
    updated = False
    for component in draft.components:
        if component.id != component_id:
            components.append(component)
            continue
        entry = component.data.get(field_name) or FieldEntry(type="unknown", value=None)
        data = dict(component.data)
        data[field_name] = merge_translation_into_entry(entry, locale, default_locale, value)
        components.append(component.model_copy(update={"data": data}))
        updated = True

    if not updated:
        logger.warning(f"[{unit_id}] 드래프트에 컴포넌트 없음: {component_id}")
        return False

    await store.set_draft(unit_id, draft.model_copy(update={"components": components}))
    return True


__all__ = [
    "InMemoryDraftStore",
    "JsonFileDraftStore",
    "update_draft_field",
]
