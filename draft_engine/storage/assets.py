"""
Asset Pipeline - 저장 직전 대기 중인 파일 업로드/삭제 처리

폼 데이터(componentId -> fieldName -> value)에서 pending=True 파일을 찾아
업로더로 올린 뒤 영구 참조({url, name, size, type})로 교체합니다.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from draft_engine.storage.base import AssetPipeline

logger = logging.getLogger(__name__)

# pending 파일 dict -> 업로드된 파일 dict
Uploader = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]
# 삭제할 파일 url
Deleter = Callable[[str], Awaitable[None]]

# 업로드 후 저장하지 않는 임시 키
TRANSIENT_FILE_KEYS = ("pending", "file", "preview", "progress")


class PassthroughAssetPipeline(AssetPipeline):
    """업로드 처리 없음 - 폼 데이터를 그대로 반환"""

    async def process_pending_uploads(
        self,
        nested_form_data: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Dict[str, Any]]:
        return nested_form_data


class QueuedAssetPipeline(AssetPipeline):
    """
    대기열 기반 에셋 파이프라인.

    Example:
        pipeline = QueuedAssetPipeline(uploader=upload_to_bucket, deleter=delete_from_bucket)
        pipeline.queue_delete("https://cdn.example.com/old.png")
        form_data = await pipeline.process_pending_uploads(form_data)
    """

    def __init__(self, uploader: Uploader, deleter: Optional[Deleter] = None):
        self.uploader = uploader
        self.deleter = deleter
        self.pending_deletes: List[str] = []

    def queue_delete(self, url: str) -> None:
        if url and url not in self.pending_deletes:
            self.pending_deletes.append(url)

    def has_pending_operations(self, nested_form_data: Dict[str, Dict[str, Any]]) -> bool:
        if self.pending_deletes:
            return True
        return any(
            self._is_pending(file)
            for fields in nested_form_data.values()
            for value in fields.values()
            for file in self._files_of(value)
        )

    @staticmethod
    def _files_of(value: Any) -> List[Any]:
        if isinstance(value, dict) and isinstance(value.get("files"), list):
            return value["files"]
        return []

    @staticmethod
    def _is_pending(file: Any) -> bool:
        return isinstance(file, dict) and bool(file.get("pending"))

    async def _upload_files(self, value: Dict[str, Any]) -> Dict[str, Any]:
        files = []
        for file in value["files"]:
            if self._is_pending(file):
                uploaded = await self.uploader(file)
                file = {k: v for k, v in {**file, **uploaded}.items() if k not in TRANSIENT_FILE_KEYS}
            files.append(file)
        return {**value, "files": files}

    async def process_pending_uploads(
        self,
        nested_form_data: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Dict[str, Any]]:
        result: Dict[str, Dict[str, Any]] = {}
        uploaded_count = 0
        for component_id, fields in nested_form_data.items():
            processed = {}
            for field_name, value in fields.items():
                if any(self._is_pending(file) for file in self._files_of(value)):
                    value = await self._upload_files(value)
                    uploaded_count += 1
                processed[field_name] = value
            result[component_id] = processed

        if self.deleter is not None:
            while self.pending_deletes:
                url = self.pending_deletes.pop(0)
                await self.deleter(url)

        if uploaded_count:
            logger.info(f"에셋 업로드 완료: {uploaded_count}개 필드")
        return result


__all__ = [
    "TRANSIENT_FILE_KEYS",
    "PassthroughAssetPipeline",
    "QueuedAssetPipeline",
]
