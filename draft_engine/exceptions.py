"""
Exceptions - 드래프트 엔진 오류 분류

- ValidationFailedError: 저장 차단 (필드별로 사용자에게 표시, 자동 재시도 없음)
- TransientStorageError: 로컬 저장소 읽기/쓰기 실패 (로그만 남기고 편집은 계속)
- RemoteStoreError / RemoteCommitError: 원격 저장소 실패 (발행 실패 목록에 수집)
- ReconciliationError: 로드 시점 실패 (캐시 사본으로 대체)
"""

from typing import Optional


class DraftEngineError(Exception):
    """Base class for all engine errors"""


class ValidationFailedError(DraftEngineError):
    """검증 실패 - 저장소에 절대 도달하지 않음"""

    def __init__(self, errors: list, unit_id: Optional[str] = None):
        self.errors = list(errors)
        self.unit_id = unit_id
        super().__init__(f"Validation failed: {len(self.errors)} invalid field(s)")


class TransientStorageError(DraftEngineError):
    """로컬 드래프트 저장소 읽기/쓰기 실패"""

    def __init__(self, operation: str, unit_id: Optional[str] = None, cause: Optional[BaseException] = None):
        self.operation = operation
        self.unit_id = unit_id
        self.cause = cause
        target = f" ({unit_id})" if unit_id else ""
        super().__init__(f"Local draft store {operation} failed{target}: {cause}")


class RemoteStoreError(DraftEngineError):
    """원격 콘텐츠 저장소 호출 실패"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteCommitError(RemoteStoreError):
    """단위 하나의 원격 커밋 실패 - 발행 시 재시도 가능"""

    def __init__(self, unit_id: str, message: str, status_code: Optional[int] = None):
        self.unit_id = unit_id
        super().__init__(f"[{unit_id}] {message}", status_code=status_code)


class ReconciliationError(DraftEngineError):
    """로드 경로에서 작업 사본을 만들지 못함"""

    def __init__(self, unit_id: str, cause: Optional[BaseException] = None):
        self.unit_id = unit_id
        self.cause = cause
        super().__init__(f"[{unit_id}] reconciliation failed: {cause}")


class UnknownUnitError(DraftEngineError):
    """로드되지 않은 콘텐츠 단위에 대한 작업"""

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Content unit not loaded: {unit_id}")


__all__ = [
    "DraftEngineError",
    "ValidationFailedError",
    "TransientStorageError",
    "RemoteStoreError",
    "RemoteCommitError",
    "ReconciliationError",
    "UnknownUnitError",
]
