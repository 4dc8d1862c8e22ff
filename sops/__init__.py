"""
SOPs (Standard Operating Procedures) - 의사결정 로직 레이어

저장/발행 파이프라인의 의사결정 로직을 담당하는 모듈:

- ValidationGateSOP: 검증 오류 기반 Save/Block 판정
- PublishGateSOP: 동시 커밋 결과 기반 Published/Partial/Failed 판정
"""

from sops.validation_gate import (
    ValidationGateSOP,
    ValidationGateConfig,
)
from sops.publish_gate import (
    PublishGateSOP,
    PublishGateConfig,
)

__all__ = [
    # 검증 게이트
    "ValidationGateSOP",
    "ValidationGateConfig",
    # 발행 게이트
    "PublishGateSOP",
    "PublishGateConfig",
]
