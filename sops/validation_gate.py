"""
검증 게이트 SOP - Save/Block 판정

목적: 단위의 모든 검증 오류를 모아 저장 가능 여부 결정

비즈니스 규칙:
- 오류 0개: 저장 허용
- 오류 1개 이상: 저장 차단 (저장소 접근 없음, 모든 오류를 그대로 반환)
- 메시지에는 최대 max_errors_in_message개의 오류만 나열
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from draft_engine.models.gate_decision import ValidationDecision
from draft_engine.models.validation import ValidationError


@dataclass
class ValidationGateConfig:
    """검증 게이트 설정"""
    max_errors_in_message: int = 5  # 메시지에 나열할 최대 오류 수


class ValidationGateSOP:
    """
    검증 게이트 SOP - Save Guard

    Example:
        gate = ValidationGateSOP()
        decision = gate.decide(errors, unit_id="index")
        if not decision.can_save:
            ...
    """

    def __init__(self, config: Optional[ValidationGateConfig] = None):
        self.config = config or ValidationGateConfig()

    def decide(self, errors: List[ValidationError], unit_id: Optional[str] = None) -> ValidationDecision:
        """
        검증 오류 목록으로 저장 가능 여부 판정.

        Args:
            errors: 검증 오류 목록 (여러 단위가 섞여 있을 수 있음)
            unit_id: 메시지에 표시할 단위 ID

        Returns:
            ValidationDecision
        """
        by_component: Dict[str, List[str]] = {}
        for error in errors:
            by_component.setdefault(error.component_id, []).append(error.field_path)

        if not errors:
            return ValidationDecision(
                can_save=True,
                message=self._build_pass_message(unit_id)
            )

        return ValidationDecision(
            can_save=False,
            error_count=len(errors),
            errors=list(errors),
            errors_by_component=by_component,
            message=self._build_block_message(errors, unit_id)
        )

    def _build_pass_message(self, unit_id: Optional[str]) -> str:
        target = f"[{unit_id}] " if unit_id else ""
        return f"{target}All fields valid"

    def _build_block_message(self, errors: List[ValidationError], unit_id: Optional[str]) -> str:
        """사람이 읽을 수 있는 차단 메시지 생성"""
        target = f"[{unit_id}] " if unit_id else ""
        shown = errors[:self.config.max_errors_in_message]
        details = "; ".join(str(e) for e in shown)
        remaining = len(errors) - len(shown)
        if remaining > 0:
            details += f" (+{remaining} more)"
        return f"{target}{len(errors)} invalid field(s): {details}"

    def get_summary(self, decision: ValidationDecision) -> Dict:
        """로깅/리포팅용 판정 요약"""
        return {
            "can_save": decision.can_save,
            "error_count": decision.error_count,
            "invalid_components": sorted(decision.errors_by_component.keys()),
            "message": decision.message
        }
