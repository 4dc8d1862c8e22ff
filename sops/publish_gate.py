"""
발행 게이트 SOP - Published/Partial/Failed 판정

목적: 동시 커밋 결과를 성공/실패로 나누고 드래프트 삭제 가능 여부 결정

비즈니스 규칙:
- 모든 단위 커밋 성공: PUBLISHED, 모든 드래프트 삭제
- 일부 단위 실패: PARTIAL, 드래프트 유지 (재시도 가능)
- 모든 단위 실패: FAILED, 드래프트 유지
- 실패가 하나라도 있으면 어떤 드래프트도 삭제하지 않음
- 커밋 후 게시본 병합 실패: FAILED, 드래프트 유지
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from draft_engine.models.gate_decision import PublishDecision
from draft_engine.models.results import PublishStatus, UnitFailure


@dataclass
class PublishGateConfig:
    """발행 게이트 설정"""
    max_failures_in_message: int = 5


class PublishGateSOP:
    """
    발행 게이트 SOP - Release Guard

    asyncio.gather(..., return_exceptions=True)의 결과를 입력으로 받습니다.
    """

    def __init__(self, config: Optional[PublishGateConfig] = None):
        self.config = config or PublishGateConfig()

    def partition(
        self,
        unit_ids: Sequence[str],
        gather_results: Sequence[Any]
    ) -> Tuple[List[str], List[UnitFailure]]:
        """
        gather 결과를 성공/실패로 분류.

        Raises:
            ValueError: unit_ids와 결과 개수가 다를 때
        """
        if len(unit_ids) != len(gather_results):
            raise ValueError(f"결과 개수 불일치: {len(unit_ids)}개 단위, {len(gather_results)}개 결과")

        successes: List[str] = []
        failures: List[UnitFailure] = []
        for unit_id, result in zip(unit_ids, gather_results):
            if isinstance(result, BaseException):
                failures.append(UnitFailure(
                    unit_id=unit_id,
                    error=str(result) or type(result).__name__,
                    error_type=type(result).__name__
                ))
            else:
                successes.append(unit_id)
        return successes, failures

    def decide(self, successes: List[str], failures: List[UnitFailure]) -> PublishDecision:
        """
        성공/실패 목록으로 최종 판정.

        Raises:
            ValueError: 두 목록이 모두 비어 있을 때
        """
        if not successes and not failures:
            raise ValueError("최소 하나의 커밋 결과가 필요합니다")

        if not failures:
            return PublishDecision(
                status=PublishStatus.PUBLISHED,
                can_clear_drafts=True,
                successes=list(successes),
                message=self._build_published_message(successes)
            )

        status = PublishStatus.PARTIAL if successes else PublishStatus.FAILED
        return PublishDecision(
            status=status,
            can_clear_drafts=False,
            successes=list(successes),
            failures=list(failures),
            message=self._build_failure_message(successes, failures)
        )

    def decide_promotion_failure(self, committed: List[str], error: BaseException) -> PublishDecision:
        """
        커밋은 모두 성공했지만 게시본으로 병합하지 못한 경우.

        모든 단위를 실패로 보고 드래프트를 유지합니다 (재발행 시 같은 배치를 다시 커밋).
        """
        failures = [
            UnitFailure(unit_id=unit_id, error=str(error) or type(error).__name__, error_type=type(error).__name__)
            for unit_id in committed
        ]
        return PublishDecision(
            status=PublishStatus.FAILED,
            can_clear_drafts=False,
            failures=failures,
            message=f"Committed {len(committed)} unit(s) but publishing the draft failed: {error}. Drafts kept for retry."
        )

    def _build_published_message(self, successes: List[str]) -> str:
        return f"Published {len(successes)} unit(s): {', '.join(successes)}"

    def _build_failure_message(self, successes: List[str], failures: List[UnitFailure]) -> str:
        """실패 단위 ID와 원인 오류를 포함한 메시지"""
        total = len(successes) + len(failures)
        shown = failures[:self.config.max_failures_in_message]
        details = "; ".join(f"{f.unit_id} ({f.error})" for f in shown)
        if len(failures) > len(shown):
            details += f" (+{len(failures) - len(shown)} more)"
        return f"{len(failures)}/{total} unit(s) failed: {details}. Drafts kept for retry."

    def get_summary(self, decision: PublishDecision) -> Dict:
        """로깅/리포팅용 판정 요약"""
        return {
            "status": decision.status.value,
            "can_clear_drafts": decision.can_clear_drafts,
            "successes": decision.successes,
            "failed_units": [f.unit_id for f in decision.failures],
            "message": decision.message
        }
