"""
Autosave Scheduler - 단위별 디바운스 자동 저장

편집이 들어올 때마다 notify(unit_id)를 호출하면, 해당 단위에 대해
quiet_period 동안 추가 편집이 없을 때 저장 투영을 로컬 드래프트 저장소에 씁니다.

- 단위 ID별 타이머 (단위 전환 시 다른 단위의 드래프트에 쓰지 않음)
- 마지막 편집 우선 (notify가 이전 타이머를 취소)
- build_snapshot이 None을 반환하면 쓰지 않음 (초기 로드 중, 변경 없음)
- 로컬 저장소 실패는 로그만 남기고 편집을 막지 않음
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from draft_engine.exceptions import TransientStorageError
from draft_engine.models.content_unit import ContentUnit
from draft_engine.storage.base import DraftStore

logger = logging.getLogger(__name__)

# unit_id -> 저장할 드래프트 (쓰지 않으면 None)
SnapshotBuilder = Callable[[str], Optional[ContentUnit]]


class AutosaveScheduler:
    """
    자동 저장 스케줄러.

    Example:
        scheduler = AutosaveScheduler(draft_store, engine.build_draft, quiet_period=1.0)
        scheduler.notify("index")
        await scheduler.flush()
    """

    def __init__(
        self,
        draft_store: DraftStore,
        build_snapshot: SnapshotBuilder,
        quiet_period: float = 1.0
    ):
        self.draft_store = draft_store
        self.build_snapshot = build_snapshot
        self.quiet_period = quiet_period
        self._tasks: Dict[str, asyncio.Task] = {}
        # 타이머가 끝나 쓰기 중인 작업 -> unit_id (취소하지 않음)
        self._writing: Dict[asyncio.Task, str] = {}

    def notify(self, unit_id: str) -> None:
        """편집 발생 알림 (기존 타이머 취소 후 재시작)"""
        previous = self._tasks.pop(unit_id, None)
        if previous is not None and not previous.done():
            previous.cancel()
        self._tasks[unit_id] = asyncio.get_running_loop().create_task(self._run(unit_id))

    def cancel(self, unit_id: str) -> bool:
        """대기 중인 자동 저장 취소"""
        task = self._tasks.pop(unit_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug(f"[{unit_id}] 자동 저장 취소")
        return True

    def pending_unit_ids(self) -> List[str]:
        return [unit_id for unit_id, task in self._tasks.items() if not task.done()]

    async def _run(self, unit_id: str) -> None:
        try:
            await asyncio.sleep(self.quiet_period)
        except asyncio.CancelledError:
            return
        task = asyncio.current_task()
        if self._tasks.get(unit_id) is task:
            del self._tasks[unit_id]
        self._writing[task] = unit_id
        try:
            await self._write(unit_id)
        finally:
            self._writing.pop(task, None)

    async def _write(self, unit_id: str) -> bool:
        snapshot = self.build_snapshot(unit_id)
        if snapshot is None:
            logger.debug(f"[{unit_id}] 변경 없음, 자동 저장 생략")
            return False
        try:
            await self.draft_store.set_draft(unit_id, snapshot)
        except TransientStorageError as e:
            logger.warning(f"[{unit_id}] 자동 저장 실패 (편집은 계속됨): {e}")
            return False
        logger.debug(f"[{unit_id}] 자동 저장 완료: {len(snapshot.components)}개 컴포넌트")
        return True

    async def wait_for_writes(self, unit_id: Optional[str] = None) -> None:
        """진행 중인 드래프트 쓰기가 끝날 때까지 대기 (unit_id가 None이면 전체)"""
        writing = [
            task for task, uid in self._writing.items()
            if unit_id is None or uid == unit_id
        ]
        if writing:
            logger.debug(f"[{unit_id or '*'}] 진행 중인 자동 저장 {len(writing)}건 대기")
            await asyncio.gather(*writing, return_exceptions=True)

    async def flush(self, unit_id: Optional[str] = None) -> List[str]:
        """
        대기 중인 자동 저장을 즉시 실행.

        진행 중인 쓰기는 끝날 때까지 기다리고, 타이머가 남은 단위는 바로 씁니다.

        Args:
            unit_id: 특정 단위만 (None이면 전체)

        Returns:
            드래프트를 쓴 단위 ID 목록
        """
        await self.wait_for_writes()

        unit_ids = [unit_id] if unit_id is not None else list(self._tasks.keys())
        written = []
        for uid in unit_ids:
            task = self._tasks.pop(uid, None)
            if task is None:
                continue
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            if await self._write(uid):
                written.append(uid)
        return written

    async def aclose(self) -> None:
        """대기 중인 타이머 취소 (진행 중인 쓰기는 완료)"""
        timers = list(self._tasks.values())
        self._tasks.clear()
        for task in timers:
            task.cancel()
        pending = timers + list(self._writing)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


__all__ = ["SnapshotBuilder", "AutosaveScheduler"]
