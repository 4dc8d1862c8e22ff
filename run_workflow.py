#!/usr/bin/env python3
"""
워크플로우 실행 스크립트

로드 → 편집 → 저장/발행 흐름을 데모 저장소(또는 원격 저장소)로 실행합니다.

사용법:
    python run_workflow.py                          # 메모리 저장소로 저장 데모
    python run_workflow.py --mode publish           # index, about, globals 일괄 발행
    python run_workflow.py --mode publish --fail-unit about
    python run_workflow.py --remote --user alice    # engine.yaml의 remote 설정 사용 (CMS_TOKEN 필요)

옵션:
    --mode {save,publish}   실행 모드 (기본: save)
    --fail-unit ID          메모리 저장소에서 커밋을 실패시킬 단위
    --drafts-dir DIR        로컬 드래프트를 파일로 저장 (기본: 메모리)
    --remote                HttpContentStore 사용
    --user NAME             드래프트 브랜치 사용자 (cms-draft-{user})
    --config-dir DIR        설정 디렉터리
    --save-results          결과 JSON을 results/에 저장
"""

# =============================================================================
# 의존성
# =============================================================================
import asyncio
import argparse
import json
import logging
import os
from datetime import datetime
from pathlib import Path

from draft_engine.models import Component, ContentUnit, FieldEntry
from draft_engine.storage.local_drafts import InMemoryDraftStore, JsonFileDraftStore
from draft_engine.storage.remote import HttpContentStore, InMemoryContentStore
from draft_engine.utils.config import ConfigLoader
from draft_engine.utils.observability import trace_session
from draft_engine.utils.result_formatter import (
    format_save_result,
    format_publish_result,
    save_result,
)
from draft_engine.workflow import ContentEditingEngine

# =============================================================================
# 설정
# =============================================================================
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# 불필요한 로그 억제
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

RESULTS_DIR = Path(__file__).parent / "results"    # 결과 저장 위치


# =============================================================================
# 유틸리티 함수
# =============================================================================
def log_header(*lines: str) -> None:
    """구분선으로 감싼 헤더 출력"""
    logger.info(f"\n{'='*60}")
    for line in lines:
        logger.info(line)
    logger.info("="*60)


def print_json_block(title: str, data: dict, summary_only: bool = False) -> None:
    """JSON 블록 출력 (summary_only=True면 details 제외)"""
    print(f"\n{'='*60}")
    print(title)
    print("="*60)
    if summary_only and "details" in data:
        summary = {k: v for k, v in data.items() if k != "details"}
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    else:
        print(json.dumps(data, ensure_ascii=False, indent=2))


def get_timestamp() -> str:
    """타임스탬프 생성 (yyyy-mm-dd-hh-mm-ss-mms)"""
    now = datetime.now()
    return now.strftime("%Y-%m-%d-%H-%M-%S") + f"-{now.microsecond // 1000:03d}"


def demo_units() -> dict:
    """메모리 저장소의 게시본"""
    index = ContentUnit(
        id="index",
        components=[
            Component(
                id="heroKey-0",
                schema_name="Hero",
                data={
                    "title": FieldEntry(type="input", translatable=True, value={"en": "Welcome", "fr": "Bienvenue"}),
                    "subtitle": FieldEntry(type="textarea", translatable=True, value="Build faster"),
                },
            )
        ],
    )
    return {"index": index}


def build_remote_store(args, loader: ConfigLoader):
    if args.remote:
        return HttpContentStore.from_settings(
            loader.get_remote_settings(),
            token=os.getenv("CMS_TOKEN"),
            user=args.user,
        )
    return InMemoryContentStore(units=demo_units(), fail_units=[args.fail_unit] if args.fail_unit else [])


# =============================================================================
# 실행 함수
# =============================================================================
async def run_save(engine: ContentEditingEngine) -> dict:
    """단일 단위 편집 후 저장"""
    log_header("저장 데모: index")

    await engine.load_unit("index")
    engine.update_field("heroKey-0", "title", "Welcome home")
    engine.update_field("heroKey-0", "title", "Willkommen", locale="de")
    engine.update_field("heroKey-1", "title", "Second hero")
    logger.info(f"변경 있음: {engine.has_changes('index')}")

    result = await engine.save("index")
    output = format_save_result(result)
    print_json_block("📄 Save Result JSON:", output)
    return output


async def run_publish(engine: ContentEditingEngine) -> dict:
    """여러 단위 편집 후 일괄 발행"""
    log_header("발행 데모: index, about, globals")

    await engine.load_unit("index")
    engine.update_field("heroKey-0", "title", "Welcome home")
    engine.update_field("heroKey-1", "title", "Second hero")

    await engine.load_unit("about")
    engine.update_field("heroKey-0", "title", "About us")

    await engine.load_unit("globals")
    engine.update_field("globals", "site_name", "Capsulo")
    engine.update_field("globals", "site_name", "Capsulo FR", locale="fr")

    result = await engine.publish()
    output = format_publish_result(result)
    print_json_block("📄 Publish Result JSON:", output)
    return output


# =============================================================================
# 메인 진입점
# =============================================================================
async def main():
    """명령줄 인자를 파싱하고 선택한 모드 실행"""
    parser = argparse.ArgumentParser(description="드래프트 엔진 워크플로우 실행")
    parser.add_argument("--mode", choices=["save", "publish"], default="save", help="실행 모드")
    parser.add_argument("--fail-unit", type=str, help="커밋을 실패시킬 단위 ID (메모리 저장소)")
    parser.add_argument("--drafts-dir", type=str, help="로컬 드래프트 디렉터리")
    parser.add_argument("--remote", action="store_true", help="HttpContentStore 사용")
    parser.add_argument("--user", type=str, help="드래프트 브랜치 사용자")
    parser.add_argument("--config-dir", type=str, help="설정 디렉터리")
    parser.add_argument("--save-results", action="store_true", help="결과 JSON 저장")
    parser.add_argument("--debug", action="store_true", help="DEBUG 로그 레벨 활성화")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger("draft_engine").setLevel(logging.DEBUG)

    loader = ConfigLoader(args.config_dir)
    draft_store = JsonFileDraftStore(args.drafts_dir) if args.drafts_dir else InMemoryDraftStore()
    engine = ContentEditingEngine.from_config(
        build_remote_store(args, loader),
        draft_store=draft_store,
        loader=loader
    )

    try:
        with trace_session(f"run-{args.mode}") as (span, session_id):
            logger.info(f"Session ID: {session_id}")
            if args.mode == "publish":
                output = await run_publish(engine)
            else:
                output = await run_save(engine)
    finally:
        await engine.aclose()

    if args.save_results:
        run_dir = RESULTS_DIR / args.mode / get_timestamp()
        path = save_result(output, run_dir, args.mode)
        logger.info(f"\n📁 결과 저장: {path}")


if __name__ == "__main__":
    asyncio.run(main())
