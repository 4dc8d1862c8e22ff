"""
Observability - 드래프트 엔진을 위한 OpenTelemetry 기반 트레이싱

로드/저장/발행/커밋 단계마다 스팬을 만들고, 편집 중인 콘텐츠 단위 ID를
baggage로 전파합니다. SDK가 설정되지 않은 환경에서는 모든 스팬이 no-op입니다.

필수 패키지:
- opentelemetry-api
"""

import os
import uuid
import logging
from typing import Dict, Any, Optional
from contextlib import contextmanager

# OpenTelemetry imports
from opentelemetry import baggage, context, trace
from opentelemetry.trace import Status, StatusCode

# 로거 설정
logger = logging.getLogger(__name__)


# =============================================================================
# 상수
# =============================================================================

# 기본 tracer 설정
DEFAULT_TRACER_MODULE_NAME = "draft_engine"
DEFAULT_TRACER_VERSION = "0.3.0"

# 속성 문자열 최대 길이
MAX_ATTRIBUTE_LENGTH = 1000


# =============================================================================
# 세션 컨텍스트 (Baggage)
# =============================================================================

def set_session_context(
    session_id: str,
    unit_id: Optional[str] = None,
    operation: Optional[str] = None
) -> Any:
    """
    OpenTelemetry baggage를 사용하여 세션 컨텍스트를 설정합니다.

    Args:
        session_id: 편집 세션 ID
        unit_id: 콘텐츠 단위 ID (예: "index", "globals")
        operation: 작업 유형 (예: "load", "save", "publish")

    Returns:
        나중에 detach할 컨텍스트 토큰

    Example:
        token = set_session_context("abc-123", unit_id="index", operation="save")
        # ... 작업 수행 ...
        context.detach(token)
    """
    ctx = baggage.set_baggage("session.id", str(session_id))
    logger.debug(f"Session ID '{session_id}' 텔레메트리 컨텍스트에 연결됨")

    if unit_id:
        ctx = baggage.set_baggage("content.unit_id", unit_id, context=ctx)

    if operation:
        ctx = baggage.set_baggage("engine.operation", operation, context=ctx)

    return context.attach(ctx)


def get_session_id() -> Optional[str]:
    """현재 컨텍스트 baggage에서 세션 ID를 가져옵니다"""
    return baggage.get_baggage("session.id")


def get_unit_id() -> Optional[str]:
    """현재 컨텍스트 baggage에서 콘텐츠 단위 ID를 가져옵니다"""
    return baggage.get_baggage("content.unit_id")


# =============================================================================
# Tracer 팩토리
# =============================================================================

def get_tracer(
    module_name: Optional[str] = None,
    version: Optional[str] = None
) -> trace.Tracer:
    """
    드래프트 엔진용 OpenTelemetry tracer를 가져옵니다.

    환경 변수를 통해 설정:
    - TRACER_MODULE_NAME: 모듈 이름 (기본값: "draft_engine")
    - TRACER_LIBRARY_VERSION: 버전
    """
    return trace.get_tracer(
        instrumenting_module_name=module_name or os.getenv(
            "TRACER_MODULE_NAME", DEFAULT_TRACER_MODULE_NAME
        ),
        instrumenting_library_version=version or os.getenv(
            "TRACER_LIBRARY_VERSION", DEFAULT_TRACER_VERSION
        )
    )


# =============================================================================
# 스팬 헬퍼
# =============================================================================

def _safe_value(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)[:MAX_ATTRIBUTE_LENGTH]


def add_span_event(
    span: trace.Span,
    event_name: str,
    attributes: Optional[Dict[str, Any]] = None
) -> None:
    """
    지정된 스팬에 이벤트를 추가합니다.

    Args:
        span: 이벤트를 추가할 OpenTelemetry 스팬
        event_name: 이벤트 이름 (예: "draft_found", "commit_failed")
        attributes: 속성 딕셔너리 (원시 타입이 아니면 문자열로 변환)
    """
    if span and span.is_recording():
        safe_attrs = {}
        if attributes:
            for key, value in attributes.items():
                if value is None:
                    continue
                safe_attrs[key] = _safe_value(value)

        span.add_event(event_name, safe_attrs)
    else:
        logger.debug(f"기록 중이 아닌 스팬, 이벤트 생략: {event_name}")


def set_span_attribute(
    span: trace.Span,
    key: str,
    value: Any
) -> None:
    """지정된 스팬에 속성을 설정합니다."""
    if span and span.is_recording():
        if value is None:
            return
        span.set_attribute(key, _safe_value(value))
    else:
        logger.debug(f"기록 중이 아닌 스팬, 속성 생략: {key}")


def set_span_status(
    span: trace.Span,
    success: bool,
    message: Optional[str] = None
) -> None:
    """
    스팬의 상태를 설정합니다.

    Args:
        span: OpenTelemetry 스팬
        success: 작업 성공 여부
        message: 선택적 상태 메시지 (오류용)
    """
    if span and span.is_recording():
        if success:
            span.set_status(Status(StatusCode.OK))
        else:
            span.set_status(Status(StatusCode.ERROR, message or "Error"))


def record_exception(span: trace.Span, exception: BaseException) -> None:
    """스팬에 예외를 기록합니다."""
    if span and span.is_recording():
        span.record_exception(exception)
        span.set_status(Status(StatusCode.ERROR, str(exception)))


# =============================================================================
# 엔진 전용 스팬 컨텍스트 매니저
# =============================================================================

@contextmanager
def trace_operation(
    operation_name: str,
    unit_id: Optional[str] = None,
    tracer: Optional[trace.Tracer] = None
):
    """
    엔진 작업(load/save/publish/commit)을 트레이싱하기 위한 컨텍스트 매니저.

    Args:
        operation_name: 작업 이름 (예: "draft_engine.save")
        unit_id: 대상 콘텐츠 단위 ID
        tracer: 선택적 tracer (제공하지 않으면 기본값 사용)

    Yields:
        (span, event_recorder) 튜플

    Example:
        with trace_operation("draft_engine.save", unit_id="index") as (span, record):
            record("validated", {"error_count": 0})
            await remote.save_unit(...)
    """
    if tracer is None:
        tracer = get_tracer()

    with tracer.start_as_current_span(operation_name) as span:
        if unit_id:
            set_span_attribute(span, "content.unit_id", unit_id)

        def record_event(event_type: str, attributes: Optional[Dict[str, Any]] = None):
            add_span_event(span, event_type, attributes)

        try:
            yield span, record_event
            set_span_status(span, True)
        except Exception as e:
            record_exception(span, e)
            raise


@contextmanager
def trace_session(
    operation: str,
    unit_id: Optional[str] = None,
    session_id: Optional[str] = None,
    tracer: Optional[trace.Tracer] = None
):
    """
    세션 컨텍스트(baggage)를 설정하고 루트 스팬을 생성합니다.

    Yields:
        (span, session_id) 튜플
    """
    if tracer is None:
        tracer = get_tracer()

    if session_id is None:
        session_id = str(uuid.uuid4())

    token = set_session_context(session_id, unit_id=unit_id, operation=operation)

    try:
        with tracer.start_as_current_span(f"draft_engine.{operation}") as span:
            set_span_attribute(span, "session.id", session_id)
            set_span_attribute(span, "content.unit_id", unit_id)

            try:
                yield span, session_id
                set_span_status(span, True)
            except Exception as e:
                record_exception(span, e)
                raise
    finally:
        context.detach(token)


# =============================================================================
# 노드 로깅 헬퍼
# =============================================================================

def log_node_start(node_name: str, unit_id: Optional[str] = None) -> None:
    """파이프라인 노드 실행 시작을 로깅합니다."""
    prefix = f"[{unit_id}] " if unit_id else ""
    logger.debug(f"{prefix}===== {node_name} 시작 =====")


def log_node_complete(node_name: str, unit_id: Optional[str] = None) -> None:
    """파이프라인 노드 완료를 로깅합니다."""
    prefix = f"[{unit_id}] " if unit_id else ""
    logger.debug(f"{prefix}===== {node_name} 완료 =====")


# =============================================================================
# 내보내기
# =============================================================================

__all__ = [
    # 세션 컨텍스트
    "set_session_context",
    "get_session_id",
    "get_unit_id",
    # Tracer
    "get_tracer",
    # 스팬 헬퍼
    "add_span_event",
    "set_span_attribute",
    "set_span_status",
    "record_exception",
    # 컨텍스트 매니저
    "trace_operation",
    "trace_session",
    # 노드 로깅
    "log_node_start",
    "log_node_complete",
]
