"""
Validators - 필드 타입별 pydantic 검증기 레지스트리

각 필드 타입마다 빌더 함수가 등록되어 있고, 빌더는 FieldDef와 형제 폼 값을
받아 pydantic 어노테이션을 반환합니다. FieldValidator가 이를 TypeAdapter로
감싸 (경로, 메시지) 이슈 목록을 만듭니다.

등록된 타입:
- input, textarea, richeditor: 텍스트 (email/url 형식, 최소/최대 길이)
- select: 옵션 멤버십 (단일/다중)
- switch, colorpicker
- dateField: 단일/범위, 최소/최대 날짜
- fileUpload: {files: [...]} (개수, 크기, 허용 타입)
- repeater: 항목 수, 하위 필드 재귀 검증 (경로에 항목 인덱스 포함)
"""

import json
import logging
import re
from datetime import date, datetime
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    create_model,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from draft_engine.models.field_value import is_absent
from draft_engine.models.schema import FieldDef, LAYOUT_TYPES, flatten_fields

logger = logging.getLogger(__name__)


# =============================================================================
# 상수 / 타입
# =============================================================================

REQUIRED_MESSAGE = "This field is required"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
HEX_COLOR_PATTERN = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

# (loc, message) - loc는 필드 내부 상대 경로 (예: (0, "title"))
FieldIssue = Tuple[Tuple[Any, ...], str]

ValidatorBuilder = Callable[[FieldDef, Dict[str, Any]], Any]

_VALIDATOR_BUILDERS: Dict[str, ValidatorBuilder] = {}

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _fail(code: str, message: str):
    raise PydanticCustomError(code, "{message}", {"message": message})


# =============================================================================
# 레지스트리
# =============================================================================

def register_validator(field_type: str, builder: Optional[ValidatorBuilder] = None):
    """
    필드 타입에 검증기 빌더 등록 (데코레이터로도 사용 가능).

    Example:
        @register_validator("slug")
        def slug_validator(field_def, form_values):
            return Annotated[Any, AfterValidator(check_slug)]
    """
    def decorator(fn: ValidatorBuilder) -> ValidatorBuilder:
        _VALIDATOR_BUILDERS[field_type] = fn
        return fn

    if builder is not None:
        return decorator(builder)
    return decorator


def get_validator_builder(field_type: str) -> Optional[ValidatorBuilder]:
    return _VALIDATOR_BUILDERS.get(field_type)


def build_annotation(field_def: FieldDef, form_values: Optional[Dict[str, Any]] = None) -> Any:
    """필드 정의에 대한 pydantic 어노테이션 (미등록 타입은 Any)"""
    form_values = form_values or {}
    if field_def.type in LAYOUT_TYPES:
        return Any

    builder = get_validator_builder(field_def.type)
    if builder is None:
        logger.warning(f"검증기가 없는 필드 타입: {field_def.type} ({field_def.name}), 검증 생략")
        return Any
    return builder(field_def, form_values)


class FieldValidator:
    """
    단일 필드 검증기.

    Example:
        validator = FieldValidator.for_field(field_def, form_values)
        issues = validator.validate("not-an-email")
        # [((), "Please enter a valid email address")]
    """

    def __init__(self, field_def: FieldDef, annotation: Any):
        self.field_def = field_def
        self._adapter = TypeAdapter(annotation)

    @classmethod
    def for_field(cls, field_def: FieldDef, form_values: Optional[Dict[str, Any]] = None) -> "FieldValidator":
        return cls(field_def, build_annotation(field_def, form_values))

    def validate(self, value: Any) -> List[FieldIssue]:
        try:
            self._adapter.validate_python(value)
        except PydanticValidationError as e:
            return [(tuple(err["loc"]), err["msg"]) for err in e.errors()]
        return []

    def is_valid(self, value: Any) -> bool:
        return not self.validate(value)


# =============================================================================
# 텍스트
# =============================================================================

def _check_length(field_def: FieldDef, length: int) -> None:
    if field_def.min_length and length < field_def.min_length:
        _fail("too_short", f"Minimum {field_def.min_length} characters required")
    if field_def.max_length and length > field_def.max_length:
        _fail("too_long", f"Maximum {field_def.max_length} characters allowed")


@register_validator("input")
def input_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)

    def check(value: Any) -> Any:
        if is_absent(value):
            if required:
                _fail("required", REQUIRED_MESSAGE)
            return value

        if field_def.input_type == "number" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        if not isinstance(value, str):
            _fail("string_type", "Expected text")

        if field_def.input_type == "email" and not EMAIL_PATTERN.match(value):
            _fail("email", "Please enter a valid email address")
        if field_def.input_type == "url":
            try:
                _URL_ADAPTER.validate_python(value)
            except PydanticValidationError:
                _fail("url", "Please enter a valid URL")

        _check_length(field_def, len(value))
        return value

    return Annotated[Any, AfterValidator(check)]


@register_validator("textarea")
def textarea_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)

    def check(value: Any) -> Any:
        if is_absent(value):
            if required:
                _fail("required", REQUIRED_MESSAGE)
            return value
        if not isinstance(value, str):
            _fail("string_type", "Expected text")
        _check_length(field_def, len(value))
        return value

    return Annotated[Any, AfterValidator(check)]


def _rich_text_length(nodes: Any) -> int:
    if not isinstance(nodes, list):
        return 0
    total = 0
    for node in nodes:
        if not isinstance(node, dict):
            continue
        if isinstance(node.get("text"), str):
            total += len(node["text"])
        elif "children" in node:
            total += _rich_text_length(node["children"])
    return total


@register_validator("richeditor")
def richeditor_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)

    def check(value: Any) -> Any:
        if is_absent(value):
            if required:
                _fail("required", REQUIRED_MESSAGE)
            return value

        if isinstance(value, str):
            length = len(value)
        elif isinstance(value, dict) and isinstance(value.get("content"), list):
            length = _rich_text_length(value["content"])
        else:
            _fail("rich_content", "Invalid content")

        _check_length(field_def, length)
        return value

    return Annotated[Any, AfterValidator(check)]


# =============================================================================
# 선택 / 토글 / 색상
# =============================================================================

@register_validator("select")
def select_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)
    allowed = {option.value for option in field_def.options}

    def check(value: Any) -> Any:
        if is_absent(value) or (field_def.multiple and value == []):
            if required:
                _fail("required", REQUIRED_MESSAGE)
            return value

        selected = value if field_def.multiple else [value]
        if not isinstance(selected, list):
            _fail("select_multiple", "Expected a list of options")
        if allowed and any(item not in allowed for item in selected):
            _fail("select_option", "Please select a valid option")
        return value

    return Annotated[Any, AfterValidator(check)]


@register_validator("switch")
def switch_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    def check(value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return value
        _fail("bool_type", "Expected true or false")

    return Annotated[Any, AfterValidator(check)]


@register_validator("colorpicker")
def colorpicker_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)

    def check(value: Any) -> Any:
        if is_absent(value):
            if required:
                _fail("required", REQUIRED_MESSAGE)
            return value
        if not isinstance(value, str) or not HEX_COLOR_PATTERN.match(value):
            _fail("color", "Please enter a valid hex color")
        return value

    return Annotated[Any, AfterValidator(check)]


# =============================================================================
# 날짜
# =============================================================================

def parse_date(value: Any) -> Optional[date]:
    """date/datetime/ISO 문자열을 date로 (실패 시 None)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def _date_bound(bound: Optional[str]) -> Optional[date]:
    if not bound:
        return None
    if bound == "today":
        return date.today()
    return parse_date(bound)


@register_validator("dateField")
def date_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)
    min_date = _date_bound(field_def.min_date)
    max_date = _date_bound(field_def.max_date)
    is_range = field_def.mode == "range"

    def check_bounds(day: date) -> None:
        if min_date and day < min_date:
            _fail("date_min", f"Date must be on or after {min_date.isoformat()}")
        if max_date and day > max_date:
            _fail("date_max", f"Date must be on or before {max_date.isoformat()}")

    def check(value: Any) -> Any:
        empty = is_absent(value)
        if is_range and isinstance(value, dict):
            empty = is_absent(value.get("start")) and is_absent(value.get("end"))

        if empty:
            if required:
                _fail("required", "Date is required")
            return value

        if not is_range:
            day = parse_date(value)
            if day is None:
                _fail("date", "Invalid date")
            check_bounds(day)
            return value

        if not isinstance(value, dict):
            _fail("date_range", "Invalid date range")

        start, end = value.get("start"), value.get("end")
        start_day = None if is_absent(start) else parse_date(start)
        end_day = None if is_absent(end) else parse_date(end)
        if not is_absent(start) and start_day is None:
            _fail("date_start", "Invalid start date")
        if not is_absent(end) and end_day is None:
            _fail("date_end", "Invalid end date")

        for day in (start_day, end_day):
            if day is not None:
                check_bounds(day)

        if start_day and end_day and end_day < start_day:
            _fail("date_order", "End date must be after start date")
        return value

    return Annotated[Any, AfterValidator(check)]


# =============================================================================
# 파일 업로드
# =============================================================================

def _non_empty_text(message: str):
    def check(value: Any) -> Any:
        if not isinstance(value, str) or not value:
            _fail("required", message)
        return value
    return AfterValidator(check)


def _positive_size(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        _fail("file_size", "File size must be greater than 0")
    return value


class UploadedFile(BaseModel):
    """업로드된 파일 참조 (pending=True면 아직 업로드 전)"""

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = None
    name: Annotated[Any, _non_empty_text("File name is required")] = Field(default=None, validate_default=True)
    size: Annotated[Any, AfterValidator(_positive_size)] = Field(default=None, validate_default=True)
    type: Annotated[Any, _non_empty_text("File type is required")] = Field(default=None, validate_default=True)
    pending: bool = False

    @model_validator(mode="after")
    def _url_present(self):
        if not self.pending and not self.url:
            _fail("file_url", "File URL is required")
        return self


class FileList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    files: List[UploadedFile] = Field(default_factory=list)


def coerce_file_value(value: Any) -> Any:
    """JSON 문자열, None, files 키가 없는 dict를 {files: [...]} 형태로"""
    if isinstance(value, str):
        if not value:
            return {"files": []}
        try:
            return json.loads(value)
        except ValueError:
            return {"files": []}
    if value is None:
        return {"files": []}
    if isinstance(value, list):
        return {"files": value}
    if isinstance(value, dict) and "files" not in value:
        return {"files": []}
    return value


def _file_type_accepted(file: UploadedFile, accepted: List[str]) -> bool:
    name = (file.name or "").lower()
    mime = file.type or ""
    for accepted_type in accepted:
        if accepted_type.startswith("."):
            if name.endswith(accepted_type.lower()):
                return True
        elif "*" in accepted_type:
            if accepted_type.split("/")[0] == mime.split("/")[0]:
                return True
        elif mime == accepted_type:
            return True
    return False


@register_validator("fileUpload")
def file_upload_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    required = field_def.is_required(form_values)
    accepted = [item.strip() for item in (field_def.accept or "").split(",") if item.strip()]

    def check(value: FileList) -> FileList:
        if field_def.max_files is not None and len(value.files) > field_def.max_files:
            _fail("max_files", f"Maximum {field_def.max_files} files allowed")
        if field_def.max_size is not None and any(f.size > field_def.max_size for f in value.files):
            megabytes = round(field_def.max_size / 1024 / 1024)
            _fail("max_size", f"File size must not exceed {megabytes}MB")
        if accepted and not all(_file_type_accepted(f, accepted) for f in value.files):
            _fail("file_type", f"File type not allowed. Accepted types: {field_def.accept}")
        if required and not value.files:
            _fail("required", "At least one file is required")
        return value

    return Annotated[FileList, BeforeValidator(coerce_file_value), AfterValidator(check)]


# =============================================================================
# Repeater
# =============================================================================

def _coerce_items(value: Any) -> Any:
    if is_absent(value):
        return []
    return value


@register_validator("repeater")
def repeater_validator(field_def: FieldDef, form_values: Dict[str, Any]) -> Any:
    """
    Repeater 검증기.

    항목 모델의 필드는 하위 필드 이름을 alias로 사용하므로 오류 loc가
    (항목 인덱스, 하위 필드 이름) 형태가 됩니다. 항목의 _id 등 추가 키는 무시합니다.
    """
    required = field_def.is_required(form_values)

    item_fields = {}
    for index, sub_field in enumerate(flatten_fields(field_def.fields)):
        annotation = build_annotation(sub_field, form_values)
        item_fields[f"field_{index}"] = (
            annotation,
            Field(default=None, alias=sub_field.name, validate_default=True),
        )

    item_model = create_model(
        f"{field_def.name or 'Repeater'}Item",
        __config__=ConfigDict(extra="ignore"),
        **item_fields
    )

    def check(items: list) -> list:
        count = len(items)
        if required and count == 0:
            _fail("required", "At least one item is required")
        # 비어있는 선택 repeater는 min_items 적용 제외
        if field_def.min_items is not None and count and count < field_def.min_items:
            _fail("min_items", f"Minimum {field_def.min_items} items required")
        if field_def.max_items is not None and count > field_def.max_items:
            _fail("max_items", f"Maximum {field_def.max_items} items allowed")
        return items

    return Annotated[List[item_model], BeforeValidator(_coerce_items), AfterValidator(check)]


__all__ = [
    "REQUIRED_MESSAGE",
    "FieldIssue",
    "ValidatorBuilder",
    "register_validator",
    "get_validator_builder",
    "build_annotation",
    "FieldValidator",
    "UploadedFile",
    "FileList",
    "coerce_file_value",
    "parse_date",
]
