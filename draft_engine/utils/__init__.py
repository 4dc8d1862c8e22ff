"""
Utilities - configuration, tracing, ids, result formatting
"""

from .config import ConfigLoader, get_config_loader, get_config, get_locales, get_manifest
from .ids import generate_id, generate_item_id, component_id_for
from .observability import trace_operation, trace_session, get_tracer
from .result_formatter import format_staged_changes, format_save_result, format_publish_result

__all__ = [
    # Config
    "ConfigLoader",
    "get_config_loader",
    "get_config",
    "get_locales",
    "get_manifest",

    # Ids
    "generate_id",
    "generate_item_id",
    "component_id_for",

    # Tracing
    "trace_operation",
    "trace_session",
    "get_tracer",

    # Result formatting
    "format_staged_changes",
    "format_save_result",
    "format_publish_result",
]
