"""
ID helpers - Synthetic ids for components and repeater items
"""

import secrets
import string


ITEM_ID_PREFIX = "item"
_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str = "", length: int = 9) -> str:
    """
    Random id, optionally prefixed (``{prefix}_{random}``).

    Example:
        generate_id("item")  # "item_k3j9x0a2b"
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}_{suffix}" if prefix else suffix


def generate_item_id() -> str:
    """Repeater item id (``item_<random>``)"""
    return generate_id(ITEM_ID_PREFIX)


def component_id_for(schema_key: str, occurrence_index: int) -> str:
    """Deterministic manifest component id (``{schemaKey}-{index}``)"""
    return f"{schema_key}-{occurrence_index}"


def is_item_id(value) -> bool:
    return isinstance(value, str) and value.startswith(f"{ITEM_ID_PREFIX}_")
