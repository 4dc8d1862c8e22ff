"""Shared fixtures for the draft engine test suite."""

from typing import Dict, Optional

import pytest

from draft_engine.core.schema_registry import StaticSchemaRegistry
from draft_engine.models import Component, ContentUnit, FieldEntry
from draft_engine.storage.local_drafts import InMemoryDraftStore
from draft_engine.storage.remote import InMemoryContentStore
from draft_engine.workflow import ContentEditingEngine, EngineConfig

LOCALES = ["en", "fr", "de"]
DEFAULT_LOCALE = "en"

SCHEMAS = [
    {
        "name": "Hero",
        "key": "heroKey",
        "fields": [
            {"type": "input", "name": "title", "label": "Title", "required": True, "translatable": True},
            {"type": "textarea", "name": "subtitle", "translatable": True, "max_length": 20},
            {
                "type": "grid",
                "fields": [
                    {"type": "input", "name": "cta_url", "input_type": "url"},
                ],
            },
            {"type": "fileUpload", "name": "background", "max_files": 1},
        ],
    },
    {
        "name": "FeatureList",
        "key": "featureListKey",
        "fields": [
            {
                "type": "repeater",
                "name": "features",
                "translatable": True,
                "max_items": 3,
                "fields": [
                    {"type": "input", "name": "title", "required": True},
                    {"type": "textarea", "name": "description"},
                ],
            },
        ],
    },
    {
        "name": "Globals",
        "key": "globals",
        "fields": [
            {
                "type": "tabs",
                "tabs": [
                    {
                        "label": "Site",
                        "fields": [
                            {"type": "input", "name": "site_name", "required": True, "translatable": True},
                            {"type": "input", "name": "contact_email", "input_type": "email"},
                        ],
                    }
                ],
            }
        ],
    },
]


def make_hero(component_id: str = "heroKey-0", title=None, **fields) -> Component:
    data = {}
    if title is not None:
        data["title"] = FieldEntry(type="input", translatable=True, value=title)
    for name, entry in fields.items():
        data[name] = entry
    return Component(id=component_id, schema_name="Hero", data=data)


def make_unit(unit_id: str, *components: Component) -> ContentUnit:
    return ContentUnit.empty(unit_id).model_copy(update={"components": list(components)})


@pytest.fixture
def registry() -> StaticSchemaRegistry:
    return StaticSchemaRegistry.from_dicts(SCHEMAS)


@pytest.fixture
def draft_store() -> InMemoryDraftStore:
    return InMemoryDraftStore()


@pytest.fixture
def engine_factory(registry, draft_store):
    """Build an engine over in-memory stores with a short autosave quiet period."""

    def factory(
        units: Optional[Dict[str, ContentUnit]] = None,
        fail_units=(),
        manifest: Optional[Dict[str, Dict[str, int]]] = None,
        remote_drafts: Optional[Dict[str, ContentUnit]] = None,
    ) -> ContentEditingEngine:
        remote = InMemoryContentStore(units=units, drafts=remote_drafts, fail_units=fail_units)
        config = EngineConfig(
            locales=LOCALES,
            default_locale=DEFAULT_LOCALE,
            quiet_period_seconds=0.01,
            manifest=manifest or {},
        )
        return ContentEditingEngine(remote, draft_store, registry, config=config)

    return factory
