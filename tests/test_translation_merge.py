"""Tests for the display and save projections of translated fields."""

import pytest

from draft_engine.core.translation_merge import (
    ITEM_ID_KEY,
    TranslationMergeEngine,
    TranslationStatus,
    assign_item_ids,
    merge_repeater_items,
    merge_translation_into_entry,
    translation_status,
)
from draft_engine.models import Component, FieldEntry
from draft_engine.utils.ids import is_item_id

from conftest import DEFAULT_LOCALE, LOCALES, make_hero


@pytest.fixture
def merge_engine(registry):
    return TranslationMergeEngine(LOCALES, DEFAULT_LOCALE, registry)


def feature_list(value) -> Component:
    return Component(
        id="featureListKey-0",
        schema_name="FeatureList",
        data={"features": FieldEntry(type="repeater", translatable=True, value=value)},
    )


# =============================================================================
# Save projection
# =============================================================================

def test_untouched_locales_survive_partial_edits(merge_engine):
    component = make_hero(title={"en": "Hello", "fr": "Bonjour", "de": "Hallo"})
    saved = merge_engine.save_component(
        component,
        {"title": "Hi"},
        {"fr": {"heroKey-0": {"title": "Salut"}}},
    )
    entry = saved.data["title"]
    assert entry.translatable is True
    assert entry.value == {"en": "Hi", "fr": "Salut", "de": "Hallo"}


def test_empty_form_edit_keeps_stored_default_locale(merge_engine):
    component = make_hero(title={"en": "Hello", "fr": "Bonjour"})
    saved = merge_engine.save_component(component, {"title": ""})
    assert saved.data["title"].value == {"en": "Hello", "fr": "Bonjour"}


def test_explicit_empty_translation_is_stored(merge_engine):
    component = make_hero(title={"en": "Hello", "fr": "Bonjour"})
    saved = merge_engine.save_component(component, None, {"fr": {"heroKey-0": {"title": ""}}})
    assert saved.data["title"].value == {"en": "Hello", "fr": ""}


def test_none_translation_is_stored_as_empty_string(merge_engine):
    component = make_hero(title="Hello")
    saved = merge_engine.save_component(component, None, {"de": {"heroKey-0": {"title": None}}})
    assert saved.data["title"].value == {"en": "Hello", "de": ""}


def test_default_locale_only_collapses_to_plain_value(merge_engine):
    component = make_hero(title="Hello")
    saved = merge_engine.save_component(component, {"title": "Hi"})
    assert saved.data["title"].value == "Hi"
    assert saved.data["title"].translatable is True


def test_plain_value_becomes_locale_map_with_translation(merge_engine):
    component = make_hero(title="Hello")
    saved = merge_engine.save_component(component, None, {"fr": {"heroKey-0": {"title": "Bonjour"}}})
    assert saved.data["title"].value == {"en": "Hello", "fr": "Bonjour"}


def test_non_translatable_field_takes_cleaned_form_value(merge_engine):
    component = make_hero(title="Hello")
    saved = merge_engine.save_component(component, {"cta_url": "https://example.com"})
    assert saved.data["cta_url"].value == "https://example.com"
    assert saved.data["cta_url"].type == "input"

    cleared = merge_engine.save_component(saved, {"cta_url": ""})
    assert cleared.data["cta_url"].value is None


def test_file_field_is_saved_as_files_object(merge_engine):
    file = {"url": "https://cdn/a.png", "name": "a.png", "size": 1, "type": "image/png"}
    saved = merge_engine.save_component(make_hero(title="Hi"), {"background": [file]})
    assert saved.data["background"].value == {"files": [file]}


def test_fields_without_edits_are_unchanged(merge_engine):
    component = make_hero(title={"en": "Hello", "fr": "Bonjour"})
    saved = merge_engine.save_component(component)
    assert saved.data["title"].value == {"en": "Hello", "fr": "Bonjour"}


def test_deleted_components_are_dropped(merge_engine):
    components = [make_hero("heroKey-0", title="A"), make_hero("heroKey-1", title="B")]
    saved = merge_engine.save_components(components, deleted_ids={"heroKey-0"})
    assert [c.id for c in saved] == ["heroKey-1"]


# =============================================================================
# Repeaters
# =============================================================================

def test_repeater_items_get_ids_shared_across_locales(merge_engine):
    saved = merge_engine.save_component(
        feature_list(None),
        {"features": [{"title": "A"}, {"title": "B"}]},
        {"fr": {"featureListKey-0": {"features": [{"title": "A-fr"}]}}},
    )
    value = saved.data["features"].value
    en_ids = [item[ITEM_ID_KEY] for item in value["en"]]
    assert all(is_item_id(item_id) for item_id in en_ids)
    assert len(set(en_ids)) == 2
    assert value["fr"][0][ITEM_ID_KEY] == en_ids[0]


def test_repeater_ids_are_stable_across_saves(merge_engine):
    first = merge_engine.save_component(feature_list(None), {"features": [{"title": "A"}]})
    second = merge_engine.save_component(first, {"features": [{"title": "A2"}]})
    first_id = first.data["features"].value[0][ITEM_ID_KEY]
    assert second.data["features"].value[0][ITEM_ID_KEY] == first_id


def test_sparse_translation_merges_by_index(merge_engine):
    component = feature_list({
        "en": [
            {ITEM_ID_KEY: "item_a", "title": "A", "description": "d"},
            {ITEM_ID_KEY: "item_b", "title": "B"},
        ],
        "fr": [{ITEM_ID_KEY: "item_a", "title": "A-fr", "description": "d-fr"}],
    })
    saved = merge_engine.save_component(
        component,
        None,
        {"fr": {"featureListKey-0": {"features": [None, {"title": "B-fr"}]}}},
    )
    assert saved.data["features"].value["fr"] == [
        {ITEM_ID_KEY: "item_a", "title": "A-fr", "description": "d-fr"},
        {ITEM_ID_KEY: "item_b", "title": "B-fr"},
    ]


def test_merge_repeater_items_keeps_unedited_keys():
    merged = merge_repeater_items([{"title": "A", "description": "d"}], [{"title": "A2"}])
    assert merged == [{"title": "A2", "description": "d"}]


def test_assign_item_ids_keeps_existing_and_inherits():
    items = assign_item_ids([{ITEM_ID_KEY: "item_x"}, {"title": "B"}], [{}, {ITEM_ID_KEY: "item_y"}])
    assert [item[ITEM_ID_KEY] for item in items] == ["item_x", "item_y"]


# =============================================================================
# Display projection / status
# =============================================================================

def test_display_overlays_empty_form_edit(merge_engine):
    component = make_hero(title={"en": "Hello", "fr": "Bonjour"})
    displayed = merge_engine.display_component(component, {"title": ""})
    assert displayed.data["title"].value == {"en": "", "fr": "Bonjour"}
    assert component.data["title"].value == {"en": "Hello", "fr": "Bonjour"}


def test_field_status_reflects_pending_translations(merge_engine):
    component = make_hero(title="Hello")
    edits = {"fr": {"heroKey-0": {"title": "Bonjour"}}}
    assert merge_engine.field_status(component, "title") == TranslationStatus.PARTIAL
    assert merge_engine.field_status(component, "title", None, edits) == TranslationStatus.PARTIAL
    edits["de"] = {"heroKey-0": {"title": "Hallo"}}
    assert merge_engine.field_status(component, "title", None, edits) == TranslationStatus.COMPLETE


@pytest.mark.parametrize("value,expected", [
    ({"en": "a", "fr": "b", "de": "c"}, TranslationStatus.COMPLETE),
    ({"en": "a", "fr": ""}, TranslationStatus.PARTIAL),
    ({"fr": "b"}, TranslationStatus.MISSING),
    (None, TranslationStatus.MISSING),
])
def test_translation_status(value, expected):
    entry = FieldEntry(type="input", translatable=True, value=value)
    assert translation_status(entry, LOCALES, DEFAULT_LOCALE) == expected


def test_translation_status_of_non_translatable_field_is_missing():
    entry = FieldEntry(type="input", translatable=False, value="a")
    assert translation_status(entry, LOCALES, DEFAULT_LOCALE) == TranslationStatus.MISSING
    assert translation_status(None, LOCALES, DEFAULT_LOCALE) == TranslationStatus.MISSING


# =============================================================================
# Single-field merge
# =============================================================================

def test_merge_translation_into_plain_entry():
    entry = FieldEntry(type="input", value="Hello")
    merged = merge_translation_into_entry(entry, "fr", "en", "Bonjour")
    assert merged.translatable is True
    assert merged.value == {"en": "Hello", "fr": "Bonjour"}


def test_merge_translation_into_locale_map_replaces_one_locale():
    entry = FieldEntry(type="input", translatable=True, value={"en": "Hello", "fr": "Salut"})
    merged = merge_translation_into_entry(entry, "fr", "en", "Bonjour")
    assert merged.value == {"en": "Hello", "fr": "Bonjour"}


def test_merge_default_locale_replaces_plain_value():
    entry = FieldEntry(type="input", value="Hello")
    assert merge_translation_into_entry(entry, None, "en", "Hi").value == "Hi"
