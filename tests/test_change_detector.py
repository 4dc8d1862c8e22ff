"""Tests for unsaved-change detection."""

import pytest

from draft_engine.core.change_detector import ChangeDetector, values_equal
from draft_engine.models import FieldEntry
from draft_engine.models.content_unit import UnitKind

from conftest import DEFAULT_LOCALE, LOCALES, make_hero


@pytest.fixture
def detector():
    return ChangeDetector(LOCALES, DEFAULT_LOCALE)


@pytest.mark.parametrize("left,right", [("", None), (None, ""), ("", "")])
def test_empty_values_are_equal(left, right):
    assert values_equal(left, right)


def test_nested_values_compare_deeply():
    assert values_equal({"files": [{"url": "a"}]}, {"files": [{"url": "a"}]})
    assert not values_equal([{"title": "A"}], [{"title": "B"}])


def test_empty_edit_on_missing_field_is_not_a_change(detector):
    components = [make_hero()]
    assert not detector.has_form_changes({"heroKey-0": {"subtitle": ""}}, components)


def test_form_edit_compares_against_default_locale_entry(detector):
    components = [make_hero(title={"en": "Hello", "fr": "Bonjour"})]
    assert not detector.has_form_changes({"heroKey-0": {"title": "Hello"}}, components)
    assert detector.changed_form_fields({"heroKey-0": {"title": "Hi"}}, components) == [("heroKey-0", "title")]


def test_form_edit_for_unknown_component_counts_when_not_empty(detector):
    assert detector.has_form_changes({"heroKey-9": {"title": "New"}}, [make_hero()])
    assert not detector.has_form_changes({"heroKey-9": {"title": None}}, [make_hero()])


def test_file_value_equal_to_stored_is_not_a_change(detector):
    files = {"files": [{"url": "https://cdn/a.png", "name": "a.png"}]}
    components = [make_hero(background=FieldEntry(type="fileUpload", value=files))]
    assert not detector.has_form_changes({"heroKey-0": {"background": dict(files)}}, components)


def test_explicit_empty_translation_is_a_change(detector):
    assert detector.has_translation_changes({"fr": {"heroKey-0": {"title": ""}}})


def test_empty_translation_buckets_are_not_changes(detector):
    assert not detector.has_translation_changes({"fr": {"heroKey-0": {}}})
    assert not detector.has_translation_changes({})


def test_default_locale_bucket_is_ignored_by_translation_check(detector):
    assert not detector.has_translation_changes({"en": {"heroKey-0": {"title": "x"}}})


def test_deletions_count_for_pages_only(detector):
    assert detector.has_deletion_changes({"heroKey-0"}, UnitKind.PAGE)
    assert not detector.has_deletion_changes({"globals"}, UnitKind.GLOBALS)
    assert not detector.has_deletion_changes(set(), UnitKind.PAGE)


def test_has_unsaved_changes_combines_all_sources(detector):
    components = [make_hero(title="Hello")]
    assert not detector.has_unsaved_changes({"heroKey-0": {"title": "Hello"}}, {}, components)
    assert detector.has_unsaved_changes({}, {"de": {"heroKey-0": {"title": "Hallo"}}}, components)
    assert detector.has_unsaved_changes({}, {}, components, deleted_ids={"heroKey-0"})
