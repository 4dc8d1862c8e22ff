"""Tests for the Scalar | LocaleMap field value model."""

from draft_engine.models.field_value import (
    ABSENT,
    LocaleMap,
    Scalar,
    default_locale_value,
    is_absent,
    normalize_empty,
    normalize_field_value,
    resolve_locale,
    to_locale_map,
    to_storage_value,
)

LOCALES = ["en", "fr"]


def test_plain_value_is_scalar():
    assert normalize_field_value("Hello", LOCALES, translatable=True) == Scalar("Hello")


def test_dict_with_exact_locale_keys_is_locale_map_even_when_not_translatable():
    value = {"en": "Hello", "fr": "Bonjour"}
    assert normalize_field_value(value, LOCALES, translatable=False) == LocaleMap(value)


def test_partial_locale_dict_needs_translatable_flag():
    value = {"en": "Hello"}
    assert isinstance(normalize_field_value(value, LOCALES, translatable=True), LocaleMap)
    assert isinstance(normalize_field_value(value, LOCALES, translatable=False), Scalar)


def test_file_value_dict_stays_scalar():
    value = {"files": [{"url": "https://cdn/x.png"}]}
    assert normalize_field_value(value, LOCALES, translatable=True) == Scalar(value)


def test_resolve_locale_on_scalar_only_answers_default_locale():
    assert resolve_locale(Scalar("Hi"), "en", "en") == "Hi"
    assert resolve_locale(Scalar("Hi"), "fr", "en") is None


def test_to_locale_map_and_storage_value():
    assert to_locale_map(Scalar("Hi"), "en") == {"en": "Hi"}
    assert to_locale_map(Scalar(None), "en") == {}
    assert to_storage_value(LocaleMap({"en": "a", "fr": "b"})) == {"en": "a", "fr": "b"}


def test_default_locale_value_reads_locale_map():
    assert default_locale_value({"en": "Hello", "fr": "Bonjour"}, LOCALES, "en") == "Hello"


def test_empty_values_normalize_to_absent():
    assert normalize_empty("") is ABSENT
    assert normalize_empty(None) is ABSENT
    assert normalize_empty(0) == 0
    assert is_absent(ABSENT)
    assert not ABSENT
