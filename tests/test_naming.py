import pytest

from schemaloader.core.naming import (
    EnglishInflector,
    LegacyInflector,
    OverrideInflector,
    default_moniker,
    make_inflector,
    moniker_to_module_name,
    moniker_to_relationship_name,
    table_to_moniker,
)
from schemaloader.data_models import RelationshipKind


@pytest.mark.parametrize(
    "table, moniker",
    [
        ("luser", "Luser"),
        ("luser_group", "LuserGroup"),
        ("luser-opts", "LuserOpts"),
        ("LUSER_GROUP", "LuserGroup"),
        ("order items", "OrderItems"),
        ("__x__y", "XY"),
    ],
)
def test_default_moniker(table, moniker):
    assert default_moniker(table) == moniker


def test_moniker_map_mapping_and_callable():
    assert table_to_moniker("foo", {"foo": "Thing"}) == "Thing"
    assert table_to_moniker("bar", {"foo": "Thing"}) == "Bar"
    # A falsy callable result falls back to the default translation
    assert table_to_moniker("foo", lambda table: None) == "Foo"
    assert table_to_moniker("foo", lambda table: table.upper()) == "FOO"


@pytest.mark.parametrize(
    "moniker, module",
    [
        ("Luser", "luser"),
        ("LuserGroup", "luser_group"),
        ("HTTPLog", "httplog"),
        ("Class", "class_"),
    ],
)
def test_moniker_to_module_name(moniker, module):
    assert moniker_to_module_name(moniker) == module


def test_english_inflector():
    inflector = EnglishInflector()
    assert inflector.to_plural("bar") == "bars"
    assert inflector.to_plural("category") == "categories"
    assert inflector.to_singular("bars") == "bar"
    # Already singular words are returned unchanged
    assert inflector.to_singular("foo") == "foo"


def test_legacy_inflector_has_no_singular_rule():
    inflector = LegacyInflector()
    assert inflector.to_plural("bar") == "bars"
    assert inflector.to_singular("bars") == "bars"


def test_override_inflector():
    inflector = OverrideInflector(
        EnglishInflector(),
        plural={"bar": "barz"},
        singular=lambda word: "thing" if word == "stuff" else None,
    )
    assert inflector.to_plural("bar") == "barz"
    assert inflector.to_plural("foo") == "foos"
    assert inflector.to_singular("stuff") == "thing"
    assert inflector.to_singular("bars") == "bar"


def test_make_inflector():
    assert isinstance(make_inflector(), EnglishInflector)
    assert isinstance(make_inflector(legacy=True), LegacyInflector)
    assert isinstance(make_inflector(plural={"a": "b"}), OverrideInflector)


def test_relationship_name_from_moniker():
    inflector = EnglishInflector()
    assert moniker_to_relationship_name("Bar", RelationshipKind.TO_MANY, inflector) == "bars"
    assert moniker_to_relationship_name("Foo", RelationshipKind.TO_ONE, inflector) == "foo"
    assert moniker_to_relationship_name("LuserGroup", RelationshipKind.TO_MANY, inflector) == "lusergroups"


@pytest.mark.parametrize("word", ["users", "categories", "orders"])
def test_english_inflector_keeps_plural_words(word):
    assert EnglishInflector().to_plural(word) == word


@pytest.mark.parametrize("word", ["address", "class", "user"])
def test_english_inflector_keeps_singular_words(word):
    assert EnglishInflector().to_singular(word) == word


def test_english_inflector_converts_words_ending_in_s():
    inflector = EnglishInflector()
    assert inflector.to_plural("address") == "addresses"
    assert inflector.to_singular("users") == "user"
    assert inflector.to_singular("categories") == "category"
