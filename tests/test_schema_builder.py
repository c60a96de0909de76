import pytest

from schemaloader.core.context import LoaderContext
from schemaloader.core.schema_builder import SchemaBuilder
from schemaloader.data_models import WarningCode
from schemaloader.errors import CatalogError
from schemaloader.settings import LoaderOptions


def _context(driver, **options):
    return LoaderContext(LoaderOptions(schema_name="app.schema", **options), driver)


def test_builds_one_descriptor_per_table(foo_bar_driver):
    context = _context(foo_bar_driver)
    descriptors = SchemaBuilder(context).build(["bar", "foo"])

    assert set(descriptors) == {"bar", "foo"}
    foo = context.registry.source("Foo")
    assert foo.table == "foo"
    assert foo.columns == ["id", "name"]
    assert foo.primary_key == ["id"]
    assert context.classes["foo"] == "app.schema.Foo"
    assert context.warnings == []


def test_moniker_map_registered_under_both_cases(make_driver):
    driver = make_driver({"LUSER": {"columns": ["id"], "pk": ["id"]}})
    context = _context(driver)
    SchemaBuilder(context).build(["LUSER"])

    assert context.monikers["LUSER"] == "Luser"
    assert context.monikers["luser"] == "Luser"
    # Frozen once every table has a moniker
    with pytest.raises(TypeError):
        context.monikers["other"] = "Other"  # type: ignore[index]


def test_missing_primary_key_warns(make_driver):
    driver = make_driver({"audit_log": {"columns": ["message"]}})
    context = _context(driver)
    SchemaBuilder(context).build(["audit_log"])

    (warning,) = context.warnings
    assert warning.code == WarningCode.NO_PRIMARY_KEY
    assert warning.message == "audit_log has no primary key"
    assert warning.table == "audit_log"
    assert context.registry.source("AuditLog").primary_key == []


def test_unique_constraints_recorded(make_driver):
    driver = make_driver({"luser": {"columns": ["id", "nick"], "pk": ["id"], "unique": [("uq_nick", ["nick"])]}})
    context = _context(driver)
    SchemaBuilder(context).build(["luser"])

    (constraint,) = context.registry.source("Luser").unique_constraints
    assert constraint.name == "uq_nick"
    assert constraint.columns == ["nick"]


def test_composition_options_recorded_before_columns(foo_bar_driver):
    context = _context(
        foo_bar_driver,
        additional_classes=["decimal"],
        left_base_classes=["app.mixins:Audited"],
        components=["app.components:Timestamps"],
        resultset_components=["app.rs:Paged"],
        additional_base_classes=["app.mixins:Serializable"],
    )
    SchemaBuilder(context).build(["foo"])

    foo = context.registry.source("Foo")
    assert [op.method for op in foo.operations] == [
        "set_table",
        "use",
        "inject_left_base",
        "load_components",
        "load_resultset_components",
        "inject_base",
        "add_columns",
        "set_primary_key",
    ]
    assert foo.left_bases == ["app.mixins:Audited"]
    assert foo.base_classes == ["app.mixins:Serializable"]


def test_unreadable_columns_are_fatal(make_driver):
    class Broken(make_driver):
        def columns(self, table):
            raise RuntimeError("permission denied")

    context = _context(Broken({"secret": {"columns": []}}))
    with pytest.raises(CatalogError) as excinfo:
        SchemaBuilder(context).build(["secret"])
    assert excinfo.value.table == "secret"
    assert "permission denied" in str(excinfo.value)


def test_no_column_list_is_fatal(make_driver):
    class Empty(make_driver):
        def columns(self, table):
            return None

    context = _context(Empty({"ghost": {"columns": []}}))
    with pytest.raises(CatalogError):
        SchemaBuilder(context).build(["ghost"])


def test_duplicate_moniker_is_fatal(make_driver):
    driver = make_driver({"foo_bar": {"columns": ["id"]}, "foo-bar": {"columns": ["id"]}})
    context = _context(driver)
    with pytest.raises(CatalogError) as excinfo:
        SchemaBuilder(context).build(["foo-bar", "foo_bar"])
    assert "FooBar" in str(excinfo.value)
    # Nothing was read from the catalog before the clash was detected
    assert driver.calls == []


@pytest.mark.parametrize("method", ["primary_key", "unique_constraints"])
def test_unreadable_keys_are_fatal(make_driver, method):
    def fail(self, table):
        raise RuntimeError("catalog gone")

    Broken = type("Broken", (make_driver,), {method: fail})
    context = _context(Broken({"foo": {"columns": ["id"]}}))
    with pytest.raises(CatalogError) as excinfo:
        SchemaBuilder(context).build(["foo"])
    assert excinfo.value.table == "foo"
    assert "catalog gone" in str(excinfo.value)
