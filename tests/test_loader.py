import pytest

from schemaloader import LoaderOptions, SchemaLoader, load_schema
from schemaloader.core.catalog import InspectorCatalogDriver
from schemaloader.core.extensions import import_extension
from schemaloader.core.naming import LegacyInflector
from schemaloader.data_models import WarningCode
from schemaloader.errors import DriverError, ExternalClassLoadError, SchemaLoaderError


def test_load_schema_end_to_end(sqlite_url):
    result = load_schema(sqlite_url, schema_name="app.schema", relationships=True)

    assert result.tables == ["audit_log", "bar", "foo"]
    assert result.monikers == {"audit_log": "AuditLog", "bar": "Bar", "foo": "Foo"}
    assert result.classes["bar"] == "app.schema.Bar"
    assert result.registry.source("Bar").relationship("foo").columns == {"foo_id": "id"}
    assert result.registry.source("Foo").relationship("bars").reverse == "foo"
    assert [u.name for u in result.registry.source("Foo").unique_constraints] == ["uq_foo_name"]

    (warning,) = result.warnings_for(WarningCode.NO_PRIMARY_KEY)
    assert warning.message == "audit_log has no primary key"
    # Loaded descriptors are frozen
    assert all(result.registry.source(m).frozen for m in result.registry.sources())


def test_relationships_are_opt_in(sqlite_url):
    result = load_schema(sqlite_url)
    assert all(not result.registry.source(m).relationships for m in result.registry.sources())


def test_constraint_and_exclude(sqlite_url):
    result = load_schema(sqlite_url, constraint="^(foo|bar)$", exclude="^foo$", relationships=True)
    assert result.tables == ["bar"]
    assert result.registry.source("Bar").relationships == []


def test_everything_excluded_yields_empty_schema(sqlite_url):
    result = load_schema(sqlite_url, constraint="^nothing$")
    assert result.tables == []
    assert result.registry.sources() == []
    assert [w.code for w in result.warnings] == [WarningCode.ALL_EXCLUDED]


def test_empty_database(make_driver):
    result = SchemaLoader(make_driver({})).load()
    assert [w.code for w in result.warnings] == [WarningCode.NO_TABLES]


def test_driver_is_selected_from_engine(sqlite_url):
    loader = SchemaLoader.from_database_url(sqlite_url)
    assert type(loader._driver) is InspectorCatalogDriver


def test_driver_without_capabilities_rejected():
    with pytest.raises(DriverError):
        SchemaLoader(object())


def test_extension_lookup(foo_bar_driver):
    looked_up = []

    def lookup(module_name):
        looked_up.append(module_name)
        return object() if module_name.endswith(".bar") else None

    options = LoaderOptions(schema_name="app.schema")
    result = SchemaLoader(foo_bar_driver, options, extension_lookup=lookup).load()

    assert looked_up == ["app.schema.bar", "app.schema.foo"]
    assert result.extensions == ["Bar"]


def test_failing_extension_is_fatal(foo_bar_driver):
    def lookup(module_name):
        raise ExternalClassLoadError(f"Failed to load external class definition for '{module_name}'")

    with pytest.raises(SchemaLoaderError):
        SchemaLoader(foo_bar_driver, extension_lookup=lookup).load()


def test_import_extension(tmp_path, monkeypatch):
    package = tmp_path / "custom_classes"
    package.mkdir()
    (package / "__init__.py").write_text("")
    (package / "good.py").write_text("EXTRA = True\n")
    (package / "broken.py").write_text("raise RuntimeError('boom')\n")
    (package / "needs_dep.py").write_text("import not_installed_anywhere_xyz\n")
    monkeypatch.syspath_prepend(str(tmp_path))

    assert import_extension("custom_classes.missing") is None
    assert import_extension("no_such_package_xyz.foo") is None
    assert import_extension("custom_classes.good").EXTRA is True
    with pytest.raises(ExternalClassLoadError):
        import_extension("custom_classes.broken")
    with pytest.raises(ExternalClassLoadError):
        import_extension("custom_classes.needs_dep")


def test_deprecated_inflect_option(foo_bar_driver):
    options = LoaderOptions(relationships=True, inflect_map={"bar": "barz"})
    result = SchemaLoader(foo_bar_driver, options).load()

    (warning,) = result.warnings_for(WarningCode.DEPRECATED_OPTION)
    assert warning.message == "Argument inflect_map is deprecated in favor of 'inflect_plural'"
    assert result.registry.source("Foo").relationship("barz").target == "Bar"


def test_load_from_connection_uses_legacy_inflections(sqlite_url):
    result = SchemaLoader.load_from_connection(sqlite_url, relationships=True)

    assert result.warnings_for(WarningCode.DEPRECATED_OPTION)
    assert result.registry.source("Foo").relationship("bars").target == "Bar"


def test_custom_inflector_injected(foo_bar_driver):
    options = LoaderOptions(relationships=True)
    loader = SchemaLoader(foo_bar_driver, options, inflector=LegacyInflector())
    loader.load()
    assert isinstance(loader.context.inflector, LegacyInflector)


def test_clone_is_independent(foo_bar_driver):
    loader = SchemaLoader(foo_bar_driver, LoaderOptions(relationships=True))
    result = loader.load()
    clone = loader.context.clone()

    assert clone.registry is not result.registry
    assert clone.registry.source("Bar") is not result.registry.source("Bar")
    assert clone.registry.source("Bar").model_dump() == result.registry.source("Bar").model_dump()
    assert dict(clone.monikers) == dict(loader.context.monikers)
    clone.warnings.clear()
    assert loader.context.warnings == result.warnings


def test_context_before_load(foo_bar_driver):
    loader = SchemaLoader(foo_bar_driver)
    with pytest.raises(RuntimeError):
        loader.context


def test_driver_failures_surface_as_loader_errors(make_driver):
    class NoTables(make_driver):
        def list_tables(self):
            raise RuntimeError("catalog gone")

    class NoKeys(make_driver):
        def primary_key(self, table):
            raise RuntimeError("catalog gone")

    with pytest.raises(SchemaLoaderError):
        SchemaLoader(NoTables({})).load()
    with pytest.raises(SchemaLoaderError) as excinfo:
        SchemaLoader(NoKeys({"foo": {"columns": ["id"]}})).load()
    assert excinfo.value.table == "foo"
