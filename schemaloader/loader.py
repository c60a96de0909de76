"""Schema loading pipeline.

:class:`SchemaLoader` runs the stages strictly in order, each one finishing
for every table before the next starts::

    select tables -> build classes -> build relationships -> look up
    custom modules -> freeze -> dump files | debug trace

A run either returns a fully populated :class:`LoadResult` (plus any collected
warnings) or raises a single :class:`schemaloader.errors.SchemaLoaderError`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from schemaloader.core.catalog import CatalogDriver, InspectorCatalogDriver, MySQLCatalogDriver, check_driver
from schemaloader.core.context import LoaderContext
from schemaloader.core.emitter import DumpWriter, render_debug_trace
from schemaloader.core.extensions import ExtensionLookup, import_extension
from schemaloader.core.naming import Inflector, moniker_to_module_name
from schemaloader.core.relationships import RelationshipBuilder, resolve_foreign_keys
from schemaloader.core.schema_builder import SchemaBuilder
from schemaloader.core.selector import select_tables
from schemaloader.data_models import LoadResult, LoadWarning, WarningCode
from schemaloader.errors import CatalogError
from schemaloader.settings import LoaderOptions

__all__ = [
    "SchemaLoader",
    "driver_for_engine",
    "load_schema",
]

logger = logging.getLogger(__name__)
debug_logger = logging.getLogger("schemaloader.debug")


def driver_for_engine(engine: Engine, db_schema: Optional[str] = None) -> CatalogDriver:
    """Return the catalog driver matching *engine*'s dialect."""
    if engine.dialect.name in ("mysql", "mariadb"):
        return MySQLCatalogDriver(engine, db_schema=db_schema)
    return InspectorCatalogDriver(engine, db_schema=db_schema)


class SchemaLoader:
    """Build class descriptors for the tables visible through *driver*.

    Parameters
    driver
        Catalog driver providing ``list_tables``, ``columns``, ``primary_key``,
        ``unique_constraints`` and ``foreign_keys``.
    options
        Load options; defaults to :class:`LoaderOptions` read from the
        environment.
    extension_lookup
        Callable returning the custom module for a dotted module name, or
        ``None`` when there is none.
    inflector
        Replaces the inflector built from the options.
    """

    def __init__(
        self,
        driver: Any,
        options: Optional[LoaderOptions] = None,
        *,
        extension_lookup: ExtensionLookup = import_extension,
        inflector: Optional[Inflector] = None,
    ) -> None:
        check_driver(driver)
        self._driver = driver
        self._options = options if options is not None else LoaderOptions()
        self._extension_lookup = extension_lookup
        self._inflector = inflector
        self._context: Optional[LoaderContext] = None
        self._deprecations: list[str] = []

    @property
    def options(self) -> LoaderOptions:
        return self._options

    @property
    def context(self) -> LoaderContext:
        """Context of the most recent run."""
        if self._context is None:
            raise RuntimeError("SchemaLoader.load() has not been called yet")
        return self._context

    @classmethod
    def from_database_url(cls, url: str, options: Optional[LoaderOptions] = None, **kwargs: Any) -> "SchemaLoader":
        """Create a :class:`SchemaLoader` for the database at *url*."""
        options = options if options is not None else LoaderOptions(database_url=url)
        engine = create_engine(url, future=True)
        return cls(driver_for_engine(engine, options.db_schema), options, **kwargs)

    @classmethod
    def load_from_connection(cls, url: str, **options: Any) -> LoadResult:
        """Deprecated: load *url* with the legacy default inflections."""
        options["legacy_default_inflections"] = True
        loader = cls.from_database_url(url, LoaderOptions(database_url=url, **options))
        loader._deprecations.append(
            "load_from_connection is deprecated, use SchemaLoader.from_database_url(...).load()"
        )
        return loader.load()

    # ------------------------------------------------------------------

    def load(self) -> LoadResult:
        """Run the whole pipeline once and return its result."""

        options = self._options
        context = LoaderContext(options, self._driver, inflector=self._inflector)
        self._context = context

        for message in self._deprecations:
            context.warn(WarningCode.DEPRECATED_OPTION, message)
        for name in options.deprecated_options:
            context.warn(
                WarningCode.DEPRECATED_OPTION,
                f"Argument {name} is deprecated in favor of 'inflect_plural'",
            )

        try:
            all_tables = self._driver.list_tables()
        except Exception as exc:
            raise CatalogError(f"Unable to list tables: {exc}") from exc

        context.tables = select_tables(
            all_tables,
            options.constraint,
            options.exclude,
            warnings=context.warnings,
        )

        SchemaBuilder(context).build(context.tables)

        if options.relationships:
            fk_info = resolve_foreign_keys(context)
            RelationshipBuilder(context.registry.classes, context.inflector).setup_relationships(fk_info)

        extensions = self._load_external(context)
        context.registry.freeze()

        result = LoadResult(
            registry=context.registry,
            tables=list(context.tables),
            monikers=dict(context.monikers),
            classes=dict(context.classes),
            extensions=extensions,
        )

        if options.dump_directory is not None:
            writer = DumpWriter(
                options.dump_directory,
                force=options.really_erase_my_files,
                preserve_custom=options.preserve_custom_content,
                on_delete=lambda path: context.warnings.append(
                    LoadWarning(code=WarningCode.DELETED_FILE, message=f"Deleted existing file '{path}'")
                ),
            )
            result.dump_report = writer.write(context.registry)
        elif options.debug:
            result.debug_output = render_debug_trace(context.registry)
            for line in result.debug_output:
                debug_logger.info(line)

        result.warnings = list(context.warnings)
        return result

    def _load_external(self, context: LoaderContext) -> list[str]:
        found = []
        for moniker in context.registry.sources():
            module_name = f"{context.schema_name}.{moniker_to_module_name(moniker)}"
            if self._extension_lookup(module_name) is not None:
                if self._options.debug:
                    logger.info("Loaded external class definition for '%s'", module_name)
                found.append(moniker)
        return found


def load_schema(url: str, **options: Any) -> LoadResult:
    """Load the schema of the database at *url* with keyword *options*."""
    return SchemaLoader.from_database_url(url, LoaderOptions(database_url=url, **options)).load()
