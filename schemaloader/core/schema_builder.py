"""Construction of one class descriptor per selected table."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Sequence

from schemaloader.data_models import ClassDescriptor, WarningCode
from schemaloader.errors import CatalogError

from .context import LoaderContext
from .naming import table_to_moniker

__all__ = [
    "SchemaBuilder",
]

logger = logging.getLogger(__name__)


def _read_catalog(reader: Callable[[str], Any], table: str, what: str) -> Any:
    """Call a catalog driver method, turning any failure into :class:`CatalogError`."""
    try:
        return reader(table)
    except Exception as exc:
        raise CatalogError(f"Unable to read {what} of table '{table}': {exc}", table=table) from exc


class SchemaBuilder:
    """Build and register class descriptors for the selected tables.

    Monikers are assigned to every table first and the moniker map is frozen
    before any catalog metadata is read, so later stages always see a complete
    mapping.
    """

    def __init__(self, context: LoaderContext) -> None:
        self._context = context

    def build(self, tables: Sequence[str]) -> Dict[str, ClassDescriptor]:
        """Return table -> descriptor for *tables*, in selector order."""

        context = self._context
        owners: Dict[str, str] = {}
        for table in tables:
            moniker = table_to_moniker(table, context.options.moniker_map)
            if moniker in owners:
                raise CatalogError(
                    f"Tables '{owners[moniker]}' and '{table}' both map to moniker '{moniker}';"
                    " disambiguate them with moniker_map",
                    table=table,
                )
            owners[moniker] = table
            context.register_moniker(table, moniker)
        context.freeze_monikers()

        descriptors: Dict[str, ClassDescriptor] = {}
        for table in tables:
            descriptor = self._build_class(table, context.monikers[table])
            context.registry.register_class(descriptor.moniker, descriptor)
            descriptors[table] = descriptor
        return descriptors

    def _build_class(self, table: str, moniker: str) -> ClassDescriptor:
        context = self._context
        options = context.options
        driver = context.driver

        descriptor = ClassDescriptor(moniker=moniker)
        descriptor.set_table(table)
        if options.additional_classes:
            descriptor.use(*options.additional_classes)
        if options.left_base_classes:
            descriptor.inject_left_base(*options.left_base_classes)
        if options.components:
            descriptor.load_components(*options.components)
        if options.resultset_components:
            descriptor.load_resultset_components(*options.resultset_components)
        if options.additional_base_classes:
            descriptor.inject_base(*options.additional_base_classes)

        columns = _read_catalog(driver.columns, table, "columns")
        if columns is None:
            raise CatalogError(f"Catalog driver reported no columns for table '{table}'", table=table)
        descriptor.add_columns(*columns)

        primary_key = _read_catalog(driver.primary_key, table, "primary key") or []
        if primary_key:
            descriptor.set_primary_key(*primary_key)
        else:
            context.warn(WarningCode.NO_PRIMARY_KEY, f"{table} has no primary key", table=table)

        for constraint in _read_catalog(driver.unique_constraints, table, "unique constraints") or []:
            descriptor.add_unique_constraint(constraint.name, constraint.columns)

        logger.debug("Built class %s.%s for table %s", context.schema_name, moniker, table)
        return descriptor
