"""Catalog driver interface consumed by the loader.

A driver answers five questions about the connected catalog: which tables
exist, and for one table its columns, primary key, unique constraints and
foreign keys.  Column names are reported lower-cased.
"""

from __future__ import annotations

import abc
from typing import Any, List, Set

from schemaloader.data_models import ForeignKeyInfo, UniqueConstraintInfo
from schemaloader.errors import DriverError

__all__ = [
    "CATALOG_CAPABILITIES",
    "CatalogDriver",
    "check_driver",
]

CATALOG_CAPABILITIES = (
    "list_tables",
    "columns",
    "primary_key",
    "unique_constraints",
    "foreign_keys",
)


class CatalogDriver(abc.ABC):
    """Per-engine access to catalog metadata."""

    @abc.abstractmethod
    def list_tables(self) -> Set[str]:
        """Return every table name visible in the configured database schema."""

    @abc.abstractmethod
    def columns(self, table: str) -> List[str]:
        """Return the column names of *table* in ordinal order."""

    @abc.abstractmethod
    def primary_key(self, table: str) -> List[str]:
        """Return the primary-key column names of *table* (possibly empty)."""

    @abc.abstractmethod
    def unique_constraints(self, table: str) -> List[UniqueConstraintInfo]:
        """Return the unique column groups of *table*, excluding the primary key."""

    @abc.abstractmethod
    def foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        """Return the foreign keys owned by *table*."""


def check_driver(driver: Any) -> None:
    """Raise :class:`DriverError` unless *driver* provides every catalog capability."""

    missing = [name for name in CATALOG_CAPABILITIES if not callable(getattr(driver, name, None))]
    if missing:
        raise DriverError(
            f"Catalog driver {type(driver).__name__} is missing required method(s): "
            + ", ".join(missing)
        )
