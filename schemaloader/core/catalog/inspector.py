"""Catalog driver backed by :func:`sqlalchemy.inspect`.

Works with any SQLAlchemy dialect that implements reflection.  A fresh
:class:`~sqlalchemy.engine.reflection.Inspector` is used for every call so
nothing read for one table is reused for another; the only cache kept here is
the combined key lookup that serves both :meth:`primary_key` and
:meth:`unique_constraints` for the table currently being processed.
"""

from __future__ import annotations

import logging
from typing import List, NamedTuple, Optional, Set

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from schemaloader.data_models import ForeignKeyInfo, UniqueConstraintInfo

from .base import CatalogDriver

__all__ = [
    "TableKeys",
    "InspectorCatalogDriver",
]

logger = logging.getLogger(__name__)


class TableKeys(NamedTuple):
    """Primary key and unique groups of one table."""

    primary_key: List[str]
    unique: List[UniqueConstraintInfo]


def _lower(columns) -> List[str]:
    return [column.lower() for column in columns]


class InspectorCatalogDriver(CatalogDriver):
    """Catalog driver for any SQLAlchemy engine.

    Parameters
    engine
        SQLAlchemy *Engine* connected to the database to inspect.
    db_schema
        Database schema to read.  ``None`` means the connection's default.
    """

    def __init__(self, engine: Engine, db_schema: Optional[str] = None) -> None:
        self._engine: Engine = engine
        self._db_schema = db_schema
        self._keys_table: Optional[str] = None
        self._keys: Optional[TableKeys] = None

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def db_schema(self) -> Optional[str]:
        return self._db_schema

    def _inspector(self):
        return sa.inspect(self._engine)

    def list_tables(self) -> Set[str]:
        return set(self._inspector().get_table_names(schema=self._db_schema))

    def columns(self, table: str) -> List[str]:
        return [column["name"].lower() for column in self._inspector().get_columns(table, schema=self._db_schema)]

    # -- keys ---------------------------------------------------------------

    def _table_keys(self, table: str) -> TableKeys:
        """Return cached keys for *table*, dropping any other table's entry."""
        if self._keys_table != table or self._keys is None:
            self._keys = self._read_keys(table)
            self._keys_table = table
        return self._keys

    def _read_keys(self, table: str) -> TableKeys:
        inspector = self._inspector()
        pk = inspector.get_pk_constraint(table, schema=self._db_schema) or {}
        primary_key = _lower(pk.get("constrained_columns") or [])

        groups = []
        try:
            for constraint in inspector.get_unique_constraints(table, schema=self._db_schema):
                groups.append((constraint.get("name"), constraint.get("column_names") or []))
        except NotImplementedError:
            logger.debug("Dialect %s does not reflect unique constraints", self._engine.dialect.name)
        for index in inspector.get_indexes(table, schema=self._db_schema):
            if index.get("unique"):
                groups.append((index.get("name"), index.get("column_names") or []))

        seen = {tuple(primary_key)} if primary_key else set()
        unique: List[UniqueConstraintInfo] = []
        for name, columns in groups:
            # Expression indexes report ``None`` for their computed members.
            if not columns or any(column is None for column in columns):
                continue
            columns = _lower(columns)
            if tuple(columns) in seen:
                continue
            seen.add(tuple(columns))
            unique.append(
                UniqueConstraintInfo(name=name or f"{table}_{'_'.join(columns)}", columns=columns)
            )
        unique.sort(key=lambda constraint: constraint.name)
        return TableKeys(primary_key=primary_key, unique=unique)

    def primary_key(self, table: str) -> List[str]:
        return list(self._table_keys(table).primary_key)

    def unique_constraints(self, table: str) -> List[UniqueConstraintInfo]:
        return list(self._table_keys(table).unique)

    # -- foreign keys ---------------------------------------------------------

    def foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        edges: List[ForeignKeyInfo] = []
        for fk in self._inspector().get_foreign_keys(table, schema=self._db_schema):
            referred_schema = fk.get("referred_schema")
            if referred_schema and referred_schema != self._db_schema:
                logger.debug(
                    "Ignoring foreign key %s on %s into schema %s",
                    fk.get("name"), table, referred_schema,
                )
                continue
            if not fk.get("constrained_columns") or not fk.get("referred_columns"):
                continue
            edges.append(
                ForeignKeyInfo(
                    local_columns=_lower(fk["constrained_columns"]),
                    remote_table=fk["referred_table"],
                    remote_columns=_lower(fk["referred_columns"]),
                )
            )
        return edges
