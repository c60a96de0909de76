"""MySQL catalog driver.

Primary and unique keys come from a single ``SHOW INDEX FROM`` statement that
is cached for the table being processed; foreign keys are parsed from the
``SHOW CREATE TABLE`` output.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import text

from schemaloader.data_models import ForeignKeyInfo, UniqueConstraintInfo

from .inspector import InspectorCatalogDriver, TableKeys

__all__ = [
    "MySQLCatalogDriver",
    "group_index_rows",
    "parse_foreign_keys",
    "qualified_table",
]

_FK_PATTERN = re.compile(
    r"CONSTRAINT\s+`[^`]*`\s+FOREIGN\s+KEY\s*\(([^)]*)\)\s*"
    r"REFERENCES\s+((?:`[^`]*`\.)?`[^`]*`)\s*\(([^)]*)\)",
    re.IGNORECASE,
)


def _split_columns(column_list: str) -> List[str]:
    return [column.strip().strip("`").lower() for column in column_list.split(",") if column.strip()]


def parse_foreign_keys(create_table_sql: str) -> List[ForeignKeyInfo]:
    """Extract foreign keys from a ``SHOW CREATE TABLE`` definition.

    References qualified with another database name are skipped.
    """

    edges: List[ForeignKeyInfo] = []
    for local, remote_table, remote in _FK_PATTERN.findall(create_table_sql or ""):
        if "." in remote_table:
            continue
        edges.append(
            ForeignKeyInfo(
                local_columns=_split_columns(local),
                remote_table=remote_table.strip("`"),
                remote_columns=_split_columns(remote),
            )
        )
    return edges


def group_index_rows(rows: Iterable[Mapping[str, Any]]) -> TableKeys:
    """Group ``SHOW INDEX`` rows of unique indexes by key name.

    Columns are ordered by ``Seq_in_index``; the ``PRIMARY`` key becomes the
    primary key, every other unique index a unique constraint.
    """

    keydata: Dict[str, List[Tuple[int, str]]] = {}
    for row in rows:
        if int(row["Non_unique"]):
            continue
        keydata.setdefault(row["Key_name"], []).append(
            (int(row["Seq_in_index"]), row["Column_name"].lower())
        )
    ordered = {name: [column for _, column in sorted(columns)] for name, columns in keydata.items()}
    primary_key = ordered.pop("PRIMARY", [])
    unique = [UniqueConstraintInfo(name=name, columns=columns) for name, columns in sorted(ordered.items())]
    return TableKeys(primary_key=primary_key, unique=unique)


def qualified_table(preparer: Any, table: str, db_schema: Optional[str] = None) -> str:
    """Return *table* quoted for a ``SHOW`` statement, prefixed with *db_schema* when set."""
    quoted = preparer.quote_identifier(table)
    if db_schema:
        return f"{preparer.quote_identifier(db_schema)}.{quoted}"
    return quoted


class MySQLCatalogDriver(InspectorCatalogDriver):
    """Catalog driver using MySQL's ``SHOW`` statements for keys."""

    def _quote(self, table: str) -> str:
        return qualified_table(self._engine.dialect.identifier_preparer, table, self._db_schema)

    def _read_keys(self, table: str) -> TableKeys:
        with self._engine.connect() as conn:
            rows = conn.execute(text(f"SHOW INDEX FROM {self._quote(table)}")).mappings().all()
        return group_index_rows(rows)

    def foreign_keys(self, table: str) -> List[ForeignKeyInfo]:
        with self._engine.connect() as conn:
            row = conn.execute(text(f"SHOW CREATE TABLE {self._quote(table)}")).first()
        return parse_foreign_keys(row[1] if row is not None else "")
