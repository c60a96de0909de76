import sys
import pathlib
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))

import pytest
import sqlalchemy as sa

from schemaloader.data_models import ForeignKeyInfo, UniqueConstraintInfo


class FakeCatalogDriver:
    """In-memory catalog driver.

    ``tables`` maps a table name to a dict with ``columns``, and optionally
    ``pk``, ``unique`` (list of ``(name, columns)``) and ``fks`` (list of
    ``(local_columns, remote_table, remote_columns)``).
    """

    def __init__(self, tables):
        self.tables = tables
        self.calls = []

    def list_tables(self):
        return set(self.tables)

    def columns(self, table):
        self.calls.append(("columns", table))
        return list(self.tables[table]["columns"])

    def primary_key(self, table):
        return list(self.tables[table].get("pk", []))

    def unique_constraints(self, table):
        return [
            UniqueConstraintInfo(name=name, columns=columns)
            for name, columns in self.tables[table].get("unique", [])
        ]

    def foreign_keys(self, table):
        return [
            ForeignKeyInfo(local_columns=local, remote_table=remote, remote_columns=remote_cols)
            for local, remote, remote_cols in self.tables[table].get("fks", [])
        ]


@pytest.fixture()
def make_driver():
    return FakeCatalogDriver


@pytest.fixture()
def foo_bar_driver():
    return FakeCatalogDriver(
        {
            "foo": {"columns": ["id", "name"], "pk": ["id"]},
            "bar": {
                "columns": ["id", "foo_id"],
                "pk": ["id"],
                "fks": [(["foo_id"], "foo", ["id"])],
            },
        }
    )


@pytest.fixture()
def sqlite_url(tmp_path):
    """File-backed SQLite database with a small foo/bar schema."""
    url = f"sqlite:///{tmp_path / 'catalog.db'}"
    engine = sa.create_engine(url)
    with engine.begin() as conn:
        conn.execute(sa.text("CREATE TABLE foo (id INTEGER PRIMARY KEY, name TEXT, CONSTRAINT uq_foo_name UNIQUE (name))"))
        conn.execute(sa.text("CREATE TABLE bar (id INTEGER PRIMARY KEY, foo_id INTEGER REFERENCES foo(id))"))
        conn.execute(sa.text("CREATE TABLE audit_log (message TEXT, created TEXT)"))
        conn.execute(sa.text("INSERT INTO foo (id, name) VALUES (1, 'one'), (2, 'two')"))
        conn.execute(sa.text("INSERT INTO bar (id, foo_id) VALUES (10, 1), (11, 1), (12, 2)"))
    engine.dispose()
    return url
