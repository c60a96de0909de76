"""Live SQLAlchemy declarative classes built from class descriptors.

The builder replays each descriptor's operation log, exactly like importing a
dumped module does, and turns the result into a mapped class: untyped columns,
primary key, unique and foreign-key constraints, and ``relationship()``
accessors paired through ``back_populates``.

Composition identifiers (``package.module:Name`` or ``package.module.Name``)
are resolved with :mod:`importlib` and become bases of the new class, in the
order left bases, components, additional bases, declarative base.
"""

from __future__ import annotations

import importlib
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import Column, ForeignKeyConstraint, MetaData, Table, UniqueConstraint, and_
from sqlalchemy.orm import declarative_base, relationship

from schemaloader.data_models import RelationshipKind, SchemaRegistry

__all__ = [
    "NAMING_CONVENTION",
    "make_base",
    "resolve_identifier",
    "build_declarative_classes",
]

# These ensure deterministic names for constraints the catalog left unnamed.
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def make_base() -> Any:
    """Return a fresh declarative base with its own metadata and class registry."""
    return declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


def resolve_identifier(identifier: str) -> Any:
    """Import and return the object named by *identifier*."""
    if ":" in identifier:
        module_name, _, attr = identifier.partition(":")
    else:
        module_name, _, attr = identifier.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Cannot resolve '{identifier}'; expected 'module:Name' or 'module.Name'")
    return getattr(importlib.import_module(module_name), attr)


class _ClassPlan:
    """Operation-log sink mirroring the mutation methods of ``ClassDescriptor``."""

    def __init__(self, moniker: str) -> None:
        self.moniker = moniker
        self.table: Optional[str] = None
        self.uses: List[str] = []
        self.bases: Dict[str, List[str]] = {"left": [], "components": [], "additional": []}
        self.resultset_components: List[str] = []
        self.columns: List[str] = []
        self.primary_key: List[str] = []
        self.unique: List[Tuple[str, List[str]]] = []
        self.relationships: List[Tuple[RelationshipKind, str, str, Dict[str, str], Optional[str]]] = []

    def set_table(self, table: str) -> None:
        self.table = table

    def use(self, *modules: str) -> None:
        self.uses.extend(modules)

    def inject_left_base(self, *identifiers: str) -> None:
        self.bases["left"].extend(identifiers)

    def load_components(self, *identifiers: str) -> None:
        self.bases["components"].extend(identifiers)

    def load_resultset_components(self, *identifiers: str) -> None:
        self.resultset_components.extend(identifiers)

    def inject_base(self, *identifiers: str) -> None:
        self.bases["additional"].extend(identifiers)

    def add_columns(self, *columns: str) -> None:
        self.columns.extend(columns)

    def set_primary_key(self, *columns: str) -> None:
        self.primary_key = list(columns)

    def add_unique_constraint(self, name: str, columns: List[str]) -> None:
        self.unique.append((name, list(columns)))

    def belongs_to(self, name, target, columns, reverse=None, suffix=None) -> None:
        self.relationships.append((RelationshipKind.TO_ONE, name, target, dict(columns), reverse))

    def has_many(self, name, target, columns, reverse=None, suffix=None) -> None:
        self.relationships.append((RelationshipKind.TO_MANY, name, target, dict(columns), reverse))

    @property
    def base_identifiers(self) -> List[str]:
        return self.bases["left"] + self.bases["components"] + self.bases["additional"]


def _replay(registry: SchemaRegistry) -> Dict[str, _ClassPlan]:
    plans: Dict[str, _ClassPlan] = {}
    for moniker in registry.sources():
        plan = _ClassPlan(moniker)
        for op in registry.source(moniker).operations:
            getattr(plan, op.method)(*op.args, **op.kwargs)
        plans[moniker] = plan
    return plans


def _build_tables(plans: Dict[str, _ClassPlan], metadata: MetaData) -> Dict[str, Table]:
    tables: Dict[str, Table] = {}
    for moniker, plan in plans.items():
        columns = [Column(name, primary_key=name in plan.primary_key) for name in plan.columns]
        constraints = [UniqueConstraint(*cols, name=name) for name, cols in plan.unique]
        tables[moniker] = Table(plan.table or moniker.lower(), metadata, *columns, *constraints)

    # Foreign keys need every referenced table to exist first.
    for moniker, plan in plans.items():
        for kind, _name, target, columns, _reverse in plan.relationships:
            if kind is not RelationshipKind.TO_ONE:
                continue
            tables[moniker].append_constraint(
                ForeignKeyConstraint(
                    list(columns),
                    [tables[target].c[remote] for remote in columns.values()],
                )
            )
    return tables


def _relationship(
    kind: RelationshipKind,
    target: str,
    columns: Dict[str, str],
    reverse: Optional[str],
    own: Table,
    other: Table,
) -> Any:
    own_cols = [own.c[name] for name in columns]
    other_cols = [other.c[name] for name in columns.values()]
    kwargs: Dict[str, Any] = {
        "primaryjoin": and_(*[mine == theirs for mine, theirs in zip(own_cols, other_cols)]),
    }
    if kind is RelationshipKind.TO_ONE:
        kwargs["foreign_keys"] = own_cols
    else:
        kwargs["foreign_keys"] = other_cols
    if own is other:
        kwargs["remote_side"] = other_cols
    if reverse is not None:
        kwargs["back_populates"] = reverse
    return relationship(target, **kwargs)


def build_declarative_classes(
    registry: SchemaRegistry,
    base: Any = None,
    resolver: Callable[[str], Any] = resolve_identifier,
) -> Dict[str, type]:
    """Return moniker -> mapped class for every descriptor in *registry*.

    A fresh declarative base is created unless *base* is given.  Tables
    without a primary key are mapped using all of their columns as the
    mapper's primary key.
    """

    base = base if base is not None else make_base()
    plans = _replay(registry)
    tables = _build_tables(plans, base.metadata)

    classes: Dict[str, type] = {}
    for moniker, plan in plans.items():
        for module in plan.uses:
            importlib.import_module(module)
        bases = tuple(resolver(identifier) for identifier in plan.base_identifiers) + (base,)
        table = tables[moniker]
        namespace: Dict[str, Any] = {"__table__": table, "__module__": registry.name}
        if not plan.primary_key:
            namespace["__mapper_args__"] = {"primary_key": list(table.columns)}
        if plan.resultset_components:
            namespace["__resultset_components__"] = tuple(plan.resultset_components)
        for kind, name, target, columns, reverse in plan.relationships:
            namespace[name] = _relationship(kind, target, columns, reverse, table, tables[target])
        classes[moniker] = type(moniker, bases, namespace)

    base.registry.configure()
    return classes
