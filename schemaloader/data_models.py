"""Pydantic data models shared by every stage of a schema load.

The central type is :class:`ClassDescriptor`: a description of one generated
class.  Descriptors are never mutated by assigning fields directly; every
structural change goes through a method that also appends an
:class:`Operation` to the descriptor's replay log.  The dump writer, the debug
trace and the live SQLAlchemy class builder all consume that log, so the three
outputs are driven by exactly the same sequence of facts.
"""

from __future__ import annotations

import enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field, PrivateAttr

from schemaloader.errors import DescriptorFrozenError

__all__ = [
    "ForeignKeyInfo",
    "ResolvedForeignKey",
    "UniqueConstraintInfo",
    "RelationshipKind",
    "RelationshipAccessor",
    "Operation",
    "ClassDescriptor",
    "SchemaRegistry",
    "WarningCode",
    "LoadWarning",
    "DumpReport",
    "LoadResult",
]


class ForeignKeyInfo(BaseModel):
    """A foreign key as reported by a catalog driver for one referencing table."""

    local_columns: List[str] = Field(..., min_length=1, description="Referencing columns, in constraint order")
    remote_table: str = Field(..., description="Raw catalog name of the referenced table")
    remote_columns: List[str] = Field(..., min_length=1, description="Referenced columns, paired positionally with local_columns")


class ResolvedForeignKey(BaseModel):
    """A foreign key whose tables have been translated to monikers."""

    moniker: str = Field(..., description="Moniker of the referencing class")
    local_columns: List[str]
    remote_moniker: str = Field(..., description="Moniker of the referenced class")
    remote_columns: List[str]

    @property
    def column_pairs(self) -> List[tuple[str, str]]:
        """Return ``(local, remote)`` column pairs in constraint order."""
        return list(zip(self.local_columns, self.remote_columns))


class UniqueConstraintInfo(BaseModel):
    """A named group of columns whose combined values are unique."""

    name: str
    columns: List[str] = Field(..., min_length=1)


class RelationshipKind(str, enum.Enum):
    """Direction of a relationship accessor."""

    TO_ONE = "to_one"
    TO_MANY = "to_many"


class RelationshipAccessor(BaseModel):
    """One relationship accessor owned by a :class:`ClassDescriptor`."""

    kind: RelationshipKind
    name: str = Field(..., description="Attribute name of the accessor on the owning class")
    target: str = Field(..., description="Moniker of the class the accessor points at")
    columns: Dict[str, str] = Field(
        ...,
        description="Join condition as an ordered mapping of owning-class column to target-class column",
    )
    reverse: Optional[str] = Field(default=None, description="Name of the paired accessor on the target class")
    suffix: Optional[str] = Field(default=None, description="Disambiguation suffix appended to the default name")


class Operation(BaseModel):
    """A single replayable mutation applied to a :class:`ClassDescriptor`."""

    method: str
    args: List[Any] = Field(default_factory=list)
    kwargs: Dict[str, Any] = Field(default_factory=dict)

    def render(self, target: str = "descriptor") -> str:
        """Return the operation as a Python call expression on *target*."""

        parts = [repr(arg) for arg in self.args]
        parts.extend(f"{key}={value!r}" for key, value in self.kwargs.items())
        return f"{target}.{self.method}({', '.join(parts)})"


class ClassDescriptor(BaseModel):
    """Description of one class synthesized from one table.

    Created by the schema builder, extended by the relationship builder and
    frozen before it reaches the emitter.
    """

    moniker: str = Field(..., min_length=1, description="Class identifier derived from the table name")
    table: Optional[str] = None
    columns: List[str] = Field(default_factory=list)
    primary_key: List[str] = Field(default_factory=list)
    unique_constraints: List[UniqueConstraintInfo] = Field(default_factory=list)
    relationships: List[RelationshipAccessor] = Field(default_factory=list)
    uses: List[str] = Field(default_factory=list, description="Modules imported alongside the class")
    left_bases: List[str] = Field(default_factory=list, description="Base classes placed leftmost")
    components: List[str] = Field(default_factory=list)
    base_classes: List[str] = Field(default_factory=list, description="Additional base classes")
    resultset_components: List[str] = Field(default_factory=list)
    operations: List[Operation] = Field(default_factory=list)

    _frozen: bool = PrivateAttr(default=False)

    # ------------------------------------------------------------------
    # Replay log plumbing
    # ------------------------------------------------------------------

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        if self._frozen:
            raise DescriptorFrozenError(
                f"Class descriptor '{self.moniker}' is frozen; cannot apply {method}()"
            )
        self.operations.append(Operation(method=method, args=list(args), kwargs=kwargs))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Reject any further mutation."""
        self._frozen = True

    @classmethod
    def replay(cls, moniker: str, operations: Iterable[Operation]) -> "ClassDescriptor":
        """Build a fresh descriptor by re-applying *operations* in order."""

        descriptor = cls(moniker=moniker)
        for op in operations:
            getattr(descriptor, op.method)(*op.args, **op.kwargs)
        return descriptor

    # ------------------------------------------------------------------
    # Structural mutations
    # ------------------------------------------------------------------

    def set_table(self, table: str) -> None:
        self._record("set_table", table)
        self.table = table

    def use(self, *modules: str) -> None:
        self._record("use", *modules)
        self.uses.extend(modules)

    def inject_left_base(self, *identifiers: str) -> None:
        self._record("inject_left_base", *identifiers)
        self.left_bases.extend(identifiers)

    def load_components(self, *identifiers: str) -> None:
        self._record("load_components", *identifiers)
        self.components.extend(identifiers)

    def load_resultset_components(self, *identifiers: str) -> None:
        self._record("load_resultset_components", *identifiers)
        self.resultset_components.extend(identifiers)

    def inject_base(self, *identifiers: str) -> None:
        self._record("inject_base", *identifiers)
        self.base_classes.extend(identifiers)

    def add_columns(self, *columns: str) -> None:
        self._record("add_columns", *columns)
        self.columns.extend(columns)

    def set_primary_key(self, *columns: str) -> None:
        self._record("set_primary_key", *columns)
        self.primary_key = list(columns)

    def add_unique_constraint(self, name: str, columns: Iterable[str]) -> None:
        columns = list(columns)
        self._record("add_unique_constraint", name, columns)
        self.unique_constraints.append(UniqueConstraintInfo(name=name, columns=columns))

    def belongs_to(
        self,
        name: str,
        target: str,
        columns: Mapping[str, str],
        reverse: Optional[str] = None,
        suffix: Optional[str] = None,
    ) -> None:
        """Add a to-one accessor following a foreign key owned by this class."""
        self._add_relationship(RelationshipKind.TO_ONE, name, target, columns, reverse, suffix)

    def has_many(
        self,
        name: str,
        target: str,
        columns: Mapping[str, str],
        reverse: Optional[str] = None,
        suffix: Optional[str] = None,
    ) -> None:
        """Add a to-many accessor for a foreign key that points at this class."""
        self._add_relationship(RelationshipKind.TO_MANY, name, target, columns, reverse, suffix)

    def _add_relationship(
        self,
        kind: RelationshipKind,
        name: str,
        target: str,
        columns: Mapping[str, str],
        reverse: Optional[str],
        suffix: Optional[str],
    ) -> None:
        if any(rel.name == name for rel in self.relationships):
            raise ValueError(f"Class '{self.moniker}' already has an accessor named '{name}'")
        columns = dict(columns)
        kwargs: Dict[str, Any] = {}
        if reverse is not None:
            kwargs["reverse"] = reverse
        if suffix is not None:
            kwargs["suffix"] = suffix
        method = "belongs_to" if kind is RelationshipKind.TO_ONE else "has_many"
        self._record(method, name, target, columns, **kwargs)
        self.relationships.append(
            RelationshipAccessor(
                kind=kind,
                name=name,
                target=target,
                columns=columns,
                reverse=reverse,
                suffix=suffix,
            )
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def relationship(self, name: str) -> RelationshipAccessor:
        """Return the accessor called *name* or raise ``KeyError``."""
        for rel in self.relationships:
            if rel.name == name:
                return rel
        raise KeyError(f"Relationship '{name}' not found on '{self.moniker}'")

    @property
    def attribute_names(self) -> set[str]:
        """Names already taken on the class by columns or accessors."""
        return set(self.columns) | {rel.name for rel in self.relationships}


class SchemaRegistry(BaseModel):
    """Schema-wide registry of class descriptors keyed by moniker."""

    name: str = Field(..., min_length=1, description="Dotted package name of the schema")
    classes: Dict[str, ClassDescriptor] = Field(default_factory=dict)

    def register_class(self, moniker: str, descriptor: ClassDescriptor) -> None:
        if moniker in self.classes and self.classes[moniker] is not descriptor:
            raise ValueError(f"Moniker '{moniker}' is already registered in schema '{self.name}'")
        self.classes[moniker] = descriptor

    def source(self, moniker: str) -> ClassDescriptor:
        """Return the descriptor for *moniker* or raise ``KeyError``."""
        try:
            return self.classes[moniker]
        except KeyError:
            raise KeyError(f"Source '{moniker}' not found in schema '{self.name}'") from None

    def sources(self) -> List[str]:
        """Return registered monikers in sorted order."""
        return sorted(self.classes)

    def freeze(self) -> None:
        for descriptor in self.classes.values():
            descriptor.freeze()


class WarningCode(str, enum.Enum):
    """Reportable, non-fatal conditions encountered during a load."""

    NO_TABLES = "no_tables"
    ALL_EXCLUDED = "all_excluded"
    NO_PRIMARY_KEY = "no_primary_key"
    DEPRECATED_OPTION = "deprecated_option"
    DELETED_FILE = "deleted_file"


class LoadWarning(BaseModel):
    """A warning collected during a load and handed back to the caller."""

    code: WarningCode
    message: str
    table: Optional[str] = None


class DumpReport(BaseModel):
    """Files touched by a dump run."""

    written: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list, description="Pre-existing files removed in force mode")
    preserved: List[str] = Field(default_factory=list, description="Files whose custom content was carried over")


class LoadResult(BaseModel):
    """Everything a completed load hands back to the caller.

    Attributes
    registry: SchemaRegistry
        Frozen class descriptors keyed by moniker.
    tables: list[str]
        Selected tables, sorted.
    monikers: dict[str, str]
        Table to moniker mapping (original and lower-cased table names).
    classes: dict[str, str]
        Table to fully qualified class path mapping.
    warnings: list[LoadWarning]
        Non-fatal conditions collected during the run.
    """

    registry: SchemaRegistry
    tables: List[str] = Field(default_factory=list)
    monikers: Dict[str, str] = Field(default_factory=dict)
    classes: Dict[str, str] = Field(default_factory=dict)
    warnings: List[LoadWarning] = Field(default_factory=list)
    dump_report: Optional[DumpReport] = None
    debug_output: List[str] = Field(default_factory=list)
    extensions: List[str] = Field(default_factory=list, description="Monikers whose custom module was found")

    def warnings_for(self, code: WarningCode) -> List[LoadWarning]:
        return [warning for warning in self.warnings if warning.code == code]
