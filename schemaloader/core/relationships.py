"""Relationship accessors inferred from foreign keys.

Every foreign key ``referencing(local_columns) -> remote(remote_columns)``
yields a pair of accessors:

* a to-one accessor on the referencing class, named after the singular of the
  remote moniker (``bar.foo``);
* a to-many accessor on the remote class, named after the plural of the
  referencing moniker (``foo.bars``).

Names never silently overwrite each other.  When several foreign keys join the
same two classes, all of them carry a ``by_<local columns>`` suffix; any other
clash with a column or an accessor already present on the class gets the same
suffix and, as a last resort, a numeric one.  A foreign key from a table to
itself uses ``parent`` / ``children``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Dict, List, Mapping, Optional, Set, Tuple

from schemaloader.data_models import ClassDescriptor, RelationshipKind, ResolvedForeignKey
from schemaloader.errors import CatalogError

from .context import LoaderContext
from .naming import Inflector, default_moniker, moniker_to_relationship_name

__all__ = [
    "SELF_TO_ONE_NAME",
    "SELF_TO_MANY_NAME",
    "resolve_foreign_keys",
    "RelationshipBuilder",
]

logger = logging.getLogger(__name__)

SELF_TO_ONE_NAME = "parent"
SELF_TO_MANY_NAME = "children"

_NON_IDENTIFIER = re.compile(r"\W+")


def _identifier(name: str) -> str:
    cleaned = _NON_IDENTIFIER.sub("_", name).strip("_")
    if cleaned[:1].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def resolve_foreign_keys(context: LoaderContext) -> Dict[str, List[ResolvedForeignKey]]:
    """Read every selected table's foreign keys and translate tables to monikers.

    Edges pointing at tables outside the selected set are dropped.
    """

    fk_info: Dict[str, List[ResolvedForeignKey]] = {}
    for table in context.tables:
        moniker = context.monikers[table]
        try:
            raw_edges = context.driver.foreign_keys(table) or []
        except Exception as exc:
            raise CatalogError(f"Unable to read foreign keys of table '{table}': {exc}", table=table) from exc

        resolved: List[ResolvedForeignKey] = []
        for fk in raw_edges:
            remote_moniker = context.moniker_for(fk.remote_table)
            if remote_moniker is None:
                logger.debug("Dropping foreign key %s -> %s: table not loaded", table, fk.remote_table)
                continue
            if len(fk.local_columns) != len(fk.remote_columns):
                raise CatalogError(
                    f"Foreign key on '{table}' pairs {len(fk.local_columns)} column(s) with "
                    f"{len(fk.remote_columns)} column(s) of '{fk.remote_table}'",
                    table=table,
                )
            resolved.append(
                ResolvedForeignKey(
                    moniker=moniker,
                    local_columns=fk.local_columns,
                    remote_moniker=remote_moniker,
                    remote_columns=fk.remote_columns,
                )
            )
        fk_info[moniker] = resolved
    return fk_info


class RelationshipBuilder:
    """Append relationship accessors to class descriptors.

    Parameters
    classes
        Descriptors keyed by moniker; every moniker named in the foreign keys
        must be present.
    inflector
        Source of the singular/plural forms used for default names.
    """

    def __init__(self, classes: Mapping[str, ClassDescriptor], inflector: Inflector) -> None:
        self._classes = classes
        self._inflector = inflector
        self._taken: Dict[str, Set[str]] = {}

    def setup_relationships(self, fk_info: Mapping[str, List[ResolvedForeignKey]]) -> None:
        """Add both accessors of every edge in *fk_info*, in deterministic order."""

        for moniker in sorted(fk_info):
            edges = sorted(fk_info[moniker], key=lambda fk: (fk.remote_moniker, fk.local_columns))
            per_remote = Counter(fk.remote_moniker for fk in edges)
            for fk in edges:
                self._add_pair(fk, shared=per_remote[fk.remote_moniker] > 1)

    # ------------------------------------------------------------------

    def _names(self, descriptor: ClassDescriptor) -> Set[str]:
        return self._taken.setdefault(descriptor.moniker, set(descriptor.attribute_names))

    def _to_one_base(self, remote: ClassDescriptor) -> str:
        # Monikers supplied through moniker_map need not be inflectable words.
        if remote.table and default_moniker(remote.table) != remote.moniker:
            return self._inflector.to_singular(_identifier(remote.table.lower()))
        return moniker_to_relationship_name(remote.moniker, RelationshipKind.TO_ONE, self._inflector)

    def _claim(
        self,
        descriptor: ClassDescriptor,
        base: str,
        distinguishing: str,
        shared: bool,
    ) -> Tuple[str, Optional[str]]:
        """Reserve an accessor name on *descriptor*; return it and its suffix."""

        taken = self._names(descriptor)
        base = _identifier(base)
        preferred = f"{base}_{distinguishing}" if shared else base
        name = preferred
        if name in taken and not shared:
            name = f"{base}_{distinguishing}"
        candidate, counter = name, 2
        while candidate in taken:
            candidate = f"{name}_{counter}"
            counter += 1
        if candidate != preferred:
            logger.debug("Accessor '%s' on %s renamed to '%s'", preferred, descriptor.moniker, candidate)
        taken.add(candidate)
        return candidate, (candidate[len(base) + 1:] if candidate != base else None)

    def _add_pair(self, fk: ResolvedForeignKey, shared: bool) -> None:
        local = self._classes[fk.moniker]
        remote = self._classes[fk.remote_moniker]

        if fk.moniker == fk.remote_moniker:
            to_one_base, to_many_base = SELF_TO_ONE_NAME, SELF_TO_MANY_NAME
        else:
            to_one_base = self._to_one_base(remote)
            to_many_base = moniker_to_relationship_name(fk.moniker, RelationshipKind.TO_MANY, self._inflector)

        distinguishing = "by_" + _identifier("_".join(fk.local_columns))
        to_one, to_one_suffix = self._claim(local, to_one_base, distinguishing, shared)
        to_many, to_many_suffix = self._claim(remote, to_many_base, distinguishing, shared)

        pairs = fk.column_pairs
        local.belongs_to(
            to_one,
            fk.remote_moniker,
            {local_col: remote_col for local_col, remote_col in pairs},
            reverse=to_many,
            suffix=to_one_suffix,
        )
        remote.has_many(
            to_many,
            fk.moniker,
            {remote_col: local_col for local_col, remote_col in pairs},
            reverse=to_one,
            suffix=to_many_suffix,
        )
