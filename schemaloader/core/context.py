"""Per-run loader state.

Everything one load needs to share between stages lives on a
:class:`LoaderContext` that is passed explicitly through the pipeline; there is
no module-level registry.  Copying a run's state is done with
:meth:`LoaderContext.clone`, which also rebinds the copy to its own registry.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from schemaloader.data_models import LoadWarning, SchemaRegistry, WarningCode
from schemaloader.settings import LoaderOptions

from .naming import Inflector, make_inflector

__all__ = [
    "LoaderContext",
]

logger = logging.getLogger(__name__)


class LoaderContext:
    """Mutable state owned by a single load run."""

    def __init__(
        self,
        options: LoaderOptions,
        driver: Any,
        inflector: Optional[Inflector] = None,
        registry: Optional[SchemaRegistry] = None,
    ) -> None:
        self.options = options
        self.driver = driver
        self.inflector: Inflector = inflector or make_inflector(
            plural=options.effective_inflect_plural,
            singular=options.inflect_singular,
            legacy=options.legacy_default_inflections,
        )
        self.registry = registry or SchemaRegistry(name=options.schema_name)
        self.tables: List[str] = []
        self.warnings: List[LoadWarning] = []
        self._monikers: Dict[str, str] = {}
        self._classes: Dict[str, str] = {}
        self._frozen = False

    @property
    def schema_name(self) -> str:
        return self.registry.name

    # -- moniker map ----------------------------------------------------------

    def register_moniker(self, table: str, moniker: str) -> None:
        """Record *moniker* for *table* under its original and lower-cased names."""
        if self._frozen:
            raise RuntimeError("Moniker map is frozen; register every table before building relationships")
        class_name = f"{self.schema_name}.{moniker}"
        self._monikers[table] = moniker
        self._classes[table] = class_name
        normalized = table.lower()
        if normalized != table:
            self._monikers.setdefault(normalized, moniker)
            self._classes.setdefault(normalized, class_name)

    def freeze_monikers(self) -> None:
        self._frozen = True

    @property
    def monikers(self) -> Mapping[str, str]:
        """Table to moniker mapping; read-only once frozen."""
        return MappingProxyType(self._monikers) if self._frozen else self._monikers

    @property
    def classes(self) -> Mapping[str, str]:
        """Table to fully qualified class name mapping."""
        return MappingProxyType(self._classes) if self._frozen else self._classes

    def moniker_for(self, table: str) -> Optional[str]:
        """Return the moniker of *table*, trying the lower-cased name second."""
        return self._monikers.get(table) or self._monikers.get(table.lower())

    # -- warnings ---------------------------------------------------------------

    def warn(self, code: WarningCode, message: str, table: Optional[str] = None) -> None:
        """Log and collect a non-fatal condition."""
        logger.warning(message)
        self.warnings.append(LoadWarning(code=code, message=message, table=table))

    # -- copying -------------------------------------------------------------------

    def clone(self) -> "LoaderContext":
        """Return an independent copy bound to a deep copy of the registry."""
        copy = LoaderContext(
            self.options,
            self.driver,
            inflector=self.inflector,
            registry=self.registry.model_copy(deep=True),
        )
        copy.tables = list(self.tables)
        copy.warnings = [warning.model_copy() for warning in self.warnings]
        copy._monikers = dict(self._monikers)
        copy._classes = dict(self._classes)
        copy._frozen = self._frozen
        return copy
