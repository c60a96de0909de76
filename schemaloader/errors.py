"""Exception taxonomy for schema loading.

Every fatal condition of a run is raised as a subclass of
:class:`SchemaLoaderError` so callers can catch a single type.  Conditions that
only deserve a warning (empty catalog, filtered-out tables, missing primary
keys, deprecated options) are never raised; they are collected as
:class:`schemaloader.data_models.LoadWarning` records instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

__all__ = [
    "SchemaLoaderError",
    "CatalogError",
    "DriverError",
    "DumpError",
    "DumpCollisionError",
    "ExternalClassLoadError",
    "DescriptorFrozenError",
]


class SchemaLoaderError(Exception):
    """Base class for all fatal schema loading errors."""

    pass


class CatalogError(SchemaLoaderError):
    """The catalog reported inconsistent or missing metadata for a selected table."""

    def __init__(self, message: str, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class DriverError(SchemaLoaderError):
    """The injected catalog driver does not provide a required capability."""

    pass


class DumpError(SchemaLoaderError):
    """The dump target cannot be written."""

    pass


class DumpCollisionError(DumpError):
    """A generated artifact already exists and may not be replaced."""

    def __init__(self, path: Union[str, Path], reason: str | None = None) -> None:
        self.path = str(path)
        message = f"Refusing to overwrite existing file '{self.path}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ExternalClassLoadError(SchemaLoaderError):
    """A custom class module exists but could not be imported."""

    pass


class DescriptorFrozenError(SchemaLoaderError):
    """A class descriptor was mutated after it had been handed to the emitter."""

    pass
