"""Generate ORM class descriptions from a relational database catalog.

Typical use::

    from schemaloader import load_schema

    result = load_schema("sqlite:///app.db", schema_name="app.schema", relationships=True)
    result.registry.source("Bar").relationship("foo")

The public API re-exports :class:`SchemaLoader`, :func:`load_schema`,
:class:`LoaderOptions` and the result data models.
"""

from __future__ import annotations

from .data_models import ClassDescriptor, LoadResult, LoadWarning, SchemaRegistry  # noqa: F401
from .loader import SchemaLoader, load_schema  # noqa: F401
from .settings import LoaderOptions, get_settings  # noqa: F401

__version__ = "0.1.0"
