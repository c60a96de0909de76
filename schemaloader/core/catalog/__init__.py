"""Catalog drivers: the per-engine source of table metadata."""

from __future__ import annotations

from .base import CATALOG_CAPABILITIES, CatalogDriver, check_driver  # noqa: F401
from .inspector import InspectorCatalogDriver, TableKeys  # noqa: F401
from .mysql import MySQLCatalogDriver  # noqa: F401
