"""Lookup of optional hand-written modules that customise generated classes.

A missing module is the normal case and yields ``None``.  A module that exists
but fails to import aborts the load.
"""

from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import Callable, Optional

from schemaloader.errors import ExternalClassLoadError

__all__ = [
    "ExtensionLookup",
    "import_extension",
]

logger = logging.getLogger(__name__)

ExtensionLookup = Callable[[str], Optional[ModuleType]]


def _is_missing(exc: ModuleNotFoundError, module_name: str) -> bool:
    """True if *exc* reports *module_name* itself (or a parent package) as absent."""
    missing = exc.name or ""
    return bool(missing) and (module_name == missing or module_name.startswith(missing + "."))


def import_extension(module_name: str) -> Optional[ModuleType]:
    """Import *module_name* if it exists."""
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as exc:
        if _is_missing(exc, module_name):
            return None
        raise ExternalClassLoadError(
            f"Failed to load external class definition for '{module_name}': {exc}"
        ) from exc
    except Exception as exc:
        raise ExternalClassLoadError(
            f"Failed to load external class definition for '{module_name}': {exc}"
        ) from exc
    logger.debug("Loaded external class definition for '%s'", module_name)
    return module
