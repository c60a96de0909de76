"""Selection of the tables a load operates on."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Union

from schemaloader.data_models import LoadWarning, WarningCode

__all__ = [
    "select_tables",
]

logger = logging.getLogger(__name__)

PatternLike = Union[str, "re.Pattern[str]"]


def _compile(pattern: Optional[PatternLike]) -> Optional["re.Pattern[str]"]:
    if pattern is None or isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


def _warn(warnings: Optional[List[LoadWarning]], code: WarningCode, message: str) -> None:
    logger.warning(message)
    if warnings is not None:
        warnings.append(LoadWarning(code=code, message=message))


def select_tables(
    all_tables: Iterable[str],
    include_pattern: Optional[PatternLike] = None,
    exclude_pattern: Optional[PatternLike] = None,
    warnings: Optional[List[LoadWarning]] = None,
) -> List[str]:
    """Return the sorted tables that pass the include/exclude filters.

    Patterns are matched anywhere in the table name (``re.search``).  An empty
    catalog or a filter that removes every table is reported through
    *warnings* and yields an empty list.
    """

    tables = sorted(set(all_tables))
    if not tables:
        _warn(warnings, WarningCode.NO_TABLES, "No tables found in database, nothing to load")
        return []

    include = _compile(include_pattern)
    exclude = _compile(exclude_pattern)
    if include is not None:
        tables = [table for table in tables if include.search(table)]
    if exclude is not None:
        tables = [table for table in tables if not exclude.search(table)]

    if not tables:
        _warn(
            warnings,
            WarningCode.ALL_EXCLUDED,
            "All tables excluded by constraint/exclude, nothing to load",
        )
    return tables
