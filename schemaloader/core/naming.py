"""Table name -> moniker translation and relationship naming.

Monikers are the class identifiers generated for tables.  The default
translation lower-cases the table name, splits it on every run of
non-alphanumeric characters (underscore included) and capitalises each
chunk::

    luser       -> Luser
    luser_group -> LuserGroup
    luser-opts  -> LuserOpts

Relationship accessor names are inflected from the lower-cased moniker.  The
English inflection itself is delegated to the :mod:`inflect` package behind
the small :class:`Inflector` protocol so callers can inject their own.
"""

from __future__ import annotations

import keyword
import re
from typing import Callable, Mapping, Optional, Protocol, Union

import inflect

from schemaloader.data_models import RelationshipKind

__all__ = [
    "Inflector",
    "EnglishInflector",
    "LegacyInflector",
    "OverrideInflector",
    "default_moniker",
    "table_to_moniker",
    "moniker_to_relationship_name",
    "moniker_to_module_name",
    "make_inflector",
]

NameOverride = Union[Mapping[str, str], Callable[[str], Optional[str]]]

_CHUNK_SEPARATOR = re.compile(r"[\W_]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _apply_override(override: Optional[NameOverride], name: str) -> Optional[str]:
    """Return the override for *name*, or ``None`` when it yields nothing."""
    if override is None:
        return None
    if callable(override):
        result = override(name)
    else:
        result = override.get(name)
    return result or None


def default_moniker(table: str) -> str:
    """Return the default moniker for *table*."""
    chunks = _CHUNK_SEPARATOR.split(table.lower())
    return "".join(chunk[:1].upper() + chunk[1:] for chunk in chunks if chunk)


def table_to_moniker(table: str, moniker_map: Optional[NameOverride] = None) -> str:
    """Translate *table* to its moniker, honouring *moniker_map* when it yields a name."""
    return _apply_override(moniker_map, table) or default_moniker(table)


def moniker_to_module_name(moniker: str) -> str:
    """Return the snake_case module name used for *moniker* in dumps."""
    name = _CHUNK_SEPARATOR.sub("_", _CAMEL_BOUNDARY.sub("_", moniker)).strip("_").lower()
    return f"{name}_" if keyword.iskeyword(name) else name


class Inflector(Protocol):
    """Singular/plural conversion of English words."""

    def to_plural(self, word: str) -> str: ...

    def to_singular(self, word: str) -> str: ...


class EnglishInflector:
    """Default inflector backed by :mod:`inflect` noun rules.

    Words already in the requested number are returned unchanged.
    """

    def __init__(self) -> None:
        self._engine = inflect.engine()

    def _is_plural(self, word: str) -> bool:
        # ``singular_noun`` also strips a trailing "s" from singular words
        # ("address" -> "addres"); only trust it when the result pluralizes back.
        singular = self._engine.singular_noun(word)
        return bool(singular) and self._engine.plural_noun(singular) == word

    def to_plural(self, word: str) -> str:
        if self._is_plural(word):
            return word
        return self._engine.plural_noun(word) or word

    def to_singular(self, word: str) -> str:
        if self._is_plural(word):
            return self._engine.singular_noun(word)
        return word


class LegacyInflector:
    """Inflections used before noun-aware rules: generic plural, no singular."""

    def __init__(self) -> None:
        self._engine = inflect.engine()

    def to_plural(self, word: str) -> str:
        return self._engine.plural(word) or word

    def to_singular(self, word: str) -> str:
        return word


class OverrideInflector:
    """Wrap *base* with per-word plural/singular overrides.

    An override is a mapping keyed by the word being inflected, or a callable
    receiving it.  A missing key or falsy result falls back to *base*.
    """

    def __init__(
        self,
        base: Inflector,
        plural: Optional[NameOverride] = None,
        singular: Optional[NameOverride] = None,
    ) -> None:
        self._base = base
        self._plural = plural
        self._singular = singular

    def to_plural(self, word: str) -> str:
        return _apply_override(self._plural, word) or self._base.to_plural(word)

    def to_singular(self, word: str) -> str:
        return _apply_override(self._singular, word) or self._base.to_singular(word)


def make_inflector(
    plural: Optional[NameOverride] = None,
    singular: Optional[NameOverride] = None,
    legacy: bool = False,
) -> Inflector:
    """Build the inflector for a run from the configured overrides."""

    base: Inflector = LegacyInflector() if legacy else EnglishInflector()
    if plural is None and singular is None:
        return base
    return OverrideInflector(base, plural=plural, singular=singular)


def moniker_to_relationship_name(
    moniker: str,
    kind: RelationshipKind,
    inflector: Inflector,
) -> str:
    """Return the default accessor name pointing at *moniker*."""

    word = moniker.lower()
    if kind is RelationshipKind.TO_MANY:
        return inflector.to_plural(word)
    return inflector.to_singular(word)
