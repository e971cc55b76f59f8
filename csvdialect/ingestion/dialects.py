"""
Dialect Registry

Compiles configured dialects into header lookup tables.

RULES:
- Matching is exact string matching. No case folding, no stripping.
- A dialect without a language map has fixed columns: only the canonical
  names themselves are accepted.
- Within one dialect a spelling declared under two canonical keys becomes
  an ordered list of candidates. Spellings are never overwritten.
- Tables are built once at configuration time and never mutated.

Public API:
  build_header_table(column_map, language_map=None) -> dict[str, HeaderEntry]
  compile_dialects(dialects) -> list[CompiledDialect]
  DialectRegistry(dialects)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union

from .errors import ConfigurationError, UnknownDialectError

logger = logging.getLogger(__name__)

# A mapper is None (copy verbatim), a target key (rename) or a callable
# that mutates the record itself.
ColumnMapper = Union[None, str, Callable[[dict, str], None]]


# ---------------------------------------------------------------------------
# Header table entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Single:
    """A spelling that resolves to exactly one canonical key."""
    key: str

    def candidate(self, occurrence: int) -> str:
        return self.key


@dataclass(frozen=True)
class Ambiguous:
    """
    A spelling declared under several canonical keys of one dialect.

    The n-th physical occurrence of the spelling in a header row binds to
    the n-th candidate, in declaration order.
    """
    keys: tuple[str, ...]

    def candidate(self, occurrence: int) -> str:
        return self.keys[occurrence % len(self.keys)]


HeaderEntry = Union[Single, Ambiguous]


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dialect:
    """Configured dialect: canonical columns plus optional alternate names."""
    column_map: Mapping[str, ColumnMapper]
    language_map: Optional[Mapping[str, Sequence[str]]] = None


@dataclass(frozen=True)
class CompiledDialect:
    name: str
    column_map: Mapping[str, ColumnMapper]
    header_table: Mapping[str, HeaderEntry] = field(repr=False)
    has_fixed_columns: bool

    def mapper_for(self, column_name: Any) -> ColumnMapper:
        """Return the configured mapper for a resolved column name."""
        return self.column_map.get(column_name)

    @property
    def ambiguous_spellings(self) -> list[str]:
        return [
            spelling
            for spelling, entry in self.header_table.items()
            if isinstance(entry, Ambiguous)
        ]


def _bind(table: dict[str, HeaderEntry], spelling: str, key: str) -> None:
    entry = table.get(spelling)
    if entry is None:
        table[spelling] = Single(key)
    elif isinstance(entry, Single):
        if entry.key != key:
            table[spelling] = Ambiguous((entry.key, key))
    elif key not in entry.keys:
        table[spelling] = Ambiguous(entry.keys + (key,))


def build_header_table(
    column_map: Mapping[str, ColumnMapper],
    language_map: Optional[Mapping[str, Sequence[str]]] = None,
) -> dict[str, HeaderEntry]:
    """
    Build the spelling → canonical key lookup for one dialect.

    Parameters
    ----------
    column_map : Mapping[str, ColumnMapper]
        Canonical column keys and their mappers.
    language_map : Mapping[str, Sequence[str]], optional
        Alternate spellings per canonical key. When None, only the canonical
        names are accepted (fixed columns).

    Returns
    -------
    dict[str, HeaderEntry]
        ``Single`` for unambiguous spellings, ``Ambiguous`` where the same
        spelling was declared under more than one canonical key.
    """
    table: dict[str, HeaderEntry] = {}
    if language_map is None:
        for key in column_map:
            _bind(table, key, key)
        return table

    keys = list(column_map)
    keys.extend(key for key in language_map if key not in column_map)
    for key in keys:
        _bind(table, key, key)
        for spelling in language_map.get(key, ()):
            _bind(table, spelling, key)
    return table


# ---------------------------------------------------------------------------
# Validation + compilation
# ---------------------------------------------------------------------------


def _coerce_dialect(name: str, config: Any) -> Dialect:
    if isinstance(config, Dialect):
        column_map, language_map = config.column_map, config.language_map
    elif isinstance(config, Mapping):
        column_map = config.get("column_map")
        language_map = config.get("language_map")
    else:
        raise ConfigurationError(
            reason=f"Dialect '{name}' must be a mapping or a Dialect",
            fix_steps=["Provide {'column_map': {...}, 'language_map': {...}} for every dialect."],
        )

    if not isinstance(column_map, Mapping):
        raise ConfigurationError(
            reason=f"Dialect '{name}' has no column_map",
            fix_steps=[f"Add a 'column_map' mapping to dialect '{name}'."],
        )
    for key, mapper in column_map.items():
        if mapper is not None and not isinstance(mapper, str) and not callable(mapper):
            raise ConfigurationError(
                reason=(
                    f"Dialect '{name}': mapper for column '{key}' must be None, "
                    f"a target key or a callable (got {type(mapper).__name__})"
                ),
            )

    if language_map is not None:
        if not isinstance(language_map, Mapping):
            raise ConfigurationError(
                reason=f"Dialect '{name}': language_map must be a mapping",
            )
        for key, spellings in language_map.items():
            if isinstance(spellings, str) or not isinstance(spellings, Sequence):
                raise ConfigurationError(
                    reason=f"Dialect '{name}': alternate names for '{key}' must be a list",
                    fix_steps=[f"Write '{key}': [\"...\"] even for a single alternate name."],
                )

    return Dialect(column_map=column_map, language_map=language_map)


def compile_dialect(name: str, config: Any) -> CompiledDialect:
    dialect = _coerce_dialect(name, config)
    compiled = CompiledDialect(
        name=name,
        column_map=dict(dialect.column_map),
        header_table=build_header_table(dialect.column_map, dialect.language_map),
        has_fixed_columns=dialect.language_map is None,
    )
    logger.info(
        "[dialects] %s: %d spellings, fixed columns=%s, ambiguous=%s",
        name,
        len(compiled.header_table),
        compiled.has_fixed_columns,
        compiled.ambiguous_spellings,
    )
    return compiled


def compile_dialects(dialects: Any) -> list[CompiledDialect]:
    """
    Compile every configured dialect, preserving registration order.

    Raises ConfigurationError if ``dialects`` is missing, not a mapping,
    empty, or contains an invalid dialect.
    """
    if not isinstance(dialects, Mapping) or not dialects:
        raise ConfigurationError(
            reason="no dialects specified",
            fix_steps=["Pass a mapping of dialect name → {'column_map': ..., 'language_map': ...}."],
        )
    return [compile_dialect(name, config) for name, config in dialects.items()]


class DialectRegistry:
    """Ordered, read-only collection of compiled dialects."""

    def __init__(self, dialects: Any) -> None:
        self._dialects = tuple(compile_dialects(dialects))

    def __iter__(self) -> Iterator[CompiledDialect]:
        return iter(self._dialects)

    def __len__(self) -> int:
        return len(self._dialects)

    @property
    def names(self) -> list[str]:
        return [dialect.name for dialect in self._dialects]

    def get(self, name: Optional[str]) -> CompiledDialect:
        for dialect in self._dialects:
            if dialect.name == name:
                return dialect
        raise UnknownDialectError(
            reason=f"Invalid CSV dialect requested: {name!r}",
            fix_steps=[f"Use one of the registered dialects: {', '.join(self.names)}."],
            dialect_name=name,
        )
