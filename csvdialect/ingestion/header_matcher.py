"""
Header Matcher

Evaluates one header row against every compiled dialect and picks the
dialect that leaves the fewest columns unrecognised.

RULES:
- Empty header cells are treated as None and never match.
- An ambiguous spelling binds its n-th occurrence in the row to its n-th
  candidate key. Occurrence counters are local to a single call.
- Fewest unmatched columns wins. Ties keep the earliest registered dialect.
- Same input always produces same output.

Public API:
  match_header(table, header_row) -> HeaderMatchResult
  resolve_header(header_row, dialects) -> ResolvedHeader
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from .dialects import CompiledDialect, HeaderEntry
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeaderMatchResult:
    """Outcome of evaluating one header row against one dialect."""
    matched_names: tuple[Optional[str], ...]
    unmatched_by_index: Mapping[int, Optional[str]] = field(default_factory=dict)

    @property
    def null_count(self) -> int:
        return sum(1 for name in self.matched_names if name is None)

    @property
    def matched_by_index(self) -> dict[int, str]:
        return {
            index: name
            for index, name in enumerate(self.matched_names)
            if name is not None
        }


@dataclass(frozen=True)
class ResolvedHeader(HeaderMatchResult):
    """The winning match, with the dialect name and the untouched header row."""
    dialect_name: Optional[str] = None
    original_columns: tuple[Any, ...] = ()

    def extended_to(self, width: int) -> "ResolvedHeader":
        """
        Return a copy padded with anonymous unmatched columns up to ``width``.

        Columns added this way have no header text.
        """
        extra = width - len(self.matched_names)
        if extra <= 0:
            return self
        unmatched = dict(self.unmatched_by_index)
        for index in range(len(self.matched_names), width):
            unmatched[index] = None
        return ResolvedHeader(
            matched_names=self.matched_names + (None,) * extra,
            unmatched_by_index=unmatched,
            dialect_name=self.dialect_name,
            original_columns=self.original_columns,
        )

    def original_text(self, index: int) -> Any:
        if index < len(self.original_columns):
            return self.original_columns[index]
        return None


def match_header(
    table: Mapping[str, HeaderEntry],
    header_row: Iterable[Any],
) -> HeaderMatchResult:
    """
    Match a header row against one dialect's lookup table.

    Parameters
    ----------
    table : Mapping[str, HeaderEntry]
        Lookup built by build_header_table().
    header_row : Iterable
        Raw header cells. Empty strings and None are unmatched.

    Returns
    -------
    HeaderMatchResult
        One slot per header cell (canonical key or None) plus the original
        text of every unmatched cell, keyed by column index.
    """
    matched: list[Optional[str]] = []
    unmatched: dict[int, Optional[str]] = {}
    occurrences: dict[str, int] = {}

    for index, text in enumerate(header_row):
        name = text or None
        entry = table.get(name) if name is not None else None
        if entry is None:
            matched.append(None)
            unmatched[index] = name
            continue
        seen = occurrences.get(name, 0)
        occurrences[name] = seen + 1
        matched.append(entry.candidate(seen))

    return HeaderMatchResult(matched_names=tuple(matched), unmatched_by_index=unmatched)


def resolve_header(
    header_row: Sequence[Any],
    dialects: Iterable[CompiledDialect],
) -> ResolvedHeader:
    """Pick the dialect whose match leaves the fewest columns unrecognised."""
    best: Optional[HeaderMatchResult] = None
    best_name: Optional[str] = None

    for dialect in dialects:
        contender = match_header(dialect.header_table, header_row)
        logger.debug(
            "[header_matcher] %s: %d of %d columns unmatched",
            dialect.name, contender.null_count, len(contender.matched_names),
        )
        if best is None or contender.null_count < best.null_count:
            best, best_name = contender, dialect.name

    if best is None:
        raise ConfigurationError(reason="no dialects specified")

    logger.info(
        "[header_matcher] header resolved to dialect '%s' (%d unmatched)",
        best_name, best.null_count,
    )
    return ResolvedHeader(
        matched_names=best.matched_names,
        unmatched_by_index=best.unmatched_by_index,
        dialect_name=best_name,
        original_columns=tuple(header_row),
    )
