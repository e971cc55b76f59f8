"""
Row Reconciler

Decides whether an import is complete and assembles the outcome.

Procedure (no state survives between calls; inputs are never mutated):
1. Drop rows that are wholly empty.
2. Widen the header with anonymous unmatched columns up to the widest row.
3. Forget unmatched columns that carry no data in any row.
4. Complete when forced or when no unmatched column is left.
5. Complete  → map every row (or return no records when there is no data).
6. Incomplete → prune columns without data, pad rows to the pruned width
   and describe present / missing / unmatched columns.

Public API:
  reconcile(dialect, header, raw_rows, force_import=False, process_row_coalesce=...)
  Complete, Incomplete, ColumnsDescriptor
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from .dialects import CompiledDialect
from .header_matcher import ResolvedHeader
from .presence import analyze_presence
from .row_mapper import ProcessRowCoalesce, Record, default_process_row_coalesce, map_row

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Complete:
    """Every row was mapped to a record."""
    row_objects: list[Record] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return True

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.row_objects)

    def as_text(self) -> str:
        lines = [
            "═" * 60,
            "CSV IMPORT — COMPLETE",
            "═" * 60,
            f"Records         : {len(self.row_objects)}",
        ]
        unknown_rows = sum(1 for record in self.row_objects if "unknowns" in record)
        if unknown_rows:
            lines.append(f"With unknowns   : {unknown_rows}")
        lines.append("═" * 60)
        return "\n".join(lines)


@dataclass(frozen=True)
class ColumnsDescriptor:
    dialect_name: Optional[str]
    present: list[Optional[str]]
    missing: list[str]
    unmatched: list[Optional[str]]


@dataclass(frozen=True)
class Incomplete:
    """
    Some columns carrying data were not recognised.

    ``rows`` only keep the columns that carry data and are padded with None
    to ``len(columns.present)``.
    """
    columns: ColumnsDescriptor
    rows: list[list[Any]] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return False

    def column_labels(self) -> list[str]:
        """Display label per pruned column: key, else header text, else position."""
        labels: list[str] = []
        unmatched = iter(self.columns.unmatched)
        for position, key in enumerate(self.columns.present):
            if key is not None:
                labels.append(key)
                continue
            original = next(unmatched, None)
            labels.append(original if original else f"column_{position}")
        return labels

    def rebuild_header(self, assignments: Mapping[int, str]) -> list[Optional[str]]:
        """
        Header row for re-importing ``rows`` after manual resolution.

        ``assignments`` maps the position of an entry in ``columns.unmatched``
        to the canonical key the operator chose for it. Unassigned columns
        keep their original header text.
        """
        header: list[Optional[str]] = []
        unmatched_position = 0
        for key in self.columns.present:
            if key is not None:
                header.append(key)
                continue
            if unmatched_position in assignments:
                header.append(assignments[unmatched_position])
            elif unmatched_position < len(self.columns.unmatched):
                header.append(self.columns.unmatched[unmatched_position])
            else:
                header.append(None)
            unmatched_position += 1
        return header

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.column_labels(), dtype=object)

    def as_text(self) -> str:
        lines = [
            "═" * 60,
            "CSV IMPORT — INCOMPLETE (manual column resolution required)",
            "═" * 60,
            f"Dialect         : {self.columns.dialect_name}",
            f"Rows            : {len(self.rows)}",
            "",
            "PRESENT COLUMNS",
        ]
        for label, key in zip(self.column_labels(), self.columns.present):
            lines.append(f"  {label}" if key is not None else f"  ? {label}")
        lines += ["", "UNMATCHED COLUMNS"]
        for original in self.columns.unmatched:
            lines.append(f"  ⚑ {original if original is not None else '(no header)'}")
        if self.columns.missing:
            lines += ["", "RECOGNISED BUT EMPTY"]
            for key in self.columns.missing:
                lines.append(f"  {key}")
        lines.append("═" * 60)
        return "\n".join(lines)


ImportOutcome = Union[Complete, Incomplete]


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def is_empty_row(row: Sequence[Any]) -> bool:
    return len(row) == 0 or not any(row)


def _filled_width(row: Sequence[Any]) -> int:
    # Trailing empty fields are reported as absent (None).
    width = len(row)
    while width and not row[width - 1]:
        width -= 1
    return width


def reconcile(
    dialect: CompiledDialect,
    header: ResolvedHeader,
    raw_rows: Sequence[Sequence[Any]],
    force_import: bool = False,
    process_row_coalesce: ProcessRowCoalesce = default_process_row_coalesce,
) -> ImportOutcome:
    rows = [list(row) for row in raw_rows if not is_empty_row(row)]
    presence = analyze_presence(rows)

    header = header.extended_to(presence.column_count)
    unmatched = {
        index: original
        for index, original in sorted(header.unmatched_by_index.items())
        if index in presence.present_indices
    }
    logger.info(
        "[reconciler] %s: %d rows kept, %d blank rows dropped, %d unmatched columns with data",
        dialect.name, len(rows), len(raw_rows) - len(rows), len(unmatched),
    )

    if force_import or not unmatched:
        if unmatched:
            logger.warning(
                "[reconciler] %s: forced import, unmatched columns stored as unknowns: %s",
                dialect.name, list(unmatched.values()),
            )
        if rows and presence.present_indices:
            records = [map_row(dialect, header, row, process_row_coalesce) for row in rows]
        else:
            records = []
        return Complete(row_objects=records)

    kept = sorted(presence.present_indices)
    present = [header.matched_names[index] for index in kept]
    pruned_rows = []
    for row in rows:
        width = _filled_width(row)
        pruned = [row[index] for index in kept if index < width]
        pruned.extend([None] * (len(present) - len(pruned)))
        pruned_rows.append(pruned)

    return Incomplete(
        columns=ColumnsDescriptor(
            dialect_name=header.dialect_name,
            present=present,
            missing=[
                name
                for name in header.matched_names
                if name is not None and name not in present
            ],
            unmatched=list(unmatched.values()),
        ),
        rows=pruned_rows,
    )
