"""
Presence analysis over a block of data rows.

Rows are not assumed to be rectangular. The frame built here pads short
rows with missing values, so its width is the widest row observed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

import pandas as pd


@dataclass(frozen=True)
class PresenceAnalysis:
    column_count: int
    present_indices: frozenset[int] = field(default_factory=frozenset)


def rows_frame(rows: Sequence[Sequence[Any]]) -> pd.DataFrame:
    """Load ragged rows into an object frame, padding short rows with None."""
    return pd.DataFrame([list(row) for row in rows], dtype=object)


def analyze_presence(rows: Sequence[Sequence[Any]]) -> PresenceAnalysis:
    """
    Return the true column count and the indices that carry data.

    A column is present when at least one row has a non-empty value at
    that index. Absent columns that were also unmatched can be dropped
    without asking anybody.
    """
    frame = rows_frame(rows)
    if frame.empty:
        return PresenceAnalysis(column_count=frame.shape[1])

    filled = frame.notna() & frame.astype(str).ne("")
    present = filled.any(axis=0)
    return PresenceAnalysis(
        column_count=frame.shape[1],
        present_indices=frozenset(int(index) for index, flag in present.items() if flag),
    )
