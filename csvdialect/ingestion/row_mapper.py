"""
Row Mapper

Turns one raw data row into a record using the winning dialect's column map.

For each non-empty value, by column index:
- mapper is a callable      → mapper(record, value); the callable owns the record
- mapper is a target key    → assign, or fold into a list if the key is taken
- no mapper, recognised     → assign under the canonical key; remember the
                              original header text in ``aliases``
- unrecognised column       → assign under the integer column index; remember
                              the original header text in ``unknowns``

The finished record goes through the coalesce hook, which returns the
final record.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence, Union

from .dialects import CompiledDialect
from .header_matcher import ResolvedHeader

Record = dict[Union[str, int], Any]
ProcessRowCoalesce = Callable[[Record, dict, dict], Record]

UNKNOWNS_KEY: str = "unknowns"


def default_process_row_coalesce(record: Record, aliases: dict, unknowns: dict) -> Record:
    """
    Move every unknown value into a nested ``unknowns`` bucket.

    Bucket keys are the original header text when there was one, else the
    column index. The index-keyed entries are removed from the top level.
    """
    if unknowns:
        bucket: dict = {}
        for index, original in unknowns.items():
            bucket[original if original else index] = record.pop(index)
        record[UNKNOWNS_KEY] = bucket
    return record


def _fold(record: Record, key: Any, value: str) -> None:
    if key not in record:
        record[key] = value
        return
    existing = record[key]
    if not isinstance(existing, list):
        existing = record[key] = [existing]
    existing.append(value)


def map_row(
    dialect: CompiledDialect,
    header: ResolvedHeader,
    raw_row: Sequence[Any],
    process_row_coalesce: ProcessRowCoalesce = default_process_row_coalesce,
) -> Record:
    names_by_index = header.matched_by_index
    record: Record = {}
    aliases: dict = {}
    unknowns: dict = {}

    for index, value in enumerate(raw_row):
        if not value:
            continue
        if isinstance(value, str):
            value = value.replace("\r\n", "\n")

        column_name = names_by_index.get(index)
        if column_name is None:
            record[index] = value
            unknowns[index] = header.original_text(index)
            continue

        mapper = dialect.mapper_for(column_name)
        if callable(mapper):
            mapper(record, value)
        elif mapper:
            _fold(record, mapper, value)
        else:
            _fold(record, column_name, value)
            aliases[column_name] = header.original_text(index)

    return process_row_coalesce(record, aliases, unknowns)
