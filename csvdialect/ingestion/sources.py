"""
Default upstream collaborators: byte decoding and CSV tokenizing.

The reconciliation engine only ever sees rows of strings. These helpers
turn an arbitrary byte payload into those rows.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, Iterator, Sequence

from .errors import SourceError

logger = logging.getLogger(__name__)

# Single-byte Western encoding, refined when C1 control bytes are present.
WESTERN_ENCODING: str = "iso-8859-1"
WESTERN_C1_ENCODING: str = "windows-1252"
LEGACY_ENCODING: str = "cp850"
C1_RANGE: range = range(0x80, 0xA0)


def guess_encoding(data: bytes) -> str:
    """
    Guess the encoding of ``data``.

    ASCII when no byte has the high bit set. Otherwise UTF-8 if it decodes,
    else ISO-8859-1, or Windows-1252 when any byte sits in the C1 range.
    """
    if not any(byte > 0x7F for byte in data):
        return "ascii"
    try:
        data.decode("utf-8")
        return "utf-8-sig"
    except UnicodeDecodeError:
        pass
    if any(byte in C1_RANGE for byte in data):
        return WESTERN_C1_ENCODING
    return WESTERN_ENCODING


def guess_decode(data: bytes) -> str:
    """Decode ``data`` to text, falling back to code page 850."""
    if not isinstance(data, (bytes, bytearray)):
        raise SourceError(reason=f"Expected bytes, got {type(data).__name__}")

    encoding = guess_encoding(data)
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError:
        encoding = LEGACY_ENCODING
        text = data.decode(encoding)
    logger.info("[sources] decoded %d bytes as %s", len(data), encoding)
    return text


def read_rows(text: str) -> Iterator[list[str]]:
    """Tokenize CSV text into rows of string fields."""
    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        yield from reader
    except csv.Error as exc:
        raise SourceError(
            reason=f"CSV is not parseable (line {reader.line_num}): {exc}",
            fix_steps=["Verify the file is a valid CSV."],
        ) from exc


def is_valid_row(row: Sequence[Any]) -> bool:
    """A row made of exactly one empty field is a blank line."""
    return not (len(row) == 1 and row[0] == "")
