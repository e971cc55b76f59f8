"""
CSV Dialect Importer

Entry points that reconcile tabular input against the configured dialects.

CONTRACT
--------
- The first row is the header. The best dialect is the one leaving the
  fewest header columns unrecognised; ties go to the first registered.
- Every column recognised (or force_import) → Complete with one record per
  non-blank row.
- Otherwise → Incomplete with the column diagnostics and pruned rows, so an
  operator can map the remaining columns and re-import.
- Stream entry points never raise. Errors reach on_complete(error, None).
- No state is kept between imports.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Callable, Iterable, Mapping, Optional, Sequence

import pandas as pd

from .dialects import DialectRegistry
from .errors import ConfigurationError, InvalidInputError
from .header_matcher import resolve_header
from .reconciler import ImportOutcome, reconcile
from .row_mapper import ProcessRowCoalesce, default_process_row_coalesce
from .sources import guess_decode, is_valid_row, read_rows

logger = logging.getLogger(__name__)

OnComplete = Callable[[Optional[BaseException], Optional[ImportOutcome]], None]


class DialectImporter:
    """Reconcile header + rows against a fixed set of dialects."""

    def __init__(
        self,
        dialects: Mapping[str, Any],
        process_row_coalesce: Optional[ProcessRowCoalesce] = None,
    ) -> None:
        if process_row_coalesce is not None and not callable(process_row_coalesce):
            raise ConfigurationError(
                reason="invalid process_row_coalesce supplied",
                fix_steps=["Pass a callable (record, aliases, unknowns) -> record, or None."],
            )
        self.registry = DialectRegistry(dialects)
        self.process_row_coalesce = process_row_coalesce or default_process_row_coalesce

    @classmethod
    def from_options(cls, options: Any) -> "DialectImporter":
        """Build an importer from an options mapping (see config.load_options)."""
        if not isinstance(options, Mapping):
            raise ConfigurationError(reason="missing configuration options")
        return cls(
            options.get("dialects"),
            process_row_coalesce=options.get("process_row_coalesce"),
        )

    # ------------------------------------------------------------------
    # Direct data
    # ------------------------------------------------------------------

    def import_from_rows(
        self,
        header: Optional[Sequence[Any]],
        rows: Optional[Iterable[Sequence[Any]]],
        force_import: bool = False,
        dialect: Optional[str] = None,
    ) -> ImportOutcome:
        """
        Reconcile an already tokenized header and rows.

        Parameters
        ----------
        header : Sequence
            Header cells. Empty cells are unmatched.
        rows : Iterable[Sequence]
            Data rows. Need not be rectangular.
        force_import : bool
            Accept unmatched columns; their values go to the unknowns bucket.
        dialect : str, optional
            Evaluate the header against this dialect only.

        Raises
        ------
        InvalidInputError
            If header or rows are missing.
        UnknownDialectError
            If ``dialect`` is not registered.
        """
        if header is None:
            raise InvalidInputError(reason="Invalid header.")
        if rows is None:
            raise InvalidInputError(reason="Missing input rows.")

        candidates = [self.registry.get(dialect)] if dialect is not None else self.registry
        resolved = resolve_header(header, candidates)
        return reconcile(
            self.registry.get(resolved.dialect_name),
            resolved,
            list(rows),
            force_import=force_import,
            process_row_coalesce=self.process_row_coalesce,
        )

    def import_from_data(self, data: Any, force_import: bool = False) -> ImportOutcome:
        """Reconcile a ``{"header": [...], "rows": [[...], ...]}`` mapping."""
        if not isinstance(data, Mapping):
            raise InvalidInputError(reason="Missing input data.")
        if data.get("header") is None:
            raise InvalidInputError(reason="Invalid header.")
        return self.import_from_rows(data["header"], data.get("rows") or [], force_import)

    def import_from_dataframe(
        self,
        frame: pd.DataFrame,
        force_import: bool = False,
        dialect: Optional[str] = None,
    ) -> ImportOutcome:
        """Reconcile a DataFrame. Missing cells become empty strings."""
        header = [str(column) for column in frame.columns]
        rows = frame.astype(object).where(frame.notna(), "").astype(str).values.tolist()
        return self.import_from_rows(header, rows, force_import, dialect)

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def import_from_row_stream(
        self,
        row_source: Iterable[Sequence[Any]],
        on_complete: OnComplete,
        force_import: bool = False,
    ) -> None:
        """
        Consume a row source whose first row is the header.

        Blank rows (a single empty field) are kept as empty rows and dropped
        during reconciliation. ``on_complete`` is called exactly once.
        """
        header: Optional[list] = None
        rows: list[list] = []
        error: Optional[BaseException] = None
        try:
            for row in row_source:
                if header is None:
                    header = list(row)
                else:
                    rows.append(list(row) if is_valid_row(row) else [])
        except Exception as exc:
            logger.warning("[importer] row source failed: %s", exc)
            error = exc

        if error is None:
            try:
                outcome = self.import_from_rows(header or [], rows, force_import)
            except Exception as exc:
                error = exc

        # on_complete is never called from inside a handler.
        if error is not None:
            on_complete(error, None)
        else:
            on_complete(None, outcome)

    def import_from_stream(
        self,
        byte_stream: BinaryIO,
        on_complete: OnComplete,
        force_import: bool = False,
    ) -> None:
        """Read, decode and tokenize a binary stream, then import its rows."""
        error: Optional[BaseException] = None
        try:
            text = guess_decode(byte_stream.read())
        except Exception as exc:
            logger.warning("[importer] byte source failed: %s", exc)
            error = exc

        if error is not None:
            on_complete(error, None)
            return
        self.import_from_row_stream(read_rows(text), on_complete, force_import)


# ---------------------------------------------------------------------------
# CLI / direct execution
# ---------------------------------------------------------------------------


def main(argv: Sequence[str]) -> int:
    from pathlib import Path

    from .config import load_options
    from .errors import CsvImportError

    args = [arg for arg in argv if arg != "--force"]
    if len(args) != 2:
        print("Usage: python -m csvdialect.ingestion.importer <options_json> <data_csv> [--force]")
        return 1

    try:
        importer = DialectImporter.from_options(load_options(args[0]))
    except CsvImportError as e:
        print(str(e))
        return 2

    data_path = Path(args[1])
    if not data_path.exists():
        print(f"Data file not found: {data_path}")
        return 2

    outcomes: list = []
    with data_path.open("rb") as handle:
        importer.import_from_stream(
            handle,
            lambda err, outcome: outcomes.append((err, outcome)),
            force_import="--force" in argv,
        )

    err, outcome = outcomes[0]
    if err is not None:
        print(str(err))
        return 2
    print(outcome.as_text())
    return 0 if outcome.is_complete else 2


if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    sys.exit(main(sys.argv[1:]))
