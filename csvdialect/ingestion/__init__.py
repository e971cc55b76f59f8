"""Dialect resolution and row reconciliation."""

from .dialects import (
    Ambiguous,
    CompiledDialect,
    Dialect,
    DialectRegistry,
    Single,
    build_header_table,
    compile_dialects,
)
from .errors import (
    ConfigurationError,
    CsvImportError,
    InvalidInputError,
    SourceError,
    UnknownDialectError,
)
from .header_matcher import HeaderMatchResult, ResolvedHeader, match_header, resolve_header
from .importer import DialectImporter
from .presence import PresenceAnalysis, analyze_presence
from .reconciler import ColumnsDescriptor, Complete, ImportOutcome, Incomplete, reconcile
from .row_mapper import default_process_row_coalesce, map_row
from .sources import guess_decode, read_rows

__all__ = [
    "Ambiguous",
    "ColumnsDescriptor",
    "CompiledDialect",
    "Complete",
    "ConfigurationError",
    "CsvImportError",
    "Dialect",
    "DialectImporter",
    "DialectRegistry",
    "HeaderMatchResult",
    "ImportOutcome",
    "Incomplete",
    "InvalidInputError",
    "PresenceAnalysis",
    "ResolvedHeader",
    "Single",
    "SourceError",
    "UnknownDialectError",
    "analyze_presence",
    "build_header_table",
    "compile_dialects",
    "default_process_row_coalesce",
    "guess_decode",
    "map_row",
    "match_header",
    "read_rows",
    "reconcile",
    "resolve_header",
]
