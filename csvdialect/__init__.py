"""Reconcile loosely structured CSV input against known column dialects."""

from .ingestion import (
    Ambiguous,
    ColumnsDescriptor,
    Complete,
    ConfigurationError,
    CsvImportError,
    Dialect,
    DialectImporter,
    DialectRegistry,
    Incomplete,
    InvalidInputError,
    Single,
    SourceError,
    UnknownDialectError,
    default_process_row_coalesce,
)

__all__ = [
    "Ambiguous",
    "ColumnsDescriptor",
    "Complete",
    "ConfigurationError",
    "CsvImportError",
    "Dialect",
    "DialectImporter",
    "DialectRegistry",
    "Incomplete",
    "InvalidInputError",
    "Single",
    "SourceError",
    "UnknownDialectError",
    "default_process_row_coalesce",
]
