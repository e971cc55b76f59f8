"""
Import error taxonomy.

Only structural problems are errors. Ragged rows, unmatched columns and
blank rows are data: they come back as an Incomplete outcome or are
dropped, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CsvImportError(Exception):
    """Structured halt error with operator fix steps."""
    reason: str
    fix_steps: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.fix_steps:
            return self.reason
        lines = [
            "═" * 60,
            "CSV IMPORT HALT",
            "═" * 60,
            f"Reason          : {self.reason}",
            "Fix Steps:",
        ]
        for i, step in enumerate(self.fix_steps, 1):
            lines.append(f"  {i}. {step}")
        lines.append("═" * 60)
        return "\n".join(lines)


class ConfigurationError(CsvImportError):
    """Invalid importer configuration. Raised at construction time."""


class InvalidInputError(CsvImportError):
    """Structurally invalid input passed to a direct-data entry point."""


@dataclass
class UnknownDialectError(CsvImportError):
    """A dialect name that is not present in the registry was requested."""
    dialect_name: Optional[str] = None


class SourceError(CsvImportError):
    """Failure surfaced by the upstream byte or row source."""
