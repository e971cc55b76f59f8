"""
Importer options loaded from JSON.

The file holds the same options object DialectImporter.from_options()
accepts:

  {
    "dialects": {
      "standard": {
        "column_map": {"First Name": null, "Other Name": "Middle Name"},
        "language_map": {"First Name": ["Prénom"]}
      }
    }
  }

Callable mappers and coalesce hooks cannot be expressed in JSON; pass
those programmatically.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

from .errors import ConfigurationError


def load_options(path: Union[str, Path]) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            reason=f"Options file not found: {path}",
            fix_steps=[f"Verify the path is correct: {path}"],
        )
    try:
        options = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            reason=f"Options file is not valid JSON: {path}",
            fix_steps=[f"Parse error: {exc}"],
        ) from exc
    if not isinstance(options, dict):
        raise ConfigurationError(reason="missing configuration options")
    return options
