"""Lint engines and their per-document resolution."""

from __future__ import annotations

from eslint_bridge.engine.eslint import (
    DocumentReport,
    EslintEngine,
    LintEngine,
    LintReport,
    build_arguments,
    parse_report,
)
from eslint_bridge.engine.loader import (
    EngineResolver,
    LibraryEntry,
    LibraryLoader,
    LibraryState,
)

__all__ = [
    # Engine
    "DocumentReport",
    "EslintEngine",
    "LintEngine",
    "LintReport",
    "build_arguments",
    "parse_report",
    # Loader
    "EngineResolver",
    "LibraryEntry",
    "LibraryLoader",
    "LibraryState",
]
