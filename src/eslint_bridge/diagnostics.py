"""Conversion of ESLint problems into LSP diagnostics.

ESLint reports 1-based lines and columns; LSP ranges are 0-based. The
conversion here is pure and never fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range

SOURCE = "eslint"

# ESLint severity 1 is a warning; 2 (and anything unexpected) is an error.
ESLINT_WARNING = 1


@dataclass(frozen=True)
class AutoFixEdit:
    """A candidate replacement of the half-open offset range ``[start, end)``."""

    start: int
    end: int
    text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AutoFixEdit:
        start, end = data["range"]
        return cls(start=int(start), end=int(end), text=data.get("text") or "")


@dataclass(frozen=True)
class Problem:
    """A single ESLint finding.

    Attributes:
        line: 1-based start line.
        column: 1-based start column.
        severity: ESLint severity (1=warning, 2=error).
        rule_id: Rule that produced the problem, None for parse errors.
        message: Problem description.
        end_line: Optional 1-based end line.
        end_column: Optional 1-based end column.
        fix: Optional candidate edit.
    """

    line: int
    column: int
    severity: int
    rule_id: str | None
    message: str
    end_line: int | None = None
    end_column: int | None = None
    fix: AutoFixEdit | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Problem:
        """Build a Problem from an entry of ESLint's JSON ``messages`` list."""
        fix = data.get("fix")
        return cls(
            line=int(data.get("line") or 0),
            column=int(data.get("column") or 0),
            severity=int(data.get("severity") or 0),
            rule_id=data.get("ruleId"),
            message=data.get("message", ""),
            end_line=data.get("endLine"),
            end_column=data.get("endColumn"),
            fix=AutoFixEdit.from_dict(fix) if fix else None,
        )


def convert_severity(severity: int) -> DiagnosticSeverity:
    if severity == ESLINT_WARNING:
        return DiagnosticSeverity.Warning
    return DiagnosticSeverity.Error


def make_diagnostic(problem: Problem) -> Diagnostic:
    """Convert an ESLint problem into an LSP diagnostic.

    A problem without an end position yields a zero-width range at its start.
    """
    if problem.rule_id is not None:
        message = f"{problem.message} ({problem.rule_id})"
    else:
        message = problem.message
    start_line = max(0, problem.line - 1)
    start_char = max(0, problem.column - 1)
    end_line = max(0, problem.end_line - 1) if problem.end_line is not None else start_line
    end_char = max(0, problem.end_column - 1) if problem.end_column is not None else start_char
    return Diagnostic(
        range=Range(
            start=Position(line=start_line, character=start_char),
            end=Position(line=end_line, character=end_char),
        ),
        message=message,
        severity=convert_severity(problem.severity),
        source=SOURCE,
        code=problem.rule_id,
    )


def compute_key(diagnostic: Diagnostic) -> str:
    """Identity of a diagnostic, used to join it to its recorded fix."""
    start = diagnostic.range.start
    end = diagnostic.range.end
    return f"[{start.line},{start.character},{end.line},{end.character}]-{diagnostic.code}"
