"""Per-document registry of candidate fixes.

The registry maps a document URI to the fixes recorded for it during the
last validation pass, keyed by the identity of the diagnostic each fix
belongs to. Code actions and the all-fixes request read from it.
"""

from __future__ import annotations

from dataclasses import dataclass

from lsprotocol.types import Diagnostic

from eslint_bridge.diagnostics import AutoFixEdit, Problem, compute_key
from eslint_bridge.documents import TextDocument


@dataclass(frozen=True)
class AutoFix:
    """A recorded fix for one diagnostic.

    Attributes:
        label: Title shown for the single-fix code action.
        document_version: Document version the edit was computed against.
        rule_id: Rule that proposed the fix.
        edit: The replacement itself.
    """

    label: str
    document_version: int
    rule_id: str
    edit: AutoFixEdit


class FixRegistry:
    """Registry that maps document URIs to their recorded fixes.

    A document's entry is rebuilt on every validation pass: cleared first,
    then repopulated with one record per surfaced diagnostic.

    Example:
        >>> registry = FixRegistry()
        >>> registry.clear(document.uri)
        >>> registry.record(document, diagnostic, problem)
        >>> fixes = registry.lookup(document.uri)
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._fixes: dict[str, dict[str, AutoFix]] = {}

    def clear(self, uri: str) -> None:
        """Drop every fix recorded for a document.

        Args:
            uri: Document URI.
        """
        self._fixes.pop(uri, None)

    def record(self, document: TextDocument, diagnostic: Diagnostic, problem: Problem) -> None:
        """Record the fix a problem carries, if any.

        Problems without a fix or without a rule id are ignored. A fix
        recorded under an existing key replaces the previous one.

        Args:
            document: Document the problem was reported for.
            diagnostic: Diagnostic converted from the problem.
            problem: ESLint problem carrying the candidate edit.
        """
        if problem.fix is None or not problem.rule_id:
            return
        fixes = self._fixes.setdefault(document.uri, {})
        fixes[compute_key(diagnostic)] = AutoFix(
            label=f"Fix this {problem.rule_id} problem",
            document_version=document.version,
            rule_id=problem.rule_id,
            edit=problem.fix,
        )

    def lookup(self, uri: str) -> dict[str, AutoFix] | None:
        """Get the fixes recorded for a document.

        Args:
            uri: Document URI.

        Returns:
            Mapping of diagnostic key to fix, or None if nothing was recorded.
        """
        return self._fixes.get(uri)

    def clear_all(self) -> None:
        """Drop every recorded fix."""
        self._fixes.clear()

    def __len__(self) -> int:
        return len(self._fixes)
