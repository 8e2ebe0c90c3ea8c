"""Selection of non-conflicting fix sets from a registry snapshot.

Candidate edits recorded for a document may overlap. The resolver orders
them deterministically and picks edit sets that can be applied together:
the fixes under the cursor, all non-overlapping fixes of one rule, and all
non-overlapping fixes of the document.

The overlap-free selection is a greedy left-to-right scan. It yields a
maximal non-overlapping subsequence for the ordering below, which is not
necessarily the largest possible one.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, Mapping

from lsprotocol.types import Diagnostic

from eslint_bridge.diagnostics import compute_key
from eslint_bridge.fixes.registry import AutoFix


def _compare(a: AutoFix, b: AutoFix) -> int:
    d = a.edit.start - b.edit.start
    if d != 0:
        return d
    # ESLint edits ending at offset 0 go first on equal starts.
    a_zero = a.edit.end == 0
    b_zero = b.edit.end == 0
    if a_zero != b_zero:
        return -1 if a_zero else 1
    return a.edit.end - b.edit.end


class Fixes:
    """Resolver over the fixes recorded for one document.

    The mapping is copied on construction; later registry updates do not
    affect an existing resolver.
    """

    def __init__(self, fixes: Mapping[str, AutoFix]) -> None:
        self._fixes: dict[str, AutoFix] = dict(fixes)

    @staticmethod
    def overlaps(last: AutoFix | None, new: AutoFix) -> bool:
        """Whether ``new`` overlaps ``last``, the fix preceding it in sort order."""
        return last is not None and last.edit.end > new.edit.start

    def is_empty(self) -> bool:
        return not self._fixes

    def document_version(self) -> int:
        """Document version the fixes were computed against.

        All fixes in one snapshot come from the same validation pass, so any
        entry will do.
        """
        return next(iter(self._fixes.values())).document_version

    def scoped(self, diagnostics: Iterable[Diagnostic]) -> list[AutoFix]:
        """Fixes belonging to the given diagnostics, in the diagnostics' order."""
        result = []
        for diagnostic in diagnostics:
            fix = self._fixes.get(compute_key(diagnostic))
            if fix is not None:
                result.append(fix)
        return result

    def sorted_all(self) -> list[AutoFix]:
        return sorted(self._fixes.values(), key=cmp_to_key(_compare))

    def overlap_free(self) -> list[AutoFix]:
        """All fixes that can be applied together, by greedy scan."""
        return self._select(self.sorted_all())

    def same_rule(self, rule_id: str) -> list[AutoFix]:
        """Non-overlapping fixes proposed by a single rule."""
        return self._select(fix for fix in self.sorted_all() if fix.rule_id == rule_id)

    def _select(self, ordered: Iterable[AutoFix]) -> list[AutoFix]:
        result: list[AutoFix] = []
        last: AutoFix | None = None
        for fix in ordered:
            if not self.overlaps(last, fix):
                result.append(fix)
                last = fix
        return result
