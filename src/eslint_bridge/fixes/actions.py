"""Code actions and the all-fixes response built from recorded fixes."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from lsprotocol.types import Command, Diagnostic, Range, TextEdit

from eslint_bridge.documents import TextDocument
from eslint_bridge.fixes.registry import AutoFix
from eslint_bridge.fixes.resolver import Fixes
from eslint_bridge.protocol import APPLY_ALL_FIXES, APPLY_SAME_FIXES, APPLY_SINGLE_FIX


def create_text_edit(document: TextDocument, fix: AutoFix) -> TextEdit:
    """Convert a fix's offset range into a text edit against the document."""
    return TextEdit(
        range=Range(
            start=document.position_at(fix.edit.start),
            end=document.position_at(fix.edit.end),
        ),
        new_text=fix.edit.text or "",
    )


def build_code_actions(
    document: TextDocument,
    fixes: Mapping[str, AutoFix] | None,
    diagnostics: Sequence[Diagnostic],
) -> list[Command]:
    """Build the fix commands offered for the diagnostics in context.

    One command is produced per fix under the cursor. When there is at
    least one, aggregate commands are added for all fixes of the last
    scoped fix's rule and for all fixes of the document, each only when it
    would apply more than one edit.

    Args:
        document: The document as currently open in the editor.
        fixes: Fixes recorded for the document, if any.
        diagnostics: Diagnostics sent with the code action request.

    Returns:
        Commands to offer, possibly empty.
    """
    result: list[Command] = []
    if not fixes:
        return result
    resolver = Fixes(fixes)
    if resolver.is_empty():
        return result

    uri = document.uri
    document_version = -1
    rule_id: str | None = None
    for fix in resolver.scoped(diagnostics):
        document_version = fix.document_version
        rule_id = fix.rule_id
        result.append(
            Command(
                title=fix.label,
                command=APPLY_SINGLE_FIX,
                arguments=[uri, document_version, [create_text_edit(document, fix)]],
            )
        )

    if not result or rule_id is None:
        return result

    same = resolver.same_rule(rule_id)
    if len(same) > 1:
        result.append(
            Command(
                title=f"Fix all {rule_id} problems",
                command=APPLY_SAME_FIXES,
                arguments=[uri, document_version, [create_text_edit(document, fix) for fix in same]],
            )
        )
    everything = resolver.overlap_free()
    if len(everything) > 1:
        result.append(
            Command(
                title="Fix all auto-fixable problems",
                command=APPLY_ALL_FIXES,
                arguments=[uri, document_version, [create_text_edit(document, fix) for fix in everything]],
            )
        )
    return result


def build_all_fixes(
    document: TextDocument,
    fixes: Mapping[str, AutoFix] | None,
) -> dict[str, Any] | None:
    """Build the response of the all-fixes request.

    Returns:
        ``{"documentVersion": ..., "edits": [...]}`` with the overlap-free
        selection, or None when the document has no fixes.
    """
    if not fixes:
        return None
    resolver = Fixes(fixes)
    if resolver.is_empty():
        return None
    return {
        "documentVersion": resolver.document_version(),
        "edits": [create_text_edit(document, fix) for fix in resolver.overlap_free()],
    }
