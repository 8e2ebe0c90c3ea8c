"""Fix framework: recording candidate fixes and resolving conflicts between them.

Provides the per-document fix registry, the resolver that selects
non-overlapping edit sets, and the builders for the fix commands offered
to the editor.
"""

from __future__ import annotations

from eslint_bridge.fixes.actions import build_all_fixes, build_code_actions, create_text_edit
from eslint_bridge.fixes.registry import AutoFix, FixRegistry
from eslint_bridge.fixes.resolver import Fixes

__all__ = [
    # Registry
    "AutoFix",
    "FixRegistry",
    # Resolver
    "Fixes",
    # Actions
    "build_all_fixes",
    "build_code_actions",
    "create_text_edit",
]
