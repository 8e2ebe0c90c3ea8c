"""Resolution of the ESLint engine to use for each document.

Every open document gets one library entry. The first lookup for a URI
starts the resolution; later lookups for the same URI await the same
pending result instead of resolving again. Engines are shared between
documents that resolve to the same executable.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from loguru import logger

from eslint_bridge.documents import TextDocument
from eslint_bridge.engine.eslint import EslintEngine, LintEngine
from eslint_bridge.errors import LibraryLoadError, ModuleResolutionError

ESLINT_BIN = "eslint.cmd" if os.name == "nt" else "eslint"


class LibraryState(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class LibraryEntry:
    """Resolution state of the engine for one document."""

    future: asyncio.Future[LintEngine | None]
    state: LibraryState = LibraryState.PENDING
    error: Exception | None = field(default=None)


class EngineResolver:
    """Finds the eslint executable that applies to a document.

    Attributes:
        node_path: Extra directory configured by the client (``nodePath``).
        workspace_root: Root folder of the workspace, if any.
        eslint_path: Explicitly configured executable, if any.
    """

    def __init__(
        self,
        node_path: str | None = None,
        workspace_root: str | None = None,
        eslint_path: str | None = None,
    ) -> None:
        self.node_path = node_path
        self.workspace_root = workspace_root
        self.eslint_path = eslint_path

    def candidates(self, document: TextDocument) -> list[Path]:
        """List the locations searched for a document, in order."""
        result: list[Path] = []
        if self.node_path:
            node_path = Path(self.node_path)
            result.append(node_path / ".bin" / ESLINT_BIN)
            result.append(node_path / "node_modules" / ".bin" / ESLINT_BIN)

        start: Path | None = None
        if document.is_file:
            start = Path(document.file_path).parent
        elif self.workspace_root:
            start = Path(self.workspace_root)
        if start is not None:
            for directory in (start, *start.parents):
                result.append(directory / "node_modules" / ".bin" / ESLINT_BIN)

        if self.eslint_path:
            result.append(Path(self.eslint_path))
        return result

    def resolve(self, document: TextDocument) -> str:
        """Return the path of the eslint executable for a document.

        Raises:
            ModuleResolutionError: If no executable is found.
            LibraryLoadError: If the executable found cannot be run.
        """
        candidates = self.candidates(document)
        for candidate in candidates:
            if candidate.is_file():
                return self._check(str(candidate))
        on_path = shutil.which(ESLINT_BIN)
        if on_path:
            return self._check(on_path)
        raise ModuleResolutionError([str(c) for c in candidates] + ["PATH"])

    @staticmethod
    def _check(path: str) -> str:
        if not os.access(path, os.X_OK):
            raise LibraryLoadError(f"The eslint executable at {path} is not executable.")
        return path


class LibraryLoader:
    """Per-document engine lookup with shared in-flight resolutions.

    Attributes:
        resolver: Finds the executable for a document.
        engine_factory: Builds an engine for an executable path.
        on_loaded: Called with the executable path once an engine is loaded.
        on_failed: Called with the document URI and error when resolution fails.
    """

    def __init__(
        self,
        resolver: EngineResolver,
        engine_factory: Callable[[str], LintEngine] = EslintEngine,
        on_loaded: Callable[[str], None] | None = None,
        on_failed: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self.resolver = resolver
        self.engine_factory = engine_factory
        self.on_loaded = on_loaded
        self.on_failed = on_failed
        self._entries: dict[str, LibraryEntry] = {}
        self._engines: dict[str, LintEngine] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def ensure(self, document: TextDocument) -> LibraryEntry:
        """Start resolving the engine for a document unless already started.

        Must be called from a running event loop.
        """
        entry = self._entries.get(document.uri)
        if entry is not None:
            return entry
        loop = asyncio.get_running_loop()
        entry = LibraryEntry(future=loop.create_future())
        self._entries[document.uri] = entry
        task = loop.create_task(self._resolve(document, entry))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return entry

    def has(self, uri: str) -> bool:
        return uri in self._entries

    def state(self, uri: str) -> LibraryState | None:
        entry = self._entries.get(uri)
        return entry.state if entry is not None else None

    async def get(self, uri: str) -> LintEngine | None:
        """Wait for the engine of a document.

        Returns:
            The engine, or None if resolution failed or never started.
        """
        entry = self._entries.get(uri)
        if entry is None:
            return None
        return await asyncio.shield(entry.future)

    def forget(self, uri: str) -> None:
        """Drop the entry of a closed document."""
        self._entries.pop(uri, None)

    def clear(self) -> None:
        """Drop every entry and cancel resolutions still in flight."""
        for task in self._tasks:
            task.cancel()
        for entry in self._entries.values():
            if not entry.future.done():
                entry.future.cancel()
        self._entries.clear()
        self._engines.clear()

    async def _resolve(self, document: TextDocument, entry: LibraryEntry) -> None:
        try:
            path = await asyncio.to_thread(self.resolver.resolve, document)
            engine = self._engines.get(path)
            if engine is None:
                engine = self.engine_factory(path)
                self._engines[path] = engine
        except Exception as e:
            logger.warning(f"Failed to load ESLint for {document.uri}: {e}")
            entry.state = LibraryState.FAILED
            entry.error = e
            if not entry.future.done():
                entry.future.set_result(None)
            if self.on_failed is not None:
                self.on_failed(document.uri, e)
            return

        logger.info(f"ESLint library loaded from: {path}")
        entry.state = LibraryState.RESOLVED
        if not entry.future.done():
            entry.future.set_result(engine)
        if self.on_loaded is not None:
            self.on_loaded(path)
