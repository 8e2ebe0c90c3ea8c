"""Pytest configuration and fixtures for eslint-bridge tests."""

from __future__ import annotations

import asyncio
import os
from typing import Any, Sequence

import pytest
from lsprotocol.types import Diagnostic

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

from eslint_bridge.config import ServerConfig  # noqa: E402
from eslint_bridge.diagnostics import Problem  # noqa: E402
from eslint_bridge.documents import InMemoryDocuments, TextDocument  # noqa: E402
from eslint_bridge.engine.eslint import DocumentReport, LintReport  # noqa: E402
from eslint_bridge.engine.loader import EngineResolver, LibraryLoader  # noqa: E402
from eslint_bridge.state import ServerState  # noqa: E402
from eslint_bridge.validation.pipeline import ValidationPipeline  # noqa: E402


class FakeConnection:
    """Connection that records everything sent to the client."""

    def __init__(self) -> None:
        self.diagnostics: dict[str, list[Diagnostic]] = {}
        self.notifications: list[tuple[str, Any]] = []
        self.requests: list[tuple[str, Any]] = []
        self.error_messages: list[str] = []
        self.info_messages: list[str] = []
        self.log: list[tuple[str, str]] = []

    def publish_diagnostics(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics[uri] = list(diagnostics)

    def send_notification(self, method: str, params: Any) -> None:
        self.notifications.append((method, params))

    def send_request(self, method: str, params: Any) -> None:
        self.requests.append((method, params))

    def show_error_message(self, message: str) -> None:
        self.error_messages.append(message)

    def show_information_message(self, message: str) -> None:
        self.info_messages.append(message)

    def log_info(self, message: str) -> None:
        self.log.append(("info", message))

    def log_warning(self, message: str) -> None:
        self.log.append(("warning", message))

    def statuses(self) -> list[int]:
        return [params["state"] for method, params in self.notifications if method == "eslint/status"]


class FakeEngine:
    """Lint engine returning canned reports or raising canned errors per file."""

    def __init__(
        self,
        problems: dict[str, list[Problem]] | None = None,
        errors: dict[str, Exception] | None = None,
        default_error: Exception | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.problems = problems or {}
        self.errors = errors or {}
        self.default_error = default_error
        self.delays = delays or {}
        self.calls: list[tuple[str, str | None, dict[str, Any] | None]] = []

    async def execute_on_text(
        self,
        content: str,
        file_path: str | None,
        options: dict[str, Any] | None = None,
    ) -> LintReport:
        self.calls.append((content, file_path, options))
        await asyncio.sleep(self.delays.get(file_path or "", 0))
        if file_path in self.errors:
            raise self.errors[file_path]
        if self.default_error is not None:
            raise self.default_error
        messages: list[Problem | None] = list(self.problems.get(file_path or "", []))
        return LintReport(results=[DocumentReport(file_path=file_path or "", messages=messages)])


class StaticResolver(EngineResolver):
    """Resolver that maps every document to one executable path."""

    def __init__(self, path: str = "/fake/eslint", error: Exception | None = None) -> None:
        super().__init__()
        self.path = path
        self.error = error
        self.resolved: list[str] = []

    def resolve(self, document: TextDocument) -> str:
        self.resolved.append(document.uri)
        if self.error is not None:
            raise self.error
        return self.path


def make_document(name: str = "a.js", text: str = "var x = 1;\n", version: int = 1) -> TextDocument:
    return TextDocument(uri=f"file:///{name}", language_id="javascript", version=version, text=text)


class Harness:
    """Pipeline wired to fakes."""

    def __init__(self, engine: FakeEngine, resolver: StaticResolver | None = None) -> None:
        self.engine = engine
        self.connection = FakeConnection()
        self.documents = InMemoryDocuments()
        self.loader = LibraryLoader(resolver or StaticResolver(), engine_factory=lambda path: engine)
        self.state = ServerState.create(ServerConfig(), self.loader)
        self.pipeline = ValidationPipeline(self.state, self.connection, self.documents)

    def open(self, document: TextDocument) -> TextDocument:
        self.documents.open(document)
        self.loader.ensure(document)
        return document


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def documents() -> InMemoryDocuments:
    return InMemoryDocuments()
