"""Tests for the pygls adapters and server wiring."""

from __future__ import annotations

import asyncio
import inspect
from collections import namedtuple
from types import SimpleNamespace
from typing import Any

import pytest
from lsprotocol import types

from conftest import FakeConnection, FakeEngine, StaticResolver, make_document
from eslint_bridge.config import LintSettings, ServerConfig
from eslint_bridge.diagnostics import AutoFixEdit, Problem
from eslint_bridge.documents import InMemoryDocuments, TextDocument
from eslint_bridge.engine.loader import LibraryLoader
from eslint_bridge.protocol import ALL_FIXES_REQUEST, APPLY_SINGLE_FIX, EXIT_CALLED_NOTIFICATION
from eslint_bridge.server import EslintLanguageServer, PyglsConnection, PyglsDocuments, _field, create_server
from eslint_bridge.shutdown import ShutdownHook
from eslint_bridge.state import ServerState
from eslint_bridge.validation.pipeline import ValidationPipeline

SEMI = Problem(
    line=1, column=10, severity=2, rule_id="semi", message="Missing semicolon.", fix=AutoFixEdit(9, 9, ";")
)


class RecordingServer:
    """Stand-in for the pygls server methods the adapters call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.protocol = SimpleNamespace(notify=lambda method, params: self.calls.append(("notify", (method, params))))
        self.workspace = SimpleNamespace(text_documents={})

    def text_document_publish_diagnostics(self, params: types.PublishDiagnosticsParams) -> None:
        self.calls.append(("publish", params))

    def window_show_message(self, params: types.ShowMessageParams) -> None:
        self.calls.append(("show", params))

    def window_log_message(self, params: types.LogMessageParams) -> None:
        self.calls.append(("log", params))


class TestField:
    """Tests for _field."""

    def test_dict(self) -> None:
        """Test reading nested dict fields."""
        assert _field({"textDocument": {"uri": "file:///a.js"}}, "textDocument", "uri") == "file:///a.js"

    def test_object(self) -> None:
        """Test reading nested attributes."""
        params = SimpleNamespace(text_document=SimpleNamespace(uri="file:///a.js"))
        assert _field(params, "text_document", "uri") == "file:///a.js"

    def test_missing(self) -> None:
        """Test that missing fields yield None."""
        assert _field(None, "nodePath") is None
        assert _field({"a": None}, "a", "b") is None
        assert _field(SimpleNamespace(), "nodePath") is None


class TestPyglsConnection:
    """Tests for PyglsConnection."""

    def test_publish_diagnostics(self) -> None:
        """Test that diagnostics are published for the given URI."""
        server = RecordingServer()
        PyglsConnection(server).publish_diagnostics("file:///a.js", [])  # type: ignore[arg-type]

        kind, params = server.calls[0]
        assert kind == "publish"
        assert params.uri == "file:///a.js"
        assert params.diagnostics == []

    def test_notification(self) -> None:
        """Test that notifications go through the protocol."""
        server = RecordingServer()
        PyglsConnection(server).send_notification("eslint/status", {"state": 1})  # type: ignore[arg-type]
        assert server.calls == [("notify", ("eslint/status", {"state": 1}))]

    def test_message_types(self) -> None:
        """Test the message types of shown and logged messages."""
        server = RecordingServer()
        connection = PyglsConnection(server)  # type: ignore[arg-type]
        connection.show_error_message("e")
        connection.show_information_message("i")
        connection.log_info("l")
        connection.log_warning("w")

        assert [(kind, params.type) for kind, params in server.calls] == [
            ("show", types.MessageType.Error),
            ("show", types.MessageType.Info),
            ("log", types.MessageType.Info),
            ("log", types.MessageType.Warning),
        ]


class TestPyglsDocuments:
    """Tests for PyglsDocuments."""

    def test_snapshot(self) -> None:
        """Test that workspace documents are converted to snapshots."""
        server = RecordingServer()
        server.workspace.text_documents["file:///a.js"] = SimpleNamespace(
            uri="file:///a.js", language_id="javascript", version=None, source="let a;\n"
        )
        documents = PyglsDocuments(server)  # type: ignore[arg-type]

        document = documents.get("file:///a.js")
        assert document is not None
        assert document.version == 0
        assert document.text == "let a;\n"
        assert documents.get("file:///b.js") is None
        assert [d.uri for d in documents.all()] == ["file:///a.js"]


class TestCreateServer:
    """Tests for create_server."""

    @pytest.mark.asyncio
    async def test_track_supported_languages(self) -> None:
        """Test that only supported documents get a library entry."""
        server = create_server(ServerConfig(eslint_path="/nonexistent/eslint"))

        python = make_document("a.py")
        python.language_id = "python"
        assert server.track(python) is False
        assert not server.state.loader.has(python.uri)

        assert server.track(make_document("a.js")) is True
        assert server.state.loader.has("file:///a.js")
        server.state.loader.clear()

    def test_exit_delay_from_config(self) -> None:
        """Test that the shutdown hook uses the configured delay."""
        server = create_server(ServerConfig(exit_delay=0.5))
        assert server.shutdown_hook.delay == 0.5


# -----------------------------------------------------------------------------
# Handler Tests
# -----------------------------------------------------------------------------


def wired_server(engine: FakeEngine, settings: LintSettings | None = None) -> EslintLanguageServer:
    """Server whose handlers talk to fakes instead of a client."""
    server = create_server(ServerConfig())
    server.connection = FakeConnection()
    server.documents = InMemoryDocuments()
    loader = LibraryLoader(StaticResolver(), engine_factory=lambda path: engine, on_failed=server._library_failed)
    server.state = ServerState.create(server.state.config, loader)
    if settings is not None:
        server.state.settings = settings
    server.pipeline = ValidationPipeline(server.state, server.connection, server.documents)
    server.shutdown_hook = ShutdownHook(server.connection, delay=0, terminate=lambda code: None)
    return server


async def call(server: EslintLanguageServer, method: str, params: Any) -> Any:
    """Invoke a registered handler the way pygls does."""
    result = server.protocol.fm.features[method](params)
    if inspect.isawaitable(result):
        result = await result
    return result


def open_params(document: TextDocument) -> types.DidOpenTextDocumentParams:
    return types.DidOpenTextDocumentParams(
        text_document=types.TextDocumentItem(
            uri=document.uri, language_id=document.language_id, version=document.version, text=document.text
        )
    )


def change_params(document: TextDocument) -> types.DidChangeTextDocumentParams:
    return types.DidChangeTextDocumentParams(
        text_document=types.VersionedTextDocumentIdentifier(uri=document.uri, version=document.version),
        content_changes=[],
    )


def save_params(document: TextDocument) -> types.DidSaveTextDocumentParams:
    return types.DidSaveTextDocumentParams(text_document=types.TextDocumentIdentifier(uri=document.uri))


def close_params(document: TextDocument) -> types.DidCloseTextDocumentParams:
    return types.DidCloseTextDocumentParams(text_document=types.TextDocumentIdentifier(uri=document.uri))


async def open_document(server: EslintLanguageServer, document: TextDocument) -> None:
    server.documents.open(document)
    await call(server, types.TEXT_DOCUMENT_DID_OPEN, open_params(document))


class TestRunSettings:
    """Tests for when document events trigger validation."""

    @pytest.mark.asyncio
    async def test_on_save_ignores_changes(self) -> None:
        """Test that with run=onSave only saves validate."""
        engine = FakeEngine()
        server = wired_server(engine, LintSettings(run="onSave"))
        document = make_document()

        await open_document(server, document)
        await call(server, types.TEXT_DOCUMENT_DID_CHANGE, change_params(document))
        assert engine.calls == []

        await call(server, types.TEXT_DOCUMENT_DID_SAVE, save_params(document))
        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_on_type_ignores_saves(self) -> None:
        """Test that with run=onType opens and changes validate but saves do not."""
        engine = FakeEngine()
        server = wired_server(engine)
        document = make_document()

        await open_document(server, document)
        assert len(engine.calls) == 1

        await call(server, types.TEXT_DOCUMENT_DID_SAVE, save_params(document))
        assert len(engine.calls) == 1

        await call(server, types.TEXT_DOCUMENT_DID_CHANGE, change_params(document))
        assert len(engine.calls) == 2

    @pytest.mark.asyncio
    async def test_disabled(self) -> None:
        """Test that enable=false suppresses validation on every event."""
        engine = FakeEngine()
        server = wired_server(engine, LintSettings(enable=False))
        document = make_document()

        await open_document(server, document)
        await call(server, types.TEXT_DOCUMENT_DID_CHANGE, change_params(document))
        await call(server, types.TEXT_DOCUMENT_DID_SAVE, save_params(document))
        await call(
            server,
            types.WORKSPACE_DID_CHANGE_CONFIGURATION,
            types.DidChangeConfigurationParams(settings={"eslint": {"enable": False}}),
        )

        assert engine.calls == []
        assert server.state.loader.has(document.uri)

    @pytest.mark.asyncio
    async def test_settings_change_revalidates(self) -> None:
        """Test that enabling validation revalidates the open documents."""
        engine = FakeEngine()
        server = wired_server(engine, LintSettings(enable=False))
        await open_document(server, make_document("a.js"))
        await open_document(server, make_document("b.js"))

        await call(
            server,
            types.WORKSPACE_DID_CHANGE_CONFIGURATION,
            types.DidChangeConfigurationParams(settings={"eslint": {"enable": True, "run": "onSave"}}),
        )

        assert len(engine.calls) == 2
        assert server.state.settings.run == "onSave"


class TestDidClose:
    """Tests for the didClose handler."""

    @pytest.mark.asyncio
    async def test_forgets_document(self) -> None:
        """Test that closing drops fixes and the library entry and clears diagnostics."""
        document = make_document(text="var x = 1\n")
        server = wired_server(FakeEngine(problems={document.file_path: [SEMI]}))
        await open_document(server, document)
        assert server.state.registry.lookup(document.uri) is not None
        assert len(server.connection.diagnostics[document.uri]) == 1

        await call(server, types.TEXT_DOCUMENT_DID_CLOSE, close_params(document))

        assert server.state.registry.lookup(document.uri) is None
        assert not server.state.loader.has(document.uri)
        assert server.connection.diagnostics[document.uri] == []

    @pytest.mark.asyncio
    async def test_untracked_document(self) -> None:
        """Test that closing a document never tracked publishes nothing."""
        python = make_document("a.py")
        python.language_id = "python"
        server = wired_server(FakeEngine())
        await open_document(server, python)

        await call(server, types.TEXT_DOCUMENT_DID_CLOSE, close_params(python))

        assert server.connection.diagnostics == {}


class TestFixHandlers:
    """Tests for the code action and all-fixes handlers."""

    @pytest.mark.asyncio
    async def test_code_action_arguments_in_wire_form(self) -> None:
        """Test that command arguments carry camelCase edits."""
        document = make_document(text="var x = 1\n")
        server = wired_server(FakeEngine(problems={document.file_path: [SEMI]}))
        await open_document(server, document)
        diagnostics = server.connection.diagnostics[document.uri]

        commands = await call(
            server,
            types.TEXT_DOCUMENT_CODE_ACTION,
            types.CodeActionParams(
                text_document=types.TextDocumentIdentifier(uri=document.uri),
                range=diagnostics[0].range,
                context=types.CodeActionContext(diagnostics=diagnostics),
            ),
        )

        assert [c.command for c in commands] == [APPLY_SINGLE_FIX]
        uri, version, edits = commands[0].arguments
        assert (uri, version) == (document.uri, 1)
        assert edits == [
            {"range": {"start": {"line": 0, "character": 9}, "end": {"line": 0, "character": 9}}, "newText": ";"}
        ]

    @pytest.mark.asyncio
    async def test_all_fixes(self) -> None:
        """Test the all-fixes request with object params and without fixes."""
        Identifier = namedtuple("Identifier", ["uri"])
        Params = namedtuple("Params", ["textDocument"])
        fixable = make_document("a.js", text="var x = 1\n")
        clean = make_document("b.js")
        server = wired_server(FakeEngine(problems={fixable.file_path: [SEMI]}))
        await open_document(server, fixable)
        await open_document(server, clean)

        result = await call(server, ALL_FIXES_REQUEST, Params(Identifier(fixable.uri)))
        assert result["documentVersion"] == 1
        assert [edit["newText"] for edit in result["edits"]] == [";"]

        assert await call(server, ALL_FIXES_REQUEST, Params(Identifier(clean.uri))) is None
        assert await call(server, ALL_FIXES_REQUEST, Params(Identifier("file:///missing.js"))) is None


class TestExit:
    """Tests for the shutdown and exit handlers."""

    def test_registered(self) -> None:
        """Test that both lifecycle handlers are registered."""
        features = create_server(ServerConfig()).protocol.fm.features
        assert types.SHUTDOWN in features
        assert types.EXIT in features

    @pytest.mark.asyncio
    async def test_exit_without_shutdown(self) -> None:
        """Test that an exit without a prior shutdown is announced with code 1."""
        server = wired_server(FakeEngine())

        await call(server, types.EXIT, None)

        method, (code, stack) = server.connection.notifications[-1]
        assert (method, code) == (EXIT_CALLED_NOTIFICATION, 1)
        assert stack

    @pytest.mark.asyncio
    async def test_exit_after_shutdown(self) -> None:
        """Test that an exit after shutdown is announced with code 0."""
        server = wired_server(FakeEngine())

        await call(server, types.SHUTDOWN, None)
        await call(server, types.EXIT, None)

        method, (code, _) = server.connection.notifications[-1]
        assert (method, code) == (EXIT_CALLED_NOTIFICATION, 0)

    @pytest.mark.asyncio
    async def test_shutdown_keeps_scheduled_exit(self) -> None:
        """Test that a shutdown after SIGTERM does not stop the announced exit."""
        exits: list[int] = []
        server = wired_server(FakeEngine())
        server.shutdown_hook.terminate = exits.append

        server.shutdown_hook.request_exit(143, "sigterm")
        await call(server, types.SHUTDOWN, None)
        await call(server, types.EXIT, None)
        await asyncio.sleep(0.01)

        assert server.shutdown_hook.pending is True
        assert exits == [143]
        assert [n for n in server.connection.notifications if n[0] == EXIT_CALLED_NOTIFICATION] == [
            (EXIT_CALLED_NOTIFICATION, [143, "sigterm"])
        ]
