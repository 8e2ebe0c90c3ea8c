"""Language server wiring.

Connects the validation pipeline and the fix builders to the editor
through pygls. Everything the handlers need lives on the server instance;
there is no module-level server.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from loguru import logger
from lsprotocol import converters, types
from pygls.lsp.server import LanguageServer

from eslint_bridge import __version__
from eslint_bridge.config import LintSettings, ServerConfig
from eslint_bridge.documents import TextDocument, uri_to_path
from eslint_bridge.engine.loader import EngineResolver, LibraryLoader
from eslint_bridge.fixes.actions import build_all_fixes, build_code_actions
from eslint_bridge.protocol import ALL_FIXES_REQUEST, NO_LIBRARY_REQUEST, no_library_params
from eslint_bridge.shutdown import ShutdownHook
from eslint_bridge.state import ServerState
from eslint_bridge.validation.pipeline import ValidationPipeline

_converter = converters.get_converter()


def _field(params: Any, *names: str) -> Any:
    """Read a nested field from params given either as objects or as dicts."""
    value = params
    for name in names:
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(name)
        else:
            value = getattr(value, name, None)
    return value


class PyglsConnection:
    """Connection implementation on top of a pygls language server."""

    def __init__(self, server: LanguageServer) -> None:
        self._server = server
        self._requests: set[asyncio.Future[Any]] = set()

    def publish_diagnostics(self, uri: str, diagnostics: Sequence[types.Diagnostic]) -> None:
        self._server.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=list(diagnostics))
        )

    def send_notification(self, method: str, params: Any) -> None:
        self._server.protocol.notify(method, params)

    def send_request(self, method: str, params: Any) -> None:
        future = asyncio.ensure_future(self._server.protocol.send_request_async(method, params))
        self._requests.add(future)
        future.add_done_callback(self._request_done)

    def _request_done(self, future: asyncio.Future[Any]) -> None:
        self._requests.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Client request failed: {future.exception()}")

    def show_error_message(self, message: str) -> None:
        self._server.window_show_message(types.ShowMessageParams(type=types.MessageType.Error, message=message))

    def show_information_message(self, message: str) -> None:
        self._server.window_show_message(types.ShowMessageParams(type=types.MessageType.Info, message=message))

    def log_info(self, message: str) -> None:
        self._server.window_log_message(types.LogMessageParams(type=types.MessageType.Info, message=message))

    def log_warning(self, message: str) -> None:
        self._server.window_log_message(types.LogMessageParams(type=types.MessageType.Warning, message=message))


class PyglsDocuments:
    """Document store reading the pygls workspace."""

    def __init__(self, server: LanguageServer) -> None:
        self._server = server

    @staticmethod
    def _snapshot(document: Any) -> TextDocument:
        return TextDocument(
            uri=document.uri,
            language_id=document.language_id or "",
            version=document.version if document.version is not None else 0,
            text=document.source,
        )

    def get(self, uri: str) -> TextDocument | None:
        document = self._server.workspace.text_documents.get(uri)
        return self._snapshot(document) if document is not None else None

    def all(self) -> list[TextDocument]:
        return [self._snapshot(doc) for doc in self._server.workspace.text_documents.values()]


class EslintLanguageServer(LanguageServer):
    """pygls server carrying the eslint-bridge state.

    Attributes:
        state: Shared server state.
        connection: Connection adapter used by the pipeline.
        documents: Document store adapter used by the pipeline.
        pipeline: Validation pipeline.
        shutdown_hook: Announced termination.
        shutdown_requested: Whether the client sent the shutdown request.
    """

    def __init__(self, config: ServerConfig) -> None:
        super().__init__("eslint-bridge", __version__)
        self.connection = PyglsConnection(self)
        self.documents = PyglsDocuments(self)
        loader = LibraryLoader(
            EngineResolver(eslint_path=config.eslint_path),
            on_loaded=lambda path: self.connection.log_info(f"ESLint library loaded from: {path}"),
            on_failed=self._library_failed,
        )
        self.state = ServerState.create(config, loader)
        self.pipeline = ValidationPipeline(self.state, self.connection, self.documents)
        self.shutdown_hook = ShutdownHook(self.connection, delay=config.exit_delay)
        self.shutdown_requested = False

    def _library_failed(self, uri: str, error: Exception) -> None:
        self.connection.send_request(NO_LIBRARY_REQUEST, no_library_params(uri))

    def track(self, document: TextDocument) -> bool:
        """Start resolving the engine of a supported document.

        Returns:
            False if the document's language is not validated.
        """
        if not self.state.config.supports(document.language_id):
            return False
        self.state.loader.ensure(document)
        return True


def create_server(config: ServerConfig | None = None) -> EslintLanguageServer:
    """Create a language server with all features registered."""
    server = EslintLanguageServer(config or ServerConfig())

    @server.feature(types.INITIALIZE)
    def initialize(ls: EslintLanguageServer, params: types.InitializeParams) -> None:
        resolver = ls.state.loader.resolver
        resolver.node_path = _field(params.initialization_options, "nodePath")
        if params.root_path:
            resolver.workspace_root = params.root_path
        elif params.root_uri:
            resolver.workspace_root = uri_to_path(params.root_uri)
        logger.info(f"Initialized for workspace {resolver.workspace_root}")

    @server.feature(types.INITIALIZED)
    async def initialized(ls: EslintLanguageServer, params: types.InitializedParams) -> None:
        ls.shutdown_hook.install_signal_handlers()

    @server.feature(types.TEXT_DOCUMENT_DID_OPEN)
    async def did_open(ls: EslintLanguageServer, params: types.DidOpenTextDocumentParams) -> None:
        document = ls.documents.get(params.text_document.uri)
        if document is None or not ls.track(document):
            return
        if ls.state.settings.run_on_type:
            await ls.pipeline.validate_single(document)

    @server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
    async def did_change(ls: EslintLanguageServer, params: types.DidChangeTextDocumentParams) -> None:
        document = ls.documents.get(params.text_document.uri)
        if document is None or not ls.state.settings.run_on_type or ls.pipeline.is_ignored(document):
            return
        await ls.pipeline.validate_single(document)

    @server.feature(types.TEXT_DOCUMENT_DID_SAVE)
    async def did_save(ls: EslintLanguageServer, params: types.DidSaveTextDocumentParams) -> None:
        document = ls.documents.get(params.text_document.uri)
        if document is None or not ls.state.settings.run_on_save or ls.pipeline.is_ignored(document):
            return
        await ls.pipeline.validate_single(document)

    @server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
    def did_close(ls: EslintLanguageServer, params: types.DidCloseTextDocumentParams) -> None:
        uri = params.text_document.uri
        if not ls.state.loader.has(uri):
            return
        ls.state.close_document(uri)
        ls.connection.publish_diagnostics(uri, [])

    @server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
    async def did_change_configuration(
        ls: EslintLanguageServer, params: types.DidChangeConfigurationParams
    ) -> None:
        ls.state.settings = LintSettings.from_client(params.settings)
        if not ls.state.settings.enable:
            return
        await ls.pipeline.validate_all()

    @server.feature(types.WORKSPACE_DID_CHANGE_WATCHED_FILES)
    async def did_change_watched_files(
        ls: EslintLanguageServer, params: types.DidChangeWatchedFilesParams
    ) -> None:
        await ls.pipeline.config_files_changed(change.uri for change in params.changes)

    @server.feature(types.TEXT_DOCUMENT_CODE_ACTION)
    def code_action(ls: EslintLanguageServer, params: types.CodeActionParams) -> list[types.Command]:
        uri = params.text_document.uri
        document = ls.documents.get(uri)
        if document is None:
            return []
        commands = build_code_actions(document, ls.state.registry.lookup(uri), params.context.diagnostics)
        return [
            types.Command(
                title=command.title,
                command=command.command,
                arguments=_converter.unstructure(command.arguments),
            )
            for command in commands
        ]

    @server.feature(ALL_FIXES_REQUEST)
    def all_fixes(ls: EslintLanguageServer, params: Any) -> dict[str, Any] | None:
        uri = _field(params, "textDocument", "uri") or _field(params, "text_document", "uri")
        document = ls.documents.get(uri) if uri else None
        if document is None:
            return None
        result = build_all_fixes(document, ls.state.registry.lookup(uri))
        if result is None:
            return None
        return {
            "documentVersion": result["documentVersion"],
            "edits": _converter.unstructure(result["edits"]),
        }

    @server.feature(types.SHUTDOWN)
    def shutdown(ls: EslintLanguageServer, params: None) -> None:
        ls.shutdown_requested = True
        ls.state.shutdown()

    @server.feature(types.EXIT)
    def on_exit(ls: EslintLanguageServer, params: None) -> None:
        # pygls terminates the process right after this returns.
        ls.shutdown_hook.exit_called(0 if ls.shutdown_requested else 1)

    return server


def start(config: ServerConfig | None = None) -> None:
    """Run the language server over stdio."""
    create_server(config).start_io()
