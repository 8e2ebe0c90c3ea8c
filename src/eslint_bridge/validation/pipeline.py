"""Validation of open documents.

A validation pass lints a document, publishes its diagnostics, rebuilds
its fix registry entry and publishes the resulting status. Failures of the
lint engine never escape a pass: they are classified into a status and at
most one user notification.

Two validations of the same document may run concurrently; whichever
finishes last publishes its diagnostics, even if it was started first.
"""

from __future__ import annotations

import asyncio
import os
from typing import Iterable

from loguru import logger
from lsprotocol.types import Diagnostic

from eslint_bridge.diagnostics import make_diagnostic
from eslint_bridge.documents import DocumentStore, TextDocument, uri_to_path
from eslint_bridge.engine.eslint import LintEngine, LintReport
from eslint_bridge.errors import get_message
from eslint_bridge.fixes.registry import FixRegistry
from eslint_bridge.protocol import Connection, Status
from eslint_bridge.state import ServerState
from eslint_bridge.validation.classifiers import batch_chain, single_chain
from eslint_bridge.validation.status import StatusPublisher, worst
from eslint_bridge.validation.tracker import ErrorMessageTracker


def collect_diagnostics(
    document: TextDocument,
    report: LintReport | None,
    registry: FixRegistry,
) -> list[Diagnostic]:
    """Convert the problems of a report and record their fixes.

    Only the first result of the report is considered; null problems are
    skipped.
    """
    diagnostics: list[Diagnostic] = []
    if report is None or not report.results:
        return diagnostics
    for problem in report.results[0].messages:
        if problem is None:
            continue
        diagnostic = make_diagnostic(problem)
        diagnostics.append(diagnostic)
        registry.record(document, diagnostic, problem)
    return diagnostics


class ValidationPipeline:
    """Runs validation passes for single documents and for all open documents.

    Attributes:
        state: Shared server state.
        connection: Connection to the editor.
        documents: Store of the currently open documents.
        status: Publisher of the aggregate status.
    """

    def __init__(self, state: ServerState, connection: Connection, documents: DocumentStore) -> None:
        self.state = state
        self.connection = connection
        self.documents = documents
        self.status = StatusPublisher(connection)
        self.single_chain = single_chain(state, connection, documents)
        self.batch_chain = batch_chain(state, connection, documents)

    def is_ignored(self, document: TextDocument) -> bool:
        """Whether a document is outside the server's concern."""
        return not self.state.config.supports(document.language_id) or not self.state.loader.has(document.uri)

    async def validate(self, document: TextDocument, engine: LintEngine) -> None:
        """Lint a document and publish its diagnostics.

        The document's fixes are rebuilt from the new report. If the engine
        raises, the fixes are dropped and the error propagates.
        """
        uri = document.uri
        try:
            report = await engine.execute_on_text(document.text, document.file_path, self.state.settings.options)
        except Exception:
            self.state.registry.clear(uri)
            raise

        self.state.registry.clear(uri)
        diagnostics = collect_diagnostics(document, report, self.state.registry)
        self.connection.publish_diagnostics(uri, diagnostics)

    async def validate_single(self, document: TextDocument) -> Status | None:
        """Validate one document and publish the resulting status.

        Returns:
            The published status, or None when no engine is available.
        """
        engine = await self.state.loader.get(document.uri)
        if engine is None:
            return None
        try:
            await self.validate(document, engine)
            status = Status.OK
        except Exception as e:
            status = self.single_chain.classify(e, document, engine) or Status.ERROR
        self.status.publish(status)
        return status

    async def validate_many(self, documents: Iterable[TextDocument]) -> Status:
        """Validate all given documents and publish one aggregate status.

        Errors no classifier recognises are collected and shown together
        once every document has been attempted.

        Returns:
            The published status.
        """
        tracker = ErrorMessageTracker()
        statuses: list[Status] = []

        async def attempt(document: TextDocument) -> None:
            engine = await self.state.loader.get(document.uri)
            if engine is None:
                return
            try:
                await self.validate(document, engine)
            except Exception as e:
                status = self.batch_chain.classify(e, document, engine)
                if status is None:
                    status = Status.ERROR
                    tracker.add(get_message(e, document.file_path))
                statuses.append(status)

        try:
            # Every attempt finishes before the tracker is flushed.
            results = await asyncio.gather(
                *(attempt(doc) for doc in documents if not self.is_ignored(doc)),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
        except Exception as e:
            logger.exception(f"Validating all open documents failed: {e}")
            tracker.send_errors(self.connection)
            self.connection.log_warning("Validating all open documents failed.")
            self.status.publish(Status.ERROR)
            return Status.ERROR

        tracker.send_errors(self.connection)
        status = worst(statuses)
        self.status.publish(status)
        return status

    async def validate_all(self) -> Status:
        return await self.validate_many(self.documents.all())

    async def probe(self, config_file: str, engine: LintEngine) -> bool:
        """Check whether a previously broken config file lints again.

        Lints empty content as a file next to the config file.

        Returns:
            True if the engine no longer fails.
        """
        directory = os.path.dirname(config_file)
        if not directory:
            return False
        try:
            await engine.execute_on_text(
                "",
                os.path.join(directory, self.state.config.probe_filename),
                self.state.settings.options,
            )
        except Exception as e:
            logger.debug(f"{config_file} still fails: {e}")
            return False
        return True

    async def config_files_changed(self, uris: Iterable[str]) -> Status:
        """React to changed ESLint configuration files.

        Users are told again about missing configurations; config files
        reported as broken are probed and forgotten if they lint again.
        Then every open document is validated.
        """
        self.state.reset_no_config()
        for uri in uris:
            path = uri_to_path(uri)
            engine = self.state.config_error_reported.get(path)
            if engine is None:
                continue
            if await self.probe(path, engine):
                logger.info(f"Configuration file {path} is valid again")
                self.state.config_error_reported.pop(path, None)
        return await self.validate_all()
