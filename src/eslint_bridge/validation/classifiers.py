"""Classification of lint failures into validation statuses.

When the lint engine raises, the error is handed to a chain of classifiers.
Each one either recognises the error, notifies the user at most once per
document or config file, and returns a status, or returns None to let the
next classifier try.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Sequence

from loguru import logger

from eslint_bridge.documents import DocumentStore, TextDocument, path_to_uri
from eslint_bridge.engine.eslint import LintEngine
from eslint_bridge.errors import NO_CONFIG_MESSAGE, NO_CONFIG_TEMPLATE, get_message, raw_message
from eslint_bridge.protocol import NO_CONFIG_REQUEST, Connection, Status, no_config_params
from eslint_bridge.state import ServerState


class ErrorClassifier(ABC):
    """Base class for all error classifiers.

    Attributes:
        state: Shared server state holding the dedup stores.
        connection: Connection used to notify the user.
        documents: Store of the currently open documents.
    """

    # Short name used in logs
    name: str = ""

    def __init__(self, state: ServerState, connection: Connection, documents: DocumentStore) -> None:
        self.state = state
        self.connection = connection
        self.documents = documents

    @abstractmethod
    def classify(self, error: Any, document: TextDocument, engine: LintEngine) -> Status | None:
        """Attempt to classify an error raised while linting a document.

        Args:
            error: Whatever the lint engine raised.
            document: The document being validated.
            engine: The engine that raised.

        Returns:
            The resulting status, or None if this classifier does not apply.
        """


class NoConfigClassifier(ErrorClassifier):
    """Recognises ESLint failing because no configuration applies to the file."""

    name = "no-config"

    @staticmethod
    def matches(error: Any) -> bool:
        return (
            getattr(error, "message_template", None) == NO_CONFIG_TEMPLATE
            or raw_message(error) == NO_CONFIG_MESSAGE
        )

    def classify(self, error: Any, document: TextDocument, engine: LintEngine) -> Status | None:
        if not self.matches(error):
            return None
        if document.uri not in self.state.no_config_reported:
            self.connection.send_request(
                NO_CONFIG_REQUEST,
                no_config_params(get_message(error, document.file_path), document.uri),
            )
            self.state.no_config_reported[document.uri] = engine
        return Status.WARN


class ConfigSyntaxClassifier(ErrorClassifier):
    """Recognises ESLint failing on a broken configuration file.

    Each supported message shape comes with the group holding the path of
    the offending config file.
    """

    name = "config-syntax"

    PATTERNS: list[tuple[re.Pattern[str], int]] = [
        (re.compile(r"Cannot read config file:\s+(.*)\nError:\s+(.*)"), 1),
        (re.compile(r'(.*):\n\s*Configuration for rule "(.*)" is '), 1),
        (re.compile(r"Cannot find module '([^']*)'\nReferenced from:\s+(.*)"), 2),
    ]

    @classmethod
    def config_file(cls, error: Any) -> str | None:
        """Extract the path of the broken config file from an error message."""
        message = raw_message(error)
        if not message:
            return None
        for pattern, group in cls.PATTERNS:
            match = pattern.search(message)
            if match:
                return match.group(group)
        return None

    def classify(self, error: Any, document: TextDocument, engine: LintEngine) -> Status | None:
        filename = self.config_file(error)
        if filename is None:
            return None
        if filename not in self.state.config_error_reported:
            message = get_message(error, document.file_path)
            logger.warning(message)
            self.connection.log_warning(message)
            uri = path_to_uri(filename)
            if uri is None or self.documents.get(uri) is None:
                self.connection.show_information_message(message)
            self.state.config_error_reported[filename] = engine
        return Status.WARN


class GenericErrorClassifier(ErrorClassifier):
    """Catch-all: shows the error to the user."""

    name = "generic"

    def classify(self, error: Any, document: TextDocument, engine: LintEngine) -> Status | None:
        message = get_message(error, document.file_path)
        logger.error(f"Validating {document.uri} failed: {message}")
        self.connection.show_error_message(message)
        return Status.ERROR


class ClassifierChain:
    """Ordered classifiers; the first one returning a status wins."""

    def __init__(self, classifiers: Sequence[ErrorClassifier]) -> None:
        self.classifiers = list(classifiers)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.classifiers]

    def classify(self, error: Any, document: TextDocument, engine: LintEngine) -> Status | None:
        for classifier in self.classifiers:
            status = classifier.classify(error, document, engine)
            if status is not None:
                logger.debug(f"{document.uri}: {classifier.name} error -> {status.name}")
                return status
        return None


def single_chain(state: ServerState, connection: Connection, documents: DocumentStore) -> ClassifierChain:
    """Chain used when validating one document; always yields a status."""
    return ClassifierChain(
        [
            NoConfigClassifier(state, connection, documents),
            ConfigSyntaxClassifier(state, connection, documents),
            GenericErrorClassifier(state, connection, documents),
        ]
    )


def batch_chain(state: ServerState, connection: Connection, documents: DocumentStore) -> ClassifierChain:
    """Chain used when validating all documents; unmatched errors are left to the caller."""
    return ClassifierChain(
        [
            NoConfigClassifier(state, connection, documents),
            ConfigSyntaxClassifier(state, connection, documents),
        ]
    )
