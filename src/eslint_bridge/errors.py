"""Error taxonomy and message sanitization for the validation boundary.

Everything the lint engine raises is caught at the validation boundary and
classified into a status. The types below cover the failures the server
itself knows how to produce; any other exception is treated as a generic
lint failure.
"""

from __future__ import annotations

import re
from typing import Any

NO_CONFIG_TEMPLATE = "no-config-found"
NO_CONFIG_MESSAGE = "No ESLint configuration found."

_LINE_BREAK = re.compile(r"\r?\n")
_CLI_PREFIX = "CLI: "


class EslintBridgeError(Exception):
    """Base class for all eslint-bridge errors."""


class LibraryLoadError(EslintBridgeError):
    """Raised when an ESLint engine cannot be loaded for a document."""


class ModuleResolutionError(LibraryLoadError):
    """Raised when no ESLint executable can be found for a document."""

    def __init__(self, searched: list[str]) -> None:
        self.searched = searched
        locations = ", ".join(searched) if searched else "<nowhere>"
        super().__init__(f"Failed to resolve the eslint executable. Searched: {locations}")


class LintError(EslintBridgeError):
    """Raised by a lint engine when linting a document fails.

    Attributes:
        message: Raw message reported by ESLint (may span several lines).
        message_template: Structured tag of the failure, when ESLint provides one.
    """

    def __init__(self, message: str, message_template: str | None = None) -> None:
        self.message = message
        self.message_template = message_template
        super().__init__(message)


class NoConfigError(LintError):
    """Raised when ESLint cannot find a configuration for the linted file."""

    def __init__(self, message: str = NO_CONFIG_MESSAGE) -> None:
        super().__init__(message, message_template=NO_CONFIG_TEMPLATE)


def raw_message(error: Any) -> str | None:
    """Return the unprocessed message carried by an error, if any."""
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    if isinstance(error, BaseException) and error.args and isinstance(error.args[0], str):
        return error.args[0]
    return None


def get_message(error: Any, file_path: str) -> str:
    """Sanitize an error for display to the user.

    Line breaks collapse to single spaces and a leading ``CLI: `` is
    stripped. Errors without a message get a generated one naming the file.

    Args:
        error: Whatever the lint engine raised.
        file_path: File system path of the document being validated.

    Returns:
        A single-line message.
    """
    message = raw_message(error)
    if message is None:
        return f"An unknown error occurred while validating file: {file_path}"
    message = _LINE_BREAK.sub(" ", message)
    if message.startswith(_CLI_PREFIX):
        message = message[len(_CLI_PREFIX):]
    return message
