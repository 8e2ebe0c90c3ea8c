"""ESLint-specific protocol extensions and the connection interface.

Method names and payload shapes are part of the contract with the editor
client and must not change.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Protocol, Sequence

from lsprotocol.types import Diagnostic

STATUS_NOTIFICATION = "eslint/status"
NO_CONFIG_REQUEST = "eslint/noConfig"
NO_LIBRARY_REQUEST = "eslint/noLibrary"
EXIT_CALLED_NOTIFICATION = "eslint/exitCalled"
ALL_FIXES_REQUEST = "textDocument/eslint/allFixes"

APPLY_SINGLE_FIX = "eslint.applySingleFix"
APPLY_SAME_FIXES = "eslint.applySameFixes"
APPLY_ALL_FIXES = "eslint.applyAllFixes"


class Status(IntEnum):
    """Outcome of a validation pass. Higher values are worse."""

    OK = 1
    WARN = 2
    ERROR = 3


def status_params(status: Status) -> dict[str, Any]:
    return {"state": int(status)}


def no_config_params(message: str, uri: str) -> dict[str, Any]:
    return {"message": message, "document": {"uri": uri}}


def no_library_params(uri: str) -> dict[str, Any]:
    return {"source": {"uri": uri}}


def exit_called_params(exit_code: int, stack_trace: str) -> list[Any]:
    return [exit_code, stack_trace]


class Connection(Protocol):
    """The parts of the editor connection the server talks through."""

    def publish_diagnostics(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None:
        ...

    def send_notification(self, method: str, params: Any) -> None:
        ...

    def send_request(self, method: str, params: Any) -> None:
        """Send a request without waiting for its response.

        Failures of the request are logged, never raised.
        """
        ...

    def show_error_message(self, message: str) -> None:
        ...

    def show_information_message(self, message: str) -> None:
        ...

    def log_info(self, message: str) -> None:
        ...

    def log_warning(self, message: str) -> None:
        ...
