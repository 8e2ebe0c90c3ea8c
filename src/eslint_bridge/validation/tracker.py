"""Collection of error messages raised while validating many documents."""

from __future__ import annotations

from eslint_bridge.protocol import Connection


class ErrorMessageTracker:
    """Accumulates distinct error messages and shows them in one go.

    Identical messages are only shown once, in the order first seen.
    """

    def __init__(self) -> None:
        self._messages: dict[str, None] = {}

    def add(self, message: str) -> None:
        self._messages.setdefault(message, None)

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def send_errors(self, connection: Connection) -> None:
        """Show every accumulated message as an error and reset the tracker."""
        messages = self.messages
        self._messages.clear()
        for message in messages:
            connection.show_error_message(message)
