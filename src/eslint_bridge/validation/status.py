"""Publication of the aggregate validation status."""

from __future__ import annotations

from typing import Iterable

from eslint_bridge.protocol import STATUS_NOTIFICATION, Connection, Status, status_params


def worst(statuses: Iterable[Status], default: Status = Status.OK) -> Status:
    """Return the most severe status, or ``default`` when there is none."""
    return max(statuses, default=default)


class StatusPublisher:
    """Sends the ``eslint/status`` notification after each validation pass."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self.last: Status | None = None

    def publish(self, status: Status) -> None:
        self.last = status
        self.connection.send_notification(STATUS_NOTIFICATION, status_params(status))
