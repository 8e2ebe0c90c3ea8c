"""Announced process termination.

Before the server exits on its own initiative, the client is told the exit
code and where the exit came from, and the process only exits after a short
delay so the notification can reach the client.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import time
import traceback
from typing import Callable

from loguru import logger

from eslint_bridge.protocol import EXIT_CALLED_NOTIFICATION, Connection, exit_called_params


class ShutdownHook:
    """Notify the client, then terminate after ``delay`` seconds.

    Attributes:
        connection: Connection the exit notification is sent through.
        delay: Seconds to wait between notifying and terminating.
        terminate: Called with the exit code to end the process.
    """

    def __init__(
        self,
        connection: Connection,
        delay: float = 1.0,
        terminate: Callable[[int], object] = sys.exit,
    ) -> None:
        self.connection = connection
        self.delay = delay
        self.terminate = terminate
        self._announced = False
        self._scheduled: asyncio.TimerHandle | None = None

    @property
    def announced(self) -> bool:
        return self._announced

    @property
    def pending(self) -> bool:
        return self._scheduled is not None

    def announce(self, exit_code: int, stack_trace: str | None = None) -> bool:
        """Send ``eslint/exitCalled`` unless an exit was already announced.

        Returns:
            True if the notification was sent by this call.
        """
        if self._announced:
            return False
        self._announced = True
        if stack_trace is None:
            stack_trace = "".join(traceback.format_stack())
        logger.info(f"Exit requested with code {exit_code}")
        self.connection.send_notification(EXIT_CALLED_NOTIFICATION, exit_called_params(exit_code, stack_trace))
        return True

    def request_exit(self, exit_code: int = 0, stack_trace: str | None = None) -> None:
        """Announce the exit and schedule termination on the running loop.

        Only the first request is honoured.
        """
        if not self.announce(exit_code, stack_trace):
            return
        loop = asyncio.get_running_loop()
        self._scheduled = loop.call_later(self.delay, self.terminate, exit_code)

    def exit_called(self, exit_code: int) -> None:
        """Announce an exit the caller performs itself, then block for ``delay``.

        Used when the exit is already under way and cannot be rescheduled,
        as for the LSP ``exit`` notification.
        """
        if self.announce(exit_code):
            time.sleep(self.delay)

    def install_signal_handlers(self, signals: tuple[int, ...] = (signal.SIGTERM,)) -> bool:
        """Route termination signals through :meth:`request_exit`.

        Returns:
            False where the event loop does not support signal handlers.
        """
        loop = asyncio.get_running_loop()
        try:
            for sig in signals:
                loop.add_signal_handler(sig, self.request_exit, 128 + int(sig))
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers are not supported on this platform")
            return False
        return True
