"""
Reconnect watchdog for store connections.

Each store instance owns its own watchdog, so several stores in one
process never share a timer. Once armed, the watchdog must be cleared by
a successful reconnect within the timeout window, otherwise the
configured timeout action runs. The default action terminates the
process.
"""

import asyncio
import logging
import os
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def terminate_process() -> None:
    """Default timeout action: exit immediately with a failure status."""
    logging.shutdown()
    os._exit(1)


class ReconnectWatchdog:
    """One-shot timer armed on disconnect and cleared on reconnect."""

    def __init__(
        self,
        timeout: float,
        on_timeout: Optional[Callable[[], None]] = None,
        name: str = "store",
    ):
        """
        Initialize watchdog.

        Args:
            timeout: Seconds allowed for the backend to reconnect
            on_timeout: Called when the window elapses (default: terminate process)
            name: Label used in log messages
        """
        self.timeout = timeout
        self.on_timeout = on_timeout or terminate_process
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Arm the watchdog. A running countdown is not restarted."""
        if self._handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout, self._fire)
        logger.warning(f"{self.name} reconnect watchdog armed ({self.timeout}s)")

    def clear(self) -> None:
        """Disarm the watchdog after a successful reconnect."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None
        logger.info(f"{self.name} reconnect watchdog cleared")

    def _fire(self) -> None:
        self._handle = None
        logger.critical(f"{self.name} reconnect timed out after {self.timeout}s")
        self.on_timeout()
