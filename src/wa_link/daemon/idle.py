"""Resettable idle timer that stops the daemon when no client has talked to it for a while."""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class IdleSupervisor:
    """Holds one pending timer; every ``reset`` pushes the deadline out by ``timeout`` seconds."""

    def __init__(self, timeout: float, on_expire: Callable[[], None]) -> None:
        """Initialize the supervisor.

        Args:
            timeout: Idle window in seconds. Zero or less disables the timer.
            on_expire: Called once on the event loop when the window elapses without a reset.

        """
        self._timeout = timeout
        self._on_expire = on_expire
        self._handle: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        """True while a timer is pending."""
        return self._handle is not None

    def reset(self) -> None:
        """Restart the idle window. Must be called from the event loop."""
        self.cancel()
        if self._timeout <= 0:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._timeout, self._expire)

    def cancel(self) -> None:
        """Drop the pending timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        logger.info("Idle for %ss, stopping daemon.", self._timeout)
        self._on_expire()
