"""Explicit cancellation context handed to long-running operations."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """A one-shot cancellation flag with listener registration.

    Operations register a listener when they start and call the returned
    function to deregister it when they settle.  ``cancel()`` fires every
    live listener exactly once, in registration order.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._listeners: dict[int, Callable[[], None]] = {}
        self._ids = itertools.count()
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def listener_count(self) -> int:
        """Number of listeners still registered."""
        return len(self._listeners)

    def cancel(self) -> None:
        """Request cancellation.  Calling it more than once is a no-op."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()

        listeners = list(self._listeners.values())
        self._listeners.clear()
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("cancellation listener %r failed", listener)

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback* and return a function that deregisters it.

        The callback is not invoked if the token is already cancelled;
        callers check :attr:`cancelled` first.
        """
        key = next(self._ids)
        self._listeners[key] = callback

        def _remove() -> None:
            self._listeners.pop(key, None)

        return _remove

    async def wait(self) -> None:
        """Suspend until :meth:`cancel` has been called."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()
