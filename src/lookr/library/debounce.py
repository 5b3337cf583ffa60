"""Debounced actions on the asyncio event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class Debouncer:
    """Coalesce bursts of triggers into one delayed call of *action*.

    Each :meth:`trigger` (re)starts a single ``loop.call_later`` timer, so
    five triggers inside the delay window run *action* once, *delay*
    seconds after the last trigger.

    Outside a running event loop a trigger only marks the action pending;
    :meth:`flush` then runs it.

    Args:
        delay: Quiet period in seconds.
        action: Zero-argument callable run on the loop thread.
    """

    def __init__(self, delay: float, action: Callable[[], None]) -> None:
        self.delay = delay
        self._action = action
        self._handle: asyncio.TimerHandle | None = None
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def trigger(self) -> None:
        self._pending = True
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Stop the timer; a pending action stays pending."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run a pending action now instead of waiting for the timer."""
        self.cancel()
        if self._pending:
            self._fire()

    def _fire(self) -> None:
        self._handle = None
        self._pending = False
        self._action()
