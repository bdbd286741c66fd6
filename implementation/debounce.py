"""
Quiet-period debouncer for rapidly changing input.

A value pushed into the debouncer is committed only once `delay` seconds pass
with no newer push. Every push while a commit is pending cancels that commit and
schedules a new one, so at most one timer is ever pending per instance.
"""

import asyncio
import logging
import os
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.9"))


class Debouncer(Generic[T]):
    """
    Commit the latest pushed value after `delay` seconds of quiet.

    Must be used from inside a running asyncio event loop. `on_commit` is
    called synchronously on the loop; schedule a task from it for async work.
    """

    def __init__(self, on_commit: Callable[[T], None], delay: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self._on_commit = on_commit
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending_value: Optional[T] = None
        self._committed_value: Optional[T] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def committed_value(self) -> Optional[T]:
        return self._committed_value

    def push(self, value: T) -> None:
        """Record a new input value and restart the quiet period."""
        loop = asyncio.get_running_loop()
        self.cancel()
        self._pending_value = value
        self._handle = loop.call_later(self.delay, self._commit)

    def cancel(self) -> None:
        """Drop the pending commit, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._pending_value = None

    def flush(self) -> None:
        """Commit the pending value immediately instead of waiting."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._commit()

    def _commit(self) -> None:
        value = self._pending_value
        self._handle = None
        self._pending_value = None
        self._committed_value = value
        logger.debug("Debounced value committed: %r", value)
        self._on_commit(value)
