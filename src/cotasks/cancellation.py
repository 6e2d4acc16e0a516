"""Cooperative cancellation signal shared by leaf actions."""

from __future__ import annotations

import asyncio

from cotasks.exceptions import TaskCancellationError
from cotasks.utilities.logging import get_logger

logger = get_logger(__name__)


class TaskCancellationToken:
    """A flag plus an optional reason that running actions poll explicitly.

    The token is owned by the caller, not by any task; the same token may be
    handed to actions of several independent task graphs. Nothing in the task
    graph observes it automatically.
    """

    def __init__(self) -> None:
        self._is_cancellation_requested = False
        self._reason: str | None = None

    @property
    def is_cancellation_requested(self) -> bool:
        return self._is_cancellation_requested

    @property
    def cancellation_reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. A later call replaces the reason of an earlier one."""
        self._is_cancellation_requested = True
        self._reason = reason
        logger.debug("Cancellation requested (reason=%r)", reason)

    def cancel_after(self, delay: float, reason: str | None = None) -> asyncio.TimerHandle:
        """Request cancellation once ``delay`` seconds have passed.

        Must be called from within a running event loop.

        Args:
            delay: Seconds to wait; zero or negative values fire on the next loop iteration
            reason: Optional cancellation reason

        Returns:
            The scheduled timer, which the caller may cancel to withdraw the request
        """
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay, 0), self.cancel, reason)

    def throw_if_cancellation_requested(self) -> None:
        """Raise :class:`TaskCancellationError` if cancellation has been requested."""
        if self._is_cancellation_requested:
            raise TaskCancellationError(self._reason)

    def __repr__(self) -> str:
        return (
            f"TaskCancellationToken(is_cancellation_requested={self._is_cancellation_requested}, "
            f"cancellation_reason={self._reason!r})"
        )
