"""Custom exceptions for cotasks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cotasks.types import TaskResult


class TaskError(Exception):
    """Base error for cotasks."""


class TaskCancellationError(TaskError):
    """Raised by a leaf action to report that it observed a cancellation request.

    Attributes:
        reason: The optional, human-readable cancellation reason
    """

    reason: str | None

    def __init__(self, reason: str | None = None):
        if reason is None:
            message = "task has been cancelled."
        else:
            message = f"task has been cancelled. reason:\n{reason}."
        super().__init__(message)
        self.reason = reason


class TaskDiscontinuationError(TaskError):
    """Failure payload of a continuation whose strategy refused the parent's outcome.

    Attributes:
        parent_result: The full result of the parent task that caused the block
    """

    parent_result: TaskResult[Any]

    def __init__(self, parent_result: TaskResult[Any]):
        super().__init__(f"task has been discontinued due to unhandled {parent_result.state.name.title()} state")
        self.parent_result = parent_result


class FrozenTaskError(TaskError, AttributeError):
    """Raised when assigning to an attribute of a frozen task."""


class TaskEvaluationCancelledError(TaskError):
    """Raised when observing a task whose outcome future was cancelled instead of settled.

    The original ``asyncio.CancelledError`` is chained as ``__cause__``.
    """
