"""Outcome vocabulary shared by every task node."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class TaskState(IntEnum):
    """Lifecycle of a task.

    States above ``RUNNING`` are terminal: once a task reaches one of them it
    never changes state again.
    """

    CREATED = 0
    RUNNING = 1
    COMPLETED = 2
    FAULTED = 3
    CANCELLED = 4
    DISCONTINUED = 5

    @property
    def is_done(self) -> bool:
        return self > TaskState.RUNNING


class TaskContinuationStrategy(IntFlag):
    """Which parent outcomes allow a continuation to run."""

    NONE = 0
    ON_COMPLETION = 1
    ON_ERROR = 2
    ON_CANCELLATION = 4
    ALL = ON_COMPLETION | ON_ERROR | ON_CANCELLATION


_CONTINUATION_FLAGS: dict[TaskState, TaskContinuationStrategy] = {
    TaskState.COMPLETED: TaskContinuationStrategy.ON_COMPLETION,
    TaskState.FAULTED: TaskContinuationStrategy.ON_ERROR,
    TaskState.CANCELLED: TaskContinuationStrategy.ON_CANCELLATION,
}


def continuation_flag(state: TaskState) -> TaskContinuationStrategy:
    """Map a parent's state to the strategy bit that permits continuing after it.

    Discontinued (and non-terminal) parents map to ``NONE`` and therefore always
    block continuation.
    """
    return _CONTINUATION_FLAGS.get(state, TaskContinuationStrategy.NONE)


@dataclass(frozen=True)
class TaskResult(Generic[T]):
    """Settled outcome of a task.

    ``value`` is meaningful only for ``COMPLETED`` results; every other terminal
    state carries its failure payload in ``error``.
    """

    state: TaskState
    value: T | None = None
    error: Any = None

    @property
    def is_completed(self) -> bool:
        return self.state is TaskState.COMPLETED

    @property
    def is_faulted(self) -> bool:
        return self.state is TaskState.FAULTED

    @property
    def is_cancelled(self) -> bool:
        return self.state is TaskState.CANCELLED

    @property
    def is_discontinued(self) -> bool:
        return self.state is TaskState.DISCONTINUED

    def unwrap(self) -> T | None:
        """Return the value of a completed result, or raise its error.

        Raises:
            BaseException: the stored error, when it is an exception instance
            RuntimeError: when the stored error is not an exception instance
        """
        if self.is_completed:
            return self.value
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"task did not complete ({self.state.name}): {self.error!r}")
