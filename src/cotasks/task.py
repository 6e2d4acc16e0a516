"""Composable tasks with memoized outcomes.

A task is a node in a composition graph. Leaf tasks wrap a single asynchronous
action; the other node kinds are built from existing tasks by the combinator
methods on :class:`TaskBase`:

- ``then`` sequences a child after a parent, gated by a continuation strategy
- ``join`` waits for a fixed set of tasks to all settle
- ``race`` adopts the outcome of whichever task settles first
- ``map`` transforms a completed task's value

Outcomes are returned as data. ``execute()`` fulfils with a :class:`TaskResult`
whether the task completed, faulted, was cancelled or was discontinued.
"""

from __future__ import annotations

import asyncio
import weakref
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Generator, Iterable
from typing import Any, Generic, TypeVar, cast

import anyio

from cotasks.cancellation import TaskCancellationToken
from cotasks.exceptions import (
    FrozenTaskError,
    TaskCancellationError,
    TaskDiscontinuationError,
    TaskError,
    TaskEvaluationCancelledError,
)
from cotasks.settings import get_settings
from cotasks.types import TaskContinuationStrategy, TaskResult, TaskState, continuation_flag
from cotasks.utilities.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")
TParent = TypeVar("TParent")
TSource = TypeVar("TSource")


def _cancelling() -> bool:
    """Return True when the current asyncio task has itself been asked to cancel.

    ``Task.cancelling()`` only exists on Python 3.11+. Older interpreters cannot
    tell the two kinds of CancelledError apart, so they assume the task's own.
    """
    current = asyncio.current_task()
    cancelling = getattr(current, "cancelling", None)
    return cancelling is None or cancelling() > 0


async def _observe(task: TaskBase[T]) -> TaskResult[T]:
    future = task.execute()
    try:
        # shielded: tearing down one observer must not cancel a task shared with other graphs
        return await asyncio.shield(future)
    except asyncio.CancelledError as exc:
        if not future.cancelled():
            raise
        raise TaskEvaluationCancelledError(f"{task!r} was cancelled before it settled") from exc


class TaskBase(ABC, Generic[T]):
    """Base class of every task node.

    Subclasses implement :meth:`_handle_execution` and settle the task through
    exactly one of the ``_on_*`` methods.
    """

    def __init__(self) -> None:
        self._frozen = False
        self._state = TaskState.CREATED
        self._result: asyncio.Future[TaskResult[T]] | None = None
        self._evaluation: asyncio.Task[None] | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise FrozenTaskError(f"cannot assign to {name!r} of a frozen {type(self).__name__}")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self._state.name})"

    def __await__(self) -> Generator[Any, None, TaskResult[T]]:
        return self.execute().__await__()

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def is_done(self) -> bool:
        return self._state.is_done

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the task immutable. Any later attribute assignment raises FrozenTaskError."""
        object.__setattr__(self, "_frozen", True)

    def execute(self) -> asyncio.Future[TaskResult[T]]:
        """Run the task, once.

        The first call moves the task to ``RUNNING`` and schedules its evaluation on
        the running event loop. Every call, including calls made while the task is
        still running, returns the same future.

        Returns:
            A future fulfilled with the task's result. It is rejected only when the
            node's own evaluation raised before settling.

        Raises:
            RuntimeError: if no event loop is running
        """
        if self._result is None:
            loop = asyncio.get_running_loop()
            self._result = loop.create_future()
            self._transition(TaskState.RUNNING)
            self._evaluation = loop.create_task(self._evaluate())
        return self._result

    def then(
        self,
        provider: Callable[[TaskResult[T]], TaskBase[U]],
        continuation_strategy: TaskContinuationStrategy = TaskContinuationStrategy.ALL,
    ) -> ContinuationTask[U, T]:
        """Continue with the task returned by ``provider`` once this task has settled.

        Args:
            provider: Called with this task's result; returns the child task to run
            continuation_strategy: Parent outcomes that allow the child to run

        Returns:
            A new task mirroring the child's result, or discontinued when the
            strategy refuses this task's outcome
        """
        return ContinuationTask(self, provider, continuation_strategy)

    def join(self, *tasks: TaskBase[T]) -> JoinedTask[T]:
        """Run this task and ``tasks`` concurrently and wait for all of them."""
        return JoinedTask((self, *tasks))

    def race(self, *tasks: TaskBase[T], cancellation_token: TaskCancellationToken | None = None) -> RacingTask[T]:
        """Run this task and ``tasks`` concurrently and adopt the first outcome."""
        return RacingTask((self, *tasks), cancellation_token=cancellation_token)

    def map(self, mapper: Callable[[T], U]) -> MappedTask[U, T]:
        """Transform this task's value with ``mapper``. Only invoked when this task completes."""
        return MappedTask(self, mapper)

    @abstractmethod
    async def _handle_execution(self) -> None:
        """Evaluate the node and settle it through one of the ``_on_*`` methods."""
        ...

    async def _evaluate(self) -> None:
        assert self._result is not None
        try:
            await self._handle_execution()
        except asyncio.CancelledError as exc:
            if _cancelling() or self.is_done:
                if not self._result.done():
                    self._result.cancel()
                raise
            error = TaskEvaluationCancelledError(f"{self!r} raised CancelledError before settling")
            error.__cause__ = exc
            self._reject(error)
        except Exception as exc:
            if self.is_done:
                raise
            self._reject(exc)

    def _reject(self, error: Exception) -> None:
        assert self._result is not None
        logger.debug("%r raised before settling", self, exc_info=error)
        self._transition(TaskState.FAULTED)
        if not self._result.done():
            self._result.set_exception(error)

    def _transition(self, state: TaskState) -> None:
        if get_settings().log_transitions:
            logger.debug("%s: %s -> %s", type(self).__name__, self._state.name, state.name)
        self._state = state

    def _settle(self, result: TaskResult[T]) -> None:
        assert self._result is not None
        self._transition(result.state)
        if not self._result.done():
            self._result.set_result(result)

    def _on_completed(self, value: T) -> None:
        self._settle(TaskResult(TaskState.COMPLETED, value=value))

    def _on_error(self, error: Any) -> None:
        self._settle(TaskResult(TaskState.FAULTED, error=error))

    def _on_cancelled(self, error: TaskCancellationError) -> None:
        self._settle(TaskResult(TaskState.CANCELLED, error=error))

    def _on_discontinued(self, error: TaskDiscontinuationError) -> None:
        self._settle(TaskResult(TaskState.DISCONTINUED, error=error))

    def _on_child_completed(self, child_result: TaskResult[Any]) -> None:
        self._settle(TaskResult(child_result.state, value=child_result.value, error=child_result.error))


async def _noop() -> None:
    return None


class Task(TaskBase[T]):
    """A leaf task wrapping a zero-argument asynchronous action.

    The action's value completes the task. A :class:`TaskCancellationError`
    cancels it; any other exception faults it.

    Example::

        token = TaskCancellationToken()

        async def download() -> bytes:
            token.throw_if_cancellation_requested()
            return await fetch()

        result = await Task(download).map(len).execute()
    """

    def __init__(self, action: Callable[[], Awaitable[T]]):
        super().__init__()
        self._action = action

    async def _handle_execution(self) -> None:
        try:
            value = await self._action()
        except TaskCancellationError as exc:
            self._on_cancelled(exc)
        except asyncio.CancelledError as exc:
            # e.g. the action awaited a future that somebody else cancelled
            if _cancelling():
                raise
            self._on_error(exc)
        except Exception as exc:
            self._on_error(exc)
        else:
            self._on_completed(value)

    @classmethod
    def from_error(cls, error: Exception) -> Task[Any]:
        """Create a task that faults with ``error``."""

        async def action() -> Any:
            raise error

        return cls(action)

    @classmethod
    def from_cancelled(cls, reason: str | None = None) -> Task[Any]:
        """Create a task that is cancelled, with an optional reason."""
        return cls.from_error(TaskCancellationError(reason))

    @classmethod
    def from_result(cls, value: U) -> Task[U]:
        """Create a task that completes with ``value``."""

        async def action() -> U:
            return value

        return cast(Task[U], cls(action))

    @classmethod
    def delay(cls, delay: float) -> Task[None]:
        """Create a task that completes after ``delay`` seconds."""
        return cast(Task[None], cls(lambda: anyio.sleep(max(delay, 0))))

    @staticmethod
    def completed() -> Task[None]:
        """Return the shared, already completed and frozen task.

        Its single result is handed out on any event loop: ``execute()`` returns a
        done future bound to the running loop.
        """
        return _completed_task

    @staticmethod
    def all(tasks: Iterable[TaskBase[U]]) -> JoinedTask[U]:
        """Join ``tasks``: run them concurrently and wait for all of them."""
        return JoinedTask(tasks)

    @staticmethod
    def any(tasks: Iterable[TaskBase[U]], cancellation_token: TaskCancellationToken | None = None) -> RacingTask[U]:
        """Race ``tasks``: run them concurrently and adopt the first outcome."""
        return RacingTask(tasks, cancellation_token=cancellation_token)


class _CompletedTask(Task[None]):
    """The task behind :meth:`Task.completed`.

    It is settled when constructed, so no event loop owns its outcome. Futures
    are created lazily, one per event loop, all resolving to the same result.
    """

    def __init__(self) -> None:
        super().__init__(_noop)
        self._outcome: TaskResult[None] = TaskResult(TaskState.COMPLETED)
        self._futures: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Future[TaskResult[None]]] = (
            weakref.WeakKeyDictionary()
        )
        self._state = TaskState.COMPLETED
        self.freeze()

    def execute(self) -> asyncio.Future[TaskResult[None]]:
        loop = asyncio.get_running_loop()
        future = self._futures.get(loop)
        if future is None:
            future = loop.create_future()
            future.set_result(self._outcome)
            self._futures[loop] = future
        return future


_completed_task = _CompletedTask()


class ContinuationTask(TaskBase[T], Generic[T, TParent]):
    """Runs a child task after its parent, when the continuation strategy allows it."""

    def __init__(
        self,
        parent_task: TaskBase[TParent],
        provider: Callable[[TaskResult[TParent]], TaskBase[T]],
        continuation_strategy: TaskContinuationStrategy = TaskContinuationStrategy.ALL,
    ):
        super().__init__()
        self.parent_task = parent_task
        self.continuation_strategy = TaskContinuationStrategy(continuation_strategy)
        self._provider = provider

    async def _handle_execution(self) -> None:
        try:
            parent_result = await _observe(self.parent_task)
        except Exception as exc:
            self._on_error(exc)
            return

        if not self.continuation_strategy & continuation_flag(parent_result.state):
            self._on_discontinued(TaskDiscontinuationError(parent_result))
            return

        try:
            child_result = await _observe(self._provider(parent_result))
        except Exception as exc:
            self._on_error(exc)
            return
        self._on_child_completed(child_result)


class JoinedTask(TaskBase[list[TaskResult[T]]]):
    """Runs a fixed set of tasks concurrently and completes once all of them settle.

    The value lists the tasks' results in input order. Failed, cancelled or
    discontinued results are still part of a completed join; the join itself
    faults only when a task's future is rejected, with the list of those errors.
    """

    def __init__(self, tasks: Iterable[TaskBase[T]]):
        super().__init__()
        self.tasks: tuple[TaskBase[T], ...] = tuple(tasks)

    async def _handle_execution(self) -> None:
        if not self.tasks:
            self._on_completed([])
            return

        results: list[Any] = [None] * len(self.tasks)
        errors: list[Exception] = []

        async def watch(index: int, task: TaskBase[T]) -> None:
            try:
                results[index] = await _observe(task)
            except Exception as exc:
                errors.append(exc)

        async with anyio.create_task_group() as tg:
            for index, task in enumerate(self.tasks):
                tg.start_soon(watch, index, task)

        if errors:
            self._on_error(errors)
        else:
            self._on_completed(results)


class RacingTask(TaskBase[T]):
    """Runs a fixed set of tasks concurrently and adopts the first outcome.

    Tasks that settle later are neither cancelled nor awaited; their outcomes are
    discarded. When a ``cancellation_token`` is given it is cancelled once the
    winner is adopted, so cooperating actions of the losing tasks can stop early.
    """

    def __init__(self, tasks: Iterable[TaskBase[T]], cancellation_token: TaskCancellationToken | None = None):
        super().__init__()
        self.tasks: tuple[TaskBase[T], ...] = tuple(tasks)
        self.cancellation_token = cancellation_token

    async def _handle_execution(self) -> None:
        if not self.tasks:
            self._on_error(ValueError("RacingTask requires at least one internal task"))
            return

        async with anyio.create_task_group() as tg:

            async def watch(task: TaskBase[T]) -> None:
                try:
                    result = await _observe(task)
                except Exception as exc:
                    if self._state is TaskState.RUNNING:
                        self._on_error(exc)
                        self._signal_losers()
                else:
                    if self._state is TaskState.RUNNING:
                        self._on_child_completed(result)
                        self._signal_losers()
                # stops observing the losers only; their own evaluations keep running
                tg.cancel_scope.cancel()

            for task in self.tasks:
                tg.start_soon(watch, task)

        if self._state is TaskState.RUNNING:
            self._on_error(TaskError("no raced task settled"))

    def _signal_losers(self) -> None:
        if self.cancellation_token is not None:
            self.cancellation_token.cancel(get_settings().race_cancellation_reason)


class MappedTask(TaskBase[T], Generic[T, TSource]):
    """Transforms the value of a completed source task.

    Any other source outcome passes through unchanged and the mapper is not
    called. A mapper that raises faults the mapped task with that exception.
    """

    def __init__(self, source_task: TaskBase[TSource], mapper: Callable[[TSource], T]):
        super().__init__()
        self.source_task = source_task
        self.mapper = mapper

    async def _handle_execution(self) -> None:
        try:
            source_result = await _observe(self.source_task)
        except Exception as exc:
            self._on_error(exc)
            return

        if source_result.state is not TaskState.COMPLETED:
            self._on_child_completed(source_result)
            return

        try:
            value = self.mapper(cast(TSource, source_result.value))
        except Exception as exc:
            self._on_error(exc)
            return
        self._on_completed(value)
