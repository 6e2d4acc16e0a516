"""Tests for the task outcome vocabulary."""

import pytest

from cotasks.types import TaskContinuationStrategy, TaskResult, TaskState, continuation_flag


class TestTaskState:
    def test_ordering(self):
        assert TaskState.CREATED < TaskState.RUNNING < TaskState.COMPLETED
        assert [s.value for s in TaskState] == [0, 1, 2, 3, 4, 5]

    @pytest.mark.parametrize(
        "state,done",
        [
            (TaskState.CREATED, False),
            (TaskState.RUNNING, False),
            (TaskState.COMPLETED, True),
            (TaskState.FAULTED, True),
            (TaskState.CANCELLED, True),
            (TaskState.DISCONTINUED, True),
        ],
    )
    def test_is_done(self, state: TaskState, done: bool):
        assert state.is_done is done


class TestContinuationStrategy:
    def test_all_combines_every_flag(self):
        assert TaskContinuationStrategy.ALL == 7
        assert TaskContinuationStrategy.ALL & TaskContinuationStrategy.ON_COMPLETION
        assert TaskContinuationStrategy.ALL & TaskContinuationStrategy.ON_ERROR
        assert TaskContinuationStrategy.ALL & TaskContinuationStrategy.ON_CANCELLATION

    @pytest.mark.parametrize(
        "state,flag",
        [
            (TaskState.CREATED, TaskContinuationStrategy.NONE),
            (TaskState.RUNNING, TaskContinuationStrategy.NONE),
            (TaskState.COMPLETED, TaskContinuationStrategy.ON_COMPLETION),
            (TaskState.FAULTED, TaskContinuationStrategy.ON_ERROR),
            (TaskState.CANCELLED, TaskContinuationStrategy.ON_CANCELLATION),
            (TaskState.DISCONTINUED, TaskContinuationStrategy.NONE),
        ],
    )
    def test_continuation_flag(self, state: TaskState, flag: TaskContinuationStrategy):
        assert continuation_flag(state) is flag

    def test_discontinued_blocks_every_strategy(self):
        assert not TaskContinuationStrategy.ALL & continuation_flag(TaskState.DISCONTINUED)


class TestTaskResult:
    def test_completed_result(self):
        result = TaskResult(TaskState.COMPLETED, value="foo")
        assert result.is_completed
        assert not (result.is_faulted or result.is_cancelled or result.is_discontinued)
        assert result.error is None
        assert result.unwrap() == "foo"

    def test_unwrap_raises_stored_exception(self):
        error = ValueError("boom")
        result = TaskResult(TaskState.FAULTED, error=error)
        assert result.is_faulted
        with pytest.raises(ValueError, match="boom"):
            result.unwrap()

    def test_unwrap_wraps_non_exception_error(self):
        result = TaskResult(TaskState.FAULTED, error=[ValueError("a"), ValueError("b")])
        with pytest.raises(RuntimeError, match="FAULTED"):
            result.unwrap()

    def test_result_is_immutable(self):
        result = TaskResult(TaskState.COMPLETED, value=1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]
