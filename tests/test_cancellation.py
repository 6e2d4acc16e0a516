"""Tests for TaskCancellationToken."""

import time

import anyio
import pytest

from cotasks.cancellation import TaskCancellationToken
from cotasks.exceptions import TaskCancellationError

# Scheduling slack allowed on timing assertions, in seconds
TIME_TOLERANCE = 0.1


class TestTaskCancellationToken:
    def test_new_token_is_not_cancelled(self):
        token = TaskCancellationToken()
        assert token.is_cancellation_requested is False
        assert token.cancellation_reason is None

    def test_cancel(self):
        token = TaskCancellationToken()
        token.cancel()
        assert token.is_cancellation_requested is True
        assert token.cancellation_reason is None

    def test_cancel_with_reason(self):
        token = TaskCancellationToken()
        token.cancel("foo")
        assert token.is_cancellation_requested is True
        assert token.cancellation_reason == "foo"

    def test_last_cancel_wins(self):
        token = TaskCancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.cancellation_reason == "second"

    def test_throw_if_not_requested(self):
        TaskCancellationToken().throw_if_cancellation_requested()

    def test_throw_if_requested(self):
        token = TaskCancellationToken()
        token.cancel()
        with pytest.raises(TaskCancellationError) as exc_info:
            token.throw_if_cancellation_requested()
        assert type(exc_info.value) is TaskCancellationError
        assert "reason:" not in str(exc_info.value)

    def test_throw_if_requested_with_reason(self):
        token = TaskCancellationToken()
        token.cancel("foo")
        with pytest.raises(TaskCancellationError, match="reason:\nfoo") as exc_info:
            token.throw_if_cancellation_requested()
        assert exc_info.value.reason == "foo"

    @pytest.mark.anyio
    @pytest.mark.parametrize("delay", [-0.001, 0, 0.01, 0.05, 0.1])
    async def test_cancel_after(self, delay: float):
        token = TaskCancellationToken()
        start = time.monotonic()
        token.cancel_after(delay, "late")
        assert token.is_cancellation_requested is False

        await anyio.sleep(max(delay, 0) + 0.01)
        elapsed = time.monotonic() - start

        assert elapsed >= delay - TIME_TOLERANCE
        assert elapsed <= delay + TIME_TOLERANCE + 0.01
        assert token.is_cancellation_requested is True
        assert token.cancellation_reason == "late"

    @pytest.mark.anyio
    async def test_cancel_after_can_be_withdrawn(self):
        token = TaskCancellationToken()
        handle = token.cancel_after(0.01)
        handle.cancel()
        await anyio.sleep(0.03)
        assert token.is_cancellation_requested is False

    def test_cancel_after_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            TaskCancellationToken().cancel_after(0.1)
