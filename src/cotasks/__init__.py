"""Composable, cancellable asynchronous tasks.

Use cotasks to:

- Wrap an asynchronous action in a task whose outcome is computed once and can be awaited any number of times
- Sequence, join, race and map tasks without losing failure or cancellation information
- Cancel cooperatively through a shared token

## Example

```python
from cotasks import Task, TaskContinuationStrategy, TaskState

async def main():
    fetch = Task(fetch_page)
    timeout = Task.delay(5).then(lambda _: Task.from_cancelled("timed out"))

    result = await fetch.race(timeout).map(len).execute()
    if result.state is TaskState.COMPLETED:
        print(result.value)
```
"""

from .cancellation import TaskCancellationToken
from .exceptions import (
    FrozenTaskError,
    TaskCancellationError,
    TaskDiscontinuationError,
    TaskError,
    TaskEvaluationCancelledError,
)
from .settings import TaskSettings, get_settings
from .task import ContinuationTask, JoinedTask, MappedTask, RacingTask, Task, TaskBase
from .types import TaskContinuationStrategy, TaskResult, TaskState, continuation_flag
from .utilities.logging import configure_logging

__all__ = [
    "ContinuationTask",
    "FrozenTaskError",
    "JoinedTask",
    "MappedTask",
    "RacingTask",
    "Task",
    "TaskBase",
    "TaskCancellationError",
    "TaskCancellationToken",
    "TaskContinuationStrategy",
    "TaskDiscontinuationError",
    "TaskError",
    "TaskEvaluationCancelledError",
    "TaskResult",
    "TaskSettings",
    "TaskState",
    "configure_logging",
    "continuation_flag",
    "get_settings",
]
