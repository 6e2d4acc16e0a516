"""Race a slow download against a timeout and retry it once if it does not complete.

Run with ``python examples/fetch_with_timeout.py``.
"""

import random

import anyio

from cotasks import Task, TaskBase, TaskCancellationToken, TaskResult, TaskState, configure_logging
from cotasks.utilities.logging import get_logger

logger = get_logger("fetch_with_timeout")


def fetch(name: str, token: TaskCancellationToken) -> Task[str]:
    async def download() -> str:
        for _ in range(10):
            token.throw_if_cancellation_requested()
            await anyio.sleep(random.uniform(0.01, 0.05))
        return f"<contents of {name}>"

    return Task(download)


def attempt(name: str, seconds: float) -> TaskBase[str]:
    """Download ``name``, giving up after ``seconds``. The download stops polling once the race settles."""
    token = TaskCancellationToken()
    timeout = Task.delay(seconds).then(lambda _: Task.from_cancelled(f"no answer within {seconds}s"))
    return fetch(name, token).race(timeout, cancellation_token=token)


def recover(result: TaskResult[str]) -> TaskBase[str]:
    if result.state is TaskState.COMPLETED:
        return Task.from_result(result.value or "")
    logger.warning("first attempt did not complete: %s", result.error)
    return attempt("report.txt", 1.0)


async def main() -> None:
    pipeline = attempt("report.txt", 0.2).then(recover).map(str.upper)

    result = await pipeline.execute()
    if result.state is TaskState.COMPLETED:
        logger.info("downloaded %s", result.value)
    else:
        logger.error("download failed (%s): %s", result.state.name, result.error)


if __name__ == "__main__":
    configure_logging("INFO")
    anyio.run(main)
