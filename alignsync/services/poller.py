"""Drive a submitted task until it completes or fails."""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from alignsync.config import PollConfig
from alignsync.state.resolvers import FAILED_STATUS, get_task_status_info, is_completed

_logger = logging.getLogger("alignsync")

ProgressCallback = Callable[[int], None]
TaskFetcher = Callable[[str], Awaitable[Any]]


class PollState(str, Enum):
    submitted = "submitted"
    polling = "polling"
    completed = "completed"
    failed = "failed"


class TaskFailedError(Exception):
    """The remote job reported a failed status."""

    def __init__(self, task_id: str, task: Any = None):
        super().__init__("Task failed")
        self.task_id = task_id
        self.task = task


class PollTimeoutError(Exception):
    """``max_attempts`` fetches passed without a terminal status."""


class TaskPoller:
    """
    One poll loop for one task.

    Each non-terminal status bumps ``progress`` by ``config.increment`` up to
    ``config.ceiling`` and waits ``config.interval`` seconds. A completed
    status sets progress to 100 and returns the task; a failed status raises
    TaskFailedError. Fetch errors propagate without retry. With the default
    config there is no attempt limit.
    """

    def __init__(
        self,
        fetch: TaskFetcher,
        config: Optional[PollConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.fetch = fetch
        self.config = config or PollConfig()
        self.on_progress = on_progress
        self.state = PollState.submitted
        self.progress = 0
        self.attempts = 0

    def _report(self, value: int) -> None:
        self.progress = value
        if self.on_progress:
            self.on_progress(value)

    async def run(self, task_id: str) -> Any:
        self.state = PollState.polling
        while True:
            task = await self.fetch(task_id)
            self.attempts += 1
            info = get_task_status_info(task)
            _logger.info(
                "Poll iteration task_id=%s attempt=%d status=%s",
                task_id,
                self.attempts,
                info.raw or info.normalized or "unknown",
            )

            if is_completed(info):
                self.state = PollState.completed
                self._report(100)
                return task
            if info.normalized == FAILED_STATUS:
                self.state = PollState.failed
                raise TaskFailedError(task_id, task)

            self._report(min(self.progress + self.config.increment, self.config.ceiling))

            if self.config.max_attempts is not None and self.attempts >= self.config.max_attempts:
                self.state = PollState.failed
                raise PollTimeoutError(f"Task {task_id} not finished after {self.attempts} attempts")
            await asyncio.sleep(self.config.interval)


async def poll_task(
    fetch: TaskFetcher,
    task_id: str,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[PollConfig] = None,
) -> Any:
    return await TaskPoller(fetch, config=config, on_progress=on_progress).run(task_id)
