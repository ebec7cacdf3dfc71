"""Priority FIFO queue of job ids."""

import asyncio
from uuid import UUID

from ..core.models import ImportJob


class JobQueue:
    """
    Job ids ordered by priority tier, then enqueue sequence.

    Wraps ``asyncio.PriorityQueue``; ``get`` blocks until a job is
    available. Every ``get`` must be matched by ``task_done`` so that
    ``join`` returns once all work is finished.
    """

    def __init__(self):
        self._queue: asyncio.PriorityQueue[tuple[int, int, str]] = asyncio.PriorityQueue()

    def put(self, job: ImportJob) -> None:
        self._queue.put_nowait((int(job.options.priority), job.sequence, str(job.job_id)))

    async def get(self) -> UUID:
        _, _, job_id = await self._queue.get()
        return UUID(job_id)

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
