"""
Bounded in-process queue for fire-and-forget work.

Outbound email and audit writes are submitted here so they never block
or fail the request that triggered them. Each job runs under its own
timeout; failures are logged and counted, never re-raised. A full
queue drops the job (delivery is at-most-effort, lost on crash).
"""

import asyncio
import logging
from typing import Awaitable, Callable

from app.config import settings
from app.core.metrics import background_jobs_total

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]


class BackgroundQueue:
    """asyncio.Queue drained by a fixed pool of worker tasks."""

    def __init__(
        self,
        maxsize: int = 1000,
        workers: int = 2,
        job_timeout: float = 5.0,
        name: str = "background",
    ) -> None:
        self.maxsize = maxsize
        self.worker_count = workers
        self.job_timeout = job_timeout
        self.name = name
        self._queue: asyncio.Queue[tuple[str, Job]] | None = None
        self._workers: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self.is_running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._workers = [
            asyncio.create_task(self._run(), name=f"{self.name}_worker_{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Started {self.worker_count} {self.name} workers")

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """Give queued jobs a chance to finish, then cancel the workers."""
        if not self.is_running:
            return
        try:
            await asyncio.wait_for(self.drain(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name} queue not drained after {drain_timeout}s")

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info(f"Stopped {self.name} workers")

    async def drain(self) -> None:
        """Wait until every submitted job has finished."""
        if self._queue is not None:
            await self._queue.join()

    def submit(self, job: Job, name: str) -> bool:
        """
        Queue a job without waiting.

        Returns:
            False if the job was dropped (queue stopped or full)
        """
        if self._queue is None:
            logger.warning(f"{self.name} queue not running, dropped job: {name}")
            background_jobs_total.labels(job=name, status="dropped").inc()
            return False

        try:
            self._queue.put_nowait((name, job))
        except asyncio.QueueFull:
            logger.warning(f"{self.name} queue full, dropped job: {name}")
            background_jobs_total.labels(job=name, status="dropped").inc()
            return False
        return True

    async def _run(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            name, job = await queue.get()
            try:
                await asyncio.wait_for(job(), timeout=self.job_timeout)
                background_jobs_total.labels(job=name, status="success").inc()
            except asyncio.TimeoutError:
                logger.warning(f"Background job timed out after {self.job_timeout}s: {name}")
                background_jobs_total.labels(job=name, status="timeout").inc()
            except Exception as e:
                logger.error(f"Background job failed: {name} - {e}")
                background_jobs_total.labels(job=name, status="failure").inc()
            finally:
                queue.task_done()


# Global instance
background_queue = BackgroundQueue(
    maxsize=settings.background_queue_size,
    workers=settings.background_workers,
    job_timeout=settings.background_job_timeout_seconds,
)
