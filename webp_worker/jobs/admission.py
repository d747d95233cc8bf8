"""Admission gate bounding how many conversions run at once.

Jobs queue on an asyncio semaphore. With the default capacity of 1 every
conversion is serialized, so only one ffmpeg process runs at a time.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from webp_worker.jobs.models import ConversionJob, JobStatus
from webp_worker.observability.logger import get_logger

logger = get_logger(__name__)


class AdmissionGate:
    """Fixed-capacity slot pool. Capacity cannot change after construction."""

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise ValueError(f"Admission gate capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def available(self) -> int:
        return self._capacity - self._in_use

    def is_saturated(self) -> bool:
        # Advisory only: the slot may free up before acquire() is reached.
        return self._in_use >= self._capacity

    async def acquire(self) -> None:
        """Wait for a free slot. No timeout; cancelling the caller aborts the wait."""
        await self._semaphore.acquire()
        self._in_use += 1

    def release(self) -> None:
        self._in_use -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self, job: Optional[ConversionJob] = None) -> AsyncIterator[None]:
        """Hold one slot for the duration of the block.

        When a job is given its status moves to QUEUED while waiting and its
        queue wait is recorded once the slot is acquired.
        """
        if job is not None:
            job.status = JobStatus.QUEUED
            if self.is_saturated():
                logger.info("%s Queue is full. Waiting for slot...", job.tag)

        await self.acquire()
        try:
            if job is not None:
                job.queue_wait_seconds = job.elapsed()
                logger.info(
                    "%s Slot acquired (Waited: %.3fs)", job.tag, job.queue_wait_seconds
                )
            yield
        finally:
            self.release()
