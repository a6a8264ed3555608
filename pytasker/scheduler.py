"""Scheduler facade turning job instances into backend submissions."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from . import metrics
from .contracts import SchedulingRequest, TaskBackend, TaskHandle
from .job import Job

QUEUE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
logger = logging.getLogger(__name__)


class Scheduler:
    """Front-end for enqueueing jobs on a task backend.

    Parameters:
        backend: Submission backend that creates the queued tasks.
        default_queue: Queue used for job types without a ``queue`` option.
    """

    def __init__(self, backend: TaskBackend, *, default_queue: str = "default") -> None:
        self.backend = backend
        self.default_queue = default_queue
        self._validate_configuration()

    async def enqueue_now(self, job_type: type[Job], *args: Any) -> TaskHandle:
        """Schedule a new ``job_type`` job for immediate delivery."""

        return await self.enqueue_delayed(job_type, None, *args)

    async def enqueue_delayed(
        self, job_type: type[Job], delay: int | None, *args: Any
    ) -> TaskHandle:
        """Schedule a new ``job_type`` job, delivered after ``delay`` seconds.

        A fresh identifier is generated for every call.
        """

        job = job_type(job_args=args, scheduler=self)
        return await self.schedule(job, delay=delay)

    async def schedule(self, job: Job, delay: int | None = None) -> TaskHandle:
        """Submit ``job`` to the backend and return the created task's handle.

        Args:
            job: Job instance to submit; its identifier is sent as-is.
            delay: Non-negative number of seconds to wait before delivery.
                ``None`` or ``0`` requests delivery as soon as possible.

        Returns:
            TaskHandle: The backend acknowledgement for the created task.

        Errors raised by the backend propagate unchanged; nothing is retried.
        """

        self._validate_delay(delay)
        queue = self._queue_for(job)
        if job.scheduler is None:
            job.scheduler = self
        request = SchedulingRequest(job=job, delay=delay or None, queue=queue)
        logger.info(
            "schedule requested: job=%s job_id=%s queue=%s delay=%s",
            job.job_name(),
            job.job_id,
            queue,
            request.delay,
        )
        handle = await self.backend.submit(request.payload(), delay=request.delay)
        metrics.jobs_scheduled.labels(job=job.job_name(), queue=queue).inc()
        logger.info(
            "schedule accepted: job_id=%s task=%s queue=%s schedule_time=%s",
            job.job_id,
            handle.name,
            queue,
            handle.schedule_time,
        )
        return handle

    async def check_connection(self) -> None:
        await self.backend.check_connection()

    def _queue_for(self, job: Job) -> str:
        queue = job.options().get("queue")
        if queue is None:
            return self.default_queue
        queue = str(queue)
        if not QUEUE_PATTERN.fullmatch(queue):
            raise ValueError(
                f"queue option of {job.job_name()} must contain only alphanumerics, "
                f"dash, or underscore, got {queue!r}"
            )
        return queue

    @staticmethod
    def _validate_delay(delay: int | None) -> None:
        if delay is None:
            return
        if isinstance(delay, bool) or not isinstance(delay, int):
            raise TypeError(f"delay must be an integer number of seconds, got {delay!r}")
        if delay < 0:
            raise ValueError("delay must be greater than or equal to 0")

    def _validate_configuration(self) -> None:
        if not QUEUE_PATTERN.fullmatch(self.default_queue):
            raise ValueError(
                "default_queue must contain only alphanumerics, dash, or underscore"
            )

    def __repr__(self) -> str:
        return (
            f"Scheduler(backend={self.backend.__class__.__name__}, "
            f"default_queue={self.default_queue!r})"
        )

    async def close(self) -> None:
        """Release resources held by the backend when supported."""

        close = getattr(self.backend, "close", None)
        if callable(close):
            result = close()
            if asyncio.iscoroutine(result):
                await result
