"""Worker-side entry point for delivered task payloads."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .contracts import TaskPayload
from .job import Job
from .scheduler import Scheduler

REQUIRED_KEYS = ("worker", "job_id", "job_args")
logger = logging.getLogger(__name__)


class InvalidPayloadError(ValueError):
    """Raised when a delivered payload cannot describe a job."""


class JobHandler:
    """Rebuild delivered jobs and execute them.

    Jobs are bound to ``scheduler`` so they can call
    :meth:`~pytasker.job.Job.reenqueue` while running. Failures raised by the
    job propagate to the caller, which reports them to the backend so its
    delivery retry policy applies.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler

    def build(self, payload: Mapping[str, Any]) -> Job:
        missing = [key for key in REQUIRED_KEYS if key not in payload]
        if missing:
            raise InvalidPayloadError(f"payload missing keys: {', '.join(missing)}")
        if not isinstance(payload["job_args"], list):
            raise InvalidPayloadError("job_args must be a list")
        if not isinstance(payload["job_id"], str) or not payload["job_id"]:
            raise InvalidPayloadError("job_id must be a non-empty string")
        return Job.from_payload(payload, scheduler=self.scheduler)  # type: ignore[arg-type]

    async def handle(self, payload: Mapping[str, Any] | TaskPayload) -> Any:
        job = self.build(payload)
        logger.info("delivery received: job=%s job_id=%s", job.job_name(), job.job_id)
        result = await job.execute()
        logger.info("delivery completed: job=%s job_id=%s", job.job_name(), job.job_id)
        return result
