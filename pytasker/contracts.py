"""Core contracts shared by the scheduler, handlers and backends.

Backends are explicit abstract base classes rather than ``typing.Protocol``
interfaces so that an incomplete implementation fails at definition time
instead of on the first submission.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, TypedDict

if TYPE_CHECKING:
    from .job import Job


class TaskPayload(TypedDict):
    """Serializable description of one scheduled job.

    ``worker`` is the job type name resolved by :func:`pytasker.job.resolve_job_type`
    on the receiving side; ``job_options`` carries the type's runtime
    configuration so the backend can route on it (``queue`` is duplicated at
    the top level for convenience).
    """

    worker: str
    job_id: str
    job_args: list[Any]
    job_options: dict[str, Any]
    queue: str


@dataclass(frozen=True, slots=True)
class SchedulingRequest:
    """One submission of ``job`` to a backend, optionally delayed."""

    job: Job
    delay: int | None = None
    queue: str = "default"

    def payload(self) -> TaskPayload:
        return self.job.to_payload(queue=self.queue)

    def schedule_time(self, now: datetime) -> datetime | None:
        if not self.delay:
            return None
        return now + timedelta(seconds=self.delay)


@dataclass(frozen=True, slots=True)
class TaskHandle:
    """Acknowledgement returned by a backend for a created task."""

    name: str
    job_id: str
    queue: str
    schedule_time: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class TaskBackend(ABC):
    """Interface for push-queue submission backends."""

    @abstractmethod
    async def submit(self, payload: TaskPayload, *, delay: int | None = None) -> TaskHandle:
        """Create a task for ``payload`` delivered after ``delay`` seconds.

        Failures reported by the underlying service must be raised as-is.
        """

    @abstractmethod
    async def check_connection(self) -> None:
        """Raise if the backend cannot be reached."""
