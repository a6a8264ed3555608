"""In-memory backend implementation."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List
from uuid import uuid4

from ..contracts import TaskBackend, TaskHandle, TaskPayload


UTC = timezone.utc


@dataclass
class _Task:
    name: str
    queue: str
    created_at: datetime
    schedule_time: datetime | None = None
    status: str = "queued"
    payload: dict = field(default_factory=dict)


class MemoryBackend(TaskBackend):
    """Process-local queue for tests and local development.

    Tasks are held until :meth:`pop_due` hands them out; nothing is retried.
    Delivered tasks are kept for inspection until :meth:`purge_delivered`
    removes them, so long-running processes should purge periodically.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, _Task] = {}
        self._lock = asyncio.Lock()

    async def submit(self, payload: TaskPayload, *, delay: int | None = None) -> TaskHandle:
        async with self._lock:
            now = datetime.now(UTC)
            task = _Task(
                name=f"{payload['queue']}/tasks/{uuid4().hex}",
                queue=payload["queue"],
                created_at=now,
                schedule_time=now + timedelta(seconds=delay) if delay else None,
                payload=dict(payload),
            )
            self._tasks[task.name] = task
            return TaskHandle(
                name=task.name,
                job_id=payload["job_id"],
                queue=task.queue,
                schedule_time=task.schedule_time,
                raw=self._task_to_dict(task),
            )

    async def get(self, name: str) -> dict:
        async with self._lock:
            task = self._tasks.get(name)
            if not task:
                raise KeyError(name)
            return self._task_to_dict(task)

    async def tasks(self) -> List[dict]:
        async with self._lock:
            return [self._task_to_dict(task) for task in self._tasks.values()]

    async def pop_due(self, now: datetime | None = None) -> List[TaskPayload]:
        """Mark every due task delivered and return their payloads, oldest first."""

        async with self._lock:
            now = now or datetime.now(UTC)
            due = sorted(
                (
                    task
                    for task in self._tasks.values()
                    if task.status == "queued"
                    and (task.schedule_time is None or task.schedule_time <= now)
                ),
                key=lambda t: (t.schedule_time or t.created_at, t.created_at),
            )
            for task in due:
                task.status = "delivered"
            return [dict(task.payload) for task in due]  # type: ignore[misc]

    async def queue_depth(self) -> int:
        async with self._lock:
            return sum(1 for task in self._tasks.values() if task.status == "queued")

    async def purge_delivered(self) -> int:
        """Drop delivered tasks and return how many were removed."""

        async with self._lock:
            delivered = [name for name, task in self._tasks.items() if task.status == "delivered"]
            for name in delivered:
                del self._tasks[name]
            return len(delivered)

    async def check_connection(self) -> None:
        return None

    @staticmethod
    def _task_to_dict(task: _Task) -> dict:
        return asdict(task)
