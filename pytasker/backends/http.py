"""Push-queue submission backend built on httpx.AsyncClient."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx

from ..contracts import TaskBackend, TaskHandle, TaskPayload

UTC = timezone.utc
logger = logging.getLogger(__name__)


class HttpBackend(TaskBackend):
    """Create tasks through a push-queue HTTP API.

    Each submission is ``POST {base_url}/queues/{queue}/tasks``. The queue
    service later delivers ``body`` to ``processor_url`` with an HTTP POST,
    where a :class:`~pytasker.handler.JobHandler` executes it.

    Parameters:
        base_url: Root URL of the queue service API.
        processor_url: URL the queue service pushes tasks to.
        token: Optional bearer token sent with submissions.
        timeout: Request timeout in seconds.
        client: Preconfigured client; owned by the caller when provided.
    """

    def __init__(
        self,
        *,
        base_url: str,
        processor_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.processor_url = processor_url
        self.token = token
        self.timeout = timeout
        self._validate_configuration()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def submit(self, payload: TaskPayload, *, delay: int | None = None) -> TaskHandle:
        queue = payload["queue"]
        schedule_time = datetime.now(UTC) + timedelta(seconds=delay) if delay else None
        body = self._task_body(payload, schedule_time)
        url = f"{self.base_url}/queues/{quote(queue, safe='')}/tasks"
        resp = await self._client.post(url, json=body, headers=self._headers())
        logger.debug("task submission %s -> %s", url, resp.status_code)
        resp.raise_for_status()
        data = self._acknowledgement(resp)
        name = data.get("name")
        return TaskHandle(
            name=name if isinstance(name, str) and name else body["task"]["name"],
            job_id=payload["job_id"],
            queue=queue,
            schedule_time=schedule_time,
            raw=data,
        )

    async def check_connection(self) -> None:
        resp = await self._client.get(f"{self.base_url}/queues", headers=self._headers())
        resp.raise_for_status()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _acknowledgement(resp: httpx.Response) -> dict[str, Any]:
        # the task already exists here, so a malformed body must not raise
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError:
            logger.warning("task acknowledgement is not JSON: status=%s", resp.status_code)
            return {}
        if not isinstance(data, dict):
            logger.warning("task acknowledgement is not an object: status=%s", resp.status_code)
            return {}
        return data

    def _task_body(self, payload: TaskPayload, schedule_time: datetime | None) -> dict:
        task: dict[str, Any] = {
            "name": f"{payload['queue']}-{payload['job_id']}-{uuid4().hex[:8]}",
            "http_request": {
                "url": self.processor_url,
                "http_method": "POST",
                "headers": {"Content-Type": "application/json"},
                "body": json.dumps(payload),
            },
        }
        if schedule_time is not None:
            task["schedule_time"] = schedule_time.isoformat()
        return {"task": task}

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _validate_configuration(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        if not self.processor_url.startswith(("http://", "https://")):
            raise ValueError("processor_url must be an http(s) URL")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than 0")
