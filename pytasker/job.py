"""Job definitions: per-type runtime options, identity and execution.

Concrete jobs subclass :class:`Job` and implement :meth:`Job.perform`::

    class SendReport(Job, queue="low-priority"):
        async def perform(self, account_id, period):
            ...

Job options are stored per type as a read-only mapping. :meth:`Job.configure`
swaps in a new mapping rather than mutating the current one, so readers never
observe a partially updated configuration. Concurrent ``configure`` calls
racing ``options()`` readers are not synchronized; configure job types at
import time.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, Mapping

from . import metrics
from .contracts import TaskHandle, TaskPayload
from .identity import generate_job_id

if TYPE_CHECKING:
    from .scheduler import Scheduler

logger = logging.getLogger(__name__)

_EMPTY_OPTIONS: Mapping[str, Any] = MappingProxyType({})
_registry: dict[str, type[Job]] = {}


class UnknownJobTypeError(LookupError):
    """Raised when a payload names a job type that is not defined."""


class SchedulerNotBoundError(RuntimeError):
    """Raised when a job needs a scheduler but none was attached."""


def _option_key(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)


def resolve_job_type(name: str) -> type[Job]:
    try:
        return _registry[name]
    except KeyError:
        raise UnknownJobTypeError(f"unknown job type: {name}") from None


class Job(ABC):
    """Base class for deferred jobs.

    Parameters:
        job_args: Positional arguments passed verbatim to :meth:`perform`.
        job_id: Identifier of the logical job; a new one is generated when
            omitted. Delivered jobs are rebuilt with the identifier they were
            scheduled with.
        scheduler: Scheduler used by :meth:`reenqueue`.
    """

    _job_options: ClassVar[Mapping[str, Any]] = _EMPTY_OPTIONS

    def __init_subclass__(cls, **options: Any) -> None:
        super().__init_subclass__()
        if options:
            cls.configure(options)
        name = cls.job_name()
        if name in _registry:
            logger.debug("job type redefined: name=%s", name)
        _registry[name] = cls

    def __init__(
        self,
        job_args: Iterable[Any] = (),
        job_id: str | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.job_args = list(job_args)
        self.job_id = job_id if job_id is not None else generate_job_id()
        self.scheduler = scheduler

    def __repr__(self) -> str:
        return f"{self.job_name()}(job_id={self.job_id!r}, job_args={self.job_args!r})"

    @classmethod
    def job_name(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def configure(
        cls, options: Mapping[Any, Any] | None = None, /, **kwargs: Any
    ) -> Mapping[str, Any]:
        """Replace the runtime options of this job type.

        Keys are normalized to strings (enum keys use their value). The new
        mapping fully replaces the previous one; nothing is merged.
        """

        normalized = {_option_key(key): value for key, value in (options or {}).items()}
        normalized.update(kwargs)
        cls._job_options = MappingProxyType(normalized)
        return cls._job_options

    @classmethod
    def options(cls) -> Mapping[str, Any]:
        return cls._job_options

    @classmethod
    def from_payload(
        cls, payload: TaskPayload, *, scheduler: Scheduler | None = None
    ) -> Job:
        """Rebuild a delivered job, keeping its identifier and arguments."""

        job_type = resolve_job_type(payload["worker"])
        if cls is not Job and not issubclass(job_type, cls):
            raise UnknownJobTypeError(
                f"{payload['worker']} is not a subclass of {cls.job_name()}"
            )
        return job_type(
            job_args=payload["job_args"],
            job_id=payload["job_id"],
            scheduler=scheduler,
        )

    def to_payload(self, *, queue: str) -> TaskPayload:
        return {
            "worker": self.job_name(),
            "job_id": self.job_id,
            "job_args": list(self.job_args),
            "job_options": dict(self.options()),
            "queue": queue,
        }

    @abstractmethod
    def perform(self, *args: Any) -> Any:
        """Do the work. May be a plain function or a coroutine function."""

    async def execute(self) -> Any:
        """Run :meth:`perform` with the stored arguments and return its result.

        Exceptions raised by ``perform`` propagate unchanged.
        """

        name = self.job_name()
        logger.debug("execute started: job=%s job_id=%s", name, self.job_id)
        started = time.perf_counter()
        try:
            result = self.perform(*self.job_args)
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            metrics.jobs_executed.labels(job=name, outcome="cancelled").inc()
            logger.info("execute cancelled: job=%s job_id=%s", name, self.job_id)
            raise
        except Exception:
            metrics.jobs_executed.labels(job=name, outcome="error").inc()
            logger.warning("execute failed: job=%s job_id=%s", name, self.job_id, exc_info=True)
            raise
        finally:
            metrics.job_execution_seconds.labels(job=name).observe(
                time.perf_counter() - started
            )
        metrics.jobs_executed.labels(job=name, outcome="success").inc()
        logger.debug("execute finished: job=%s job_id=%s", name, self.job_id)
        return result

    async def reenqueue(self, delay: int | None) -> TaskHandle:
        """Schedule this job again, keeping its identifier and arguments.

        Useful when a job has to pause, for instance while a third-party API
        is throttling calls. The current execution is not interrupted.
        """

        if self.scheduler is None:
            raise SchedulerNotBoundError(
                f"job {self.job_id} has no scheduler; construct it through a Scheduler or JobHandler"
            )
        logger.info("reenqueue requested: job=%s job_id=%s delay=%s", self.job_name(), self.job_id, delay)
        return await self.scheduler.schedule(self, delay=delay)
