"""Pytasker: deferred jobs scheduled on push-based task queues."""

from .contracts import SchedulingRequest, TaskBackend, TaskHandle, TaskPayload
from .handler import JobHandler
from .identity import generate_job_id
from .job import Job
from .scheduler import Scheduler

__version__ = "0.1.0"

__all__ = [
    "Job",
    "Scheduler",
    "JobHandler",
    "TaskBackend",
    "TaskHandle",
    "TaskPayload",
    "SchedulingRequest",
    "generate_job_id",
    "__version__",
]
