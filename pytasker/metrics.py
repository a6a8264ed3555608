"""Prometheus instrumentation for scheduling and execution."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

jobs_scheduled = Counter(
    "pytasker_jobs_scheduled_total",
    "Count of jobs submitted to a task backend.",
    ["job", "queue"],
)

jobs_executed = Counter(
    "pytasker_jobs_executed_total",
    "Count of job executions by outcome.",
    ["job", "outcome"],
)

job_execution_seconds = Histogram(
    "pytasker_job_execution_seconds",
    "Duration of job executions.",
    ["job"],
)
