"""Tests for job options, identity and execution."""

from __future__ import annotations

import asyncio
from enum import Enum

import pytest

from pytasker.job import (
    Job,
    SchedulerNotBoundError,
    UnknownJobTypeError,
    resolve_job_type,
)


class _Opt(str, Enum):
    QUEUE = "queue"


class RecordingJob(Job):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[tuple] = []

    def perform(self, *args):
        self.calls.append(args)
        return len(args)


class AsyncJob(Job, queue="critical", max_retries=3):
    async def perform(self, left, right):
        await asyncio.sleep(0)
        return left * right


class FailingJob(Job):
    def perform(self, message):
        raise KeyError(message)


def test_configure_replaces_instead_of_merging() -> None:
    class Configured(Job):
        def perform(self):
            return None

    Configured.configure({"a": 1, "b": 2})
    assert dict(Configured.options()) == {"a": 1, "b": 2}

    Configured.configure({"c": 3})
    assert dict(Configured.options()) == {"c": 3}


def test_configure_normalizes_keys() -> None:
    class FromEnum(Job):
        def perform(self):
            return None

    class FromString(Job):
        def perform(self):
            return None

    FromEnum.configure({_Opt.QUEUE: "low", 7: "seven"})
    FromString.configure({"queue": "low", "7": "seven"})
    assert dict(FromEnum.options()) == dict(FromString.options()) == {"queue": "low", "7": "seven"}


def test_configure_without_options_is_empty() -> None:
    class Blank(Job):
        def perform(self):
            return None

    Blank.configure({"queue": "x"})
    assert Blank.configure() == {}
    assert dict(Blank.options()) == {}
    assert dict(Job.options()) == {}


def test_options_are_read_only_and_set_by_class_keywords() -> None:
    assert dict(AsyncJob.options()) == {"queue": "critical", "max_retries": 3}
    with pytest.raises(TypeError):
        AsyncJob.options()["queue"] = "other"  # type: ignore[index]


def test_subclass_inherits_parent_options_until_configured() -> None:
    class Child(AsyncJob):
        pass

    assert Child.options() is AsyncJob.options()
    Child.configure(queue="child")
    assert dict(Child.options()) == {"queue": "child"}
    assert AsyncJob.options()["queue"] == "critical"


def test_new_jobs_get_fresh_identifiers() -> None:
    first = RecordingJob(job_args=[1])
    second = RecordingJob(job_args=[1])
    assert first.job_id != second.job_id
    assert len(first.job_id) == 36

    kept = RecordingJob(job_args=[], job_id="fixed-id")
    assert kept.job_id == "fixed-id"


def test_execute_passes_arguments_in_order() -> None:
    job = RecordingJob(job_args=[1, "x", {"k": "v"}])
    assert asyncio.run(job.execute()) == 3
    assert job.calls == [(1, "x", {"k": "v"})]

    empty = RecordingJob()
    assert asyncio.run(empty.execute()) == 0
    assert empty.calls == [()]


def test_execute_awaits_coroutine_perform() -> None:
    job = AsyncJob(job_args=(6, 7))
    assert asyncio.run(job.execute()) == 42


def test_execute_propagates_errors_unchanged() -> None:
    job = FailingJob(job_args=["missing"])
    with pytest.raises(KeyError) as excinfo:
        asyncio.run(job.execute())
    assert excinfo.value.args == ("missing",)


def test_reenqueue_requires_scheduler() -> None:
    job = RecordingJob(job_args=[1])
    with pytest.raises(SchedulerNotBoundError):
        asyncio.run(job.reenqueue(10))


def test_payload_rebuilds_the_same_job() -> None:
    job = AsyncJob(job_args=[2, 3])
    payload = job.to_payload(queue="critical")
    assert payload == {
        "worker": AsyncJob.job_name(),
        "job_id": job.job_id,
        "job_args": [2, 3],
        "job_options": {"queue": "critical", "max_retries": 3},
        "queue": "critical",
    }

    rebuilt = Job.from_payload(payload)
    assert type(rebuilt) is AsyncJob
    assert rebuilt.job_id == job.job_id
    assert rebuilt.job_args == job.job_args
    assert asyncio.run(rebuilt.execute()) == asyncio.run(job.execute())


def test_from_payload_rejects_unknown_or_unrelated_types() -> None:
    payload = AsyncJob(job_args=[1, 1]).to_payload(queue="q")
    with pytest.raises(UnknownJobTypeError):
        RecordingJob.from_payload(payload)
    with pytest.raises(UnknownJobTypeError):
        resolve_job_type("nowhere.Missing")
    assert resolve_job_type(RecordingJob.job_name()) is RecordingJob


def test_repr_mentions_identity() -> None:
    job = RecordingJob(job_args=[1], job_id="abc")
    assert "job_id='abc'" in repr(job)
    assert RecordingJob.job_name() in repr(job)
