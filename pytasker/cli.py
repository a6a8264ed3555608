"""Entry-point for the ``pytasker`` console script."""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import logging
import sys
from typing import Callable

import httpx

from .backends import HttpBackend
from .job import Job
from .scheduler import Scheduler


class CLIError(RuntimeError):
    """Raised when the CLI fails to load or schedule a job."""


def _non_negative_int(name: str) -> Callable[[str], int]:
    def _validate(value: str) -> int:
        try:
            converted = int(value)
        except ValueError as exc:  # pragma: no cover - argparse already reports
            raise argparse.ArgumentTypeError(f"{name} must be an integer") from exc
        if converted < 0:
            raise argparse.ArgumentTypeError(f"{name} must be greater than or equal to 0")
        return converted

    return _validate


def _json_list(value: str) -> list:
    try:
        converted = json.loads(value)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"arguments must be valid JSON: {exc}") from exc
    if not isinstance(converted, list):
        raise argparse.ArgumentTypeError("arguments must be a JSON list")
    return converted


def _configure_logging(level_name: str) -> None:
    numeric = logging.getLevelName(level_name.upper())
    if not isinstance(numeric, int):  # pragma: no cover - guarded by argparse choices
        raise CLIError(f"Unknown log level: {level_name}")
    logging.basicConfig(level=numeric, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _load_job_type(dotted_path: str) -> type[Job]:
    module_name, sep, attr = dotted_path.rpartition(":")
    if not module_name or not sep:
        raise CLIError("Job path must be in 'module:attr' format")
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as exc:
        raise CLIError(f"Cannot import job module '{module_name}': {exc}") from exc
    try:
        job_type = getattr(module, attr)
    except AttributeError as exc:
        raise CLIError(f"Module '{module_name}' has no attribute '{attr}'") from exc
    if not (isinstance(job_type, type) and issubclass(job_type, Job)):
        raise CLIError(f"'{dotted_path}' is not a Job subclass")
    return job_type


async def _enqueue(args: argparse.Namespace) -> str:
    _configure_logging(args.log_level)
    job_type = _load_job_type(args.job)
    try:
        backend = HttpBackend(
            base_url=args.base_url,
            processor_url=args.processor_url,
            token=args.token,
        )
        scheduler = Scheduler(backend, default_queue=args.queue)
    except ValueError as exc:
        raise CLIError(str(exc)) from exc

    try:
        handle = await scheduler.enqueue_delayed(job_type, args.delay, *args.arg_json)
    except httpx.HTTPError as exc:
        raise CLIError(f"Task submission failed: {exc}") from exc
    finally:
        await scheduler.close()
    return handle.name


def main() -> None:
    parser = argparse.ArgumentParser(description="Schedule a Pytasker job")
    subparsers = parser.add_subparsers(dest="command", required=True)
    enqueue = subparsers.add_parser("enqueue", help="Submit one job to the task queue")
    enqueue.add_argument("job", help="Job class in the form 'module:attr'")
    enqueue.add_argument("--arg-json", type=_json_list, default=[], help="JSON list of job arguments")
    enqueue.add_argument("--delay", type=_non_negative_int("delay"), default=None)
    enqueue.add_argument("--base-url", required=True, help="Queue service API root")
    enqueue.add_argument("--processor-url", required=True, help="URL tasks are pushed to")
    enqueue.add_argument("--token", default=None, help="Bearer token for the queue service")
    enqueue.add_argument("--queue", default="default", help="Queue for jobs without a queue option")
    enqueue.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Root logging level",
    )
    args = parser.parse_args()
    try:
        name = asyncio.run(_enqueue(args))
    except KeyboardInterrupt:  # pragma: no cover - CLI convenience
        raise SystemExit(130)
    except CLIError as exc:
        print(f"pytasker: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    print(name)


if __name__ == "__main__":  # pragma: no cover
    main()
