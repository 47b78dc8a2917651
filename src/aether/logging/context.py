"""Job context for structured logging.

Each conversion runs in its own asyncio task, and tasks copy the current
contextvars context when they start, so a job id set inside a job's task
tags every log record that job produces without leaking into siblings.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)


def set_job_context(job_id: str | None) -> None:
    """Set the job id for the current context."""
    _job_id.set(job_id)


def clear_job_context() -> None:
    _job_id.set(None)


def get_job_context() -> str | None:
    return _job_id.get()


@contextmanager
def job_context(job_id: str) -> Generator[None, None, None]:
    """Set the job id on entry and restore the previous one on exit.

    Example:
        with job_context("abc123"):
            logger.info("Spawning ffmpeg")  # Tagged [job:abc123]
    """
    token = _job_id.set(job_id)
    try:
        yield
    finally:
        _job_id.reset(token)


class JobContextFilter(logging.Filter):
    """Logging filter that injects the job id into log records.

    Adds ``job_id`` for JSON output and a compact ``job_tag`` such as
    ``[job:abc123] `` (empty outside a job) for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        job_id = _job_id.get()
        record.job_id = job_id
        record.job_tag = f"[job:{job_id}] " if job_id else ""
        return True  # Never filter out records
