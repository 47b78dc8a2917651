"""Bounded-concurrency batch execution.

Items run as independent asyncio tasks with at most ``max_workers`` in
flight. A failing item never aborts its siblings: its exception is turned
into that item's result by the caller-supplied ``on_error``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class BatchRunner(Generic[T, R]):
    """Runs a coroutine over a batch of items with a worker bound.

    Example:
        runner = BatchRunner(
            generate_thumbnail,
            max_workers=3,
            on_error=lambda req, exc: ThumbnailResult(req.id, False, None, str(exc)),
        )
        results = await runner.run(requests)
    """

    def __init__(
        self,
        worker: Callable[[T], Awaitable[R]],
        *,
        max_workers: int,
        on_error: Callable[[T, Exception], R],
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._worker = worker
        self._max_workers = max_workers
        self._on_error = on_error

    @property
    def max_workers(self) -> int:
        return self._max_workers

    async def run(self, items: Iterable[T]) -> list[R]:
        """Process every item; the result list follows completion order."""
        semaphore = asyncio.Semaphore(self._max_workers)
        results: list[R] = []

        async def run_one(item: T) -> None:
            async with semaphore:
                try:
                    result = await self._worker(item)
                except Exception as e:  # noqa: BLE001 - isolated per item
                    logger.warning("Batch item failed: %s", e)
                    result = self._on_error(item, e)
            results.append(result)

        await asyncio.gather(*(run_one(item) for item in items))
        return results
