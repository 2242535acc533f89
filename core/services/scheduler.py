"""Bounded asyncio scheduling with cooperative cancellation.

Two shapes are provided:

- `run_in_chunks`: split the inputs into chunks of ``limit`` and fully drain
  each chunk before starting the next.
- `run_fanout`: start every operation at once (optionally bounded by a
  semaphore), polling the cancellation token around each one.

Both return results by input position. Operations hand their values back to
the scheduler, which is the only writer of the result list. A batch that
observes cancellation reports `BatchOutcome.CANCELLED` and drops everything it
collected.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
import threading
from typing import Generic, TypeVar

from loguru import logger

from core.models import BatchOutcome

T = TypeVar("T")
R = TypeVar("R")

ResultCallback = Callable[[int, R], Awaitable[None]]


class CancellationToken:
    """Thread-safe cancellation flag polled by running batches."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressCounter:
    """Counter shared by concurrent tasks, only reachable through its lock."""

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = asyncio.Lock()

    async def increment(self, step: int = 1) -> int:
        """Add `step` and return the new value."""
        async with self._lock:
            self._value += step
            return self._value

    async def value(self) -> int:
        async with self._lock:
            return self._value


@dataclass
class ScheduleResult(Generic[R]):
    """Results of a scheduled batch, in input order.

    Attributes:
        outcome: Whether the batch ran to completion.
        results: One entry per input; empty when the batch was cancelled.
            Entries are None for operations that raised.
    """

    outcome: BatchOutcome
    results: list[R | None] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.outcome is BatchOutcome.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.outcome is BatchOutcome.CANCELLED


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split `items` into consecutive lists of at most `size` elements."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def _guarded(operation: Callable[[], Awaitable[R]]) -> R | None:
    try:
        return await operation()
    except Exception as ex:  # pylint: disable=broad-exception-caught
        logger.error("Scheduled operation failed: {}", ex)
        return None


async def run_in_chunks(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[R]],
    limit: int,
    token: CancellationToken,
    on_result: ResultCallback | None = None,
) -> ScheduleResult[R]:
    """Run `operation` over `items` with at most `limit` in flight.

    Args:
        items: Inputs, one operation each.
        operation: Coroutine function applied to every input.
        limit: Chunk size and therefore the concurrency bound.
        token: Polled before each chunk, before each operation starts and
            after each chunk drains.
        on_result: Optional coroutine called with (index, value) as each
            operation finishes, e.g. to advance a progress counter.
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")

    collected: list[R | None] = [None] * len(items)

    async def _run(index: int) -> tuple[int, R | None, bool]:
        if token.cancelled:
            return index, None, False
        value = await _guarded(lambda: operation(items[index]))
        if on_result is not None and not token.cancelled:
            await on_result(index, value)
        return index, value, True

    for chunk in chunked(range(len(items)), limit):
        if token.cancelled:
            logger.info("Chunked batch cancelled before chunk starting at {}", chunk[0])
            return ScheduleResult(BatchOutcome.CANCELLED)
        finished = await asyncio.gather(*(_run(index) for index in chunk))
        if token.cancelled:
            logger.info("Chunked batch cancelled after chunk starting at {}", chunk[0])
            return ScheduleResult(BatchOutcome.CANCELLED)
        for index, value, _ran in finished:
            collected[index] = value

    return ScheduleResult(BatchOutcome.COMPLETED, collected)


async def run_fanout(
    operations: Sequence[Callable[[], Awaitable[R]]],
    token: CancellationToken,
    limit: int | None = None,
) -> ScheduleResult[R]:
    """Start every operation concurrently and gather their results in order.

    Args:
        operations: Zero-argument coroutine functions.
        token: Polled before each operation starts and before its result is
            recorded. Operations may poll it themselves between remote calls.
        limit: Optional bound on operations in flight.
    """
    semaphore = asyncio.Semaphore(limit) if limit else None

    async def _run(index: int, operation: Callable[[], Awaitable[R]]) -> tuple[int, R | None]:
        if token.cancelled:
            return index, None
        if semaphore is None:
            value = await _guarded(operation)
        else:
            async with semaphore:
                if token.cancelled:
                    return index, None
                value = await _guarded(operation)
        if token.cancelled:
            return index, None
        return index, value

    finished = await asyncio.gather(*(_run(i, op) for i, op in enumerate(operations)))
    if token.cancelled:
        logger.info("Fan-out batch of {} operations cancelled", len(operations))
        return ScheduleResult(BatchOutcome.CANCELLED)

    collected: list[R | None] = [None] * len(operations)
    for index, value in finished:
        collected[index] = value
    return ScheduleResult(BatchOutcome.COMPLETED, collected)
