"""Unit tests for the bounded scheduler."""

import asyncio
import random

import pytest

from core.models import BatchOutcome
from core.services.scheduler import (
    CancellationToken,
    ProgressCounter,
    chunked,
    run_fanout,
    run_in_chunks,
)


class InFlightTracker:
    """Records the highest number of operations running at once."""

    def __init__(self) -> None:
        self.current = 0
        self.peak = 0

    async def run(self, value: int, delay: float) -> int:
        self.current += 1
        self.peak = max(self.peak, self.current)
        try:
            await asyncio.sleep(delay)
        finally:
            self.current -= 1
        return value * 2


class TestChunked:
    """Tests for chunked."""

    def test_splits_in_order(self) -> None:
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestRunInChunks:
    """Tests for run_in_chunks."""

    @pytest.mark.asyncio
    async def test_bound_and_order(self) -> None:
        """At most `limit` run at once and results follow input order."""
        rng = random.Random(7)
        delays = [rng.uniform(0, 0.01) for _ in range(10)]
        tracker = InFlightTracker()

        result = await run_in_chunks(
            list(range(10)),
            lambda i: tracker.run(i, delays[i]),
            3,
            CancellationToken(),
        )

        assert result.outcome is BatchOutcome.COMPLETED
        assert result.results == [i * 2 for i in range(10)]
        assert tracker.peak <= 3

    @pytest.mark.asyncio
    async def test_cancellation_stops_later_chunks(self) -> None:
        token = CancellationToken()
        calls: list[int] = []

        async def op(i: int) -> int:
            calls.append(i)
            if i == 4:
                token.cancel()
            await asyncio.sleep(0)
            return i

        result = await run_in_chunks(list(range(10)), op, 3, token)

        assert result.cancelled
        assert result.results == []
        assert calls == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_failed_operation_yields_none(self) -> None:
        async def op(i: int) -> int:
            if i == 1:
                raise RuntimeError("boom")
            return i

        result = await run_in_chunks([0, 1, 2], op, 2, CancellationToken())

        assert result.completed
        assert result.results == [0, None, 2]

    @pytest.mark.asyncio
    async def test_on_result_sees_every_item(self) -> None:
        seen: list[tuple[int, int]] = []

        async def op(i: int) -> int:
            return i + 100

        async def on_result(index: int, value: int) -> None:
            seen.append((index, value))

        await run_in_chunks([0, 1, 2, 3], op, 2, CancellationToken(), on_result)

        assert sorted(seen) == [(0, 100), (1, 101), (2, 102), (3, 103)]

    @pytest.mark.asyncio
    async def test_rejects_non_positive_limit(self) -> None:
        async def op(i: int) -> int:
            return i

        with pytest.raises(ValueError):
            await run_in_chunks([1], op, 0, CancellationToken())


class TestRunFanout:
    """Tests for run_fanout."""

    @pytest.mark.asyncio
    async def test_results_by_position(self) -> None:
        tracker = InFlightTracker()
        ops = [lambda i=i: tracker.run(i, 0.01 * (5 - i)) for i in range(5)]

        result = await run_fanout(ops, CancellationToken())

        assert result.completed
        assert result.results == [0, 2, 4, 6, 8]
        assert tracker.peak == 5

    @pytest.mark.asyncio
    async def test_semaphore_bound(self) -> None:
        tracker = InFlightTracker()
        ops = [lambda i=i: tracker.run(i, 0.005) for i in range(8)]

        result = await run_fanout(ops, CancellationToken(), limit=2)

        assert result.completed
        assert tracker.peak <= 2

    @pytest.mark.asyncio
    async def test_pre_cancelled_runs_nothing(self) -> None:
        token = CancellationToken()
        token.cancel()
        calls: list[int] = []

        async def op() -> int:
            calls.append(1)
            return 1

        result = await run_fanout([op, op], token)

        assert result.outcome is BatchOutcome.CANCELLED
        assert result.results == []
        assert calls == []


class TestProgressCounter:
    """Tests for ProgressCounter and CancellationToken."""

    @pytest.mark.asyncio
    async def test_concurrent_increments(self) -> None:
        counter = ProgressCounter()

        async def bump() -> None:
            await asyncio.sleep(0)
            await counter.increment()

        await asyncio.gather(*(bump() for _ in range(50)))

        assert await counter.value() == 50

    def test_token_reset(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        token.reset()
        assert not token.cancelled
