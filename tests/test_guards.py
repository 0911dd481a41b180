"""
Tests for timeouts, retries with linear backoff, and cancellation tokens.
"""
import asyncio

import pytest

from car_analysis.core import guards
from car_analysis.core.context import CancellationToken
from car_analysis.core.errors import RunCancelledError, ToolTimeoutError
from car_analysis.core.guards import with_retries, with_timeout


@pytest.fixture
def recorded_sleeps(monkeypatch):
    delays = []

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)

    monkeypatch.setattr(guards.asyncio, "sleep", fake_sleep)
    return delays


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_value_in_time(self):
        async def quick():
            return 42

        assert await with_timeout(quick(), 1) == 42

    @pytest.mark.asyncio
    async def test_raises_tool_timeout(self):
        async def slow():
            await asyncio.sleep(10)

        with pytest.raises(ToolTimeoutError) as exc_info:
            await with_timeout(slow(), 0.01)
        assert str(exc_info.value) == "tool-timeout"


class TestWithRetries:
    @pytest.mark.asyncio
    async def test_succeeds_after_failures_with_linear_backoff(self, recorded_sleeps):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("transport")
            return "ok"

        result = await with_retries(flaky, retries=3, base_delay=0.3, label="Compression")

        assert result == "ok"
        assert len(attempts) == 3
        assert recorded_sleeps == pytest.approx([0.3, 0.6])

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, recorded_sleeps):
        attempts = []

        async def always_fails():
            attempts.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await with_retries(always_fails, retries=3, base_delay=0.3)

        assert len(attempts) == 4
        assert recorded_sleeps == pytest.approx([0.3, 0.6, 0.9])

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self, recorded_sleeps):
        attempts = []

        async def cancelled():
            attempts.append(1)
            raise RunCancelledError()

        with pytest.raises(RunCancelledError):
            await with_retries(cancelled, retries=3)

        assert len(attempts) == 1
        assert recorded_sleeps == []


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        token = CancellationToken()

        async def work():
            return "done"

        assert await token.run(work()) == "done"

    @pytest.mark.asyncio
    async def test_run_after_cancel_raises_without_starting_work(self):
        token = CancellationToken()
        token.cancel("client disconnected")
        started = []

        async def work():
            started.append(1)

        with pytest.raises(RunCancelledError, match="client disconnected"):
            await token.run(work())
        assert started == []

    @pytest.mark.asyncio
    async def test_cancel_aborts_in_flight_work(self):
        token = CancellationToken()
        work_cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                work_cancelled.set()
                raise

        async def cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel("stop")

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(RunCancelledError):
            await token.run(slow())
        await canceller
        await asyncio.wait_for(work_cancelled.wait(), 1)

    @pytest.mark.asyncio
    async def test_stream_stops_when_cancelled(self):
        token = CancellationToken()

        async def numbers():
            for i in range(10):
                yield i

        seen = []
        with pytest.raises(RunCancelledError):
            async for item in token.stream(numbers()):
                seen.append(item)
                if item == 2:
                    token.cancel("enough")
        assert seen == [0, 1, 2]

    def test_cancel_is_idempotent(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.cancelled
        assert token.reason == "first"
