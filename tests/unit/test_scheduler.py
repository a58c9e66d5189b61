"""
Unit tests for PeriodicTask.

Tests the in-flight guard, overrun accounting and failure isolation.
"""

import asyncio

import pytest

from dexarb.core.scheduler import PeriodicTask


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    @pytest.mark.asyncio
    async def test_run_once(self) -> None:
        """Test a single successful run."""
        calls: list[int] = []

        async def body() -> None:
            calls.append(1)

        task = PeriodicTask("test", body, interval=1.0)

        assert await task.run_once() is True
        assert calls == [1]
        assert task.stats.runs == 1
        assert task.stats.failures == 0
        assert not task.is_busy

    @pytest.mark.asyncio
    async def test_busy_tick_skipped(self) -> None:
        """Test that a tick arriving mid-run is skipped, not stacked."""
        release = asyncio.Event()
        calls: list[int] = []

        async def body() -> None:
            calls.append(1)
            await release.wait()

        task = PeriodicTask("slow", body, interval=10.0)
        first = asyncio.create_task(task.run_once())
        await asyncio.sleep(0)

        assert task.is_busy
        assert await task.run_once() is False

        release.set()
        assert await first is True
        assert calls == [1]
        assert task.stats.skipped == 1
        assert task.stats.overruns == 1

    @pytest.mark.asyncio
    async def test_slow_body_counted_as_overrun(self) -> None:
        """Test that outlasting the interval is recorded."""

        async def body() -> None:
            await asyncio.sleep(0.05)

        task = PeriodicTask("slow", body, interval=0.01)

        await task.run_once()

        assert task.stats.overruns == 1
        assert task.stats.skipped == 0
        assert task.stats.last_duration >= 0.05

    @pytest.mark.asyncio
    async def test_failure_isolated(self) -> None:
        """Test that a failing body is counted and the task stays usable."""
        attempts: list[int] = []

        async def body() -> None:
            attempts.append(1)
            if len(attempts) == 1:
                raise ConnectionError("rpc down")

        task = PeriodicTask("flaky", body, interval=1.0)

        assert await task.run_once() is True
        assert await task.run_once() is True
        assert task.stats.runs == 2
        assert task.stats.failures == 1
        assert task.stats.last_error == "rpc down"
        assert task.stats.failure_rate == 0.5

    @pytest.mark.asyncio
    async def test_loop_runs_until_stopped(self) -> None:
        """Test the background loop ticks repeatedly and stops cleanly."""
        calls: list[int] = []

        async def body() -> None:
            calls.append(1)

        task = PeriodicTask("loop", body, interval=0.01)
        task.start()
        task.start()
        assert task.is_running

        await asyncio.sleep(0.1)
        await task.stop()
        stopped_at = len(calls)
        await asyncio.sleep(0.05)

        assert not task.is_running
        assert stopped_at >= 2
        assert len(calls) == stopped_at

    @pytest.mark.asyncio
    async def test_delayed_start(self) -> None:
        """Test that run_immediately=False waits one interval."""
        calls: list[int] = []

        async def body() -> None:
            calls.append(1)

        task = PeriodicTask("delayed", body, interval=10.0, run_immediately=False)
        task.start()
        await asyncio.sleep(0.02)
        await task.stop()

        assert calls == []

    @pytest.mark.asyncio
    async def test_stop_when_not_started(self) -> None:
        async def body() -> None:
            pass

        await PeriodicTask("idle", body, interval=1.0).stop()

    def test_invalid_interval(self) -> None:
        async def body() -> None:
            pass

        with pytest.raises(ValueError):
            PeriodicTask("bad", body, interval=0.0)
