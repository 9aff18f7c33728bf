"""
Tests for the shared-timer polling scheduler.
"""

import asyncio

import pytest

from bridgewatch.core.bridge.polling import PollingScheduler


async def wait_until(predicate, timeout: float = 2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class TestSessionRegistry:
    def test_duplicate_key_is_rejected(self):
        scheduler = PollingScheduler(interval_seconds=60)

        async def callback(session):
            return None

        token = scheduler.start_session("0xabc", callback)

        assert token is not None
        assert scheduler.start_session("0xabc", callback) is None
        assert scheduler.active_keys == ["0xabc"]
        assert scheduler.get_session("0xabc").token == token

    def test_stop_session(self):
        scheduler = PollingScheduler(interval_seconds=60)

        async def callback(session):
            return None

        scheduler.start_session("0xabc", callback)
        session = scheduler.get_session("0xabc")

        assert scheduler.stop_session("0xabc") is True
        assert session.cancelled is True
        assert scheduler.is_current(session) is False
        assert scheduler.is_active("0xabc") is False
        assert scheduler.stop_session("0xabc") is False
        assert scheduler.stop_session("0xunknown") is False

    def test_stop_by_token_and_stop_all(self):
        scheduler = PollingScheduler(interval_seconds=60)

        async def callback(session):
            return None

        token = scheduler.start_session("a", callback)
        scheduler.start_session("b", callback)
        scheduler.start_session("c", callback)

        assert scheduler.stop_by_token(token) is True
        assert scheduler.stop_by_token(token) is False
        assert scheduler.active_keys == ["b", "c"]

        scheduler.stop_all()

        assert scheduler.active_keys == []

    def test_restarted_key_gets_a_fresh_session(self):
        scheduler = PollingScheduler(interval_seconds=60)

        async def callback(session):
            return None

        first = scheduler.start_session("a", callback)
        old_session = scheduler.get_session("a")
        scheduler.stop_session("a")
        second = scheduler.start_session("a", callback)

        assert second != first
        assert scheduler.is_current(old_session) is False
        assert scheduler.is_current(scheduler.get_session("a")) is True


class TestPolling:
    @pytest.mark.asyncio
    async def test_poll_now_runs_every_session(self):
        scheduler = PollingScheduler(interval_seconds=60)
        seen = []

        async def callback(session):
            seen.append((session.key, session.payload))

        scheduler.start_session("a", callback, payload=1)
        scheduler.start_session("b", callback, payload=2)

        await scheduler.poll_now()

        assert sorted(seen) == [("a", 1), ("b", 2)]
        assert scheduler.get_session("a").poll_count == 1
        assert scheduler.get_session("a").last_polled is not None

    @pytest.mark.asyncio
    async def test_callback_errors_are_counted_not_raised(self):
        scheduler = PollingScheduler(interval_seconds=60)

        async def callback(session):
            raise RuntimeError("boom")

        scheduler.start_session("a", callback)

        await scheduler.poll_now()
        await scheduler.poll_now()

        session = scheduler.get_session("a")
        assert session.consecutive_errors == 2
        assert session.poll_count == 2
        assert session.in_flight is False

    @pytest.mark.asyncio
    async def test_slow_poll_times_out(self):
        scheduler = PollingScheduler(interval_seconds=60, poll_timeout_seconds=0.01)

        async def callback(session):
            await asyncio.sleep(1)

        scheduler.start_session("a", callback)

        await scheduler.poll_now()

        assert scheduler.get_session("a").consecutive_errors == 1
        assert scheduler.get_session("a").in_flight is False

    @pytest.mark.asyncio
    async def test_one_slow_session_does_not_block_others(self):
        scheduler = PollingScheduler(interval_seconds=0.01)
        release = asyncio.Event()
        fast_calls = 0
        slow_calls = 0

        async def slow(session):
            nonlocal slow_calls
            slow_calls += 1
            await release.wait()

        async def fast(session):
            nonlocal fast_calls
            fast_calls += 1

        scheduler.start_session("slow", slow)
        scheduler.start_session("fast", fast)
        await scheduler.ensure_started()
        try:
            await wait_until(lambda: fast_calls >= 3)
            # The blocked session is skipped while its first poll is in flight
            assert slow_calls == 1
            assert scheduler.get_session("slow").in_flight is True
        finally:
            release.set()
            await scheduler.stop()

        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_new_session_polls_immediately_when_running(self):
        scheduler = PollingScheduler(interval_seconds=60)
        calls = []

        async def callback(session):
            calls.append(session.key)

        await scheduler.ensure_started()
        try:
            scheduler.start_session("a", callback)
            await wait_until(lambda: calls == ["a"])
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_inflight_polls(self):
        scheduler = PollingScheduler(interval_seconds=60, poll_timeout_seconds=30)
        started = asyncio.Event()

        async def callback(session):
            started.set()
            await asyncio.sleep(30)

        scheduler.start_session("a", callback)
        await scheduler.ensure_started()
        await asyncio.wait_for(started.wait(), timeout=1)

        await scheduler.stop()

        assert scheduler.status()["inflight"] == 0
        assert scheduler.is_active("a") is True

    @pytest.mark.asyncio
    async def test_ensure_started_is_idempotent(self):
        scheduler = PollingScheduler(interval_seconds=60)

        await scheduler.ensure_started()
        await scheduler.ensure_started()
        try:
            assert scheduler.status()["running"] is True
        finally:
            await scheduler.stop()
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_status_snapshot(self):
        scheduler = PollingScheduler(interval_seconds=5)

        async def callback(session):
            return None

        scheduler.start_session("a", callback)
        await scheduler.poll_now()

        status = scheduler.status()

        assert status["running"] is False
        assert status["interval_seconds"] == 5
        assert status["sessions"][0]["key"] == "a"
        assert status["sessions"][0]["poll_count"] == 1
