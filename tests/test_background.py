"""
Tests for the background event loop used by the Streamlit UI.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Iterator

import pytest

from interview_client.background import BackgroundLoop, get_background_loop


@pytest.fixture
def loop() -> Iterator[BackgroundLoop]:
    """A running background loop, stopped after the test."""
    background = BackgroundLoop(name="test-loop")
    yield background
    background.stop()


class TestBackgroundLoop:
    """Tests for running coroutines from a synchronous thread."""

    def test_run_returns_coroutine_result(self, loop: BackgroundLoop) -> None:
        """run() blocks until the coroutine finishes."""

        async def add(a: int, b: int) -> int:
            await asyncio.sleep(0)
            return a + b

        assert loop.run(add(2, 3), timeout=5) == 5

    def test_coroutines_run_on_loop_thread(self, loop: BackgroundLoop) -> None:
        """Work submitted from the caller executes on the loop's thread."""

        async def thread_name() -> str:
            return threading.current_thread().name

        assert loop.run(thread_name(), timeout=5) == "test-loop"

    def test_run_propagates_exceptions(self, loop: BackgroundLoop) -> None:
        """Exceptions raised by the coroutine reach the caller."""

        async def fail() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            loop.run(fail(), timeout=5)

    def test_call_soon_runs_on_loop(self, loop: BackgroundLoop) -> None:
        """call_soon() schedules a plain callable on the loop thread."""
        seen: list[str] = []
        done = threading.Event()

        def record(value: str) -> None:
            seen.append(threading.current_thread().name)
            seen.append(value)
            done.set()

        loop.call_soon(record, "closed")

        assert done.wait(timeout=5)
        assert seen == ["test-loop", "closed"]

    def test_stop_cancels_pending_tasks(self) -> None:
        """Stopping the loop cancels long-running tasks and refuses new work."""
        background = BackgroundLoop(name="stop-loop")

        async def forever() -> None:
            await asyncio.Event().wait()

        future = background.submit(forever())
        background.stop()

        assert not background.is_running
        assert future.cancelled()
        late = forever()
        with pytest.raises(RuntimeError, match="not running"):
            background.submit(late)
        late.close()


class TestSharedBackgroundLoop:
    """Tests for the process-wide loop used by every Streamlit session."""

    def test_sessions_share_one_loop(self) -> None:
        """Repeated lookups return the same running loop."""
        first = get_background_loop()

        assert get_background_loop() is first
        assert first.is_running

    def test_stopped_loop_is_replaced(self) -> None:
        """A stopped shared loop is swapped for a fresh one."""
        stale = get_background_loop()
        stale.stop()

        fresh = get_background_loop()

        assert fresh is not stale
        assert fresh.is_running
