"""
Background event loop for synchronous front ends.

Streamlit reruns its script on a worker thread, so the async core needs a
loop that outlives a single rerun. ``BackgroundLoop`` owns one event loop
on a daemon thread; every coroutine, stream reader, and callback runs there,
keeping the core single-threaded. The UI thread only submits work and reads
immutable state snapshots. One shared loop serves every browser session of
the process (see ``get_background_loop``).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Optional, TypeVar


__all__ = ["BackgroundLoop", "get_background_loop"]


logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class BackgroundLoop:
    """
    An asyncio event loop running on its own daemon thread.

    Example:
        >>> loop = BackgroundLoop()
        >>> report = loop.run(api.get_insights("abc123"), timeout=30)
        >>> loop.call_soon(handle.close)
        >>> loop.stop()
    """

    def __init__(self, name: str = "interview-client-loop") -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_forever, name=name, daemon=True)
        self._thread.start()
        logger.debug("Background loop %s started", name)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._loop.is_closed()

    def _run_forever(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            if pending:
                self._loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            self._loop.close()

    def submit(self, coro: Awaitable[_T]) -> Future[_T]:
        """Schedule a coroutine on the loop; returns a concurrent future."""
        if not self.is_running:
            raise RuntimeError("Background loop is not running.")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)  # type: ignore[arg-type]

    def run(self, coro: Awaitable[_T], timeout: float | None = None) -> _T:
        """Run a coroutine on the loop and block the calling thread for its result."""
        return self.submit(coro).result(timeout)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Invoke a plain callable on the loop thread."""
        if not self.is_running:
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop, cancelling anything still running on it."""
        if not self.is_running:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        logger.debug("Background loop %s stopped", self._thread.name)


# =============================================================================
# Singleton for Streamlit
# =============================================================================

_loop_instance: Optional[BackgroundLoop] = None
_loop_lock = threading.Lock()


def get_background_loop() -> BackgroundLoop:
    """
    Get or create the process-wide BackgroundLoop.

    Streamlit sessions come and go without a teardown hook, so they share
    this loop instead of each starting a thread. A stopped loop is replaced.
    """
    global _loop_instance
    with _loop_lock:
        if _loop_instance is None or not _loop_instance.is_running:
            _loop_instance = BackgroundLoop()
        return _loop_instance
