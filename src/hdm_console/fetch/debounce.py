# src/hdm_console/fetch/debounce.py

from __future__ import annotations

"""
Debounce helpers for keystroke-driven requests.

RequestTask does not serialize overlapping execute() calls, so a search box
that fires on every key would let an old response win the race. Debouncing the
trigger (and using execute_latest for the call itself) keeps one request per
pause in typing.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from ..config import get_settings

logger = logging.getLogger(__name__)


class Debouncer:
    """Only the last call within `delay_ms` reaches the callback (sync or async)."""

    def __init__(self, callback: Callable[..., Any], delay_ms: int) -> None:
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        self._callback = callback
        self.delay_ms = delay_ms
        self._handle: asyncio.TimerHandle | None = None
        self._pending_args: tuple[tuple[Any, ...], dict[str, Any]] | None = None
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        """(Re)start the quiet period with these arguments."""
        if self._handle is not None:
            self._handle.cancel()
        self._pending_args = (args, kwargs)
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000.0, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending_args = None

    def flush(self) -> None:
        """Run the pending call now, if any."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def _fire(self) -> None:
        self._handle = None
        if self._pending_args is None:
            return
        args, kwargs = self._pending_args
        self._pending_args = None

        try:
            result = self._callback(*args, **kwargs)
        except Exception:
            logger.exception("debounced callback failed")
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Future[Any]) -> None:
        self._running.discard(task)  # type: ignore[arg-type]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("debounced callback failed: %r", exc)

    async def wait_idle(self) -> None:
        """Wait until no call is pending and every async callback has finished."""
        while self._handle is not None or self._running:
            if self._running:
                await asyncio.gather(*list(self._running), return_exceptions=True)
            else:
                await asyncio.sleep(self.delay_ms / 1000.0)


class DebouncedSearch:
    """
    Search box state: the typed query, and the query that was actually searched.

    search(query) runs once per pause in typing, and never for an empty query.
    """

    def __init__(self, search: Callable[[str], Any], delay_ms: int | None = None) -> None:
        if delay_ms is None:
            delay_ms = get_settings().debounce_ms
        self._search = search
        self.query = ""
        self.debounced_query = ""
        self.is_searching = False
        self._debouncer = Debouncer(self._run, delay_ms)

    def set_query(self, text: str) -> None:
        self.query = text
        self._debouncer.call(text)

    async def _run(self, text: str) -> None:
        self.debounced_query = text
        if not text:
            return
        self.is_searching = True
        try:
            result = self._search(text)
            if inspect.isawaitable(result):
                await result
        finally:
            self.is_searching = False

    def cancel(self) -> None:
        self._debouncer.cancel()

    async def wait_idle(self) -> None:
        await self._debouncer.wait_idle()
