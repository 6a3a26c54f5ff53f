# src/hdm_console/fetch/fetch_task.py

from __future__ import annotations

"""
RequestTask: one async operation with observable state.

Each execute():
- starts with a fresh cancel token and publishes LOADING,
- awaits the wrapped operation, retrying on failure up to `retries` more times,
- settles into exactly one Outcome (Resolved / Rejected / Cancelled),
- publishes the matching state and fires on_success / on_error.

Cancellation is advisory. The wrapped coroutine keeps running; only the
publication of its result is rerouted to the "Request cancelled" error state,
and execute() returns the default instead of raising. A cancelled call that
has since been superseded by a newer execute() publishes nothing at all.

Two overlapping execute() calls are not serialized: the one that settles last
wins the published state. Use execute_latest() (or a Debouncer) for
keystroke-driven fetches.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ..core.ports import AsyncOperation, Sleeper, StateListener
from .errors import error_message
from .fetch_models import (
    CANCELLED_MESSAGE,
    Cancelled,
    Outcome,
    Rejected,
    RequestOptions,
    RequestState,
    RequestStatus,
    Resolved,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Cancel latch for one execution."""

    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False


class RequestTask(Generic[T]):
    """
    Async request lifecycle: state, retry, cancellation, callbacks.

    `finalize` (optional) maps the operation's raw result to the published data.
    It runs once, only for a result that was not cancelled, so wrappers can keep
    their side effects (page totals, accumulators) out of cancelled calls.
    """

    def __init__(
            self,
            operation: AsyncOperation[Any],
            options: RequestOptions[T] | None = None,
            *,
            finalize: Callable[[Any], T] | None = None,
            sleep: Sleeper = asyncio.sleep,
            name: str | None = None,
    ) -> None:
        self._operation = operation
        self.options: RequestOptions[T] = options or RequestOptions()
        self._finalize = finalize
        self._sleep = sleep
        self.name = name or getattr(operation, "__name__", "request")

        self._state: RequestState[T] = RequestState.idle(self.options.default_data)
        self._listeners: list[StateListener] = []
        self._token = CancelToken()
        self._in_flight: set[CancelToken] = set()
        self._generation = 0
        self._attempts = 0
        self._closed = False
        self._background: set[asyncio.Task[Any]] = set()

        if self.options.immediate:
            # Needs a running loop, like any other task scheduling.
            self.spawn(self.execute())

    # ---- Read-only view ----

    @property
    def state(self) -> RequestState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def status(self) -> RequestStatus:
        return self._state.status

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def attempts(self) -> int:
        """Retries used so far by the most recent execution."""
        return self._attempts

    @property
    def cancel_requested(self) -> bool:
        """Whether the most recent execution has been cancelled."""
        return self._token.cancelled

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- Subscribers ----

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for every published state. Returns the unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, state: RequestState[T]) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("state listener failed request=%s", self.name)

    # ---- Control ----

    def reset(self) -> None:
        """Back to idle with the default data. An in-flight call may still overwrite this."""
        self._attempts = 0
        self._publish(RequestState.idle(self.options.default_data))

    def cancel(self) -> None:
        """Mark every in-flight execution cancelled. The next execute() starts clean."""
        if self._in_flight:
            logger.debug("cancel requested request=%s in_flight=%d", self.name, len(self._in_flight))
        for token in self._in_flight:
            token.cancelled = True
        self._token.cancelled = True

    async def execute(self, *args: Any, **kwargs: Any) -> T | None:
        """
        Run the operation with retry.

        Returns the result, or the default data if the call was cancelled.
        Re-raises the last failure once the retry budget is spent.
        """
        token = CancelToken()
        self._token = token
        self._generation += 1
        generation = self._generation
        self._in_flight.add(token)
        self._attempts = 0

        self._publish(self._state.begin())
        logger.debug("execute request=%s retries=%d", self.name, self.options.retries)

        try:
            outcome = await self._run(token, args, kwargs)
        except asyncio.CancelledError:
            # Hard cancellation from the loop: publish like a soft cancel, then let it propagate.
            self._settle_cancelled(generation)
            raise
        finally:
            self._in_flight.discard(token)

        return self._settle(outcome, generation)

    async def execute_latest(self, *args: Any, **kwargs: Any) -> T | None:
        """Cancel whatever is in flight, then execute. The newest call owns the state."""
        self.cancel()
        return await self.execute(*args, **kwargs)

    async def _run(self, token: CancelToken, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Outcome:
        # Per-execution budget; self._attempts only mirrors the newest call.
        attempts = 0
        while True:
            try:
                result = await self._operation(*args, **kwargs)
            except Exception as e:
                if token.cancelled:
                    return Cancelled()
                if attempts >= self.options.retries:
                    return Rejected(e)

                attempts += 1
                if token is self._token:
                    self._attempts = attempts
                logger.warning(
                    "request=%s failed (%s), retry %d/%d in %dms",
                    self.name,
                    error_message(e),
                    attempts,
                    self.options.retries,
                    self.options.retry_delay_ms,
                )
                await self._sleep(self.options.retry_delay_seconds)
                if token.cancelled:
                    return Cancelled()
                continue

            if token.cancelled:
                return Cancelled()
            if self._finalize is None:
                return Resolved(result)
            try:
                return Resolved(self._finalize(result))
            except Exception as e:
                return Rejected(e)

    def _settle(self, outcome: Outcome, generation: int) -> T | None:
        if isinstance(outcome, Resolved):
            if generation == self._generation:
                self._attempts = 0
            self._publish(RequestState.succeeded(outcome.value))
            logger.debug("request=%s succeeded", self.name)
            self._fire(self.options.on_success, outcome.value)
            return outcome.value

        if isinstance(outcome, Cancelled):
            return self._settle_cancelled(generation)

        message = error_message(outcome.error)
        self._publish(RequestState.failed(message, self.options.default_data))
        logger.debug("request=%s failed: %s", self.name, message)
        self._fire(self.options.on_error, message)
        raise outcome.error

    def _settle_cancelled(self, generation: int) -> T | None:
        if generation != self._generation:
            logger.debug("request=%s cancelled and superseded; nothing published", self.name)
            return self.options.default_data
        self._publish(RequestState.failed(CANCELLED_MESSAGE, self.options.default_data))
        logger.debug("request=%s settled as cancelled", self.name)
        return self.options.default_data

    def _fire(self, callback: Callable[[Any], Any] | None, value: Any) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            logger.exception("request callback failed request=%s", self.name)

    # ---- Background work / teardown ----

    def spawn(self, coro: Any) -> asyncio.Task[Any]:
        """
        Run a coroutine in the background on behalf of this task.

        The task is kept referenced until done; a failure is logged instead of
        being left as "exception was never retrieved".
        """
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Already published as ERROR state; this only keeps asyncio quiet.
            logger.debug("background request=%s ended with %r", self.name, exc)

    async def wait_idle(self) -> None:
        """Wait for background work started by spawn() (immediate run, auto-refresh)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def close(self) -> None:
        """Teardown: cancel in-flight work and drop listeners. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.cancel()
        self._listeners.clear()

    async def __aenter__(self) -> RequestTask[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()
