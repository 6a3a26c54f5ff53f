# src/hdm_console/fetch/infinite_scroll.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Generic, TypeVar

from ..core.ports import ScrollFetcher, Sleeper, StateListener
from .fetch_models import InfiniteScrollState, RequestOptions, RequestStatus
from .fetch_task import RequestTask

logger = logging.getLogger(__name__)

T = TypeVar("T")

HasMore = Callable[[list[Any], int], bool]


class InfiniteScrollController(Generic[T]):
    """
    Growing result list on top of one RequestTask.

    `page` is the next page to fetch. load_more() advances it before the call;
    on failure or cancellation it is rolled back to the attempted page (unless
    something else moved it meanwhile), so the next load_more() asks for the
    same page again. The accumulator is only touched by a successful,
    non-cancelled fetch: page 1 replaces it, any other page appends.

    `immediate` defaults to False, unlike PaginationController. Page changes
    here only come from load_more(), which fetches by itself; refetching on
    every page change as well would request each page twice. immediate=True
    only loads the first page on creation.
    """

    def __init__(
            self,
            fetch: ScrollFetcher,
            options: RequestOptions[list[T]] | None = None,
            *,
            initial_page: int = 1,
            page_size: int = 10,
            has_more: HasMore | None = None,
            immediate: bool = False,
            sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if initial_page < 1:
            raise ValueError(f"initial_page must be >= 1, got {initial_page}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        self._fetch = fetch
        self.page_size = page_size
        self._has_more_fn: HasMore = has_more or self._full_page
        self._page = initial_page
        self._items: list[T] = []
        self._has_more = True
        self._listeners: list[StateListener] = []

        task_options = replace(options or RequestOptions(), immediate=False)
        self._task: RequestTask[list[T]] = RequestTask(
            self._fetch_page,
            task_options,
            finalize=self._apply_items,
            sleep=sleep,
            name=getattr(fetch, "__name__", "scroll_fetch"),
        )
        self._task.subscribe(lambda _state: self._publish())

        if immediate:
            self._task.spawn(self.load_more())

    def _full_page(self, items: list[Any], _page: int) -> bool:
        return len(items) == self.page_size

    async def _fetch_page(self, page: int, *extra: Any) -> tuple[int, list[T]]:
        return page, list(await self._fetch(page, self.page_size, *extra))

    def _apply_items(self, fetched: tuple[int, list[T]]) -> list[T]:
        page, items = fetched
        if page == 1:
            self._items = items
        else:
            self._items = [*self._items, *items]
        self._has_more = bool(self._has_more_fn(items, page))
        return items

    # ---- Read-only view ----

    @property
    def data(self) -> list[T]:
        return self._items

    @property
    def page(self) -> int:
        return self._page

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def request(self) -> RequestTask[list[T]]:
        return self._task

    @property
    def status(self) -> RequestStatus:
        return self._task.status

    @property
    def error(self) -> str | None:
        return self._task.error

    @property
    def loading(self) -> bool:
        return self._task.loading

    @property
    def state(self) -> InfiniteScrollState[T]:
        return InfiniteScrollState(
            status=self._task.status,
            error=self._task.error,
            page=self._page,
            has_more=self._has_more,
            data=list(self._items),
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("infinite scroll listener failed")

    # ---- Requests ----

    async def load_more(self, *extra: Any) -> None:
        """Fetch the next page. Ignored when exhausted or while a fetch is running."""
        if not self._has_more:
            logger.debug("load_more ignored: no more pages (page=%d)", self._page)
            return
        if self._task.loading:
            logger.debug("load_more ignored: fetch in flight (page=%d)", self._page)
            return
        await self._load(extra)

    async def refresh(self, *extra: Any) -> None:
        """Start over from page 1 and fetch it."""
        self._clear()
        await self._load(extra)

    def reset(self) -> None:
        self._clear()
        self._task.reset()

    def cancel(self) -> None:
        self._task.cancel()

    def _clear(self) -> None:
        self._page = 1
        self._items = []
        self._has_more = True
        self._publish()

    async def _load(self, extra: tuple[Any, ...]) -> None:
        page = self._page
        self._page = page + 1
        self._publish()

        loaded = False
        try:
            await self._task.execute(page, *extra)
            loaded = self._task.status is RequestStatus.SUCCESS
        finally:
            if not loaded and self._page == page + 1:
                self._page = page
                logger.debug("page %d not loaded; next load_more retries it", page)
                self._publish()

    async def wait_idle(self) -> None:
        await self._task.wait_idle()

    def close(self) -> None:
        self._task.close()
        self._listeners.clear()

    async def __aenter__(self) -> InfiniteScrollController[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()
