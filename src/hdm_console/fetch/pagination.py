# src/hdm_console/fetch/pagination.py

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Generic, TypeVar

from ..core.ports import PagedFetcher, Sleeper, StateListener
from .fetch_models import Page, PaginationState, RequestOptions, RequestState, RequestStatus
from .fetch_task import RequestTask

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaginationController(Generic[T]):
    """
    Page / page-size state on top of one RequestTask.

    The fetch function receives (page, page_size, *extra) and returns a Page
    (or an equivalent mapping). Callers only see the page's data; total is
    picked up from every successful fetch.

    Unless immediate is explicitly False, the first page is fetched on
    creation and every page / page-size change schedules a refresh.
    """

    def __init__(
            self,
            fetch: PagedFetcher,
            options: RequestOptions[T] | None = None,
            *,
            initial_page: int = 1,
            initial_page_size: int = 10,
            immediate: bool | None = None,
            sleep: Sleeper = asyncio.sleep,
    ) -> None:
        _check_positive("initial_page", initial_page)
        _check_positive("initial_page_size", initial_page_size)

        self._fetch = fetch
        self._page = initial_page
        self._page_size = initial_page_size
        self._total = 0
        self.auto_refresh = immediate is not False
        self._listeners: list[StateListener] = []

        task_options = replace(options or RequestOptions(), immediate=False)
        self._task: RequestTask[T] = RequestTask(
            self._fetch_page,
            task_options,
            finalize=self._apply_page,
            sleep=sleep,
            name=getattr(fetch, "__name__", "paged_fetch"),
        )
        self._task.subscribe(lambda _state: self._publish())

        if self.auto_refresh:
            self._task.spawn(self.refresh())

    async def _fetch_page(self, page: int, page_size: int, *extra: Any) -> Page[T]:
        # A malformed result fails here, inside the retry loop.
        return Page.coerce(await self._fetch(page, page_size, *extra))

    def _apply_page(self, result: Page[T]) -> T:
        self._total = max(0, result.total)
        return result.data

    # ---- Read-only view ----

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def total(self) -> int:
        return self._total

    @property
    def page_count(self) -> int:
        return math.ceil(self._total / self._page_size)

    @property
    def request(self) -> RequestTask[T]:
        return self._task

    @property
    def data(self) -> T | None:
        return self._task.data

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
    def state(self) -> PaginationState[T]:
        req: RequestState[T] = self._task.state
        return PaginationState(
            data=req.data,
            status=req.status,
            error=req.error,
            page=self._page,
            page_size=self._page_size,
            total=self._total,
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
                logger.exception("pagination listener failed")

    # ---- Navigation ----

    def set_page(self, page: int) -> None:
        _check_positive("page", page)
        if page == self._page:
            return
        self._page = page
        self._changed()

    def set_page_size(self, page_size: int) -> None:
        _check_positive("page_size", page_size)
        if page_size == self._page_size:
            return
        self._page_size = page_size
        self._changed()

    def next_page(self) -> None:
        if self._page >= self.page_count:
            logger.debug("next_page ignored: page=%d of %d", self._page, self.page_count)
            return
        self.set_page(self._page + 1)

    def prev_page(self) -> None:
        if self._page <= 1:
            logger.debug("prev_page ignored: already on first page")
            return
        self.set_page(self._page - 1)

    def _changed(self) -> None:
        self._publish()
        if self.auto_refresh:
            self._task.spawn(self.refresh())

    # ---- Requests ----

    async def refresh(self, *extra: Any) -> T | None:
        """
        Fetch the current page. Page and page size are kept even if this fails.

        Both are read once here, so every retry asks for the same page even if
        the caller navigates while a retry is pending.
        """
        return await self._task.execute(self._page, self._page_size, *extra)

    def reset(self) -> None:
        self._task.reset()

    def cancel(self) -> None:
        self._task.cancel()

    async def wait_idle(self) -> None:
        await self._task.wait_idle()

    def close(self) -> None:
        self._task.close()
        self._listeners.clear()

    async def __aenter__(self) -> PaginationController[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


def _check_positive(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
