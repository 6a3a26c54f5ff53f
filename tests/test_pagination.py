# tests/test_pagination.py

from __future__ import annotations

import asyncio

import pytest

from hdm_console.fetch.fetch_models import (
    CANCELLED_MESSAGE,
    Page,
    PaginationState,
    RequestOptions,
    RequestStatus,
)
from hdm_console.fetch.pagination import PaginationController

from .fakes import FakePagedApi, GatedOperation, RecordingSleeper


def test_initial_pagination_state() -> None:
    ctl = PaginationController(FakePagedApi(), immediate=False, initial_page=2, initial_page_size=20)

    assert ctl.page == 2
    assert ctl.page_size == 20
    assert ctl.total == 0
    assert ctl.status is RequestStatus.IDLE


def test_set_page_and_page_size_without_auto_refresh() -> None:
    api = FakePagedApi()
    ctl = PaginationController(api, immediate=False)

    ctl.set_page(3)
    ctl.set_page_size(25)

    assert ctl.page == 3
    assert ctl.page_size == 25
    assert api.calls == []


def test_invalid_page_values_are_rejected() -> None:
    ctl = PaginationController(FakePagedApi(), immediate=False)

    with pytest.raises(ValueError):
        ctl.set_page(0)
    with pytest.raises(ValueError):
        ctl.set_page_size(-1)
    with pytest.raises(ValueError):
        PaginationController(FakePagedApi(), immediate=False, initial_page=0)


@pytest.mark.asyncio
async def test_refresh_publishes_page_data_and_total() -> None:
    api = FakePagedApi(total=100)
    ctl = PaginationController(api, immediate=False)

    rows = await ctl.refresh()

    assert api.calls == [(1, 10)]
    assert rows == ctl.data
    assert [r["id"] for r in ctl.data] == list(range(1, 11))
    assert ctl.total == 100
    assert ctl.status is RequestStatus.SUCCESS


@pytest.mark.asyncio
async def test_refresh_passes_extra_arguments() -> None:
    api = FakePagedApi(total=5, as_mapping=False)
    ctl = PaginationController(api, immediate=False)

    await ctl.refresh({"keyword": "blood"})

    assert api.calls == [(1, 10, {"keyword": "blood"})]
    assert ctl.total == 5


@pytest.mark.asyncio
async def test_next_page_after_total_is_known() -> None:
    ctl = PaginationController(FakePagedApi(total=100), immediate=False)

    await ctl.refresh()
    ctl.next_page()

    assert ctl.page == 2


def test_next_page_before_any_fetch_is_ignored() -> None:
    ctl = PaginationController(FakePagedApi(), immediate=False)

    ctl.next_page()

    assert ctl.page == 1


@pytest.mark.asyncio
async def test_next_page_on_last_page_is_ignored() -> None:
    ctl = PaginationController(FakePagedApi(total=95), immediate=False)
    await ctl.refresh()

    ctl.set_page(10)
    ctl.next_page()

    assert ctl.page_count == 10
    assert ctl.page == 10


def test_prev_page() -> None:
    ctl = PaginationController(FakePagedApi(), immediate=False, initial_page=3)

    ctl.prev_page()
    assert ctl.page == 2

    ctl.prev_page()
    ctl.prev_page()
    assert ctl.page == 1


@pytest.mark.asyncio
async def test_auto_refresh_on_creation_and_page_change() -> None:
    api = FakePagedApi(total=30)
    ctl = PaginationController(api)
    await ctl.wait_idle()

    assert api.calls == [(1, 10)]
    assert ctl.total == 30

    ctl.next_page()
    await ctl.wait_idle()
    ctl.set_page_size(15)
    await ctl.wait_idle()

    assert api.calls == [(1, 10), (2, 10), (2, 15)]
    assert [r["id"] for r in ctl.data] == list(range(16, 31))


@pytest.mark.asyncio
async def test_setting_same_page_does_not_refetch() -> None:
    api = FakePagedApi()
    ctl = PaginationController(api)
    await ctl.wait_idle()

    ctl.set_page(1)
    await ctl.wait_idle()

    assert len(api.calls) == 1


@pytest.mark.asyncio
async def test_failure_keeps_page_and_surfaces_error(sleeper: RecordingSleeper) -> None:
    async def broken(page: int, page_size: int):
        raise ConnectionError(f"page {page} unavailable")

    ctl = PaginationController(broken, RequestOptions(retries=1, retry_delay_ms=5), immediate=False, sleep=sleeper)
    ctl.set_page(4)

    with pytest.raises(ConnectionError):
        await ctl.refresh()

    assert ctl.page == 4
    assert ctl.status is RequestStatus.ERROR
    assert ctl.error == "page 4 unavailable"
    assert sleeper.delays == [0.005]


@pytest.mark.asyncio
async def test_retry_keeps_the_page_it_started_with() -> None:
    pages: list[int] = []

    async def flaky(page: int, page_size: int):
        pages.append(page)
        if len(pages) == 1:
            raise ConnectionError("first attempt lost")
        return {"data": [page], "total": 50, "page": page, "pageSize": page_size}

    owner: list[PaginationController] = []

    async def navigate_while_waiting(_seconds: float) -> None:
        owner[0].set_page(5)

    ctl = PaginationController(flaky, RequestOptions(retries=1), immediate=False, sleep=navigate_while_waiting)
    owner.append(ctl)

    assert await ctl.refresh() == [1]
    assert pages == [1, 1]
    assert ctl.data == [1]
    assert ctl.page == 5


@pytest.mark.asyncio
async def test_malformed_page_result_is_an_error() -> None:
    async def bad_shape(page: int, page_size: int):
        return {"rows": []}

    ctl = PaginationController(bad_shape, immediate=False)

    with pytest.raises(ValueError):
        await ctl.refresh()

    assert ctl.status is RequestStatus.ERROR
    assert ctl.total == 0


@pytest.mark.asyncio
async def test_cancelled_fetch_does_not_update_total() -> None:
    gate = GatedOperation()
    ctl = PaginationController(gate, immediate=False)

    runner = asyncio.create_task(ctl.refresh())
    await gate.wait_started()
    ctl.cancel()
    gate.resolve({"data": ["x"], "total": 42, "page": 1, "pageSize": 10})

    assert await runner is None
    assert ctl.total == 0
    assert ctl.error == CANCELLED_MESSAGE


@pytest.mark.asyncio
async def test_listeners_receive_pagination_snapshots() -> None:
    ctl = PaginationController(FakePagedApi(total=12), immediate=False)
    seen: list[PaginationState] = []
    ctl.subscribe(seen.append)

    await ctl.refresh()
    ctl.next_page()

    assert [s.status for s in seen] == [RequestStatus.LOADING, RequestStatus.SUCCESS, RequestStatus.SUCCESS]
    assert seen[1].total == 12
    assert seen[-1].page == 2


@pytest.mark.asyncio
async def test_close_cancels_auto_refresh() -> None:
    gate = GatedOperation()
    async with PaginationController(gate) as ctl:
        await gate.wait_started()

    gate.resolve({"data": [], "total": 3, "page": 1, "pageSize": 10})
    await ctl.wait_idle()

    assert ctl.total == 0
    assert ctl.error == CANCELLED_MESSAGE


def test_page_coerce_accepts_both_key_styles() -> None:
    camel = Page.coerce({"data": [1], "total": "7", "page": 2, "pageSize": 5})
    snake = Page.coerce({"data": [1], "total": 7, "page": 2, "page_size": 5})

    assert camel == snake == Page(data=[1], total=7, page=2, page_size=5)


def test_page_coerce_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        Page.coerce([1, 2, 3])  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        Page.coerce({"data": [], "total": 1, "page": 1})
