# src/hdm_console/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the request lifecycle.

Screens hand their fetch functions to the controllers; the controllers only
depend on these Protocols. Transport, persistence and search semantics stay
on the caller's side of the seam, which keeps everything testable with fakes.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Mapping, Protocol, TypeVar

if TYPE_CHECKING:
    from ..fetch.fetch_models import Page, RequestState

T_co = TypeVar("T_co", covariant=True)


class AsyncOperation(Protocol[T_co]):
    """The wrapped request: any coroutine function. Fails by raising."""

    def __call__(self, *args: Any, **kwargs: Any) -> Awaitable[T_co]: ...


class PagedFetcher(Protocol):
    """
    Pagination adapter.

    Returns a Page, or a mapping with keys data/total/page and pageSize (or page_size).
    """

    def __call__(
            self,
            page: int,
            page_size: int,
            *args: Any,
    ) -> Awaitable["Page[Any] | Mapping[str, Any]"]: ...


class ScrollFetcher(Protocol):
    """Infinite-scroll adapter: one page of items per call."""

    def __call__(self, page: int, page_size: int, *args: Any) -> Awaitable[list[Any]]: ...


class StateListener(Protocol):
    """Receives every published RequestState (the "re-render" hook)."""

    def __call__(self, state: "RequestState[Any]") -> None: ...


class Sleeper(Protocol):
    """Retry delay. asyncio.sleep in production, a recorder in tests."""

    def __call__(self, seconds: float) -> Awaitable[None]: ...
