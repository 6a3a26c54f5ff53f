# src/hdm_console/fetch/fetch_models.py

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from ..config import Settings

T = TypeVar("T")

CANCELLED_MESSAGE = "Request cancelled"
DEFAULT_ERROR_MESSAGE = "Request failed"


class RequestStatus(StrEnum):
    """
    Request lifecycle status.

    Exactly one is active. None of them is final: a new execute() always goes
    back to LOADING.
    """

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class RequestState(Generic[T]):
    """
    One published snapshot of a RequestTask.

    - SUCCESS: error is None and data is the latest result
    - ERROR: data is the configured default, error is the message
    """

    data: T | None = None
    status: RequestStatus = RequestStatus.IDLE
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.status is RequestStatus.LOADING

    @classmethod
    def idle(cls, default: T | None) -> RequestState[T]:
        return cls(data=default, status=RequestStatus.IDLE, error=None)

    def begin(self) -> RequestState[T]:
        # Previous data stays visible while loading.
        return replace(self, status=RequestStatus.LOADING, error=None)

    @classmethod
    def succeeded(cls, data: T) -> RequestState[T]:
        return cls(data=data, status=RequestStatus.SUCCESS, error=None)

    @classmethod
    def failed(cls, message: str, default: T | None) -> RequestState[T]:
        return cls(data=default, status=RequestStatus.ERROR, error=message)


# ---- Settlement outcomes ----


@dataclass(frozen=True, slots=True)
class Resolved(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Rejected:
    error: Exception


@dataclass(frozen=True, slots=True)
class Cancelled:
    pass


Outcome = Resolved[Any] | Rejected | Cancelled


@dataclass(frozen=True, slots=True)
class RequestOptions(Generic[T]):
    """
    RequestTask configuration.

    retries is the number of additional attempts after the first failure.
    retry_delay_ms is waited between attempts.
    """

    immediate: bool = False
    default_data: T | None = None
    on_success: Callable[[T], Any] | None = None
    on_error: Callable[[str], Any] | None = None
    retries: int = 0
    retry_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must be >= 0, got {self.retry_delay_ms}")

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> RequestOptions[Any]:
        """App-wide retry policy from Settings; explicit keyword arguments win."""
        values: dict[str, Any] = {
            "retries": settings.request_retries,
            "retry_delay_ms": settings.request_retry_delay_ms,
        }
        values.update(overrides)
        return cls(**values)


# ---- Pagination ----


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """What a pagination adapter returns."""

    data: T
    total: int
    page: int
    page_size: int

    @classmethod
    def coerce(cls, raw: Page[T] | Mapping[str, Any]) -> Page[T]:
        """Accept a Page or a mapping using either pageSize or page_size."""
        if isinstance(raw, Page):
            return raw
        if not isinstance(raw, Mapping):
            raise TypeError(f"paged fetch must return a Page or a mapping, got {type(raw).__name__}")

        page_size = raw.get("pageSize", raw.get("page_size"))
        try:
            return cls(
                data=raw["data"],
                total=int(raw["total"]),
                page=int(raw["page"]),
                page_size=int(page_size),  # type: ignore[arg-type]
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed page result: {e!r}") from e


@dataclass(frozen=True, slots=True)
class PaginationState(Generic[T]):
    data: T | None
    status: RequestStatus
    error: str | None
    page: int
    page_size: int
    total: int

    @property
    def loading(self) -> bool:
        return self.status is RequestStatus.LOADING


@dataclass(frozen=True, slots=True)
class InfiniteScrollState(Generic[T]):
    status: RequestStatus
    error: str | None
    page: int
    has_more: bool
    data: list[T] = field(default_factory=list)

    @property
    def loading(self) -> bool:
        return self.status is RequestStatus.LOADING
