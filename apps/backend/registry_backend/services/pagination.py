"""
Storage-agnostic pagination.

A page source is anything that can count itself and return an ordered slice.
Relational listings and Redis-backed favorites both plug in through the same
two-method contract, so the pager never assumes a query object.
"""
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from registry_backend.core.errors import OutOfRangePageError

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

DEFAULT_PAGE_SIZE: int = 15

# Every listing clamps out-of-range pages instead of erroring. Stale favorite
# counts and bookmarked page links both produce pages past the end.
DEFAULT_LENIENT: bool = True


class PageSource(Protocol[T_co]):
    async def total(self) -> int:
        ...

    async def slice(self, offset: int, limit: int) -> Sequence[T_co]:
        ...


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total_count: int
    total_pages: int
    current_page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @classmethod
    def empty(cls, current_page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> "Page[T]":
        return cls(items=[], total_count=0, total_pages=0, current_page=current_page, page_size=page_size)


def parse_page_number(raw: Any) -> int | None:
    """Returns the page as an int, or None if it is not an integer (query strings included)."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


class Pager(Generic[T]):
    """
    Presents a PageSource as a sequence of fixed-size pages.

    In lenient mode a page below 1 (or a non-integer page) is clamped to 1, and
    a page past the end yields an empty item list with correct totals. In
    strict mode both raise OutOfRangePageError.
    """

    def __init__(
        self,
        source: PageSource[T],
        page_size: int = DEFAULT_PAGE_SIZE,
        lenient: bool = DEFAULT_LENIENT,
    ):
        self._source = source
        self._lenient = lenient
        self._page_size = DEFAULT_PAGE_SIZE
        self._current_page = 1
        self._fetched = False
        self.set_page_size(page_size)

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def lenient(self) -> bool:
        return self._lenient

    def set_page_size(self, page_size: int) -> None:
        if self._fetched:
            raise RuntimeError("Page size cannot change once pages have been requested")
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise ValueError(f"Page size must be a positive integer, got {page_size!r}")
        self._page_size = page_size

    def set_current_page(self, page: Any) -> None:
        self._current_page = self._normalize(page)

    def _normalize(self, raw: Any) -> int:
        page = parse_page_number(raw)
        if page is not None and page >= 1:
            return page
        if self._lenient:
            return 1
        raise OutOfRangePageError(page if page is not None else 0)

    async def get_page(self, page: Any = None) -> Page[T]:
        number = self._current_page if page is None else self._normalize(page)
        self._fetched = True

        total_count = await self._source.total()
        if total_count < 0:
            raise ValueError(f"Page source reported a negative total: {total_count}")

        total_pages = math.ceil(total_count / self._page_size)

        # Page 1 of an empty collection is valid; anything past the last page is not
        if number > max(total_pages, 1):
            if not self._lenient:
                raise OutOfRangePageError(number, total_pages)
            logger.debug(f"Page {number} past last page {total_pages}; returning empty page")
            return Page(
                items=[],
                total_count=total_count,
                total_pages=total_pages,
                current_page=number,
                page_size=self._page_size,
            )

        items: list[T] = []
        if total_count > 0:
            offset = (number - 1) * self._page_size
            items = list(await self._source.slice(offset, self._page_size))[: self._page_size]

        return Page(
            items=items,
            total_count=total_count,
            total_pages=total_pages,
            current_page=number,
            page_size=self._page_size,
        )


async def paginate(
    source: PageSource[T],
    page: Any = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    lenient: bool = DEFAULT_LENIENT,
) -> Page[T]:
    """Convenience wrapper for the common one-page-per-request case."""
    pager: Pager[T] = Pager(source, page_size=page_size, lenient=lenient)
    pager.set_current_page(page)
    return await pager.get_page()


__all__ = [
    "DEFAULT_LENIENT",
    "DEFAULT_PAGE_SIZE",
    "Page",
    "PageSource",
    "Pager",
    "paginate",
    "parse_page_number",
]
