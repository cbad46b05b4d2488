"""Fixed-size local pages over the filtered view.

Independent of the remote API's own page size.
"""
from __future__ import annotations
import math
from typing import List, Sequence, TypeVar

PAGE_SIZE = 6

T = TypeVar("T")


def _check_page_size(page_size: int) -> None:
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise ValueError(f"Page size must be a positive integer, got {page_size!r}")


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages for ``count`` items; never less than 1."""
    _check_page_size(page_size)
    return max(1, math.ceil(count / page_size))


def clamp_page(page_index: int, pages: int) -> int:
    return min(max(1, page_index), max(1, pages))


def paginate(view: Sequence[T], page_size: int = PAGE_SIZE, page_index: int = 1) -> List[T]:
    """Slice one page out of ``view``; ``page_index`` is clamped into range."""
    page = clamp_page(page_index, total_pages(len(view), page_size))
    start = (page - 1) * page_size
    return list(view[start:start + page_size])
