"""Pagination helpers for webservice list endpoints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional


# $skip and $limit are encoded as signed 64-bit BSON integers.
MAX_SKIP = 2**62


@dataclass(frozen=True)
class PaginationConfig:
    """Per-resource pagination settings."""

    default_page_size: int
    max_page_size: int = 100

    def __post_init__(self):
        if self.default_page_size < 1:
            raise ValueError(f"default_page_size must be positive, got {self.default_page_size}.")
        if self.max_page_size < self.default_page_size:
            raise ValueError(
                f"max_page_size ({self.max_page_size}) is smaller than default_page_size ({self.default_page_size})."
            )


@dataclass(frozen=True)
class PageRequest:
    """Normalized 1-based page number and page size."""

    page: int
    size: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.size


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def normalize_page(raw_page: Any, raw_size: Any, config: PaginationConfig) -> PageRequest:
    """Turn raw page/size inputs into a page request with ``page >= 1`` and ``size >= 1``.

    ``size`` is capped at ``config.max_page_size`` and ``page`` is capped so the skip stays
    below :data:`MAX_SKIP`; a capped page is still past the last page of any real collection.
    """
    page = _as_int(raw_page)
    size = _as_int(raw_size)
    if page is None or page < 1:
        page = 1
    if size is None or size < 1:
        size = config.default_page_size
    size = min(size, config.max_page_size)
    page = min(page, MAX_SKIP // size + 1)
    return PageRequest(page=page, size=size)


def total_pages(page_size: int, total_count: int) -> int:
    return math.ceil(total_count / page_size) if total_count > 0 else 0


def render_page_descriptor(page_request: PageRequest, total_count: int) -> Optional[str]:
    """Render ``"<page>/<total pages>"``, or ``None`` when the page is past the last one.

    With no results there are zero pages, so every page is out of range and ``None`` is returned.
    """
    pages = total_pages(page_request.size, total_count)
    if page_request.page <= pages:
        return f"{page_request.page}/{pages}"
    return None
