from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tabledata.core.config import settings
from tabledata.core.errors import OffsetOutOfRange
from tabledata.schemas.data import PageInfo


@dataclass(frozen=True)
class PaginationWindow:
    offset: int
    limit: int


def _to_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def normalize_window(
    offset: Any = None,
    limit: Any = None,
    *,
    default_limit: int | None = None,
    max_limit: int | None = None,
) -> PaginationWindow:
    """Build a window from raw ``offset``/``limit`` values.

    Missing, non-numeric or negative values fall back to defaults instead of
    failing; a limit above the maximum page size is clamped.
    """
    default_limit = default_limit or settings.DATA_DEFAULT_PAGE_SIZE
    max_limit = max_limit or settings.DATA_MAX_PAGE_SIZE

    parsed_limit = _to_int(limit)
    if parsed_limit is None or parsed_limit <= 0:
        parsed_limit = default_limit
    parsed_limit = min(parsed_limit, max_limit)

    parsed_offset = _to_int(offset)
    if parsed_offset is None or parsed_offset < 0:
        parsed_offset = 0
    return PaginationWindow(offset=parsed_offset, limit=parsed_limit)


def ensure_offset_in_range(window: PaginationWindow, total_rows: int) -> None:
    if window.offset > total_rows:
        raise OffsetOutOfRange(window.offset, total_rows)


def page_info(window: PaginationWindow, total_rows: int) -> PageInfo:
    return PageInfo(
        totalRows=total_rows,
        page=window.offset // window.limit + 1,
        pageSize=window.limit,
        isFirstPage=window.offset == 0,
        isLastPage=window.offset + window.limit >= total_rows,
    )
