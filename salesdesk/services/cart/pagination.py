# salesdesk/services/cart/pagination.py

import math

from salesdesk.constants.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PAGE_LIMIT_OPTIONS
from salesdesk.core.exceptions import ValidationError
from salesdesk.schemas.catalog.catalog_schemas import PaginationMeta

WINDOW = 5


class PaginationCursor:
    """
    Position in the server-paged catalog. While a local search is active
    the cursor is suspended: it is hidden from the view and page moves are
    ignored until the search clears.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT, limit_options=PAGE_LIMIT_OPTIONS):
        self.limit_options = tuple(limit_options)
        if limit not in self.limit_options:
            raise ValidationError("Unsupported page size", {"limit": limit, "options": list(self.limit_options)})
        self.page = DEFAULT_PAGE
        self.limit = limit
        self.total_items = 0
        self.suspended = False

    # -------------------------
    # DERIVED
    # -------------------------
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.limit) if self.total_items else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def visible(self) -> bool:
        return not self.suspended and self.total_pages > 1

    def bounds(self) -> tuple[int, int]:
        """Zero-based [start, end) slice of the full result set for this page."""
        start = (self.page - 1) * self.limit
        return start, min(start + self.limit, self.total_items)

    def page_window(self) -> list[int | None]:
        """Page numbers to render; ``None`` marks an ellipsis."""
        total = self.total_pages
        if total <= WINDOW:
            return list(range(1, total + 1))

        if self.page <= 3:
            return [1, 2, 3, 4, None, total]
        if self.page >= total - 2:
            return [1, None, total - 3, total - 2, total - 1, total]
        return [1, None, self.page - 1, self.page, self.page + 1, None, total]

    # -------------------------
    # MOVES
    # -------------------------
    def go_to_page(self, page: int) -> bool:
        """Returns True when the cursor moved; rejected moves leave it untouched."""
        if self.suspended or page == self.page:
            return False
        if page < 1 or page > self.total_pages:
            return False
        if page > self.page and not self.has_next:
            return False
        if page < self.page and not self.has_prev:
            return False
        self.page = page
        return True

    def set_limit(self, limit: int) -> None:
        if limit not in self.limit_options:
            raise ValidationError("Unsupported page size", {"limit": limit, "options": list(self.limit_options)})
        self.limit = limit
        self.page = DEFAULT_PAGE

    def reset(self) -> None:
        self.page = DEFAULT_PAGE
        self.total_items = 0

    def suspend(self) -> None:
        self.suspended = True

    def resume(self) -> None:
        self.suspended = False

    def apply_meta(self, meta: PaginationMeta) -> None:
        self.total_items = meta.total
        self.page = max(meta.page, DEFAULT_PAGE)

    def snapshot(self) -> dict:
        start, end = self.bounds()
        return {
            "page": self.page,
            "limit": self.limit,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
            "visible": self.visible,
            "showing_from": start + 1 if end > start else 0,
            "showing_to": end,
            "page_window": self.page_window(),
        }
