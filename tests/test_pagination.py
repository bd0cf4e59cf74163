import pytest

from salesdesk.core.exceptions import ValidationError
from salesdesk.schemas.catalog.catalog_schemas import PaginationMeta
from salesdesk.services.cart.pagination import PaginationCursor


def cursor_with(total, page=1, limit=20):
    cursor = PaginationCursor(limit=limit)
    cursor.apply_meta(PaginationMeta(
        page=page, limit=limit, total=total,
        pages=-(-total // limit), has_next=False, has_prev=False,
    ))
    return cursor


class TestDerived:

    def test_total_pages_rounds_up(self):
        assert cursor_with(41).total_pages == 3

    def test_empty_result_has_no_pages(self):
        cursor = cursor_with(0)
        assert cursor.total_pages == 0
        assert not cursor.has_next
        assert not cursor.visible

    def test_single_page_hidden(self):
        assert not cursor_with(20).visible

    def test_bounds_on_last_page(self):
        assert cursor_with(45, page=3).bounds() == (40, 45)

    def test_snapshot_showing_range(self):
        snap = cursor_with(45, page=2).snapshot()
        assert snap["showing_from"] == 21
        assert snap["showing_to"] == 40
        assert snap["has_prev"] and snap["has_next"]


class TestMoves:

    def test_next_and_prev(self):
        cursor = cursor_with(60)
        assert cursor.go_to_page(2) is True
        assert cursor.go_to_page(1) is True
        assert cursor.page == 1

    def test_out_of_range_ignored(self):
        cursor = cursor_with(60)
        assert cursor.go_to_page(4) is False
        assert cursor.go_to_page(0) is False
        assert cursor.page == 1

    def test_same_page_is_not_a_move(self):
        assert cursor_with(60).go_to_page(1) is False

    def test_suspended_cursor_ignores_moves(self):
        cursor = cursor_with(60)
        cursor.suspend()
        assert cursor.go_to_page(2) is False
        assert not cursor.visible
        cursor.resume()
        assert cursor.visible

    def test_limit_change_resets_page(self):
        cursor = cursor_with(300, page=3)
        cursor.set_limit(50)
        assert (cursor.page, cursor.limit) == (1, 50)

    def test_unsupported_limit(self):
        with pytest.raises(ValidationError):
            cursor_with(300).set_limit(30)

    def test_constructor_validates_limit(self):
        with pytest.raises(ValidationError):
            PaginationCursor(limit=7)


class TestPageWindow:

    def test_short_range_lists_every_page(self):
        assert cursor_with(100).page_window() == [1, 2, 3, 4, 5]

    def test_near_start(self):
        assert cursor_with(200, page=2).page_window() == [1, 2, 3, 4, None, 10]

    def test_middle(self):
        assert cursor_with(200, page=5).page_window() == [1, None, 4, 5, 6, None, 10]

    def test_near_end(self):
        assert cursor_with(200, page=9).page_window() == [1, None, 7, 8, 9, 10]
