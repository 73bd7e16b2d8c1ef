"""Tests for page-window and page navigation computation."""

import pytest

from listforge.lists import compute_page_window, get_pages


# =============================================================================
# compute_page_window
# =============================================================================


class TestComputePageWindow:
    def test_everything_fits(self):
        assert compute_page_window(2, 5, 10) == [1, 2, 3, 4, 5]

    def test_no_limit(self):
        assert compute_page_window(7, 12, None) == list(range(1, 13))

    def test_no_pages(self):
        assert compute_page_window(1, 0, 10) == []

    def test_at_start(self):
        assert compute_page_window(1, 20, 10) == [1, 2, 3, 4, 5, 6, 7, 8, 9, "..."]

    def test_in_the_middle(self):
        assert compute_page_window(10, 20, 10) == ["...", 7, 8, 9, 10, 11, 12, 13, 14, "..."]

    def test_at_end(self):
        assert compute_page_window(20, 20, 10) == ["...", 12, 13, 14, 15, 16, 17, 18, 19, 20]

    def test_odd_window(self):
        assert compute_page_window(6, 20, 5) == ["...", 5, 6, 7, "..."]

    @pytest.mark.parametrize("current", range(1, 31))
    def test_window_never_exceeds_max(self, current):
        pages = compute_page_window(current, 30, 8)
        assert len(pages) <= 8
        assert current in pages


# =============================================================================
# get_pages
# =============================================================================


class TestGetPages:
    def test_middle_page(self):
        page = get_pages(45, 2, 10)
        assert page.current_page == 2
        assert page.total_pages == 5
        assert page.previous == 1
        assert page.next == 3
        assert (page.first, page.last) == (11, 20)
        assert page.skip == 10

    def test_last_partial_page(self):
        page = get_pages(45, 5, 10)
        assert (page.first, page.last) == (41, 45)
        assert page.next is False

    def test_clamps_past_the_end(self):
        page = get_pages(25, 999, 10)
        assert page.current_page == 3
        assert page.skip == 20

    @pytest.mark.parametrize("requested", [0, -3, None, "abc"])
    def test_bad_page_is_first(self, requested):
        assert get_pages(25, requested, 10).current_page == 1

    def test_numeric_string(self):
        assert get_pages(25, "2", 10).current_page == 2

    def test_empty(self):
        page = get_pages(0, 1, 10)
        assert page.total_pages == 0
        assert page.pages == []
        assert page.previous is False
        assert page.next is False
        assert (page.first, page.last, page.skip) == (0, 0, 0)

    def test_per_page_must_be_positive(self):
        with pytest.raises(ValueError):
            get_pages(10, 1, 0)
