"""Tests for date range helpers and search normalisation."""

from datetime import date

from app.utils.dates import FAR_FUTURE, add_months, covers, effective_end, ranges_overlap
from app.utils.search import like_pattern, normalize_search_query


class TestRangesOverlap:
    """Inclusive calendar-day overlap."""

    def test_shared_boundary_day_overlaps(self):
        """A rental ending on the day another starts is a double booking."""
        assert ranges_overlap(date(2025, 3, 1), date(2025, 3, 10), date(2025, 3, 10), date(2025, 3, 12))

    def test_adjacent_days_do_not_overlap(self):
        assert not ranges_overlap(date(2025, 3, 1), date(2025, 3, 9), date(2025, 3, 10), date(2025, 3, 12))

    def test_contained_range_overlaps(self):
        assert ranges_overlap(date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 10), date(2025, 3, 12))

    def test_open_ended_overlaps_everything_after_start(self):
        assert ranges_overlap(date(2025, 3, 1), None, date(2030, 1, 1), date(2030, 1, 2))

    def test_open_ended_does_not_reach_back(self):
        assert not ranges_overlap(date(2025, 3, 1), None, date(2025, 2, 1), date(2025, 2, 28))

    def test_two_open_ended_ranges_overlap(self):
        assert ranges_overlap(date(2025, 3, 1), None, date(2026, 1, 1), None)

    def test_symmetric(self):
        a = (date(2025, 3, 1), date(2025, 3, 5))
        b = (date(2025, 3, 5), None)
        assert ranges_overlap(*a, *b) == ranges_overlap(*b, *a)


class TestCovers:
    """Day-in-range checks."""

    def test_both_ends_inclusive(self):
        assert covers(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 1))
        assert covers(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 5))

    def test_outside(self):
        assert not covers(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 6))

    def test_open_end(self):
        assert covers(date(2025, 3, 1), None, date(2099, 1, 1))
        assert effective_end(None) == FAR_FUTURE


class TestAddMonths:
    """Calendar month arithmetic."""

    def test_clamps_to_month_end(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_crosses_year(self):
        assert add_months(date(2025, 12, 15), 2) == date(2026, 2, 15)


class TestSearchNormalisation:
    """License plates match with or without dashes."""

    def test_strips_dashes_and_uppercases(self):
        assert normalize_search_query(" ab-123-c ") == "AB123C"

    def test_like_pattern(self):
        assert like_pattern("ab-12") == "%AB12%"

    def test_empty(self):
        assert normalize_search_query(None) == ""
