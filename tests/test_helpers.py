"""Tests for helpers."""
from datetime import date, datetime, timedelta

from helpers import fmt_date, is_past, new_id, overlaps, parse_date, today


class TestNewId:
    def test_ids_are_unique(self):
        ids = {new_id() for _ in range(500)}
        assert len(ids) == 500

    def test_ids_are_lowercase_alphanumeric(self):
        value = new_id()
        assert value == value.lower()
        assert value.isalnum()


class TestIsPast:
    def test_yesterday_is_past(self):
        assert is_past(today(-1))

    def test_today_is_not_past(self):
        assert not is_past(today())

    def test_time_of_day_ignored(self):
        start_of_today = datetime.combine(date.today(), datetime.min.time())
        assert not is_past(start_of_today)
        assert is_past(start_of_today - timedelta(seconds=1))

    def test_missing_date_is_not_past(self):
        assert not is_past(None)


class TestOverlaps:
    def test_touching_intervals_overlap(self):
        assert overlaps(date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 3), date(2025, 1, 5))

    def test_disjoint_intervals(self):
        assert not overlaps(date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3), date(2025, 1, 4))

    def test_missing_to_is_single_day(self):
        assert overlaps(date(2025, 1, 2), None, date(2025, 1, 1), date(2025, 1, 3))
        assert not overlaps(date(2025, 1, 5), None, date(2025, 1, 1), date(2025, 1, 3))

    def test_symmetric(self):
        spans = [
            (date(2025, 1, 1), date(2025, 1, 3)),
            (date(2025, 1, 3), None),
            (date(2025, 1, 4), date(2025, 1, 9)),
            (date(2024, 12, 1), date(2025, 2, 1)),
        ]
        for a in spans:
            for b in spans:
                assert overlaps(*a, *b) == overlaps(*b, *a)


class TestFormatting:
    def test_fmt_date(self):
        assert fmt_date(date(2025, 3, 7)) == '2025-03-07'
        assert fmt_date(datetime(2025, 3, 7, 15, 30)) == '2025-03-07'
        assert fmt_date(None) == ''

    def test_parse_date(self):
        assert parse_date('2025-03-07') == date(2025, 3, 7)
        assert parse_date('  ') is None
        assert parse_date('not a date') is None
        assert parse_date(None) is None
