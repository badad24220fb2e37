"""Tests for imessage_archiver.utils.formatters."""

from datetime import date

from imessage_archiver.utils.formatters import format_date_list, format_duration, truncate_string


def test_format_date_list():
    assert format_date_list([date(2024, 6, 8), date(2024, 6, 7)]) == "2024-06-08, 2024-06-07"
    assert format_date_list([]) == "none"


def test_format_duration():
    assert format_duration(4.3) == "4.3s"
    assert format_duration(125) == "2m 5s"
    assert format_duration(3725) == "1h 2m"


def test_truncate_string():
    assert truncate_string("short", 10) == "short"
    assert truncate_string("a" * 20, 10) == "aaaaaaa..."
