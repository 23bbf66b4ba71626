from datetime import date, datetime, time

import pytest

from leadcrm.services.timezone import (
    callback_window,
    format_utc,
    org_local_to_utc,
    parse_date,
    parse_instant,
    parse_time,
)


class TestOrgLocalToUtc:
    def test_subtracts_fixed_three_hours(self):
        assert org_local_to_utc("2025-09-28", "21:03") == datetime(2025, 9, 28, 18, 3)

    def test_window_is_thirty_minutes(self):
        start, end = callback_window("2025-09-28", "21:03")
        assert format_utc(start) == "2025-09-28T18:03:00.000Z"
        assert format_utc(end) == "2025-09-28T18:33:00.000Z"

    def test_crosses_midnight_backwards(self):
        assert org_local_to_utc("2025-01-01", "01:30") == datetime(2024, 12, 31, 22, 30)

    def test_ignores_daylight_saving(self):
        # Winter and summer dates use the same offset
        assert org_local_to_utc("2025-01-15", "12:00").hour == 9
        assert org_local_to_utc("2025-07-15", "12:00").hour == 9

    def test_accepts_date_and_time_objects(self):
        assert org_local_to_utc(date(2025, 9, 28), time(21, 3)) == datetime(2025, 9, 28, 18, 3)

    def test_missing_part_raises(self):
        with pytest.raises(ValueError):
            org_local_to_utc("2025-09-28", "")


class TestParsing:
    def test_parse_date_empty(self):
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_parse_date_ignores_time_suffix(self):
        assert parse_date("2025-09-28T00:00:00.000Z") == date(2025, 9, 28)

    def test_parse_time_with_seconds(self):
        assert parse_time("09:05:00") == time(9, 5)

    @pytest.mark.parametrize("value", ["28/09/2025", "2025-13-01", "nonsense"])
    def test_parse_date_rejects_bad_input(self, value):
        with pytest.raises(ValueError):
            parse_date(value)

    def test_parse_instant_normalises_offsets(self):
        assert parse_instant("2025-09-28T21:03:00+03:00") == datetime(2025, 9, 28, 18, 3)
        assert parse_instant("2025-09-28T18:03:00.000Z") == datetime(2025, 9, 28, 18, 3)
        assert parse_instant("2025-09-28T18:03:00") == datetime(2025, 9, 28, 18, 3)
