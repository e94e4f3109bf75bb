"""Tests for local-date helpers."""

import time
from datetime import date, datetime, timedelta, timezone

import pytest

from tally.dates import (
    ValidationError,
    days_between,
    parse_local_date_string,
    shift_date_string,
    to_local_date_string,
    today_string,
    validate_user_date,
)


@pytest.fixture
def fixed_offset(monkeypatch):
    """Pin the local zone to a fixed offset for the test."""
    import tally.config as cfg

    def _set(hours: str):
        monkeypatch.setattr(cfg, "TIMEZONE_OFFSET_HOURS", hours)
    return _set


@pytest.fixture
def system_zone(monkeypatch):
    """Switch the process zone via TZ and restore it afterwards."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available")
    import tally.config as cfg
    monkeypatch.setattr(cfg, "TIMEZONE_OFFSET_HOURS", "")

    def _set(name: str):
        monkeypatch.setenv("TZ", name)
        time.tzset()
    yield _set
    monkeypatch.undo()
    time.tzset()


class TestToLocalDateString:
    def test_plain_date(self):
        assert to_local_date_string(date(2025, 4, 5)) == "2025-04-05"

    def test_zero_padding(self):
        assert to_local_date_string(date(987, 1, 2)) == "0987-01-02"

    def test_naive_datetime_taken_as_local(self):
        assert to_local_date_string(datetime(2025, 12, 31, 23, 59)) == "2025-12-31"

    def test_aware_instant_uses_local_day_not_utc(self, fixed_offset):
        fixed_offset("-5")
        # 02:00 UTC on the 6th is still the evening of the 5th at UTC-5
        instant = datetime(2025, 4, 6, 2, 0, tzinfo=timezone.utc)
        assert to_local_date_string(instant) == "2025-04-05"

    def test_aware_instant_east_of_utc(self, fixed_offset):
        fixed_offset("8")
        instant = datetime(2025, 4, 5, 20, 0, tzinfo=timezone.utc)
        assert to_local_date_string(instant) == "2025-04-06"

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            to_local_date_string("2025-04-05")


class TestParseLocalDateString:
    def test_local_midnight(self):
        dt = parse_local_date_string("2025-04-05")
        assert (dt.year, dt.month, dt.day) == (2025, 4, 5)
        assert (dt.hour, dt.minute, dt.second) == (0, 0, 0)
        assert dt.tzinfo is not None

    def test_fixed_offset_zone(self, fixed_offset):
        fixed_offset("9")
        dt = parse_local_date_string("2025-04-05")
        assert dt.utcoffset() == timedelta(hours=9)

    @pytest.mark.parametrize("bad", [
        "2025-13-40",
        "2025-02-30",
        "2025-00-10",
        "2025-4-5",
        "2025/04/05",
        "2025-04",
        "2025-04-05-01",
        "abcd-ef-gh",
        " 2025-04-05",
        "2025-04-05\n",
        "",
        None,
    ])
    def test_malformed_raises(self, bad):
        with pytest.raises(ValidationError):
            parse_local_date_string(bad)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_local_date_string("2025-13-40")

    def test_leap_day(self):
        assert parse_local_date_string("2024-02-29").day == 29
        with pytest.raises(ValidationError):
            parse_local_date_string("2025-02-29")

    def test_round_trip(self):
        day = date(2024, 1, 1)
        while day.year == 2024:
            s = day.isoformat()
            assert to_local_date_string(parse_local_date_string(s)) == s
            day += timedelta(days=1)

    def test_round_trip_fixed_offset(self, fixed_offset):
        fixed_offset("-11")
        for s in ("2025-01-01", "2025-03-09", "2025-11-02", "2025-12-31"):
            assert to_local_date_string(parse_local_date_string(s)) == s

    @pytest.mark.parametrize("day", ["2024-09-08", "2023-09-03", "2022-09-11"])
    def test_round_trip_when_midnight_is_skipped(self, system_zone, day):
        # Chile springs forward at 00:00, so these days start at 01:00
        system_zone("America/Santiago")
        dt = parse_local_date_string(day)
        assert dt.date().isoformat() == day
        assert to_local_date_string(dt) == day

    def test_round_trip_system_zone_with_dst(self, system_zone):
        system_zone("America/Santiago")
        day = date(2024, 1, 1)
        while day.year == 2024:
            s = day.isoformat()
            assert to_local_date_string(parse_local_date_string(s)) == s
            day += timedelta(days=1)


class TestDaysBetween:
    def test_zero_duration(self):
        assert days_between("2025-04-05", "2025-04-05") == 0

    def test_forward_and_backward(self):
        assert days_between("2025-04-01", "2025-04-05") == 4
        assert days_between("2025-04-05", "2025-04-01") == -4

    def test_symmetry(self):
        pairs = [
            ("2025-01-01", "2025-12-31"),
            ("2024-02-28", "2024-03-01"),
            ("2025-03-08", "2025-03-10"),   # US DST start
            ("2025-10-25", "2025-10-27"),   # EU DST end
            ("1999-12-31", "2000-01-01"),
        ]
        for a, b in pairs:
            assert days_between(a, b) == -days_between(b, a)

    def test_across_dst_is_whole_days(self):
        assert days_between("2025-03-08", "2025-03-10") == 2
        assert days_between("2025-10-25", "2025-10-27") == 2

    def test_across_leap_year(self):
        assert days_between("2024-02-28", "2024-03-01") == 2
        assert days_between("2025-02-28", "2025-03-01") == 1

    def test_malformed_raises(self):
        with pytest.raises(ValidationError):
            days_between("2025-04-01", "2025-13-40")


class TestShiftAndToday:
    def test_shift_back_over_month(self):
        assert shift_date_string("2025-03-01", -1) == "2025-02-28"

    def test_shift_forward_over_year(self):
        assert shift_date_string("2025-12-31", 1) == "2026-01-01"

    def test_today_from_given_now(self, fixed_offset):
        fixed_offset("0")
        now = datetime(2025, 4, 5, 23, 30, tzinfo=timezone(timedelta(hours=-3)))
        assert today_string(now) == "2025-04-06"

    def test_today_default_is_valid(self):
        s = today_string()
        assert to_local_date_string(parse_local_date_string(s)) == s


class TestValidateUserDate:
    def test_accepts_past_and_today(self):
        assert validate_user_date("2025-04-01", today="2025-04-05") == "2025-04-01"
        assert validate_user_date("2025-04-05", today="2025-04-05") == "2025-04-05"

    def test_strips_whitespace(self):
        assert validate_user_date(" 2025-04-01 ", today="2025-04-05") == "2025-04-01"

    def test_rejects_future(self):
        with pytest.raises(ValidationError, match="future"):
            validate_user_date("2025-04-06", today="2025-04-05")

    def test_rejects_bad_format(self):
        with pytest.raises(ValidationError):
            validate_user_date("04/05/2025", today="2025-04-05")
