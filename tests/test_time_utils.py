from datetime import UTC, date, datetime, time, timedelta, timezone

from backend.app.core.time import as_utc, minutes_between, sunday_based_weekday, utc_now


def test_utc_now_is_timezone_aware_utc():
    value = utc_now()
    assert value.tzinfo is UTC


def test_as_utc_attaches_utc_to_naive_values():
    naive = datetime(2025, 3, 10, 18, 0)
    assert as_utc(naive) == datetime(2025, 3, 10, 18, 0, tzinfo=UTC)
    assert as_utc(None) is None


def test_as_utc_converts_other_offsets():
    lagos = datetime(2025, 3, 10, 19, 0, tzinfo=timezone(timedelta(hours=1)))
    assert as_utc(lagos) == datetime(2025, 3, 10, 18, 0, tzinfo=UTC)


def test_minutes_between():
    assert minutes_between(time(18, 0), time(19, 0)) == 60
    assert minutes_between(time(9, 15), time(9, 45)) == 30


def test_sunday_based_weekday():
    assert sunday_based_weekday(date(2025, 3, 9)) == 0  # Sunday
    assert sunday_based_weekday(date(2025, 3, 10)) == 1  # Monday
    assert sunday_based_weekday(date(2025, 3, 15)) == 6  # Saturday
