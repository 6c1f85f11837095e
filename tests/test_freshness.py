from datetime import datetime, timedelta, timezone

from conftest import utc
from toolrouter.services.rates.freshness import (
    FreshnessPolicy,
    cache_age_hours,
    format_timestamp,
    is_expired,
    next_update_time,
    parse_timestamp,
)

TODAY = (2026, 3, 10)


def test_yesterday_evening_rate_valid_before_close() -> None:
    last = utc(2026, 3, 9, 23)

    assert is_expired(last, now=utc(*TODAY, 21)) is False


def test_yesterday_evening_rate_expires_after_close() -> None:
    last = utc(2026, 3, 9, 23)

    assert is_expired(last, now=utc(*TODAY, 23)) is True


def test_close_hour_itself_counts_as_after_close() -> None:
    last = utc(2026, 3, 9, 23, 59)

    assert is_expired(last, now=utc(*TODAY, 22)) is True
    assert is_expired(last, now=utc(*TODAY, 21, 59)) is False


def test_yesterday_midnight_is_still_valid_before_close() -> None:
    assert is_expired(utc(2026, 3, 9, 0), now=utc(*TODAY, 8)) is False


def test_two_days_old_is_expired_before_close() -> None:
    assert is_expired(utc(2026, 3, 8, 23, 59), now=utc(*TODAY, 8)) is True


def test_todays_rate_is_valid_after_close() -> None:
    assert is_expired(utc(*TODAY, 0, 1), now=utc(*TODAY, 23)) is False


def test_string_timestamps_are_accepted() -> None:
    assert is_expired("2026-03-09T23:00:00.000Z", now=utc(*TODAY, 21)) is False
    assert is_expired("2026-03-09T23:00:00.000Z", now=utc(*TODAY, 23)) is True


def test_next_update_is_today_before_close() -> None:
    assert next_update_time(utc(*TODAY, 9)) == utc(*TODAY, 22, 5)


def test_next_update_is_tomorrow_after_close() -> None:
    assert next_update_time(utc(*TODAY, 22, 30)) == utc(2026, 3, 11, 22, 5)


def test_next_update_rolls_over_month_end() -> None:
    assert next_update_time(utc(2026, 3, 31, 23)) == utc(2026, 4, 1, 22, 5)


def test_policy_uses_configured_hour_and_offset() -> None:
    policy = FreshnessPolicy(close_hour=21, offset_minutes=15)

    assert policy.next_update_time(utc(*TODAY, 20)) == utc(*TODAY, 21, 15)
    assert policy.is_expired(utc(2026, 3, 9, 23), now=utc(*TODAY, 21, 30)) is True


def test_cache_age_rounds_to_whole_hours() -> None:
    now = utc(*TODAY, 12)

    assert cache_age_hours(now - timedelta(hours=5, minutes=29), now) == 5
    assert cache_age_hours(now - timedelta(hours=5, minutes=31), now) == 6


def test_timestamp_round_trip_keeps_utc() -> None:
    value = datetime(2026, 3, 10, 22, 5, 0, 123000, tzinfo=timezone.utc)

    text = format_timestamp(value)

    assert text == "2026-03-10T22:05:00.123Z"
    assert parse_timestamp(text) == value


def test_offset_timestamps_are_normalized_to_utc() -> None:
    assert parse_timestamp("2026-03-10T17:00:00-05:00") == utc(*TODAY, 22)
    assert parse_timestamp("2026-03-10T22:00:00") == utc(*TODAY, 22)
