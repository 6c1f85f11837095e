from __future__ import annotations

"""Market-close freshness policy.

Rates are not aged by a rolling TTL. A table stays valid until the daily FX
close (DAILY_MARKET_CLOSE_HOUR in UTC) has passed on a calendar day later than
the one it was fetched on:

    now before today's close -> valid if fetched at or after 00:00 UTC yesterday
    now at/after today's close -> valid if fetched at or after 00:00 UTC today

The close is a fixed UTC hour (22:00 ~ 5 PM US Eastern standard time); daylight
saving shifts are not modelled. Everything here is pure: `now` is injectable.
"""
from datetime import datetime, time, timedelta, timezone
from typing import Optional

DAILY_MARKET_CLOSE_HOUR = 22
NEXT_UPDATE_OFFSET = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)


def is_expired(
    last_updated: str | datetime,
    now: Optional[datetime] = None,
    close_hour: int = DAILY_MARKET_CLOSE_HOUR,
) -> bool:
    if isinstance(last_updated, str):
        last_updated = parse_timestamp(last_updated)
    now = (now or utcnow()).astimezone(timezone.utc)
    today_start = _start_of_day(now)
    if now.hour >= close_hour:
        return last_updated < today_start
    return last_updated < today_start - timedelta(days=1)


def next_update_time(
    now: Optional[datetime] = None,
    close_hour: int = DAILY_MARKET_CLOSE_HOUR,
    offset: timedelta = NEXT_UPDATE_OFFSET,
) -> datetime:
    now = (now or utcnow()).astimezone(timezone.utc)
    close_today = _start_of_day(now) + timedelta(hours=close_hour)
    if now.hour >= close_hour:
        return close_today + timedelta(days=1) + offset
    return close_today + offset


def cache_age_hours(last_updated: str | datetime, now: Optional[datetime] = None) -> int:
    if isinstance(last_updated, str):
        last_updated = parse_timestamp(last_updated)
    now = now or utcnow()
    return round((now - last_updated).total_seconds() / 3600)


class FreshnessPolicy:
    """Binds the configured close hour and publish offset."""

    def __init__(
        self,
        close_hour: int = DAILY_MARKET_CLOSE_HOUR,
        offset_minutes: int = int(NEXT_UPDATE_OFFSET.total_seconds() // 60),
    ):
        self.close_hour = close_hour
        self.offset = timedelta(minutes=offset_minutes)

    def is_expired(self, last_updated: str | datetime, now: Optional[datetime] = None) -> bool:
        return is_expired(last_updated, now, self.close_hour)

    def next_update_time(self, now: Optional[datetime] = None) -> datetime:
        return next_update_time(now, self.close_hour, self.offset)
