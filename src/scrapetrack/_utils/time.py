from __future__ import annotations

from datetime import datetime, timedelta, timezone

_SECONDS_PER_MINUTE = 60
_SECONDS_PER_HOUR = 3600
_SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(duration: timedelta | None) -> str:
    """Format a duration the way session durations are shown to people, e.g. `2h 5m 10s` or `1d 3h 0m`.

    Sub-second remainders are dropped. Days show hours and minutes, hours show minutes and seconds.
    """
    if duration is None:
        return 'None'

    total_seconds = max(0, int(duration.total_seconds()))

    days, remainder = divmod(total_seconds, _SECONDS_PER_DAY)
    hours, remainder = divmod(remainder, _SECONDS_PER_HOUR)
    minutes, seconds = divmod(remainder, _SECONDS_PER_MINUTE)

    if days > 0:
        return f'{days}d {hours}h {minutes}m'
    if hours > 0:
        return f'{hours}h {minutes}m {seconds}s'
    if minutes > 0:
        return f'{minutes}m {seconds}s'
    return f'{seconds}s'


def format_timestamp(value: datetime) -> str:
    """Format a timestamp in a human-readable form, e.g. `2024-05-01 14:03:12 UTC`."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime('%Y-%m-%d %H:%M:%S %Z')
