"""
services/schedule_service.py — Calendar rules for the monthly rotation.

The rotation runs on the first Sunday of every month at 01:00 in the one
configured time zone. "Today" always means the local date in that zone, so a
tick at 01:00 Warsaw time on a Sunday counts as Sunday even though it is
still Saturday evening in UTC during summer time.

Also parses the recurrence expression ("0 1 * * 0") into APScheduler CronTrigger
arguments. Crontab numbers weekdays 0-7 with Sunday as 0 and 7; CronTrigger
numbers them from Monday. Weekday numbers are therefore rewritten as names
before they reach APScheduler.

Layer rules:
  - No Flask imports. No database access.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from rosary.app.errors import ScheduleConfigError

SUNDAY = 6  # date.weekday()

ROTATION_HOUR = 1

_CRON_FIELDS = ("minute", "hour", "day", "month", "day_of_week")
_CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")
_CRON_TOKEN = re.compile(r"^[\w*/,\-]+$")
# Weekday numbers, but not step values such as the 2 in "*/2".
_CRON_WEEKDAY_NUMBER = re.compile(r"(?<![/\d])(\d+)")


def is_first_sunday_of_month(day: date) -> bool:
    """True when `day` is a Sunday falling on the 1st to the 7th of its month."""
    return day.weekday() == SUNDAY and 1 <= day.day <= 7


def get_first_sunday_of_month(year: int, month: int) -> date:
    """
    Returns the first Sunday of the month.

    Args:
        month: 1-12.
    """
    first = date(year, month, 1)
    return first + timedelta(days=(SUNDAY - first.weekday()) % 7)


def local_today(tz: tzinfo, now: datetime | None = None) -> date:
    """The calendar date of `now` (default: the current instant) in zone `tz`."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def is_today_first_sunday_of_month(tz: tzinfo, now: datetime | None = None) -> bool:
    return is_first_sunday_of_month(local_today(tz, now))


def get_next_rotation_time(tz: tzinfo, now: datetime | None = None) -> datetime:
    """
    The next first-Sunday 01:00 local time strictly after `now`.

    Informational only (status endpoint); the scheduler itself relies on the
    cron tick plus the first-Sunday check.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_now = now.astimezone(tz)

    year, month = local_now.year, local_now.month
    while True:
        candidate = datetime.combine(
            get_first_sunday_of_month(year, month),
            time(ROTATION_HOUR, 0),
            tzinfo=tz,
        )
        if candidate > local_now:
            return candidate
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)


def _translate_weekdays(field: str) -> str:
    def _name(match: re.Match) -> str:
        number = int(match.group(1))
        if number > 7:
            raise ScheduleConfigError(f"Weekday {number} is out of range 0-7.")
        return _CRON_DAY_NAMES[number]

    return _CRON_WEEKDAY_NUMBER.sub(_name, field)


def parse_cron(expression: str) -> dict[str, str]:
    """
    Splits a 5-field crontab expression into CronTrigger keyword arguments.

    Raises ScheduleConfigError when the expression does not have exactly five
    fields or contains characters crontab does not allow. Range checks of the
    individual fields happen when CronTrigger is built (see scheduler.py),
    which reports them as ValueError.
    """
    if not isinstance(expression, str):
        raise ScheduleConfigError(f"Recurrence expression must be a string, got {expression!r}.")

    fields = expression.split()
    if len(fields) != len(_CRON_FIELDS):
        raise ScheduleConfigError(
            f"Recurrence expression {expression!r} must have exactly 5 fields "
            "(minute hour day-of-month month day-of-week)."
        )

    for value in fields:
        if not _CRON_TOKEN.match(value):
            raise ScheduleConfigError(
                f"Recurrence expression {expression!r} contains an invalid field {value!r}."
            )

    kwargs = dict(zip(_CRON_FIELDS, fields))
    kwargs["day_of_week"] = _translate_weekdays(kwargs["day_of_week"])
    return kwargs
