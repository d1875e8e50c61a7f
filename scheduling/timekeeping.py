"""Wall-clock helpers for periods and timetable dates.

Times travel to and from the database as ``HH:MM:SS`` text without a timezone
and dates as ``YYYY-MM-DD``.  Existing rows use exactly these formats, so the
helpers here are the only place that converts between text and
:class:`datetime.time` / :class:`datetime.date`.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

from .errors import ValidationError

TIME_FORMAT = "%H:%M:%S"
SHORT_TIME_FORMAT = "%H:%M"
DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"

# Durations offered by the smart-add form.  Any positive number of minutes is
# accepted by :func:`derive_end_time`.
DURATION_CHOICES = (30, 35, 40, 45, 50, 60)

TimeLike = Union[time, str]
DateLike = Union[date, str]


def parse_time(value: TimeLike) -> time:
    """Return ``value`` as a :class:`time`.

    Accepts ``HH:MM:SS`` as stored and ``HH:MM`` as typed into a form.
    """
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("A time is required.")
    text = value.strip()
    for fmt in (TIME_FORMAT, SHORT_TIME_FORMAT):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"'{value}' is not a valid time (expected HH:MM).")


def format_time(value: TimeLike) -> str:
    return parse_time(value).strftime(TIME_FORMAT)


def parse_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("A date is required.")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"'{value}' is not a valid date (expected YYYY-MM-DD).") from None


def format_date(value: DateLike) -> str:
    return parse_date(value).strftime(DATE_FORMAT)


def derive_end_time(start: TimeLike, duration_minutes: int) -> time:
    """Return the time ``duration_minutes`` after ``start``.

    The period must finish on the same day, so a result at or past midnight
    is rejected rather than wrapped around.
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("Duration must be a whole number of minutes.")
    if duration_minutes <= 0:
        raise ValidationError("Duration must be greater than zero.")
    start_time = parse_time(start)
    anchor = datetime.combine(date.min, start_time)
    end = anchor + timedelta(minutes=duration_minutes)
    if end.date() != anchor.date():
        raise ValidationError("A period cannot run past midnight.")
    return end.time()


def month_bounds(month: DateLike) -> Tuple[date, date]:
    """Return the first and last day of ``month``.

    ``month`` is either any :class:`date` inside the month or ``YYYY-MM``.
    """
    if isinstance(month, str):
        text = month.strip()
        try:
            anchor = datetime.strptime(text, MONTH_FORMAT).date()
        except ValueError:
            anchor = parse_date(text)
    else:
        anchor = parse_date(month)
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]
    return anchor.replace(day=1), anchor.replace(day=last_day)
