"""Dates and times.

Working with dates and times seems simple at first, but it
has to deal with two physical phenomena (the rotation of the
Earth and its orbit around the Sun) and with a whole lot of
geopolitical ones, like months of different lengths, leap years,
daylight saving time and time zones.

There are three types of values representing a moment:

* A **date**, stored as ``date32``, which is a day in the calendar.
* A **time** within the day.
* A **date-time**, stored as ``timestamp``, which is a date plus a time
  and uniquely identifies an instant, usually to the microsecond.

Date-times can be created in three ways, and this package covers all of them:

* From strings, using the parsers in :mod:`tidyground.datetimes.parsing`
  like :func:`ymd` or :func:`mdy_hm`, whose name spells the order of
  the components in the string.
* From individual components spread across multiple columns,
  using :func:`make_date` and :func:`make_datetime`.
* From an existing date or date-time, using :func:`as_date` and :func:`as_datetime`.

>>> from tidyground.datetimes import ymd, ymd_hms, month, wday, floor_date
>>> ymd(["2017-01-31"]).to_pylist()
[datetime.date(2017, 1, 31)]
>>> instant = ymd_hms(["2017-01-31 20:11:59"])
>>> str(instant.type)
'timestamp[us, tz=UTC]'
>>> month(instant, label=True).to_pylist()
['Jan']
>>> floor_date(instant, "hour").to_pylist()[0].strftime("%H:%M")
'20:00'

Components of dates can be extracted (:mod:`~tidyground.datetimes.components`),
arithmetic can be done through durations, periods and intervals
(:mod:`~tidyground.datetimes.spans`) and values can be moved across
time zones (:mod:`~tidyground.datetimes.zones`).

All the functions accept arrow arrays, chunked arrays or plain
Python lists and return arrow arrays, so they can be used directly
or through :class:`tidyground.compute.FunctionCallExpression` in a
:class:`tidyground.compute.MutateNode`.
"""

from .arrays import DateTimeError, TimezoneMismatchError
from .components import (
    ceiling_date,
    floor_date,
    hour,
    mday,
    minute,
    month,
    quarter,
    round_date,
    second,
    update,
    wday,
    week,
    yday,
    year,
)
from .parsing import (
    as_date,
    as_datetime,
    dmy,
    dmy_h,
    dmy_hm,
    dmy_hms,
    dym,
    make_date,
    make_datetime,
    mdy,
    mdy_h,
    mdy_hm,
    mdy_hms,
    myd,
    now,
    parse_date_time,
    today,
    ydm,
    ymd,
    ymd_h,
    ymd_hm,
    ymd_hms,
)
from .spans import (
    Duration,
    Interval,
    Period,
    add,
    add_with_rollback,
    as_seconds,
    ddays,
    dhours,
    difference,
    dminutes,
    dseconds,
    dweeks,
    dyears,
    days,
    hours,
    minutes,
    months,
    seconds,
    subtract,
    weeks,
    years,
)
from .zones import force_tz, olson_time_zones, tz, with_tz

__all__ = (
    "DateTimeError",
    "TimezoneMismatchError",
    "ymd",
    "ydm",
    "mdy",
    "myd",
    "dmy",
    "dym",
    "ymd_hms",
    "ymd_hm",
    "ymd_h",
    "mdy_hms",
    "mdy_hm",
    "mdy_h",
    "dmy_hms",
    "dmy_hm",
    "dmy_h",
    "parse_date_time",
    "make_date",
    "make_datetime",
    "as_date",
    "as_datetime",
    "today",
    "now",
    "year",
    "quarter",
    "month",
    "mday",
    "yday",
    "wday",
    "week",
    "hour",
    "minute",
    "second",
    "update",
    "floor_date",
    "round_date",
    "ceiling_date",
    "Duration",
    "Period",
    "Interval",
    "dseconds",
    "dminutes",
    "dhours",
    "ddays",
    "dweeks",
    "dyears",
    "seconds",
    "minutes",
    "hours",
    "days",
    "weeks",
    "months",
    "years",
    "add",
    "subtract",
    "add_with_rollback",
    "difference",
    "as_seconds",
    "tz",
    "with_tz",
    "force_tz",
    "olson_time_zones",
)
