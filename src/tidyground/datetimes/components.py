"""Getting and setting the components of dates and date-times.

Components are always those shown by the clock in the time
zone of the values, so the hour of ``2015-06-02 12:00 UTC``
viewed in ``Europe/Rome`` is ``14``.

>>> import datetime
>>> import pyarrow as pa
>>> moment = pa.array([datetime.datetime(2016, 7, 8, 12, 34, 56)])
>>> year(moment).to_pylist(), month(moment).to_pylist(), mday(moment).to_pylist()
([2016], [7], [8])
>>> wday(moment, label=True).to_pylist()
['Fri']

Rounding moves each date-time to a nearby unit boundary,
``floor_date`` rounds down, ``ceiling_date`` rounds up and
``round_date`` rounds to the nearest one. It's useful to
count events by week, or to plot by hour of the day::

    floor_date(departures, "week")
    round_date(departures, "15 minutes")
"""

import calendar
import datetime
import re
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..factors import Factor
from .arrays import (
    DateTimeError,
    as_array,
    clock_values,
    is_date,
    rebuild,
    require_temporal,
)

MONTH_NAMES = list(calendar.month_name)[1:]
# Monday first, as in ISO weeks
WEEKDAY_NAMES = list(calendar.day_name)

UNITS = {
    "second": "second",
    "sec": "second",
    "minute": "minute",
    "min": "minute",
    "hour": "hour",
    "day": "day",
    "week": "week",
    "month": "month",
    "bimonth": ("month", 2),
    "quarter": "quarter",
    "season": ("month", 3),
    "halfyear": ("month", 6),
    "year": "year",
}


def _temporal(values: Any) -> pa.Array:
    return require_temporal(as_array(values))


def year(values: Any) -> pa.Array:
    return pc.year(_temporal(values))


def quarter(values: Any) -> pa.Array:
    return pc.quarter(_temporal(values))


def month(values: Any, label: bool = False, abbr: bool = True) -> pa.Array | Factor:
    """The month of each value, 1 to 12.

    With ``label=True`` returns an ordered factor of month names,
    abbreviated unless ``abbr=False``.
    """
    months = pc.month(_temporal(values))
    if not label:
        return months
    names = [name[:3] if abbr else name for name in MONTH_NAMES]
    codes = [None if m is None else m - 1 for m in months.to_pylist()]
    return Factor.from_codes(codes, names, ordered=True)


def mday(values: Any) -> pa.Array:
    """Day of the month."""
    return pc.day(_temporal(values))


def yday(values: Any) -> pa.Array:
    """Day of the year, 1 to 366."""
    return pc.day_of_year(_temporal(values))


def wday(
    values: Any, label: bool = False, abbr: bool = True, week_start: int = 7
) -> pa.Array | Factor:
    """Day of the week.

    Days are numbered from 1, starting from ``week_start``
    which is 1 for Monday up to 7 for Sunday, the default.
    With ``label=True`` returns an ordered factor of day names
    whose levels start from ``week_start``.
    """
    if week_start not in range(1, 8):
        raise DateTimeError(f"week_start must be between 1 and 7, got {week_start}")
    days = pc.day_of_week(_temporal(values), count_from_zero=False, week_start=week_start)
    if not label:
        return days
    start = week_start - 1
    names = WEEKDAY_NAMES[start:] + WEEKDAY_NAMES[:start]
    names = [name[:3] if abbr else name for name in names]
    codes = [None if d is None else d - 1 for d in days.to_pylist()]
    return Factor.from_codes(codes, names, ordered=True)


def week(values: Any) -> pa.Array:
    """The number of complete seven day periods since January 1st, plus one."""
    days = yday(values)
    return pc.add(pc.divide(pc.subtract(days, 1), 7), 1)


def hour(values: Any) -> pa.Array:
    return pc.hour(_temporal(values))


def minute(values: Any) -> pa.Array:
    return pc.minute(_temporal(values))


def second(values: Any) -> pa.Array:
    """Seconds, including their fractional part."""
    array = _temporal(values)
    return pc.add(pc.second(array).cast(pa.float64()), pc.subsecond(array))


def update(
    values: Any,
    year: int | None = None,
    month: int | None = None,
    mday: int | None = None,
    hour: int | None = None,
    minute: int | None = None,
    second: float | None = None,
) -> pa.Array:
    """Set one or more components of each value.

    Values that would be invalid roll over to the
    next valid one, like setting ``mday=30`` on a
    date in February moves the date into March.

    >>> import datetime
    >>> import pyarrow as pa
    >>> update(pa.array([datetime.date(2015, 2, 1)]), mday=30).to_pylist()
    [datetime.date(2015, 3, 2)]

    Dates stay dates, unless one of the time components is set.
    """
    array = _temporal(values)
    as_dates = is_date(array) and hour is None and minute is None and second is None

    updated = []
    for value in clock_values(array):
        if value is None:
            updated.append(None)
            continue
        if not isinstance(value, datetime.datetime):
            value = datetime.datetime.combine(value, datetime.time())
        y = value.year if year is None else year
        m = value.month if month is None else month
        # Months outside 1-12 roll over into the near years
        y, m = y + (m - 1) // 12, (m - 1) % 12 + 1
        updated.append(
            datetime.datetime(y, m, 1)
            + datetime.timedelta(
                days=(value.day if mday is None else mday) - 1,
                hours=value.hour if hour is None else hour,
                minutes=value.minute if minute is None else minute,
                seconds=(value.second + value.microsecond / 1e6) if second is None else second,
            )
        )
    return rebuild(updated, like=array, as_dates=as_dates)


def parse_unit(unit: str) -> tuple[int, str]:
    """Parse a rounding unit like ``"15 minutes"`` into ``(15, "minute")``.

    >>> parse_unit("15 minutes")
    (15, 'minute')
    >>> parse_unit("bimonth")
    (2, 'month')
    """
    match = re.fullmatch(r"\s*(\d+)?\s*([a-z]+?)s?\s*", unit.lower())
    if match is None or match.group(2) not in UNITS:
        raise DateTimeError(f"Invalid unit {unit!r}, expected one of {sorted(UNITS)}")
    multiple = int(match.group(1) or 1)
    resolved = UNITS[match.group(2)]
    if isinstance(resolved, tuple):
        resolved, scale = resolved
        multiple *= scale
    return multiple, resolved


def _round(func: Any, values: Any, unit: str, week_start: int) -> pa.Array:
    multiple, resolved = parse_unit(unit)
    if week_start not in (1, 7):
        raise DateTimeError("Weeks can start on Monday (1) or Sunday (7)")
    return func(
        _temporal(values),
        multiple=multiple,
        unit=resolved,
        week_starts_monday=week_start == 1,
    )


def floor_date(values: Any, unit: str = "second", week_start: int = 7) -> pa.Array:
    """Round down to the unit boundary."""
    return _round(pc.floor_temporal, values, unit, week_start)


def round_date(values: Any, unit: str = "second", week_start: int = 7) -> pa.Array:
    """Round to the nearest unit boundary."""
    return _round(pc.round_temporal, values, unit, week_start)


def ceiling_date(values: Any, unit: str = "second", week_start: int = 7) -> pa.Array:
    """Round up to the unit boundary, values on a boundary are unchanged."""
    return _round(pc.ceil_temporal, values, unit, week_start)
