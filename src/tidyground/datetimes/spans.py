"""Time spans: durations, periods and intervals.

Doing arithmetic with dates is harder than it looks, because
the physical time and the clock time don't always agree.
A day is usually 86400 seconds, but on the days when daylight
saving time starts or ends it's 23 or 25 hours. A year is
usually 365 days, but leap years have 366.

So there are three kinds of time spans:

**Durations** (:class:`Duration`) represent an exact number of seconds.
One day is always 86400 seconds, so adding one day of duration to
1am of the day before DST starts gives 2am, as an hour was skipped::

    add(one_am, ddays(1))

**Periods** (:class:`Period`) represent human units like weeks and months,
their length in seconds depends on when they are applied. Adding one day
of period to 1am gives 1am of the next day, whatever happened to the clocks::

    add(one_am, days(1))

Adding months can lead to dates that don't exist, January 31st plus one
month would be February 31st. Those become nulls, unless
:func:`add_with_rollback` is used, which rolls back to the last day of the month.

**Intervals** (:class:`Interval`) are durations with a starting point,
which makes them precise: it's possible to know exactly how many
months or years fit in an interval.

>>> import datetime
>>> import pyarrow as pa
>>> jan31 = pa.array([datetime.date(2013, 1, 31)])
>>> add(jan31, months(1)).to_pylist()
[None]
>>> add_with_rollback(jan31, months(1)).to_pylist()
[datetime.date(2013, 2, 28)]
"""

import calendar
import dataclasses
import datetime
import math
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .arrays import (
    UNIT,
    DateTimeError,
    TimezoneMismatchError,
    as_array,
    as_timestamps,
    clock_values,
    is_date,
    is_timestamp,
    rebuild,
    require_temporal,
)

SECONDS_PER_UNIT = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 7 * 86400,
    # Average year, 365.25 days
    "year": 31557600,
}


@dataclasses.dataclass(frozen=True)
class Duration:
    """An exact number of seconds."""

    seconds: float = 0

    def __add__(self, other: "Duration") -> "Duration":
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.seconds + other.seconds)

    def __mul__(self, times: float) -> "Duration":
        return Duration(self.seconds * times)

    __rmul__ = __mul__

    def __neg__(self) -> "Duration":
        return Duration(-self.seconds)

    def to_timedelta(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.seconds)

    def __str__(self) -> str:
        """Seconds and the largest unit that helps reading them.

        >>> str(ddays(14))
        '1209600s (~2 weeks)'
        """
        seconds = self.seconds
        if float(seconds).is_integer():
            seconds = int(seconds)
        text = f"{seconds}s"
        for unit in ("year", "week", "day", "hour", "minute"):
            amount = self.seconds / SECONDS_PER_UNIT[unit]
            if abs(amount) >= 1:
                return f"{text} (~{amount:.3g} {unit}s)"
        return text


@dataclasses.dataclass(frozen=True)
class Period:
    """A span of time in human units.

    Weeks are stored as seven days.
    """

    years: int = 0
    months: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: float = 0

    def __add__(self, other: "Period") -> "Period":
        if not isinstance(other, Period):
            return NotImplemented
        return Period(*(a + b for a, b in zip(dataclasses.astuple(self), dataclasses.astuple(other))))

    def __mul__(self, times: int) -> "Period":
        return Period(*(value * times for value in dataclasses.astuple(self)))

    __rmul__ = __mul__

    def __neg__(self) -> "Period":
        return self * -1

    @property
    def is_calendar_only(self) -> bool:
        """Period made only of years, months and days."""
        return not (self.hours or self.minutes or self.seconds)

    def approximate_seconds(self) -> float:
        return (
            self.years * SECONDS_PER_UNIT["year"]
            + self.months * SECONDS_PER_UNIT["year"] / 12
            + self.days * 86400
            + self.hours * 3600
            + self.minutes * 60
            + self.seconds
        )

    def __str__(self) -> str:
        """
        >>> str(months(1) + days(3))
        '1m 3d 0H 0M 0S'
        """
        prefix = f"{self.years}y " if self.years else ""
        return (
            f"{prefix}{self.months}m {self.days}d "
            f"{self.hours}H {self.minutes}M {self.seconds:g}S"
        )


def dseconds(n: float = 1) -> Duration:
    return Duration(n)


def dminutes(n: float = 1) -> Duration:
    return Duration(n * 60)


def dhours(n: float = 1) -> Duration:
    return Duration(n * 3600)


def ddays(n: float = 1) -> Duration:
    return Duration(n * 86400)


def dweeks(n: float = 1) -> Duration:
    return Duration(n * 7 * 86400)


def dyears(n: float = 1) -> Duration:
    return Duration(n * SECONDS_PER_UNIT["year"])


def seconds(n: float = 1) -> Period:
    return Period(seconds=n)


def minutes(n: int = 1) -> Period:
    return Period(minutes=n)


def hours(n: int = 1) -> Period:
    return Period(hours=n)


def days(n: int = 1) -> Period:
    return Period(days=n)


def weeks(n: int = 1) -> Period:
    return Period(days=7 * n)


def months(n: int = 1) -> Period:
    return Period(months=n)


def years(n: int = 1) -> Period:
    return Period(years=n)


def shift(
    value: datetime.datetime, period: Period, rollback: bool = False, roll_to_first: bool = False
) -> datetime.datetime | None:
    """Add a period to a clock time.

    Years and months are added first, if the resulting day of the
    month doesn't exist the result is ``None``, or the last day of
    the month with ``rollback`` (the first day of the following
    month with ``roll_to_first``). The other units are then added
    as they would be to a clock.
    """
    total_months = value.year * 12 + (value.month - 1) + period.years * 12 + period.months
    year, month = divmod(total_months, 12)
    month += 1
    if not 1 <= year <= 9999:
        return None
    day = value.day
    last_day = calendar.monthrange(year, month)[1]
    if day > last_day:
        if not (rollback or roll_to_first):
            return None
        if roll_to_first:
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
            day = 1
        else:
            day = last_day
    shifted = value.replace(year=year, month=month, day=day)
    try:
        return shifted + datetime.timedelta(
            days=period.days, hours=period.hours, minutes=period.minutes, seconds=period.seconds
        )
    except OverflowError:
        return None


def _add_period(
    values: pa.Array, period: Period, rollback: bool = False, roll_to_first: bool = False
) -> pa.Array:
    results = []
    for value in clock_values(values):
        if value is None:
            results.append(None)
            continue
        if not isinstance(value, datetime.datetime):
            value = datetime.datetime.combine(value, datetime.time())
        results.append(shift(value, period, rollback, roll_to_first))
    return rebuild(results, like=values, as_dates=is_date(values) and period.is_calendar_only)


def add(values: Any, span: Duration | Period) -> pa.Array:
    """Add a duration or a period to dates or date-times.

    Durations always produce date-times, as they are
    made of seconds. Dates plus periods of whole days,
    months or years stay dates.
    """
    array = require_temporal(as_array(values))
    if isinstance(span, Period):
        return _add_period(array, span)
    if isinstance(span, Duration):
        timestamps = as_timestamps(array, tz="UTC") if is_date(array) else as_timestamps(array)
        delta = pa.scalar(round(span.seconds * 1_000_000), type=pa.duration(UNIT))
        return pc.add(timestamps, delta)
    raise DateTimeError(f"Can't add {type(span).__name__}, expected a Duration or Period")


def subtract(values: Any, span: Duration | Period) -> pa.Array:
    return add(values, -span)


def add_with_rollback(values: Any, period: Period, roll_to_first: bool = False) -> pa.Array:
    """Add a period, rolling back invalid dates to the last day of the month.

    With ``roll_to_first`` invalid dates instead roll
    forward to the first day of the next month.
    """
    array = require_temporal(as_array(values))
    return _add_period(array, period, rollback=True, roll_to_first=roll_to_first)


def _comparable(a: Any, b: Any) -> tuple[pa.Array, pa.Array]:
    """Make two temporal arrays comparable or refuse to mix them.

    Two dates, two naive timestamps or two time zone aware
    timestamps can be compared. Mixing naive and aware
    values is ambiguous, we don't know where the naive clock is.
    """
    a, b = require_temporal(as_array(a)), require_temporal(as_array(b))
    a_tz = a.type.tz if is_timestamp(a) else None
    b_tz = b.type.tz if is_timestamp(b) else None
    if (a_tz is None) != (b_tz is None):
        raise TimezoneMismatchError(
            f"Can't mix time zone aware ({a_tz or b_tz}) and naive date-times, "
            "use force_tz or with_tz first"
        )
    a, b = as_timestamps(a), as_timestamps(b)
    if b.type != a.type:
        # Same instants, displayed in the time zone of a
        b = b.cast(a.type)
    return a, b


def difference(end: Any, start: Any) -> pa.Array:
    """Compute ``end - start`` as an array of exact durations.

    >>> import datetime
    >>> import pyarrow as pa
    >>> age = difference(pa.array([datetime.date(2024, 1, 1)]), pa.array([datetime.date(1984, 1, 1)]))
    >>> as_seconds(age).to_pylist()
    [1262304000.0]
    """
    end, start = _comparable(end, start)
    return pc.subtract(end, start)


def as_seconds(durations: pa.Array) -> pa.Array:
    """Convert an array of durations to a number of seconds."""
    durations = as_array(durations)
    if not pa.types.is_duration(durations.type):
        raise DateTimeError(f"Expected durations, got {durations.type}")
    per_second = {"s": 1, "ms": 1_000, "us": 1_000_000, "ns": 1_000_000_000}[durations.type.unit]
    return pc.divide(durations.cast(pa.int64()).cast(pa.float64()), per_second)


class Interval:
    """A span between two instants.

    ``start`` and ``end`` are arrays of the same length, or
    single values, each pair is one interval.

    Intervals know exactly where they are in time, so they can
    tell how many calendar units fit into them::

        Interval(today, next_year).count(days(1))  # 365 or 366
    """

    def __init__(self, start: Any, end: Any) -> None:
        self.start, self.end = _comparable(start, end)
        if len(self.start) != len(self.end) and 1 not in (len(self.start), len(self.end)):
            raise DateTimeError("start and end must have the same length")

    def __str__(self) -> str:
        pairs = [f"{s}--{e}" for s, e in zip(self.start.to_pylist(), self.end.to_pylist())]
        return f"Interval({', '.join(pairs)})"

    __repr__ = __str__

    def _ends(self) -> tuple[Any, Any]:
        start = self.start[0] if len(self.start) == 1 else self.start
        end = self.end[0] if len(self.end) == 1 else self.end
        return start, end

    def length(self, unit: str = "second") -> pa.Array:
        """Length of the interval in fixed size units.

        Units are exact durations, so a ``"year"`` is 365.25 days.
        Use :meth:`count` for calendar units.
        """
        if unit.rstrip("s") not in SECONDS_PER_UNIT:
            raise DateTimeError(f"Invalid unit {unit!r}, expected one of {list(SECONDS_PER_UNIT)}")
        start, end = self._ends()
        total = as_seconds(pc.subtract(end, start))
        return pc.divide(total, SECONDS_PER_UNIT[unit.rstrip("s")])

    def count(self, period: Period) -> pa.Array:
        """How many whole periods fit in the interval.

        Periods are applied from the start of the interval,
        so counting the months between January 31st and
        March 1st gives one month.
        """
        if period.approximate_seconds() <= 0:
            raise DateTimeError("Periods to count must be positive")
        starts = clock_values(self.start)
        ends = clock_values(self.end)
        if len(starts) == 1:
            starts = starts * len(ends)
        if len(ends) == 1:
            ends = ends * len(starts)

        counts = []
        for start, end in zip(starts, ends):
            if start is None or end is None:
                counts.append(None)
                continue
            counts.append(_count_periods(_as_datetime(start), _as_datetime(end), period))
        return pa.array(counts, type=pa.int64())

    def contains(self, values: Any) -> pa.Array:
        """Whether each value falls within the interval, ends included."""
        values, _ = _comparable(values, self.start)
        values = values.cast(self.start.type)
        start, end = self._ends()
        return pc.and_(pc.greater_equal(values, start), pc.less_equal(values, end))


def _as_datetime(value: datetime.date) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.combine(value, datetime.time())


def _count_periods(start: datetime.datetime, end: datetime.datetime, period: Period) -> int:
    sign = 1
    if end < start:
        start, end, sign = end, start, -1
    elapsed = (end - start).total_seconds()
    count = math.floor(elapsed / period.approximate_seconds())

    # The estimate can be off by a few units when months have different lengths
    def fits(n: int) -> bool:
        shifted = shift(start, period * n, rollback=True)
        return shifted is not None and shifted <= end

    while count > 0 and not fits(count):
        count -= 1
    while fits(count + 1):
        count += 1
    return sign * count
