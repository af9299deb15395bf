"""Conversions between Python values and arrow temporal arrays.

Arrow stores timestamps as the number of microseconds since the
UNIX epoch, in UTC. A time zone attached to the type only says
how those instants should be *displayed*: ``2015-06-02 14:00 UTC``
and ``2015-06-02 16:00 Europe/Rome`` are the same stored value.

Timestamps without a time zone are *naive*, they
represent a clock time without saying where the clock is.
Most of the helpers in :mod:`tidyground.datetimes` need to
move back and forth between the stored instants and the
clock times, which is what this module provides.
"""

import datetime
import zoneinfo
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

UNIT = "us"


class DateTimeError(ValueError):
    """Invalid operation on dates and times."""


class TimezoneMismatchError(DateTimeError):
    """Time zone aware and naive instants were mixed."""


def as_array(values: Any) -> pa.Array:
    """Accept arrays, chunked arrays, scalars and Python sequences."""
    if isinstance(values, pa.ChunkedArray):
        return values.combine_chunks()
    if isinstance(values, pa.Array):
        return values
    if isinstance(values, pa.Scalar):
        return pa.array([values.as_py()], type=values.type)
    if isinstance(values, (str, int, float, datetime.date)) or values is None:
        return pa.array([values])
    return pa.array(list(values))


def is_timestamp(values: pa.Array) -> bool:
    return pa.types.is_timestamp(values.type)


def is_date(values: pa.Array) -> bool:
    return pa.types.is_date(values.type)


def timestamp_type(tz: str | None) -> pa.DataType:
    return pa.timestamp(UNIT, tz=tz)


def check_timezone(tz: str | None) -> str | None:
    """Verify the time zone exists in the Olson database."""
    if tz is None:
        return None
    try:
        zoneinfo.ZoneInfo(tz)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
        raise DateTimeError(f"Unknown time zone {tz!r}") from e
    return tz


def require_temporal(values: pa.Array) -> pa.Array:
    if not (is_timestamp(values) or is_date(values)):
        raise DateTimeError(f"Expected dates or date-times, got {values.type}")
    return values


def to_clock(values: pa.Array) -> pa.Array:
    """Naive timestamps (or dates) with the clock time shown in the values time zone."""
    if is_timestamp(values) and values.type.tz is not None:
        return pc.local_timestamp(values)
    return values


def from_clock(values: pa.Array, tz: str | None) -> pa.Array:
    """Attach a time zone to naive clock times, the inverse of :func:`to_clock`.

    Clock times that happen twice (when clocks go back) pick the
    earliest instant, clock times that never happen (when clocks go
    forward) are moved to the earliest valid instant.
    """
    values = values.cast(timestamp_type(None))
    if tz is None:
        return values
    return pc.assume_timezone(
        values, timezone=tz, ambiguous="earliest", nonexistent="earliest"
    )


def clock_values(values: pa.Array) -> list:
    """Python values for the clock times of the array."""
    return to_clock(values).to_pylist()


def rebuild(values: list, like: pa.Array, as_dates: bool | None = None) -> pa.Array:
    """Convert Python clock values back to an array like ``like``.

    Dates are kept as dates unless any value has a time component,
    timestamps keep the time zone of ``like``.
    """
    if as_dates is None:
        as_dates = is_date(like)
    if as_dates:
        return pa.array(
            [v.date() if isinstance(v, datetime.datetime) else v for v in values],
            type=pa.date32(),
        )
    values = [
        datetime.datetime.combine(v, datetime.time())
        if isinstance(v, datetime.date) and not isinstance(v, datetime.datetime)
        else v
        for v in values
    ]
    tz = like.type.tz if is_timestamp(like) else None
    return from_clock(pa.array(values, type=timestamp_type(None)), tz)


def as_timestamps(values: pa.Array, tz: str | None = None) -> pa.Array:
    """Dates become timestamps at midnight in ``tz``, timestamps are unchanged."""
    if is_date(values):
        midnights = [
            None if d is None else datetime.datetime.combine(d, datetime.time())
            for d in values.to_pylist()
        ]
        return from_clock(pa.array(midnights, type=timestamp_type(None)), tz)
    if values.type.unit != UNIT:
        return values.cast(timestamp_type(values.type.tz))
    return values
