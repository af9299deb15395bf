"""Time zones.

A time zone is identified by its Olson name, ``"America/New_York"``
or ``"Europe/Rome"``, which is the only reliable way to describe
a zone: abbreviations like ``EST`` are ambiguous and don't track
the daylight saving time rules of a place.

There are two ways to change the time zone of date-times:

* :func:`with_tz` keeps the instant in time and changes how it's
  displayed. It's what you want when the time zone attached to the
  values is correct, but you want to see them in another one.
* :func:`force_tz` keeps the clock time and changes the instant.
  It's what you want when the values were labelled with the wrong
  time zone and need to be fixed.

>>> import datetime
>>> import pyarrow as pa
>>> noon = pa.array([datetime.datetime(2015, 6, 1, 12)], type=pa.timestamp("us", tz="UTC"))
>>> with_tz(noon, "Europe/Copenhagen").to_pylist()[0].strftime("%H:%M")
'14:00'
>>> force_tz(noon, "Europe/Copenhagen").cast(pa.timestamp("us", tz="UTC")).to_pylist()[0].strftime("%H:%M")
'10:00'
"""

import logging
import zoneinfo
from typing import Any

import pyarrow as pa

from .arrays import (
    as_array,
    as_timestamps,
    check_timezone,
    from_clock,
    is_date,
    require_temporal,
    timestamp_type,
    to_clock,
)

log = logging.getLogger(__name__)


def tz(values: Any) -> str | None:
    """The time zone of the values, ``None`` for naive values and dates."""
    array = require_temporal(as_array(values))
    if is_date(array):
        return None
    return array.type.tz


def with_tz(values: Any, tzone: str) -> pa.Array:
    """Display the same instants in a different time zone.

    Naive values are assumed to be in UTC.
    """
    check_timezone(tzone)
    array = require_temporal(as_array(values))
    if is_date(array):
        array = as_timestamps(array, tz="UTC")
    elif array.type.tz is None:
        log.debug("Naive date-times assumed to be UTC")
        array = from_clock(array, "UTC")
    return array.cast(timestamp_type(tzone))


def force_tz(values: Any, tzone: str | None) -> pa.Array:
    """Keep the clock time, attach a different time zone.

    ``tzone=None`` drops the time zone, producing naive clock times.
    """
    check_timezone(tzone)
    array = require_temporal(as_array(values))
    if is_date(array):
        return as_timestamps(array, tz=tzone)
    return from_clock(to_clock(as_timestamps(array)), tzone)


def olson_time_zones() -> list[str]:
    """All the time zone names known on this system."""
    return sorted(zoneinfo.available_timezones())
