"""Creating dates and date-times.

Dates and times are usually found as strings, written in the
most disparate formats: ``"2017-01-31"``, ``"January 31st, 2017"``,
``"31-Jan-2017"``, ``"20170131"``...

Instead of describing the exact format of each string, the
parsers in this module only need to know the **order** in which
the components appear. The name of the parser spells the order:
``y`` for year, ``m`` for month, ``d`` for day and, after an
underscore, ``h`` for hours, ``m`` for minutes and ``s`` for seconds.

>>> ymd(["2017-01-31", "2017/02/28"]).to_pylist()
[datetime.date(2017, 1, 31), datetime.date(2017, 2, 28)]
>>> mdy(["January 31st, 2017"]).to_pylist()
[datetime.date(2017, 1, 31)]
>>> dmy(["31-Jan-2017"]).to_pylist()
[datetime.date(2017, 1, 31)]

Any run of non alphanumeric characters is accepted as a separator,
months can be numbers, names or abbreviations and ordinal suffixes
like ``st`` or ``th`` are ignored. Compact strings like ``"20170131"``
or numbers like ``20170131`` are split by the width of their components.

Strings that can't be parsed, or that don't exist in the calendar
like ``"2021-04-31"``, become nulls and a warning reports how many
values failed to parse.

Date parsers return ``date32`` arrays, unless a time zone is provided
in which case they return the midnight of that day in that time zone.
Date-time parsers return timestamps in ``UTC`` unless a different
time zone is requested.
"""

import datetime
import logging
import re
import zoneinfo
from typing import Any, Callable

import pyarrow as pa
from dateutil.parser import parserinfo

from .arrays import (
    DateTimeError,
    as_array,
    check_timezone,
    from_clock,
    is_date,
    is_timestamp,
    rebuild,
    timestamp_type,
    to_clock,
)

log = logging.getLogger(__name__)

# Fractions are only allowed on seconds, so "31.01.2017" is three tokens
TOKEN_RE = re.compile(r"(?<=:)\d+\.\d+|\d+|[A-Za-z]+")
COMPACT_WIDTHS = {"y": 4, "m": 2, "d": 2, "H": 2, "M": 2, "S": 2}
ORDINAL_SUFFIXES = {"st", "nd", "rd", "th"}

_names = parserinfo()


def _normalize_order(order: str) -> str:
    """Turn ``"ymd_hms"`` or ``"ymd HMS"`` into ``"ymdHMS"``."""
    if "_" in order:
        date_part, time_part = order.split("_", 1)
        order = date_part + time_part.upper()
    order = re.sub(r"[^ymdHMS]", "", order)
    if not order or len(set(order)) != len(order):
        raise DateTimeError(f"Invalid order {order!r}")
    return order


def _tokenize(value: str) -> tuple[list[str], str | None]:
    """Split a string in its numeric and month-name components.

    Returns the tokens and the ``am``/``pm`` marker, if any.
    """
    tokens, meridiem = [], None
    for token in TOKEN_RE.findall(value):
        lowered = token.lower()
        if token[0].isdigit() or _names.month(token) is not None:
            tokens.append(token)
        elif lowered in ("am", "pm"):
            meridiem = lowered
        elif lowered in ORDINAL_SUFFIXES or _names.weekday(token) is not None:
            continue
        elif lowered not in ("t", "z", "utc"):
            # An unknown word, like a misspelled month.
            tokens.append(token)
    return tokens, meridiem


def _split_compact(token: str, order: str) -> list[str] | None:
    widths = [COMPACT_WIDTHS[c] for c in order]
    if sum(widths) != len(token):
        # Two digit years are allowed in compact strings, like "170131"
        if "y" in order and sum(widths) - 2 == len(token):
            widths[order.index("y")] = 2
        else:
            return None
    pieces, start = [], 0
    for width in widths:
        pieces.append(token[start : start + width])
        start += width
    return pieces


def _year(token: str) -> int:
    year = int(token)
    if len(token) <= 2:
        # Same pivot as strptime %y: 69-99 are 1900s, 00-68 are 2000s.
        year += 1900 if year >= 69 else 2000
    return year


def _month(token: str) -> int:
    if token.isdigit():
        return int(token)
    month = _names.month(token)
    if month is None:
        raise ValueError(f"Unknown month {token!r}")
    return month


def parse_one(value: str, order: str) -> datetime.datetime | None:
    """Parse a single string according to a normalized order.

    Returns ``None`` when the string doesn't match the
    order or doesn't represent a valid date-time.

    >>> parse_one("2017-01-31 20:11:59", "ymdHMS")
    datetime.datetime(2017, 1, 31, 20, 11, 59)
    >>> parse_one("2021-04-31", "ymd") is None
    True
    """
    tokens, meridiem = _tokenize(value)
    if len(tokens) == 1 and tokens[0].isdigit() and len(order) > 1:
        tokens = _split_compact(tokens[0], order) or tokens
    if len(tokens) != len(order):
        return None

    parts = dict(zip(order, tokens))
    try:
        second = float(parts.get("S", 0))
        if any(not parts[c].replace(".", "", 1).isdigit() for c in parts if c != "m"):
            return None
        hour = int(parts.get("H", 0))
        if meridiem is not None:
            # 12am is midnight, 12pm is noon
            hour = hour % 12 + (12 if meridiem == "pm" else 0)
        return datetime.datetime(
            _year(parts["y"]) if "y" in parts else 1970,
            _month(parts.get("m", "1")),
            int(parts.get("d", 1)),
            hour,
            int(parts.get("M", 0)),
            int(second),
            round((second - int(second)) * 1_000_000),
        )
    except ValueError:
        return None


def _strings(values: Any) -> pa.Array:
    array = as_array(values)
    if pa.types.is_integer(array.type) or pa.types.is_floating(array.type):
        return pa.array(
            [None if v is None else str(int(v)) for v in array.to_pylist()],
            type=pa.string(),
        )
    return array.cast(pa.string())


def _parse(values: Any, orders: list[str]) -> list[datetime.datetime | None]:
    normalized = [_normalize_order(order) for order in orders]
    results, failed = [], 0
    for value in _strings(values).to_pylist():
        parsed = None
        if value is not None:
            for order in normalized:
                parsed = parse_one(value, order)
                if parsed is not None:
                    break
            if parsed is None:
                failed += 1
        results.append(parsed)
    if failed:
        log.warning("%d failed to parse.", failed)
    return results


def parse_date_time(values: Any, orders: str | list[str], tz: str | None = "UTC") -> pa.Array:
    """Parse strings to timestamps trying multiple orders.

    Each value is parsed with the first order that works for it,
    which allows parsing columns where dates were written in
    different formats::

        parse_date_time(["2017-01-31 10:00", "31/01/2017 10:30"], ["ymd HM", "dmy HM"])

    ``tz=None`` returns naive timestamps.
    """
    if isinstance(orders, str):
        orders = [orders]
    check_timezone(tz)
    parsed = _parse(values, orders)
    return from_clock(pa.array(parsed, type=timestamp_type(None)), tz)


def _date_parser(order: str) -> Callable[..., pa.Array]:
    def parse(values: Any, tz: str | None = None) -> pa.Array:
        check_timezone(tz)
        parsed = _parse(values, [order])
        if tz is None:
            return pa.array([None if v is None else v.date() for v in parsed], type=pa.date32())
        return from_clock(pa.array(parsed, type=timestamp_type(None)), tz)

    parse.__name__ = parse.__qualname__ = order
    parse.__doc__ = f"Parse dates written in {order!r} order."
    return parse


def _datetime_parser(order: str) -> Callable[..., pa.Array]:
    def parse(values: Any, tz: str | None = "UTC") -> pa.Array:
        return parse_date_time(values, order, tz=tz)

    parse.__name__ = parse.__qualname__ = order
    parse.__doc__ = f"Parse date-times written in {order!r} order, UTC by default."
    return parse


ymd = _date_parser("ymd")
ydm = _date_parser("ydm")
mdy = _date_parser("mdy")
myd = _date_parser("myd")
dmy = _date_parser("dmy")
dym = _date_parser("dym")

ymd_hms = _datetime_parser("ymd_hms")
ymd_hm = _datetime_parser("ymd_hm")
ymd_h = _datetime_parser("ymd_h")
mdy_hms = _datetime_parser("mdy_hms")
mdy_hm = _datetime_parser("mdy_hm")
mdy_h = _datetime_parser("mdy_h")
dmy_hms = _datetime_parser("dmy_hms")
dmy_hm = _datetime_parser("dmy_hm")
dmy_h = _datetime_parser("dmy_h")


def _broadcast(*columns: Any) -> list[list]:
    """Turn each component in a list of values, repeating single values."""
    arrays = []
    for column in columns:
        if isinstance(column, (pa.Array, pa.ChunkedArray, list, tuple)):
            arrays.append(as_array(column).to_pylist())
        else:
            arrays.append([column])
    length = max(len(a) for a in arrays)
    if any(len(a) not in (1, length) for a in arrays):
        raise DateTimeError("Components must have the same length")
    return [a * length if len(a) == 1 else a for a in arrays]


def make_date(year: Any, month: Any = 1, day: Any = 1) -> pa.Array:
    """Build dates from their components, spread across columns.

    Combinations that don't exist, like February 30th, become nulls.

    >>> make_date([2013, 2013], [1, 2], [1, 30]).to_pylist()
    [datetime.date(2013, 1, 1), None]
    """
    dates = []
    for y, m, d in zip(*_broadcast(year, month, day)):
        try:
            dates.append(None if None in (y, m, d) else datetime.date(int(y), int(m), int(d)))
        except ValueError:
            dates.append(None)
    return pa.array(dates, type=pa.date32())


def make_datetime(
    year: Any,
    month: Any = 1,
    day: Any = 1,
    hour: Any = 0,
    minute: Any = 0,
    second: Any = 0,
    tz: str | None = "UTC",
) -> pa.Array:
    """Build date-times from their components, spread across columns.

    A common case is flight schedules where departure time is
    stored as ``517`` meaning ``05:17``, which can be split with
    ``hour=dep_time // 100`` and ``minute=dep_time % 100``.
    """
    check_timezone(tz)
    values = []
    for y, mo, d, h, mi, s in zip(*_broadcast(year, month, day, hour, minute, second)):
        if None in (y, mo, d, h, mi, s):
            values.append(None)
            continue
        try:
            values.append(
                datetime.datetime(int(y), int(mo), int(d), int(h), int(mi))
                + datetime.timedelta(seconds=float(s))
            )
        except ValueError:
            values.append(None)
    return from_clock(pa.array(values, type=timestamp_type(None)), tz)


def as_date(values: Any) -> pa.Array:
    """Convert date-times to dates, strings are parsed as ``ymd``.

    The date is the one shown by the clock in the values time zone.
    """
    array = as_array(values)
    if is_date(array):
        return array.cast(pa.date32())
    if is_timestamp(array):
        return rebuild(to_clock(array).to_pylist(), like=array, as_dates=True)
    return ymd(array)


def as_datetime(values: Any, tz: str | None = "UTC") -> pa.Array:
    """Convert dates to date-times at midnight, strings are parsed as ``ymd_hms``."""
    check_timezone(tz)
    array = as_array(values)
    if is_timestamp(array):
        return array.cast(timestamp_type(tz)) if tz is not None else to_clock(array)
    if is_date(array):
        return rebuild(array.to_pylist(), like=pa.array([], type=timestamp_type(tz)))
    return ymd_hms(array, tz=tz)


def today(tz: str = "UTC") -> datetime.date:
    """The current date in the given time zone."""
    return now(tz).date()


def now(tz: str = "UTC") -> datetime.datetime:
    """The current date-time in the given time zone."""
    check_timezone(tz)
    return datetime.datetime.now(zoneinfo.ZoneInfo(tz))
