import datetime
import logging

import pyarrow as pa
import pytest

from tidyground.datetimes import (
    DateTimeError,
    as_date,
    as_datetime,
    dmy,
    make_date,
    make_datetime,
    mdy,
    mdy_hm,
    now,
    parse_date_time,
    today,
    ydm,
    ymd,
    ymd_hms,
)
from tidyground.datetimes.parsing import parse_one

JAN31 = datetime.date(2017, 1, 31)


@pytest.mark.parametrize(
    "parser, value",
    [
        (ymd, "2017-01-31"),
        (ymd, "2017/01/31"),
        (ymd, "20170131"),
        (ymd, 20170131),
        (mdy, "January 31st, 2017"),
        (mdy, "Jan 31 2017"),
        (dmy, "31-Jan-2017"),
        (dmy, "Tuesday 31 January 2017"),
        (ydm, "2017.31.01"),
        (dmy, "31.01.2017"),
    ],
)
def test_date_parsers(parser, value):
    assert parser([value]).to_pylist() == [JAN31]


def test_date_parser_types():
    assert ymd(["2017-01-31"]).type == pa.date32()
    with_tz = ymd(["2017-01-31"], tz="Europe/Rome")
    assert with_tz.type == pa.timestamp("us", tz="Europe/Rome")
    assert with_tz.to_pylist()[0].strftime("%Y-%m-%d %H:%M") == "2017-01-31 00:00"


def test_datetime_parsers():
    result = ymd_hms(["2017-01-31 20:11:59"])
    assert result.type == pa.timestamp("us", tz="UTC")
    assert result.to_pylist()[0].replace(tzinfo=None) == datetime.datetime(2017, 1, 31, 20, 11, 59)

    naive = mdy_hm(["01/31/2017 08:01 pm"], tz=None)
    assert naive.to_pylist() == [datetime.datetime(2017, 1, 31, 20, 1)]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("12:00 am", datetime.datetime(1970, 1, 1, 0, 0)),
        ("12:30 pm", datetime.datetime(1970, 1, 1, 12, 30)),
        ("01:15:30.5", datetime.datetime(1970, 1, 1, 1, 15, 30, 500000)),
    ],
)
def test_parse_one_times(value, expected):
    order = "HMS" if value.count(":") == 2 else "HM"
    assert parse_one(value, order) == expected


def test_failures_become_null(caplog):
    with caplog.at_level(logging.WARNING):
        result = ymd(["2010-10-10", "bananas", "2021-04-31", None])
    assert result.to_pylist() == [datetime.date(2010, 10, 10), None, None, None]
    assert "2 failed to parse." in caplog.text


def test_two_digit_years():
    assert ymd(["170131", "99-01-31"]).to_pylist() == [JAN31, datetime.date(1999, 1, 31)]


def test_parse_date_time_multiple_orders():
    result = parse_date_time(["2017-01-31 10:00", "31/01/2017 10:30"], ["ymd HM", "dmy HM"], tz=None)
    assert result.to_pylist() == [
        datetime.datetime(2017, 1, 31, 10, 0),
        datetime.datetime(2017, 1, 31, 10, 30),
    ]


def test_invalid_order_and_timezone():
    with pytest.raises(DateTimeError):
        parse_date_time(["2017"], "yy")
    with pytest.raises(DateTimeError, match="Unknown time zone"):
        ymd_hms(["2017-01-31 20:11:59"], tz="Mars/Olympus")


def test_make_date():
    assert make_date([2013, 2013], [1, 2], [1, 30]).to_pylist() == [datetime.date(2013, 1, 1), None]
    assert make_date(2013, [1, 2], 1).to_pylist() == [datetime.date(2013, 1, 1), datetime.date(2013, 2, 1)]
    with pytest.raises(DateTimeError):
        make_date([2013, 2014], [1, 2, 3])


def test_make_datetime_from_departure_times():
    dep_time = pa.array([517, 533, None])
    hour = [None if t is None else t // 100 for t in dep_time.to_pylist()]
    minute = [None if t is None else t % 100 for t in dep_time.to_pylist()]
    result = make_datetime(2013, 1, 1, hour, minute, tz=None)
    assert result.to_pylist() == [
        datetime.datetime(2013, 1, 1, 5, 17),
        datetime.datetime(2013, 1, 1, 5, 33),
        None,
    ]


def test_as_date_and_as_datetime():
    instant = pa.array(
        [datetime.datetime(2017, 1, 31, 23, 30)], type=pa.timestamp("us", tz="UTC")
    )
    assert as_date(instant).to_pylist() == [JAN31]
    assert as_date(instant.cast(pa.timestamp("us", tz="Asia/Tokyo"))).to_pylist() == [
        datetime.date(2017, 2, 1)
    ]
    midnight = as_datetime(pa.array([JAN31]))
    assert midnight.type == pa.timestamp("us", tz="UTC")
    assert midnight.to_pylist()[0].hour == 0
    assert as_date(["2017-01-31"]).to_pylist() == [JAN31]


def test_today_and_now():
    assert isinstance(today(), datetime.date)
    assert now("America/New_York").tzinfo is not None
