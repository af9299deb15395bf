import datetime

import pyarrow as pa
import pytest

from tidyground.datetimes import (
    DateTimeError,
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
from tidyground.datetimes.components import parse_unit

MOMENT = pa.array(
    [datetime.datetime(2016, 7, 8, 12, 34, 56, 500000)], type=pa.timestamp("us", tz="UTC")
)


def test_components():
    assert year(MOMENT).to_pylist() == [2016]
    assert quarter(MOMENT).to_pylist() == [3]
    assert month(MOMENT).to_pylist() == [7]
    assert mday(MOMENT).to_pylist() == [8]
    assert yday(MOMENT).to_pylist() == [190]
    assert week(MOMENT).to_pylist() == [28]
    assert hour(MOMENT).to_pylist() == [12]
    assert minute(MOMENT).to_pylist() == [34]
    assert second(MOMENT).to_pylist() == [56.5]


def test_components_follow_the_time_zone():
    rome = MOMENT.cast(pa.timestamp("us", tz="Europe/Rome"))
    assert hour(rome).to_pylist() == [14]


def test_month_labels():
    labels = month(MOMENT, label=True)
    assert labels.to_pylist() == ["Jul"]
    assert labels.ordered
    assert labels.levels[0] == "Jan"
    assert month(MOMENT, label=True, abbr=False).to_pylist() == ["July"]


@pytest.mark.parametrize(
    "week_start, expected_number, first_level",
    [(7, 6, "Sun"), (1, 5, "Mon")],
)
def test_wday(week_start, expected_number, first_level):
    assert wday(MOMENT, week_start=week_start).to_pylist() == [expected_number]
    labels = wday(MOMENT, label=True, week_start=week_start)
    assert labels.to_pylist() == ["Fri"]
    assert labels.levels[0] == first_level


def test_wday_invalid_week_start():
    with pytest.raises(DateTimeError):
        wday(MOMENT, week_start=0)


def test_dates_are_accepted():
    dates = pa.array([datetime.date(2016, 7, 8)])
    assert year(dates).to_pylist() == [2016]
    assert wday(dates, label=True, abbr=False).to_pylist() == ["Friday"]


def test_strings_are_rejected():
    with pytest.raises(DateTimeError, match="Expected dates or date-times"):
        year(["2016-07-08"])


def test_update():
    dates = pa.array([datetime.date(2015, 2, 1), None])
    assert update(dates, mday=30).to_pylist() == [datetime.date(2015, 3, 2), None]
    assert update(dates, year=2020, month=14).to_pylist() == [datetime.date(2021, 2, 1), None]
    with_time = update(dates, hour=400)
    assert with_time.type == pa.timestamp("us")
    assert with_time.to_pylist()[0] == datetime.datetime(2015, 2, 17, 16)


def test_update_keeps_time_zone():
    updated = update(MOMENT, hour=0, minute=0, second=0)
    assert updated.type == MOMENT.type
    assert updated.to_pylist()[0].replace(tzinfo=None) == datetime.datetime(2016, 7, 8)


@pytest.mark.parametrize(
    "unit, expected",
    [("15 minutes", (15, "minute")), ("bimonth", (2, "month")), ("week", (1, "week")), ("2 days", (2, "day"))],
)
def test_parse_unit(unit, expected):
    assert parse_unit(unit) == expected


def test_parse_unit_invalid():
    with pytest.raises(DateTimeError, match="Invalid unit"):
        parse_unit("fortnight")


@pytest.mark.parametrize(
    "func, unit, expected",
    [
        (floor_date, "hour", datetime.datetime(2016, 7, 8, 12)),
        (ceiling_date, "hour", datetime.datetime(2016, 7, 8, 13)),
        (round_date, "hour", datetime.datetime(2016, 7, 8, 13)),
        (floor_date, "15 minutes", datetime.datetime(2016, 7, 8, 12, 30)),
        (floor_date, "month", datetime.datetime(2016, 7, 1)),
        (floor_date, "year", datetime.datetime(2016, 1, 1)),
    ],
)
def test_rounding(func, unit, expected):
    assert func(MOMENT, unit).to_pylist()[0].replace(tzinfo=None) == expected


@pytest.mark.parametrize(
    "week_start, expected",
    [(7, datetime.datetime(2016, 7, 3)), (1, datetime.datetime(2016, 7, 4))],
)
def test_floor_week(week_start, expected):
    result = floor_date(MOMENT, "week", week_start=week_start)
    assert result.to_pylist()[0].replace(tzinfo=None) == expected
