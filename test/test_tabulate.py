import datetime

import pyarrow as pa

from tidyground.factors import factor
from tidyground.utils.tabulate import format_value, markdown_table, tabulate

TABLE1 = pa.record_batch(
    {
        "country": ["Afghanistan", "Brazil"],
        "year": [1999, 2000],
        "rate": [0.0000373, 0.000464],
    }
)


def test_tabulate():
    assert tabulate(TABLE1) == (
        "country     | year | rate\n"
        "----------- | ---- | ----\n"
        "Afghanistan | 1999 | 0.00\n"
        "Brazil      | 2000 | 0.00"
    )


def test_tabulate_truncates_rows():
    data = pa.record_batch({"n": list(range(25))})
    lines = tabulate(data, max_rows=3).splitlines()
    assert lines[-1] == "... and 22 more rows"
    assert len(lines) == 6


def test_tabulate_factors_show_levels():
    data = pa.record_batch({"month": factor(["Dec", "Jan"], levels=["Jan", "Dec"]).to_arrow()})
    assert tabulate(data).splitlines()[2:] == ["Dec  ", "Jan  "]


def test_markdown_table():
    assert markdown_table(TABLE1.select(["country", "year"])) == (
        "| country     | year |\n"
        "|-------------|------|\n"
        "| Afghanistan | 1999 |\n"
        "| Brazil      | 2000 |"
    )


def test_format_value():
    assert format_value(None) == "NA"
    assert format_value(True) == "true"
    assert format_value(2.666) == "2.67"
    assert format_value(datetime.datetime(2017, 1, 31, 20, 11)) == "2017-01-31 20:11:00"
    assert format_value(datetime.date(2017, 1, 31)) == "2017-01-31"
    assert format_value(datetime.timedelta(hours=1)) == "3600s"
    assert format_value("x" * 40) == "x" * 27 + "..."
