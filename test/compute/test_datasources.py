import io

import pyarrow as pa
import pyarrow.csv as csv
import pyarrow.parquet as pq
import pytest

from tidyground.compute import datasources
from tidyground.compute.datasources import (
    CSVDataSource,
    ParquetDataSource,
    PyArrowTableDataSource,
)

TABLE1 = pa.table(
    {
        "country": ["Afghanistan", "Afghanistan", "Brazil", "Brazil"],
        "year": [1999, 2000, 1999, 2000],
        "cases": [745, 2666, 37737, 80488],
    }
)


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "table1.csv"
    csv.write_csv(TABLE1, path)
    return str(path)


@pytest.fixture
def parquet_file(tmp_path):
    path = tmp_path / "table1.parquet"
    pq.write_table(TABLE1, path)
    return str(path)


def test_csv_str(csv_file):
    assert str(CSVDataSource(csv_file)) == f"CSVDataSource({csv_file}, na=['', 'NA'])"


def test_parquet_str(parquet_file):
    assert str(ParquetDataSource(parquet_file, columns=["year"])) == (
        f"ParquetDataSource({parquet_file}, columns=['year'])"
    )


@pytest.mark.parametrize("data", [TABLE1, TABLE1.to_batches()[0]])
def test_table_str(data):
    assert str(PyArrowTableDataSource(data)) == (
        "PyArrowTableDataSource(columns=['country', 'year', 'cases'], rows=4)"
    )


def test_csv_batches(csv_file):
    batches = list(CSVDataSource(csv_file).batches())
    assert pa.Table.from_batches(batches).equals(TABLE1)


def test_csv_poll_schema(csv_file):
    assert CSVDataSource(csv_file).poll_schema() == TABLE1.schema


def test_parquet_batches(parquet_file):
    batches = list(ParquetDataSource(parquet_file, batch_size=3).batches())
    assert [b.num_rows for b in batches] == [3, 1]
    assert pa.Table.from_batches(batches).equals(TABLE1)
    assert ParquetDataSource(parquet_file).poll_schema() == TABLE1.schema


def test_table_batches():
    batches = list(PyArrowTableDataSource(TABLE1).batches())
    assert pa.Table.from_batches(batches).equals(TABLE1)


def test_empty_table_keeps_schema():
    empty = TABLE1.slice(0, 0)
    batches = list(PyArrowTableDataSource(empty).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema == TABLE1.schema


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def test_remote_csv_is_downloaded_once(monkeypatch):
    buffer = io.BytesIO()
    csv.write_csv(TABLE1, buffer)
    requested = []

    def urlopen(url):
        requested.append(url)
        return FakeResponse(buffer.getvalue())

    monkeypatch.setattr(datasources.urllib.request, "urlopen", urlopen)

    source = CSVDataSource("https://example.com/table1.csv")
    assert source.is_remote
    assert pa.Table.from_batches(list(source.batches())).equals(TABLE1)
    assert source.poll_schema() == TABLE1.schema
    assert requested == ["https://example.com/table1.csv"]


def test_csv_missing_values(tmp_path):
    path = tmp_path / "missing.csv"
    path.write_text("country,cases\nBrazil,NA\n,80488\nChina,.\n")

    table = pa.Table.from_batches(list(CSVDataSource(str(path)).batches()))
    assert table.to_pydict() == {
        "country": ["Brazil", None, "China"],
        "cases": [None, "80488", "."],
    }

    table = pa.Table.from_batches(list(CSVDataSource(str(path), na=("NA", ".")).batches()))
    assert table.to_pydict() == {
        "country": ["Brazil", "", "China"],
        "cases": [None, 80488, None],
    }


def test_parquet_columns(parquet_file):
    source = ParquetDataSource(parquet_file, columns=["country", "cases"])
    assert source.poll_schema().names == ["country", "cases"]
    assert pa.Table.from_batches(list(source.batches())).to_pydict() == {
        "country": ["Afghanistan", "Afghanistan", "Brazil", "Brazil"],
        "cases": [745, 2666, 37737, 80488],
    }


def test_header_only_csv_keeps_schema(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("country,year\n")
    batches = list(CSVDataSource(str(path)).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.names == ["country", "year"]


def test_empty_parquet_keeps_schema(tmp_path):
    path = tmp_path / "empty.parquet"
    pq.write_table(TABLE1.slice(0, 0), path)
    batches = list(ParquetDataSource(str(path), columns=["country", "cases"]).batches())
    assert pa.Table.from_batches(batches).num_rows == 0
    assert batches[0].schema.names == ["country", "cases"]
