"""Where the data comes from.

Every analysis starts by importing data, so the first node
of any plan is a data source: it reads the data, converts it
to Arrow and hands it to the nodes that follow.

Most datasets used while learning are CSV files, either saved
locally or published on the web. :class:`CSVDataSource` reads both::

    CSVDataSource("data/who.csv")
    CSVDataSource("https://example.com/datasets/who.csv")

Missing values in CSV files are spelled in many ways, by
default empty fields and ``NA`` are read as nulls, pass
``na`` to change which strings mean "missing".

Parquet files, which already store typed columnar data, are read
by :class:`ParquetDataSource` and data that is already in memory
can join a plan through :class:`PyArrowTableDataSource`.
"""

import io
import logging
import urllib.request
from abc import abstractmethod

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from .base import QueryPlanNode

log = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http://", "https://")
DEFAULT_NA = ("", "NA")


class DataSourceNode(QueryPlanNode):
    """A node with no children, reading data from outside the plan."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Names and types of the columns, reading as little data as possible."""
        ...


class CSVDataSource(DataSourceNode):
    """Read a CSV file, local or remote.

    A URL is downloaded the first time the data is needed and the
    content is kept in memory, so running the same plan again
    does not download it a second time.
    """

    def __init__(
        self, filename: str, block_size: int | None = None, na: tuple[str, ...] = DEFAULT_NA
    ) -> None:
        """
        :param filename: Path of the file or its ``http(s)://`` URL.
        :param block_size: Bytes of CSV parsed for each emitted batch,
                           smaller blocks produce more batches.
        :param na: Strings that represent a missing value.
        """
        self.filename = filename
        self.block_size = block_size
        self.na = tuple(na)
        self._content: bytes | None = None

    @property
    def is_remote(self) -> bool:
        return self.filename.startswith(REMOTE_SCHEMES)

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, na={list(self.na)})"

    def _open(self, block_size: int | None = None) -> pa.csv.CSVStreamingReader:
        source: str | io.BytesIO = self.filename
        if self.is_remote:
            if self._content is None:
                log.info("Downloading %s", self.filename)
                with urllib.request.urlopen(self.filename) as response:
                    self._content = response.read()
                log.debug("Downloaded %d bytes", len(self._content))
            source = io.BytesIO(self._content)
        return pa.csv.open_csv(
            source,
            read_options=pa.csv.ReadOptions(block_size=block_size),
            convert_options=pa.csv.ConvertOptions(
                null_values=list(self.na), strings_can_be_null=True
            ),
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        with self._open(self.block_size) as reader:
            emitted = False
            for batch in reader:
                emitted = True
                yield batch
            if not emitted:
                # A header-only file has no batches, emit one to carry the schema.
                yield pa.RecordBatch.from_pylist([], schema=reader.schema)

    def poll_schema(self) -> pa.Schema:
        with self._open() as reader:
            return reader.schema


class ParquetDataSource(DataSourceNode):
    """Read a local Parquet file, optionally only some of its columns."""

    def __init__(
        self, filename: str, columns: list[str] | None = None, batch_size: int = 65536
    ) -> None:
        self.filename = filename
        self.columns = columns
        self.batch_size = batch_size

    def __str__(self) -> str:
        return f"ParquetDataSource({self.filename}, columns={self.columns})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        emitted = False
        with pa.parquet.ParquetFile(self.filename) as parquet:
            for batch in parquet.iter_batches(batch_size=self.batch_size, columns=self.columns):
                emitted = True
                yield batch
        if not emitted:
            yield pa.RecordBatch.from_pylist([], schema=self.poll_schema())

    def poll_schema(self) -> pa.Schema:
        with pa.parquet.ParquetFile(self.filename) as parquet:
            schema = parquet.schema_arrow
        if self.columns is None:
            return schema
        return pa.schema([schema.field(name) for name in self.columns])


class PyArrowTableDataSource(DataSourceNode):
    """Data already in memory, as a :class:`pyarrow.Table` or :class:`pyarrow.RecordBatch`."""

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        self.table = table

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        if isinstance(self.table, pa.RecordBatch):
            yield self.table
        elif self.table.num_rows == 0:
            # Tables without rows have no batches, emit one to carry the schema.
            yield pa.RecordBatch.from_pylist([], schema=self.table.schema)
        else:
            yield from self.table.to_batches()

    def poll_schema(self) -> pa.Schema:
        return self.table.schema
