"""Base classes and interfaces for the wrangling engine

This module defines the base components that are
necessary to represent a chain of wrangling verbs and execute it.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa


class QueryPlanNode(abc.ABC):
    """A step of a wrangling pipeline.

    Pipelines are represented as a tree of nodes.
    Each node is a step in the execution and
    all previous steps are children of the last one.

    For example reading a CSV file, reshaping
    it from wide to long and then dropping missing
    values would be represented as::

        CSVDataSource -> PivotLongerNode -> DropNullsNode

    Where ``DropNullsNode`` is the root of the tree
    and ``CSVDataSource`` its leaf.

    Joins and set operations accept two children,
    the two tables that have to be combined.

    Each node consumes :class:`pyarrow.RecordBatch`
    data from its children and emits new
    :class:`pyarrow.RecordBatch` objects.
    Some verbs, like pivoting wider or filling values
    down a column, need to see the whole table before
    they can emit anything. Those nodes are *blocking*
    and use :func:`collect_batch` to gather their input.
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...

    def __repr__(self) -> str:
        return str(self)


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Applying an expression to a batch always results in
    a new column, thus in a :class:`pyarrow.Array`
    with one value for each row of the batch.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Apply the expression to a RecordBatch."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)


class ColumnRef(Expression):
    """References a column in a record batch.

    When applied to a record batch returns the data for that column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value repeated for every row."""

    def __init__(self, value: Any) -> None:
        self.value = value

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        # Compute functions broadcast scalars, so there is no
        # need to materialize an array of num_rows identical values.
        return pa.scalar(self.value)

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal


def collect_batch(node: QueryPlanNode) -> pa.RecordBatch:
    """Gather all the batches emitted by a node into a single one.

    Blocking verbs need the whole table in memory,
    this concatenates the batches through a :class:`pyarrow.Table`
    and combines the chunks so that the result is one contiguous batch.

    When the node emits no batches at all, an empty batch
    with no columns is returned.
    """
    batches = list(node.batches())
    if not batches:
        return pa.RecordBatch.from_pydict({})
    if len(batches) == 1:
        return batches[0]
    return table_to_batch(pa.Table.from_batches(batches))


def table_to_batch(table: pa.Table) -> pa.RecordBatch:
    """Convert a table to a single contiguous RecordBatch."""
    batches = table.combine_chunks().to_batches()
    if not batches:
        return pa.RecordBatch.from_pylist([], schema=table.schema)
    return batches[0]
