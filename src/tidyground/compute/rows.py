"""Verbs that pick, compute, order and summarise rows and columns.

Before reshaping or combining tables, most analyses go through
a handful of basic verbs:

* pick the rows of interest with :class:`FilterNode`
* pick, or rename, columns with :class:`SelectNode`
* compute new columns from existing ones with :class:`MutateNode`
* sort the rows with :class:`ArrangeNode`
* remove duplicate rows with :class:`DistinctNode`
* take a slice of the rows with :class:`SliceNode`
* collapse groups of rows to a single summary with :class:`SummariseNode`

>>> import pyarrow as pa
>>> import pyarrow.compute as pc
>>> from tidyground.compute import col, FunctionCallExpression, PyArrowTableDataSource
>>> data = pa.record_batch({"country": ["IT", "FR", "IT"], "cases": [10, 5, 7]})
>>> plan = SummariseNode(["country"], {"total": ("cases", "sum")}, PyArrowTableDataSource(data))
>>> next(plan.batches()).to_pydict()
{'country': ['IT', 'FR'], 'total': [17, 5]}
"""

import pyarrow as pa
import pyarrow.compute as pc

from .base import Expression, QueryPlanNode, collect_batch, table_to_batch

# Friendly aliases of the arrow aggregation functions.
AGGREGATION_ALIASES = {
    "median": "approximate_median",
    "n": "count_all",
    "n_distinct": "count_distinct",
    "sd": "stddev",
    "var": "variance",
}


def with_column(batch: pa.RecordBatch, name: str, data: pa.Array) -> pa.RecordBatch:
    """Return a copy of the batch where column ``name`` holds ``data``.

    The column is replaced in place when it already exists,
    otherwise it's appended as the last column.
    """
    if isinstance(data, pa.Scalar):
        data = pa.repeat(data, batch.num_rows)
    elif isinstance(data, pa.ChunkedArray):
        data = data.combine_chunks()
    elif not isinstance(data, pa.Array):
        # Objects exposing __arrow_array__, like factors.
        data = pa.array(data)
    names = list(batch.column_names)
    arrays = list(batch.columns)
    if name in names:
        arrays[names.index(name)] = data
    else:
        names.append(name)
        arrays.append(data)
    return pa.RecordBatch.from_arrays(arrays, names=names)


def check_columns(batch: pa.RecordBatch, columns: list[str]) -> None:
    """Raise KeyError if any of the columns does not exist in the batch."""
    for name in columns:
        if name not in batch.column_names:
            raise KeyError(
                f"Column {name!r} does not exist, available columns: {batch.column_names}"
            )


class FilterNode(QueryPlanNode):
    """Keep only the rows for which the predicate is true.

    Rows where the predicate evaluates to null are discarded
    as well, a missing value is never considered a match.
    """

    def __init__(self, predicate: Expression, child: QueryPlanNode) -> None:
        """
        :param predicate: Expression returning a boolean for each row.
        :param child: The node emitting the data to be filtered.
        """
        self.predicate = predicate
        self.child = child

    def __str__(self) -> str:
        return f"FilterNode(predicate={self.predicate}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            yield batch.filter(self.predicate.apply(batch))


class SelectNode(QueryPlanNode):
    """Pick a subset of the columns, optionally renaming them.

    ``columns=None`` keeps all the columns, which is
    useful when the only purpose is renaming.
    """

    def __init__(
        self,
        columns: list[str] | None,
        child: QueryPlanNode,
        rename: dict[str, str] | None = None,
    ) -> None:
        """
        :param columns: The columns to keep in the order they should appear.
        :param child: The node emitting the data.
        :param rename: Mapping ``{old_name: new_name}`` applied after selection.
        """
        self.columns = columns
        self.rename = rename or {}
        self.child = child

    def __str__(self) -> str:
        return f"SelectNode(columns={self.columns}, rename={self.rename}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            if self.columns is not None:
                check_columns(batch, self.columns)
                batch = batch.select(self.columns)
            if self.rename:
                check_columns(batch, list(self.rename))
                batch = batch.rename_columns(
                    [self.rename.get(name, name) for name in batch.column_names]
                )
            yield batch


class MutateNode(QueryPlanNode):
    """Add new columns, or replace existing ones, computed from expressions.

    Expressions are applied in order, so each expression
    can refer to the columns created by the previous ones.
    Expressions returning a scalar are broadcasted to all rows.
    """

    def __init__(self, expressions: dict[str, Expression], child: QueryPlanNode) -> None:
        """
        :param expressions: Mapping ``{column_name: expression}``.
        :param child: The node emitting the data.
        """
        self.expressions = expressions
        self.child = child

    def __str__(self) -> str:
        return f"MutateNode(expressions={self.expressions}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            for name, expr in self.expressions.items():
                batch = with_column(batch, name, expr.apply(batch))
            yield batch


class ArrangeNode(QueryPlanNode):
    """Sort the rows by one or more columns.

    Sorting is stable, rows with equal keys preserve their
    original order, and missing values are always placed last
    regardless of the direction.
    """

    def __init__(
        self, keys: list[str], descending: list[bool] | None, child: QueryPlanNode
    ) -> None:
        """
        :param keys: The columns to sort by, in order of priority.
        :param descending: For each key, whether to sort in descending order.
                           ``None`` sorts all keys in ascending order.
        :param child: The node emitting the data.
        """
        if descending is None:
            descending = [False] * len(keys)
        if len(keys) != len(descending):
            raise ValueError("Keys and descending must have the same length")
        self.sorting = [
            (key, "descending" if desc else "ascending")
            for key, desc in zip(keys, descending)
        ]
        self.child = child

    def __str__(self) -> str:
        return f"ArrangeNode(sorting={self.sorting}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = collect_batch(self.child)
        check_columns(batch, [key for key, _ in self.sorting])
        indices = pc.sort_indices(
            batch, sort_keys=self.sorting, null_placement="at_end"
        )
        yield batch.take(indices)


class DistinctNode(QueryPlanNode):
    """Keep only the first occurrence of each unique row.

    When ``columns`` are provided, uniqueness is evaluated
    only on those columns and only those columns are emitted.
    """

    def __init__(self, columns: list[str] | None, child: QueryPlanNode) -> None:
        self.columns = columns
        self.child = child

    def __str__(self) -> str:
        return f"DistinctNode(columns={self.columns}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = collect_batch(self.child)
        if self.columns is not None:
            check_columns(batch, self.columns)
            batch = batch.select(self.columns)
        yield batch.take(pa.array(first_occurrences(batch), type=pa.int64()))


def first_occurrences(batch: pa.RecordBatch) -> list[int]:
    """Indices of the first occurrence of each distinct row in the batch."""
    seen = set()
    indices = []
    rows = zip(*(batch.column(i).to_pylist() for i in range(batch.num_columns)))
    for idx, row in enumerate(rows):
        if row not in seen:
            seen.add(row)
            indices.append(idx)
    return indices


class SliceNode(QueryPlanNode):
    """Emit ``length`` rows starting from row ``offset``.

    Rows can be spread across many batches, so the node
    keeps count of the rows it has seen to know where the
    slice begins and ends. Once the slice is complete
    the child is no longer consumed.
    """

    def __init__(self, offset: int, length: int, child: QueryPlanNode) -> None:
        if offset < 0 or length < 0:
            raise ValueError("offset and length must be positive")
        self.offset = offset
        self.length = length
        self.child = child

    def __str__(self) -> str:
        return f"SliceNode({self.offset}:{self.offset + self.length}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        start, stop = self.offset, self.offset + self.length
        position = 0  # index of the first row of the current batch
        emitted = False
        last_batch = None
        batches = self.child.batches()
        for batch in batches:
            last_batch = batch
            batch_start, batch_stop = position, position + batch.num_rows
            position = batch_stop
            if batch_stop <= start:
                continue
            first = max(start, batch_start) - batch_start
            last = min(stop, batch_stop) - batch_start
            if last > first or not emitted:
                yield batch.slice(first, max(0, last - first))
                emitted = True
            if batch_stop >= stop:
                batches.close()
                break

        if not emitted and last_batch is not None:
            # Offset past the end of data, still emit the schema.
            yield last_batch.slice(0, 0)


class SummariseNode(QueryPlanNode):
    """Collapse each group of rows to a single row of summaries.

    Groups are formed by the unique combinations of the
    ``keys`` columns and are emitted in the order they first
    appear in the data. With no keys the whole table is one group.

    Aggregations are provided as ``{name: (column, function)}``
    where function is the name of an arrow aggregation function
    like ``sum``, ``mean``, ``min``, ``max``, ``count``,
    ``count_distinct``, ``stddev`` or one of the friendlier
    aliases ``median``, ``n``, ``n_distinct``, ``sd``, ``var``.

    To count the rows of each group use ``("*", "n")`` or ``("*", "count")``.
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, tuple[str, str]],
        child: QueryPlanNode,
    ) -> None:
        self.keys = keys
        self.aggregations = {}
        for name, (column, func) in aggregations.items():
            if column == "*" and func == "count":
                func = "count_all"
            self.aggregations[name] = (column, AGGREGATION_ALIASES.get(func, func))
        self.child = child

    def __str__(self) -> str:
        return f"SummariseNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        table = pa.Table.from_batches([collect_batch(self.child)])
        columns = [c for c, _ in self.aggregations.values() if c != "*"]
        check_columns(table, self.keys + columns)
        if not self.keys:
            yield self._summarise_all(table)
            return

        # Arrow names results after column and function, each pair is computed once.
        specs = []
        for column, func in self.aggregations.values():
            spec = ([], "count_all") if func == "count_all" else (column, func)
            if spec not in specs:
                specs.append(spec)
        grouped = table.group_by(self.keys, use_threads=False).aggregate(specs)

        data = {key: grouped.column(key) for key in self.keys}
        for name, (column, func) in self.aggregations.items():
            result_name = "count_all" if func == "count_all" else f"{column}_{func}"
            data[name] = grouped.column(result_name)
        yield table_to_batch(pa.table(data))

    def _summarise_all(self, table: pa.Table) -> pa.RecordBatch:
        data = {}
        for name, (column, func) in self.aggregations.items():
            if func == "count_all":
                data[name] = [table.num_rows]
            else:
                value = getattr(pc, func)(table.column(column))
                data[name] = pa.array([value.as_py()], type=value.type)
        return pa.record_batch(data)
