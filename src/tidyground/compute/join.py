"""Verbs that combine two tables.

Data analyses rarely involve a single table. Tables that are
related to each other through *keys* are called relational data:
a **primary key** uniquely identifies a row of its own table,
while a **foreign key** identifies a row in another table.

Two families of verbs combine tables:

**Mutating joins** add columns from one table to the matching rows of the other:

* ``inner`` keeps only the rows that have a match in both tables.
* ``left`` keeps all the rows of the left table.
* ``right`` keeps all the rows of the right table.
* ``full`` keeps all the rows of both tables.

Rows without a match get nulls in the columns coming
from the other table.

**Filtering joins** filter the rows of the left table, without adding columns:

* ``semi`` keeps the rows of the left table that have a match.
* ``anti`` keeps the rows of the left table that have no match,
  which is handy to spot foreign keys pointing nowhere.

Both families are provided by :class:`JoinNode`.

**Set operations**, provided by :class:`SetOperationNode`, instead
treat rows as whole values and work on tables sharing the same columns.

>>> import pyarrow as pa
>>> from tidyground.compute import PyArrowTableDataSource
>>> x = PyArrowTableDataSource(pa.record_batch({"key": [1, 2, 3], "val_x": ["x1", "x2", "x3"]}))
>>> y = PyArrowTableDataSource(pa.record_batch({"key": [1, 2, 4], "val_y": ["y1", "y2", "y3"]}))
>>> next(JoinNode(x, y, how="left", on=["key"]).batches()).to_pydict()
{'key': [1, 2, 3], 'val_x': ['x1', 'x2', 'x3'], 'val_y': ['y1', 'y2', None]}
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, collect_batch, table_to_batch
from .rows import first_occurrences

log = logging.getLogger(__name__)

JOIN_TYPES = ("inner", "left", "right", "full", "semi", "anti")
SET_OPERATIONS = ("union", "union_all", "intersect", "setdiff")


class JoinError(ValueError):
    """The tables can't be joined as requested."""


def _row_keys(batch: pa.RecordBatch, columns: list[str]) -> list[tuple]:
    return list(zip(*(batch.column(c).to_pylist() for c in columns)))


def _compatible(left: pa.DataType, right: pa.DataType) -> bool:
    if left == right or pa.types.is_null(left) or pa.types.is_null(right):
        return True
    numeric = (pa.types.is_integer, pa.types.is_floating)
    if any(f(left) for f in numeric) and any(f(right) for f in numeric):
        return True
    strings = (pa.types.is_string, pa.types.is_large_string)
    return any(f(left) for f in strings) and any(f(right) for f in strings)


def _common_key_type(left: pa.DataType, right: pa.DataType) -> pa.DataType:
    """Type able to hold the keys of both sides of a join."""
    if left == right or pa.types.is_null(right):
        return left
    if pa.types.is_null(left):
        return right
    if pa.types.is_floating(left) or pa.types.is_floating(right):
        return pa.float64()
    if pa.types.is_integer(left):
        return pa.int64()
    return pa.large_string()


class JoinNode(QueryPlanNode):
    """Join two tables on equal keys.

    The join is performed as a *hash join*, consisting of two phases:

    1. **Build**: the rows of the right table are indexed
       by their key in a dictionary::

        right:                       index:
        +-----+-------+
        | key | val_y |              {1: [0], 2: [1], 4: [2]}
        +-----+-------+
        | 1   | y1    |
        | 2   | y2    |
        | 4   | y3    |
        +-----+-------+

    2. **Probe**: for each row of the left table, the index tells
       which rows of the right table match. Instead of copying data
       around, the join records pairs of row indices::

        left:                        pairs (left_row, right_row):
        +-----+-------+
        | key | val_x |              (0, 0)
        +-----+-------+              (1, 1)
        | 1   | x1    |              (2, None)  <- no match, kept by left joins
        | 2   | x2    |
        | 3   | x3    |
        +-----+-------+

    Finally the result is assembled by taking the recorded rows from
    both tables in a single vectorized operation. Taking a ``None``
    index produces a null, which is exactly what's needed for rows
    without a match.

    When a key appears multiple times in both tables, every combination
    of the matching rows is emitted. That's usually a sign the key
    is not a primary key of either table, see :func:`duplicate_keys`.
    Missing keys never match each other.

    Rows are emitted in the order of the left table, and for each of them
    the matches in the order of the right table. Right and full joins add
    the unmatched rows of the right table at the end.

    Keys are specified through ``on`` when they have the same name in
    both tables or through ``left_on`` and ``right_on`` when they don't.
    If no key is specified, all the columns with the same name in both
    tables are used (a *natural join*).

    Key columns appear only once in the result, with the names they
    have in the left table. Other columns present in both tables are
    disambiguated by appending ``suffixes``.
    """

    def __init__(
        self,
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: str = "inner",
        on: list[str] | None = None,
        left_on: list[str] | None = None,
        right_on: list[str] | None = None,
        suffixes: tuple[str, str] = ("_x", "_y"),
    ) -> None:
        """
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: One of ``inner``, ``left``, ``right``, ``full``, ``semi``, ``anti``.
        :param on: Key columns having the same name in both tables.
        :param left_on: Key columns of the left table.
        :param right_on: Key columns of the right table, paired to ``left_on``.
        :param suffixes: Appended to the names of duplicate non-key columns.
        """
        if how not in JOIN_TYPES:
            raise JoinError(f"Invalid join type {how!r}, expected one of {JOIN_TYPES}")
        if on is not None and (left_on is not None or right_on is not None):
            raise JoinError("Provide either on or left_on/right_on, not both")
        if (left_on is None) != (right_on is None):
            raise JoinError("left_on and right_on must be provided together")
        if left_on is not None and len(left_on) != len(right_on):
            raise JoinError("left_on and right_on must have the same length")
        if isinstance(on, str):
            on = [on]
        self.left_child = left_child
        self.right_child = right_child
        self.how = how
        self.left_on = list(on) if on is not None else left_on
        self.right_on = list(on) if on is not None else right_on
        self.suffixes = suffixes

    def __str__(self) -> str:
        return (
            f"JoinNode(how={self.how}, left_on={self.left_on}, right_on={self.right_on}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def _resolve_keys(
        self, left: pa.RecordBatch, right: pa.RecordBatch
    ) -> tuple[list[str], list[str]]:
        left_on, right_on = self.left_on, self.right_on
        if left_on is None:
            common = [c for c in left.column_names if c in right.column_names]
            if not common:
                raise JoinError("No common columns to join on, provide the keys")
            log.info("Joining by %s", common)
            left_on = right_on = common

        for side, batch, keys in (("left", left, left_on), ("right", right, right_on)):
            missing = [k for k in keys if k not in batch.column_names]
            if missing:
                raise JoinError(f"Key columns {missing} missing from the {side} table")
        for lkey, rkey in zip(left_on, right_on):
            ltype, rtype = left.schema.field(lkey).type, right.schema.field(rkey).type
            if not _compatible(ltype, rtype):
                raise JoinError(
                    f"Can't join {lkey!r} ({ltype}) with {rkey!r} ({rtype}), incompatible types"
                )
        return left_on, right_on

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join.

        Accumulates all rows of both children, so
        both tables have to fit in memory.
        """
        left = collect_batch(self.left_child)
        right = collect_batch(self.right_child)
        left_on, right_on = self._resolve_keys(left, right)

        # Build phase
        index: dict[tuple, list[int]] = {}
        for idx, key in enumerate(_row_keys(right, right_on)):
            if None in key:
                continue
            index.setdefault(key, []).append(idx)

        # Probe phase
        left_rows: list[int | None] = []
        right_rows: list[int | None] = []
        matched_right: set[int] = set()
        for idx, key in enumerate(_row_keys(left, left_on)):
            matches = index.get(key, []) if None not in key else []
            if self.how == "semi":
                if matches:
                    left_rows.append(idx)
            elif self.how == "anti":
                if not matches:
                    left_rows.append(idx)
            elif matches:
                for match in matches:
                    left_rows.append(idx)
                    right_rows.append(match)
                matched_right.update(matches)
            elif self.how in ("left", "full"):
                left_rows.append(idx)
                right_rows.append(None)

        if self.how in ("semi", "anti"):
            yield left.take(pa.array(left_rows, type=pa.int64()))
            return

        if self.how in ("right", "full"):
            for idx in range(right.num_rows):
                if idx not in matched_right:
                    left_rows.append(None)
                    right_rows.append(idx)

        yield self._assemble(left, right, left_on, right_on, left_rows, right_rows)

    def _assemble(
        self,
        left: pa.RecordBatch,
        right: pa.RecordBatch,
        left_on: list[str],
        right_on: list[str],
        left_rows: list[int | None],
        right_rows: list[int | None],
    ) -> pa.RecordBatch:
        left_taken = left.take(pa.array(left_rows, type=pa.int64()))
        right_taken = right.take(pa.array(right_rows, type=pa.int64()))
        left_suffix, right_suffix = self.suffixes

        data = {}
        right_keys = dict(zip(left_on, right_on))
        right_values = [c for c in right.column_names if c not in right_on]
        for name in left.column_names:
            column = left_taken.column(name)
            if name in right_keys:
                # Unmatched right rows have no left key, use the right one.
                right_key = right_taken.column(right_keys[name])
                key_type = _common_key_type(column.type, right_key.type)
                data[name] = pc.coalesce(column.cast(key_type), right_key.cast(key_type))
            elif name in right_values:
                data[name + left_suffix] = column
            else:
                data[name] = column
        for name in right_values:
            new_name = name + right_suffix if name in left.column_names else name
            data[new_name] = right_taken.column(name)
        return pa.record_batch(data)


class SetOperationNode(QueryPlanNode):
    """Combine two tables with the same columns as sets of rows.

    * ``union`` returns the unique rows present in either table.
    * ``union_all`` returns all the rows of both tables, duplicates included.
    * ``intersect`` returns the unique rows present in both tables.
    * ``setdiff`` returns the unique rows of the left table
      that are not present in the right one.

    Rows are emitted in the order they are first found,
    scanning the left table first.
    """

    def __init__(self, kind: str, left_child: QueryPlanNode, right_child: QueryPlanNode) -> None:
        if kind not in SET_OPERATIONS:
            raise JoinError(f"Invalid set operation {kind!r}, expected one of {SET_OPERATIONS}")
        self.kind = kind
        self.left_child = left_child
        self.right_child = right_child

    def __str__(self) -> str:
        return f"SetOperationNode({self.kind}, left={self.left_child}, right={self.right_child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        left = collect_batch(self.left_child)
        right = collect_batch(self.right_child)
        if left.column_names != right.column_names:
            raise JoinError(
                f"Set operations need the same columns, got {left.column_names} and {right.column_names}"
            )
        if right.schema != left.schema:
            right = table_to_batch(pa.Table.from_batches([right]).cast(left.schema))

        if self.kind in ("union", "union_all"):
            combined = table_to_batch(pa.Table.from_batches([left, right]))
            if self.kind == "union":
                combined = combined.take(
                    pa.array(first_occurrences(combined), type=pa.int64())
                )
            yield combined
            return

        right_rows = set(_row_keys(right, right.column_names))
        keep = []
        for idx, row in enumerate(_row_keys(left, left.column_names)):
            if (row in right_rows) == (self.kind == "intersect"):
                keep.append(idx)
        deduplicated = left.take(pa.array(keep, type=pa.int64()))
        yield deduplicated.take(
            pa.array(first_occurrences(deduplicated), type=pa.int64())
        )


def duplicate_keys(node: QueryPlanNode, keys: list[str]) -> pa.RecordBatch:
    """Find the key values that appear more than once.

    A primary key must uniquely identify each row,
    counting the rows for each key value and looking
    for counts greater than one verifies that::

        >>> import pyarrow as pa
        >>> from tidyground.compute import PyArrowTableDataSource
        >>> planes = pa.record_batch({"tailnum": ["N10156", "N102UW", "N10156"]})
        >>> duplicate_keys(PyArrowTableDataSource(planes), ["tailnum"]).to_pydict()
        {'tailnum': ['N10156'], 'n': [2]}
    """
    batch = collect_batch(node)
    missing = [k for k in keys if k not in batch.column_names]
    if missing:
        raise JoinError(f"Key columns {missing} don't exist")
    counts: dict[tuple, int] = {}
    for key in _row_keys(batch, keys):
        counts[key] = counts.get(key, 0) + 1
    duplicated = [(key, n) for key, n in counts.items() if n > 1]
    data = {
        name: pa.array([key[i] for key, _ in duplicated], type=batch.schema.field(name).type)
        for i, name in enumerate(keys)
    }
    data["n"] = pa.array([n for _, n in duplicated], type=pa.int64())
    return pa.record_batch(data)
