"""Verbs that reshape data into (and out of) tidy form.

A dataset is *tidy* when:

1. Each variable has its own column.
2. Each observation has its own row.
3. Each value has its own cell.

Data found in the wild rarely respects those rules,
usually because it was organized to make data entry
or presentation easy. The verbs in this module fix
the most common problems:

* **One variable spread across multiple columns**,
  for example one column per year, is fixed by
  :class:`PivotLongerNode`, which turns the columns into rows.
* **One observation scattered across multiple rows**,
  for example a ``type`` column saying if the ``count``
  column holds cases or population, is fixed by
  :class:`PivotWiderNode`, which turns the rows into columns.
* **Multiple values in one cell**, like ``"745/19987071"``,
  are split by :class:`SeparateNode` and the inverse,
  pasting multiple columns together, is done by :class:`UniteNode`.

Missing values can be *explicit*, a null in a cell,
or *implicit*, simply not present in the data.
:class:`CompleteNode` makes implicit missing values explicit,
:class:`DropNullsNode` drops explicit missing values, while
:class:`FillNode` carries forward the last observation for
datasets where repeated values are left empty.

>>> import pyarrow as pa
>>> from tidyground.compute import PyArrowTableDataSource
>>> table = pa.record_batch({"country": ["Brazil", "China"], "1999": [37737, 212258], "2000": [80488, 213766]})
>>> longer = PivotLongerNode(["1999", "2000"], PyArrowTableDataSource(table), names_to="year", values_to="cases")
>>> next(longer.batches()).to_pydict()
{'country': ['Brazil', 'Brazil', 'China', 'China'], 'year': ['1999', '2000', '1999', '2000'], 'cases': [37737, 80488, 212258, 213766]}
"""

import itertools
import logging
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, collect_batch

log = logging.getLogger(__name__)

DEFAULT_SEPARATOR = r"[^0-9A-Za-z]+"


class ReshapeError(ValueError):
    """The data can't be reshaped as requested."""


def common_type(types: list[pa.DataType]) -> pa.DataType:
    """Find a type that can hold values of all the provided types.

    Columns pivoted into a single column must agree on their type,
    the only promotion performed is integers to floats as that's
    lossless for the sizes involved in most datasets.
    Columns made only of nulls adapt to any other type.
    """
    concrete = [t for t in types if not pa.types.is_null(t)]
    if not concrete:
        return pa.null()
    if all(t == concrete[0] for t in concrete):
        return concrete[0]
    if all(pa.types.is_integer(t) or pa.types.is_floating(t) for t in concrete):
        if any(pa.types.is_floating(t) for t in concrete):
            return pa.float64()
        return pa.int64()
    raise ReshapeError(f"Can't combine columns of types {[str(t) for t in concrete]}")


def _check_exists(batch: pa.RecordBatch, columns: list[str]) -> None:
    missing = [c for c in columns if c not in batch.column_names]
    if missing:
        raise ReshapeError(f"Columns {missing} don't exist")


class PivotLongerNode(QueryPlanNode):
    """Turn columns into rows, making the data longer.

    Given a table where the column names are values of a variable::

        country | 1999   | 2000
        ------- | ------ | ------
        Brazil  | 37737  | 80488
        China   | 212258 | 213766

    pivoting the ``1999`` and ``2000`` columns moves their
    names into the ``names_to`` column and their values into
    the ``values_to`` column::

        country | year | cases
        ------- | ---- | ------
        Brazil  | 1999 | 37737
        Brazil  | 2000 | 80488
        China   | 1999 | 212258
        China   | 2000 | 213766

    The other columns are repeated once for each pivoted column.
    Rows are emitted row-major: all the pivoted values
    of the first input row, then those of the second and so on.

    When the column names contain multiple variables, like
    ``new_sp_m014``, ``names_sep`` splits them into
    multiple ``names_to`` columns.
    """

    def __init__(
        self,
        cols: list[str],
        child: QueryPlanNode,
        names_to: str | list[str] = "name",
        values_to: str = "value",
        names_sep: str | None = None,
        values_drop_na: bool = False,
    ) -> None:
        """
        :param cols: The columns to pivot into rows.
        :param child: The node emitting the data.
        :param names_to: Name of the column that will store the column names,
                         a list of names when ``names_sep`` is used.
        :param values_to: Name of the column that will store the values.
        :param names_sep: Separator splitting the column names in multiple variables.
        :param values_drop_na: Drop the rows where the value is null.
        """
        if not cols:
            raise ReshapeError("At least one column must be pivoted")
        self.cols = list(cols)
        self.names_to = [names_to] if isinstance(names_to, str) else list(names_to)
        if len(self.names_to) > 1 and names_sep is None:
            raise ReshapeError("Multiple names_to require a names_sep")
        self.values_to = values_to
        self.names_sep = names_sep
        self.values_drop_na = values_drop_na
        self.child = child

    def __str__(self) -> str:
        return (
            f"PivotLongerNode(cols={self.cols}, names_to={self.names_to}, "
            f"values_to={self.values_to}, child={self.child})"
        )

    def _split_names(self) -> list[list[str]]:
        """Names of each pivoted column, split in one part per names_to."""
        if self.names_sep is None:
            return [[c] for c in self.cols]
        parts = []
        for c in self.cols:
            split = c.split(self.names_sep)
            if len(split) != len(self.names_to):
                raise ReshapeError(
                    f"Column {c!r} splits in {len(split)} pieces, expected {len(self.names_to)}"
                )
            parts.append(split)
        return parts

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        split_names = self._split_names()
        for batch in self.child.batches():
            yield self._pivot(batch, split_names)

    def _pivot(self, batch: pa.RecordBatch, split_names: list[list[str]]) -> pa.RecordBatch:
        _check_exists(batch, self.cols)
        id_cols = [c for c in batch.column_names if c not in self.cols]
        n_rows, n_cols = batch.num_rows, len(self.cols)

        # Each input row is repeated once for each pivoted column:
        #   row 0, row 0, row 1, row 1, ...
        repeated = pa.array(
            [r for r in range(n_rows) for _ in range(n_cols)], type=pa.int64()
        )
        data = {c: batch.column(c).take(repeated) for c in id_cols}

        for part_idx, name in enumerate(self.names_to):
            data[name] = pa.array(
                [split_names[c][part_idx] for _ in range(n_rows) for c in range(n_cols)],
                type=pa.string(),
            )

        # Stacking the columns one after the other gives a column-major
        # layout, so we need to reorder the values to be row-major:
        #   stacked = [col0row0, col0row1, col1row0, col1row1]
        #   values  = [col0row0, col1row0, col0row1, col1row1]
        value_type = common_type([batch.schema.field(c).type for c in self.cols])
        stacked = pa.concat_arrays(
            [batch.column(c).cast(value_type) for c in self.cols]
        )
        row_major = pa.array(
            [c * n_rows + r for r in range(n_rows) for c in range(n_cols)],
            type=pa.int64(),
        )
        data[self.values_to] = stacked.take(row_major)

        result = pa.record_batch(data)
        if self.values_drop_na:
            result = result.filter(pc.is_valid(result.column(self.values_to)))
        return result


class PivotWiderNode(QueryPlanNode):
    """Turn rows into columns, making the data wider.

    The inverse of :class:`PivotLongerNode`. Given a table where
    an observation is scattered across multiple rows::

        country | year | type       | count
        ------- | ---- | ---------- | --------
        Brazil  | 1999 | cases      | 37737
        Brazil  | 1999 | population | 172006362

    the values of ``names_from`` become new columns
    containing the values of ``values_from``::

        country | year | cases | population
        ------- | ---- | ----- | ----------
        Brazil  | 1999 | 37737 | 172006362

    All the other columns (or ``id_cols`` when provided) identify
    each row of the result. Rows and new columns appear in the order
    they are first found in the data. This is a blocking node,
    as all the rows must be seen before knowing which columns exist.
    """

    def __init__(
        self,
        names_from: str,
        values_from: str,
        child: QueryPlanNode,
        id_cols: list[str] | None = None,
        values_fill: Any = None,
    ) -> None:
        """
        :param names_from: Column whose values become the new column names.
        :param values_from: Column whose values fill the new columns.
        :param child: The node emitting the data.
        :param id_cols: Columns identifying each row, all the others by default.
        :param values_fill: Value used when a combination has no value.
        """
        self.names_from = names_from
        self.values_from = values_from
        self.id_cols = id_cols
        self.values_fill = values_fill
        self.child = child

    def __str__(self) -> str:
        return (
            f"PivotWiderNode(names_from={self.names_from}, values_from={self.values_from}, "
            f"id_cols={self.id_cols}, child={self.child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = collect_batch(self.child)
        _check_exists(batch, [self.names_from, self.values_from] + (self.id_cols or []))
        id_cols = self.id_cols
        if id_cols is None:
            id_cols = [
                c for c in batch.column_names if c not in (self.names_from, self.values_from)
            ]

        ids = list(zip(*(batch.column(c).to_pylist() for c in id_cols)))
        if not id_cols:
            ids = [()] * batch.num_rows
        names = [
            "NA" if n is None else str(n) for n in batch.column(self.names_from).to_pylist()
        ]

        # Assign each row of the input to its (output row, output column) cell
        rows_position: dict[tuple, int] = {}
        first_rows: list[int] = []
        cells: dict[tuple[int, str], int] = {}
        new_columns: dict[str, None] = {}  # dict preserves insertion order
        for idx, (row_id, name) in enumerate(zip(ids, names)):
            if row_id not in rows_position:
                rows_position[row_id] = len(first_rows)
                first_rows.append(idx)
            position = rows_position[row_id]
            if (position, name) in cells:
                raise ReshapeError(
                    f"Values are not uniquely identified, row {dict(zip(id_cols, row_id))} "
                    f"has multiple values for {name!r}"
                )
            cells[(position, name)] = idx
            new_columns.setdefault(name, None)

        conflicts = set(new_columns) & set(id_cols)
        if conflicts:
            raise ReshapeError(f"New columns {sorted(conflicts)} conflict with id columns")

        first_rows_idx = pa.array(first_rows, type=pa.int64())
        data = {c: batch.column(c).take(first_rows_idx) for c in id_cols}
        values = batch.column(self.values_from)
        for name in new_columns:
            indices = pa.array(
                [cells.get((position, name)) for position in range(len(first_rows))],
                type=pa.int64(),
            )
            column = values.take(indices)
            if self.values_fill is not None:
                column = column.fill_null(self.values_fill)
            data[name] = column
        yield pa.record_batch(data)


class SeparateNode(QueryPlanNode):
    """Split one column in multiple columns.

    By default the column is split wherever a character
    that is not a letter or a number appears, so ``"745/19987071"``
    becomes ``"745"`` and ``"19987071"``. ``sep`` can be a different
    regular expression or a list of positions to cut at,
    negative positions count from the end of the string.

    When a value has more pieces than ``into`` columns,
    ``extra`` controls what happens:

    * ``"warn"`` drops the additional pieces and warns about it.
    * ``"drop"`` drops them silently.
    * ``"merge"`` splits at most ``len(into)`` times, so
      the last column keeps the remaining text.

    When a value has fewer pieces, ``fill`` controls what happens:

    * ``"warn"`` fills the missing pieces on the right with nulls and warns.
    * ``"right"`` fills the missing pieces on the right silently.
    * ``"left"`` fills the missing pieces on the left silently.

    Pieces are strings, pass ``convert=True`` to turn them
    into numbers or booleans when all the pieces allow it.
    ``None`` entries in ``into`` discard that piece.
    """

    def __init__(
        self,
        column: str,
        into: list[str | None],
        child: QueryPlanNode,
        sep: str | list[int] = DEFAULT_SEPARATOR,
        remove: bool = True,
        convert: bool = False,
        extra: str = "warn",
        fill: str = "warn",
    ) -> None:
        if extra not in ("warn", "drop", "merge"):
            raise ValueError(f"Invalid extra={extra!r}")
        if fill not in ("warn", "right", "left"):
            raise ValueError(f"Invalid fill={fill!r}")
        if not isinstance(sep, str) and len(sep) + 1 != len(into):
            raise ReshapeError(
                f"{len(sep)} positions split in {len(sep) + 1} pieces, got {len(into)} columns"
            )
        self.column = column
        self.into = list(into)
        self.sep = sep
        self.remove = remove
        self.convert = convert
        self.extra = extra
        self.fill = fill
        self.child = child

    def __str__(self) -> str:
        return f"SeparateNode(column={self.column}, into={self.into}, sep={self.sep!r}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            yield self._separate(batch)

    def _split(self, values: pa.Array) -> list[list[str] | None]:
        if isinstance(self.sep, str):
            max_splits = len(self.into) - 1 if self.extra == "merge" else None
            return pc.split_pattern_regex(
                values, pattern=self.sep, max_splits=max_splits
            ).to_pylist()
        return [
            None if v is None else split_at_positions(v, self.sep)
            for v in values.to_pylist()
        ]

    def _separate(self, batch: pa.RecordBatch) -> pa.RecordBatch:
        _check_exists(batch, [self.column])
        values = batch.column(self.column).cast(pa.string())
        n_pieces = len(self.into)

        too_many, too_few = [], []
        pieces = []
        for idx, split in enumerate(self._split(values)):
            if split is None:
                pieces.append([None] * n_pieces)
                continue
            if len(split) > n_pieces:
                too_many.append(idx)
                split = split[:n_pieces]
            elif len(split) < n_pieces:
                too_few.append(idx)
                padding = [None] * (n_pieces - len(split))
                split = padding + split if self.fill == "left" else split + padding
            pieces.append(split)

        if too_many and self.extra == "warn":
            log.warning(
                "Expected %d pieces. Additional pieces discarded in %d rows %s.",
                n_pieces, len(too_many), too_many[:20],
            )
        if too_few and self.fill == "warn":
            log.warning(
                "Expected %d pieces. Missing pieces filled with nulls in %d rows %s.",
                n_pieces, len(too_few), too_few[:20],
            )

        new_columns = {}
        for piece_idx, name in enumerate(self.into):
            if name is None:
                continue
            column = pa.array([p[piece_idx] for p in pieces], type=pa.string())
            new_columns[name] = convert_strings(column) if self.convert else column

        data = {}
        for name in batch.column_names:
            if name == self.column:
                if not self.remove:
                    data[name] = batch.column(name)
                data.update(new_columns)
            elif name not in new_columns:
                data[name] = batch.column(name)
        return pa.record_batch(data)


def split_at_positions(value: str, positions: list[int]) -> list[str]:
    """Cut a string at the given positions.

    >>> split_at_positions("1999", [2])
    ['19', '99']
    >>> split_at_positions("ab-12", [-2])
    ['ab-', '12']
    """
    length = len(value)
    cuts = [min(max(p if p >= 0 else length + p, 0), length) for p in positions]
    bounds = [0] + cuts + [length]
    return [value[start:end] for start, end in zip(bounds, bounds[1:])]


def convert_strings(column: pa.Array) -> pa.Array:
    """Guess a better type for a column of strings.

    Tries integers, then floats, then booleans
    and keeps the strings when none of them fits.
    """
    for candidate in (pa.int64(), pa.float64(), pa.bool_()):
        try:
            return column.cast(candidate)
        except (pa.ArrowInvalid, pa.ArrowNotImplementedError):
            continue
    return column


class UniteNode(QueryPlanNode):
    """Paste multiple columns together into a single one.

    The inverse of :class:`SeparateNode`. Missing values are
    pasted as ``"NA"`` unless ``na_rm`` is set, in which case
    they are skipped together with their separator.
    The new column takes the place of the first united column.
    """

    def __init__(
        self,
        column: str,
        columns: list[str],
        child: QueryPlanNode,
        sep: str = "_",
        remove: bool = True,
        na_rm: bool = False,
    ) -> None:
        if not columns:
            raise ReshapeError("At least one column must be united")
        self.column = column
        self.columns = list(columns)
        self.sep = sep
        self.remove = remove
        self.na_rm = na_rm
        self.child = child

    def __str__(self) -> str:
        return f"UniteNode(column={self.column}, columns={self.columns}, sep={self.sep!r}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            _check_exists(batch, self.columns)
            strings = [batch.column(c).cast(pa.string()) for c in self.columns]
            if self.na_rm:
                united = pc.binary_join_element_wise(
                    *strings, self.sep, null_handling="skip"
                )
            else:
                united = pc.binary_join_element_wise(
                    *strings, self.sep, null_handling="replace", null_replacement="NA"
                )

            data = {}
            for name in batch.column_names:
                if name == self.columns[0]:
                    data[self.column] = united
                if name == self.column or (self.remove and name in self.columns):
                    continue
                data[name] = batch.column(name)
            yield pa.record_batch(data)


class FillNode(QueryPlanNode):
    """Fill missing values with the previous (or next) value.

    Useful when data was entered leaving a value empty
    when it's the same as the row above::

        person           | treatment | response
        ---------------- | --------- | --------
        Derrick Whitmore | 1         | 7
        None             | 2         | 10
        Katherine Burke  | 1         | 4

    Filling ``person`` downward repeats ``Derrick Whitmore``
    on the second row. ``direction`` can be ``"down"``, ``"up"``,
    ``"downup"`` (down first, then up for the leading missing values)
    or ``"updown"``.
    """

    FILLERS = {
        "down": (pc.fill_null_forward,),
        "up": (pc.fill_null_backward,),
        "downup": (pc.fill_null_forward, pc.fill_null_backward),
        "updown": (pc.fill_null_backward, pc.fill_null_forward),
    }

    def __init__(self, columns: list[str], child: QueryPlanNode, direction: str = "down") -> None:
        if direction not in self.FILLERS:
            raise ValueError(f"Invalid direction={direction!r}, expected one of {list(self.FILLERS)}")
        self.columns = list(columns)
        self.direction = direction
        self.child = child

    def __str__(self) -> str:
        return f"FillNode(columns={self.columns}, direction={self.direction}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        # Values are carried across batch boundaries, so we need all of them.
        batch = collect_batch(self.child)
        _check_exists(batch, self.columns)
        data = {}
        for name in batch.column_names:
            column = batch.column(name)
            if name in self.columns:
                for filler in self.FILLERS[self.direction]:
                    column = filler(column)
            data[name] = column
        yield pa.record_batch(data)


class CompleteNode(QueryPlanNode):
    """Turn implicit missing values into explicit ones.

    Given the columns identifying observations, every
    combination of their unique values gets a row.
    Combinations that were missing from the data get
    nulls in the other columns, or the value provided
    for that column in ``fill``::

        year | qtr | return          year | qtr | return
        ---- | --- | ------          ---- | --- | ------
        2015 | 1   | 1.88     -->    2015 | 1   | 1.88
        2015 | 2   | 0.59            2015 | 2   | 0.59
        2016 | 2   | 0.92            2016 | 1   | None
                                     2016 | 2   | 0.92

    Rows are emitted sorted by the completed columns.
    """

    def __init__(
        self, columns: list[str], child: QueryPlanNode, fill: dict[str, Any] | None = None
    ) -> None:
        if not columns:
            raise ReshapeError("At least one column must be completed")
        self.columns = list(columns)
        self.fill = fill or {}
        self.child = child

    def __str__(self) -> str:
        return f"CompleteNode(columns={self.columns}, fill={self.fill}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = collect_batch(self.child)
        _check_exists(batch, self.columns + list(self.fill))

        uniques = []
        for name in self.columns:
            values = pc.unique(batch.column(name))
            values = values.take(pc.array_sort_indices(values, null_placement="at_end"))
            uniques.append(values.to_pylist())

        rows_by_key: dict[tuple, list[int]] = {}
        keys = zip(*(batch.column(c).to_pylist() for c in self.columns))
        for idx, key in enumerate(keys):
            rows_by_key.setdefault(key, []).append(idx)

        combinations, indices = [], []
        for combination in itertools.product(*uniques):
            for idx in rows_by_key.get(combination, [None]):
                combinations.append(combination)
                indices.append(idx)

        completed = batch.take(pa.array(indices, type=pa.int64()))
        data = {}
        for name in batch.column_names:
            if name in self.columns:
                position = self.columns.index(name)
                data[name] = pa.array(
                    [c[position] for c in combinations], type=batch.schema.field(name).type
                )
            else:
                data[name] = completed.column(name)
            if name in self.fill:
                data[name] = data[name].fill_null(self.fill[name])
        yield pa.record_batch(data)


class DropNullsNode(QueryPlanNode):
    """Drop the rows containing missing values.

    Only ``columns`` are considered when provided,
    otherwise a null in any column drops the row.
    """

    def __init__(self, child: QueryPlanNode, columns: list[str] | None = None) -> None:
        self.columns = columns
        self.child = child

    def __str__(self) -> str:
        return f"DropNullsNode(columns={self.columns}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            columns = self.columns if self.columns is not None else batch.column_names
            _check_exists(batch, columns)
            mask = pa.array([True] * batch.num_rows, type=pa.bool_())
            for name in columns:
                mask = pc.and_(mask, pc.is_valid(batch.column(name)))
            yield batch.filter(mask)
