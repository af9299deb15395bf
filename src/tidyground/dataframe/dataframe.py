"""The Dataframe object itself."""
from typing import Any, Self

import pyarrow as pa

from ..compute import (
  ArrangeNode,
  CompleteNode,
  CSVDataSource,
  DistinctNode,
  DropNullsNode,
  FillNode,
  FilterNode,
  JoinNode,
  MutateNode,
  ParquetDataSource,
  PivotLongerNode,
  PivotWiderNode,
  PyArrowTableDataSource,
  SelectNode,
  SeparateNode,
  SetOperationNode,
  SliceNode,
  SummariseNode,
  UniteNode,
)
from ..compute.base import Expression, QueryPlanNode, collect_batch
from ..compute.datasources import DEFAULT_NA
from ..compute.tidy import DEFAULT_SEPARATOR
from ..utils.tabulate import tabulate


# Key columns of a join, one name or many.
Keys = str | list[str] | None


def _as_list(columns: Keys) -> list[str] | None:
  if isinstance(columns, str):
    return [columns]
  return None if columns is None else list(columns)


class Dataframe:
  """Data structure that handles data in rows and columns.

  The Dataframe object allows to represent in-memory data
  and perform transformations over it.

  The tidyground dataframe object is lazy, which means that
  any transformation or analysis will be applied only when the
  ``.collect()`` method will be invoked and no data is kept
  in memory until that moment (unless it already was).

  >>> df = Dataframe.from_pydict({"country": ["IT", "FR", "IT"], "cases": [10, 5, 7]})
  >>> df.count("country", sort=True).to_pydict()
  {'country': ['IT', 'FR'], 'n': [2, 1]}
  """
  def __init__(self, node_or_table: QueryPlanNode | pa.Table | pa.RecordBatch) -> None:
    """
    :param node_or_table: A compute engine node expected to emit
                          the data for the dataframe or a `pyarrow.Table`.
    """
    if isinstance(node_or_table, (pa.Table, pa.RecordBatch)):
      node_or_table = PyArrowTableDataSource(node_or_table)

    if not isinstance(node_or_table, QueryPlanNode):
      raise ValueError("Invalid input, expected a QueryPlanNode or a PyArrow Table")

    self.node = node_or_table

  @classmethod
  def open_csv(
    cls, filename: str, block_size: int | None = None, na: tuple[str, ...] = DEFAULT_NA
  ) -> Self:
    """Open a CSV file and create a Dataframe out of its data.

    :param filename: The path to a local CSV file or
                     an ``http(s)://`` URL to download it from.
    :param na: Strings to read as missing values.
    """
    return cls(CSVDataSource(filename, block_size=block_size, na=na))

  @classmethod
  def open_parquet(cls, filename: str, columns: list[str] | None = None) -> Self:
    """Open a Parquet file and create a Dataframe out of its data."""
    return cls(ParquetDataSource(filename, columns=columns))

  @classmethod
  def from_pydict(cls, data: dict[str, list]) -> Self:
    """Create a Dataframe from a ``{column: values}`` dictionary."""
    return cls(pa.table(data))

  def __str__(self) -> str:
    return tabulate(collect_batch(self.node))

  def explain(self) -> str:
    """Describe the query plan that produces the data."""
    return str(self.node)

  @property
  def num_rows(self) -> int:
    """Number of rows, requires computing the whole dataframe."""
    return collect_batch(self.node).num_rows

  @property
  def column_names(self) -> list[str]:
    return collect_batch(SliceNode(0, 0, self.node)).column_names

  def filter(self, expression: Expression) -> Self:
    """Apply a filter to the data and return a new Dataframe.

    The returned dataframe will only contain the data that
    matches the filter predicate.

    :param expression: The expression representing the predicate.
                       for example `A > B`.
    """
    return self.__class__(FilterNode(expression, self.node))

  def select(self, *columns: str) -> Self:
    """Keep only the given columns, in the given order."""
    return self.__class__(SelectNode(list(columns), self.node))

  def rename(self, **new_to_old: str) -> Self:
    """Rename columns, like ``df.rename(cases="n")``."""
    mapping = {old: new for new, old in new_to_old.items()}
    return self.__class__(SelectNode(None, self.node, rename=mapping))

  def mutate(self, **expressions: Expression) -> Self:
    """Add new columns, or replace existing ones, computed by expressions."""
    return self.__class__(MutateNode(expressions, self.node))

  def arrange(self, *keys: str, descending: bool | list[bool] = False) -> Self:
    """Sort the rows by the given keys."""
    if isinstance(descending, bool):
      descending = [descending] * len(keys)
    return self.__class__(ArrangeNode(list(keys), descending, self.node))

  def distinct(self, *columns: str) -> Self:
    """Unique rows, considering only ``columns`` when provided."""
    return self.__class__(DistinctNode(list(columns) or None, self.node))

  def head(self, n: int = 10) -> Self:
    return self.__class__(SliceNode(0, n, self.node))

  def summarise(self, by: str | list[str] | None = None, **aggregations: tuple[str, str]) -> Self:
    """Summarise each group of rows.

    >>> df = Dataframe.from_pydict({"g": ["a", "b", "a"], "x": [1, 2, 3]})
    >>> df.summarise(by="g", total=("x", "sum"), n=("*", "n")).to_pydict()
    {'g': ['a', 'b'], 'total': [4, 2], 'n': [2, 1]}
    """
    return self.__class__(SummariseNode(_as_list(by) or [], aggregations, self.node))

  def count(self, *columns: str, sort: bool = False, name: str = "n") -> Self:
    """Count the rows for each unique combination of ``columns``.

    With ``sort=True`` the most common combinations come first.
    """
    node = SummariseNode(list(columns), {name: ("*", "n")}, self.node)
    if sort:
      node = ArrangeNode([name], [True], node)
    return self.__class__(node)

  def pivot_longer(
    self,
    cols: list[str],
    names_to: str | list[str] = "name",
    values_to: str = "value",
    names_sep: str | None = None,
    values_drop_na: bool = False,
  ) -> Self:
    """Turn columns into rows, making the data longer."""
    return self.__class__(
      PivotLongerNode(
        cols, self.node,
        names_to=names_to, values_to=values_to,
        names_sep=names_sep, values_drop_na=values_drop_na,
      )
    )

  def pivot_wider(
    self,
    names_from: str,
    values_from: str,
    id_cols: list[str] | None = None,
    values_fill: Any = None,
  ) -> Self:
    """Turn rows into columns, making the data wider."""
    return self.__class__(
      PivotWiderNode(names_from, values_from, self.node, id_cols=id_cols, values_fill=values_fill)
    )

  def separate(
    self,
    column: str,
    into: list[str | None],
    sep: str | list[int] = DEFAULT_SEPARATOR,
    remove: bool = True,
    convert: bool = False,
    extra: str = "warn",
    fill: str = "warn",
  ) -> Self:
    """Split a column into multiple columns."""
    return self.__class__(
      SeparateNode(
        column, into, self.node,
        sep=sep, remove=remove, convert=convert, extra=extra, fill=fill,
      )
    )

  def unite(
    self, column: str, columns: list[str], sep: str = "_", remove: bool = True, na_rm: bool = False
  ) -> Self:
    """Paste multiple columns into one."""
    return self.__class__(
      UniteNode(column, columns, self.node, sep=sep, remove=remove, na_rm=na_rm)
    )

  def fill(self, *columns: str, direction: str = "down") -> Self:
    """Replace missing values with the previous (or next) value."""
    return self.__class__(FillNode(list(columns), self.node, direction=direction))

  def complete(self, *columns: str, fill: dict[str, Any] | None = None) -> Self:
    """Make implicit missing combinations of ``columns`` explicit."""
    return self.__class__(CompleteNode(list(columns), self.node, fill=fill))

  def drop_na(self, *columns: str) -> Self:
    """Drop rows with missing values, only looking at ``columns`` when provided."""
    return self.__class__(DropNullsNode(self.node, columns=list(columns) or None))

  def _join(
    self,
    other: "Dataframe",
    how: str,
    on: Keys,
    left_on: Keys,
    right_on: Keys,
    suffixes: tuple[str, str],
  ) -> Self:
    if not isinstance(other, Dataframe):
      other = Dataframe(other)
    return self.__class__(
      JoinNode(
        self.node, other.node, how=how,
        on=_as_list(on), left_on=_as_list(left_on), right_on=_as_list(right_on),
        suffixes=suffixes,
      )
    )

  def inner_join(
    self,
    other: "Dataframe",
    on: Keys = None,
    left_on: Keys = None,
    right_on: Keys = None,
    suffixes: tuple[str, str] = ("_x", "_y"),
  ) -> Self:
    """Keep only the rows that have a match in both dataframes."""
    return self._join(other, "inner", on, left_on, right_on, suffixes)

  def left_join(
    self,
    other: "Dataframe",
    on: Keys = None,
    left_on: Keys = None,
    right_on: Keys = None,
    suffixes: tuple[str, str] = ("_x", "_y"),
  ) -> Self:
    """Keep all the rows of this dataframe, adding the matching data of ``other``."""
    return self._join(other, "left", on, left_on, right_on, suffixes)

  def right_join(
    self,
    other: "Dataframe",
    on: Keys = None,
    left_on: Keys = None,
    right_on: Keys = None,
    suffixes: tuple[str, str] = ("_x", "_y"),
  ) -> Self:
    return self._join(other, "right", on, left_on, right_on, suffixes)

  def full_join(
    self,
    other: "Dataframe",
    on: Keys = None,
    left_on: Keys = None,
    right_on: Keys = None,
    suffixes: tuple[str, str] = ("_x", "_y"),
  ) -> Self:
    return self._join(other, "full", on, left_on, right_on, suffixes)

  def semi_join(
    self, other: "Dataframe", on: Keys = None, left_on: Keys = None, right_on: Keys = None
  ) -> Self:
    """Keep the rows of this dataframe that have a match in ``other``."""
    return self._join(other, "semi", on, left_on, right_on, ("_x", "_y"))

  def anti_join(
    self, other: "Dataframe", on: Keys = None, left_on: Keys = None, right_on: Keys = None
  ) -> Self:
    """Keep the rows of this dataframe that have no match in ``other``."""
    return self._join(other, "anti", on, left_on, right_on, ("_x", "_y"))

  def union(self, other: "Dataframe") -> Self:
    return self.__class__(SetOperationNode("union", self.node, other.node))

  def union_all(self, other: "Dataframe") -> Self:
    return self.__class__(SetOperationNode("union_all", self.node, other.node))

  def intersect(self, other: "Dataframe") -> Self:
    return self.__class__(SetOperationNode("intersect", self.node, other.node))

  def setdiff(self, other: "Dataframe") -> Self:
    return self.__class__(SetOperationNode("setdiff", self.node, other.node))

  def collect(self) -> Self:
    """Collect all data of the dataframe in memory.

    Returns a new Dataframe that has all data from the
    previous dataframe eagerly loaded in memory.
    """
    return self.__class__(self.to_arrow())

  def to_arrow(self) -> pa.Table:
    """Collect all the data and return a pyarrow.Table"""
    return pa.Table.from_batches([collect_batch(self.node)])

  def to_pydict(self) -> dict[str, list]:
    return self.to_arrow().to_pydict()
