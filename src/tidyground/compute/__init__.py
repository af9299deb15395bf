"""The TidyGround wrangling engine

The engine represents an analysis as a pipeline of verbs,
each verb is a node that consumes :class:`pyarrow.RecordBatch`
objects from the previous node and emits new ones::

    (RecordBatch)-->Verb1--(RecordBatch)-->Verb2--(RecordBatch)-->...

The nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a verb is actually executed without having to look around too much.

The actual number crunching is delegated to the
:mod:`pyarrow.compute` kernels, the nodes describe *what*
the verb does to the shape of the data.

Building a pipeline requires to combine the verbs that we want
to be executed starting with one or more data sources as the
leaves of the tree:

>>> import pyarrow as pa
>>> import pyarrow.compute as pc
>>> from tidyground.compute import col, PyArrowTableDataSource
>>> from tidyground.compute import FilterNode, FunctionCallExpression
>>> data = pa.table({
...    "animals": pa.array(["Flamingo", "Horse", "Brittle stars", "Centipede"]),
...    "n_legs": pa.array([2, 4, 5, 100])
... })
>>> query = FilterNode(
...     FunctionCallExpression(pc.greater_equal, col("n_legs"), 5),
...     child=PyArrowTableDataSource(data)
... )
>>> for batch in query.batches():
...     print(batch.to_pydict())
{'animals': ['Brittle stars', 'Centipede'], 'n_legs': [5, 100]}
"""

from .base import ColumnRef, Literal, QueryPlanNode, col, collect_batch, lit
from .datasources import CSVDataSource, ParquetDataSource, PyArrowTableDataSource
from .expressions import FunctionCallExpression
from .join import JoinError, JoinNode, SetOperationNode, duplicate_keys
from .rows import (
    ArrangeNode,
    DistinctNode,
    FilterNode,
    MutateNode,
    SelectNode,
    SliceNode,
    SummariseNode,
)
from .tidy import (
    CompleteNode,
    DropNullsNode,
    FillNode,
    PivotLongerNode,
    PivotWiderNode,
    ReshapeError,
    SeparateNode,
    UniteNode,
)

__all__ = (
    "QueryPlanNode",
    "collect_batch",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "FunctionCallExpression",
    "CSVDataSource",
    "ParquetDataSource",
    "PyArrowTableDataSource",
    "FilterNode",
    "SelectNode",
    "MutateNode",
    "ArrangeNode",
    "DistinctNode",
    "SliceNode",
    "SummariseNode",
    "PivotLongerNode",
    "PivotWiderNode",
    "SeparateNode",
    "UniteNode",
    "FillNode",
    "CompleteNode",
    "DropNullsNode",
    "ReshapeError",
    "JoinNode",
    "SetOperationNode",
    "JoinError",
    "duplicate_keys",
)
