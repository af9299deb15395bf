"""Expressions computing new columns.

Verbs like :class:`tidyground.compute.rows.FilterNode` and
:class:`tidyground.compute.rows.MutateNode` need to know *what*
to compute on each batch: a predicate returning ``true`` or ``false``
for each row, or a new column like ``price * quantity``.

Expressions are composable, the arguments of a function call
can be columns, literals or other function calls.
"""

from typing import Any, Callable

import pyarrow as pa

from .. import utils
from .base import Expression


def apply_expression_if_needed(batch: pa.RecordBatch, o: Any) -> Any:
    """Invoke apply on expressions when needed.

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it is treated as if it's already
    the data the expression would produce,
    like a literal value or an array.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """Call a function on its arguments.

    Given any function working on arrow data (usually one
    of the :mod:`pyarrow.compute` kernels or one of the
    :mod:`tidyground.datetimes` helpers) and a set of
    arguments, execute the function on the resolved
    arguments and return the resulting data.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidyground.compute import col
    >>> total = FunctionCallExpression(pc.multiply, col("price"), col("qty"))
    >>> str(total)
    'pyarrow.compute.multiply(ColumnRef(price),ColumnRef(qty))'
    >>> total.apply(pa.record_batch({"price": [2, 3], "qty": [5, 1]})).to_pylist()
    [10, 3]
    """

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param args: The arguments for the function, expressions are resolved.
        :param kwargs: Options forwarded as is to the function.
        """
        self.func = func
        self.args = args
        self.kwargs = kwargs

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        args = [str(a) for a in self.args]
        args += [f"{k}={v!r}" for k, v in self.kwargs.items()]
        return f"{func_qualname}({','.join(args)})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Invoke the function resolving all arguments on the recordbatch."""
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args, **self.kwargs)
