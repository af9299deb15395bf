"""Factors: working with categorical variables.

A *factor* represents a categorical variable, a variable
that can only take one value out of a fixed and known set
of *levels*. Survey answers, months of the year or the
party a respondent identifies with are typical examples.

Storing those variables as plain strings works, but has
two problems: typos go unnoticed and sorting is alphabetical,
which for months gives ``Apr, Dec, Jan, Mar``.
Providing the levels fixes both:

>>> from tidyground.factors import factor
>>> months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
...           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
>>> y = factor(["Dec", "Apr", "Jan", "Mar"], levels=months)
>>> sorted(y.to_pylist(), key=y.levels.index)
['Jan', 'Mar', 'Apr', 'Dec']

In memory factors are :class:`pyarrow.DictionaryArray` objects,
whose dictionary holds the levels in their meaningful order.
This means factors can be stored as columns of any table
and flow through all the verbs of :mod:`tidyground.compute`.

The operations provided by :class:`Factor` fall in two groups:

**Changing the order of the levels**, useful for presentation:
:meth:`Factor.infreq`, :meth:`Factor.inorder`, :meth:`Factor.rev`,
:meth:`Factor.relevel`, :meth:`Factor.reorder`, :meth:`Factor.reorder2`.

**Changing the values of the levels**, useful to clarify
labels or to collapse levels for high-level displays:
:meth:`Factor.recode`, :meth:`Factor.collapse`, :meth:`Factor.lump`,
:meth:`Factor.drop_unused`, :meth:`Factor.explicit_na`.
"""

from .factor import Factor, FactorError, FactorExpression, factor

__all__ = ("Factor", "FactorError", "FactorExpression", "factor")
