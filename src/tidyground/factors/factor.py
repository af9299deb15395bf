"""The Factor type and its operations."""

import logging
import statistics
from collections import Counter
from typing import Any, Callable, Iterable

import pyarrow as pa
import pyarrow.compute as pc

from ..compute.base import Expression

log = logging.getLogger(__name__)

SUMMARY_FUNCTIONS: dict[str, Callable[[list], Any]] = {
    "median": statistics.median,
    "mean": statistics.mean,
    "min": min,
    "max": max,
    "sum": sum,
}


class FactorError(ValueError):
    """Invalid operation on the levels of a factor."""


def _as_array(values: Any) -> pa.Array:
    if isinstance(values, Factor):
        return values.array
    if isinstance(values, pa.ChunkedArray):
        return values.combine_chunks()
    if isinstance(values, pa.Array):
        return values
    return pa.array(list(values))


def factor(values: Any, levels: Iterable | None = None, ordered: bool = False) -> "Factor":
    """Create a factor from a sequence of values.

    When ``levels`` are not provided, the sorted unique values are used.
    Values that are not one of the ``levels`` become null,
    which is usually a typo in the data, so a warning is logged.

    >>> f = factor(["Dec", "Apr", "Jam", "Mar"], levels=["Jan", "Feb", "Mar", "Apr", "Dec"])
    >>> f.to_pylist()
    ['Dec', 'Apr', None, 'Mar']
    >>> f.levels
    ['Jan', 'Feb', 'Mar', 'Apr', 'Dec']
    """
    array = _as_array(values)
    if pa.types.is_dictionary(array.type):
        array = array.dictionary_decode()

    if levels is None:
        level_values = pc.unique(array.drop_null())
        level_values = level_values.take(pc.array_sort_indices(level_values))
    else:
        level_values = pa.array(list(levels), type=None if pa.types.is_null(array.type) else array.type)
        if len(pc.unique(level_values)) != len(level_values):
            raise FactorError(f"Levels must be unique, got {level_values.to_pylist()}")

    if pa.types.is_null(array.type):
        array = array.cast(level_values.type)
    indices = pc.index_in(array, value_set=level_values).cast(pa.int32())
    not_in_levels = indices.null_count - array.null_count
    if not_in_levels:
        log.warning("%d values not in the levels were converted to null", not_in_levels)
    return Factor(pa.DictionaryArray.from_arrays(indices, level_values, ordered=ordered))


class Factor:
    """A categorical variable: values drawn from a known set of levels.

    Factors are useful for variables that have a fixed and known set
    of possible values, like months or survey answers. Having the set
    of levels allows to:

    * Sort values in a meaningful order instead of alphabetically,
      ``Jan`` comes before ``Apr``.
    * Detect invalid values, like ``Jam``, at creation time.
    * Know about levels that never appear in the data, they still
      show up in :meth:`count` with a zero count.

    The factor is stored as a :class:`pyarrow.DictionaryArray`,
    the dictionary is the list of levels in their order and the
    indices are the codes of each value. Unused levels
    stay in the dictionary until :meth:`drop_unused` is invoked.

    All the operations return a new Factor, the original is never modified.
    """

    def __init__(self, array: pa.DictionaryArray) -> None:
        if isinstance(array, pa.ChunkedArray):
            array = array.combine_chunks()
        if not pa.types.is_dictionary(array.type):
            raise FactorError(f"Factors must be dictionary encoded, got {array.type}")
        self.array = array

    @classmethod
    def from_codes(
        cls, codes: list[int | None], levels: list, ordered: bool = False
    ) -> "Factor":
        """Build a factor from its codes and levels.

        Levels mixing strings with other values, which happens when
        a named level like ``(Missing)`` is added to numeric levels,
        are all converted to strings.
        """
        if any(isinstance(level, str) for level in levels):
            levels = [level if level is None else str(level) for level in levels]
        return cls(
            pa.DictionaryArray.from_arrays(
                pa.array(codes, type=pa.int32()), pa.array(levels), ordered=ordered
            )
        )

    @property
    def levels(self) -> list:
        return self.array.dictionary.to_pylist()

    @property
    def codes(self) -> list[int | None]:
        return self.array.indices.to_pylist()

    @property
    def ordered(self) -> bool:
        return self.array.type.ordered

    def to_arrow(self) -> pa.DictionaryArray:
        return self.array

    def __arrow_array__(self, type: pa.DataType | None = None) -> pa.Array:
        """Let :func:`pyarrow.array` convert factors to their dictionary array."""
        if type is None or type == self.array.type:
            return self.array
        return self.array.cast(type)

    def to_pylist(self) -> list:
        return self.array.to_pylist()

    def __len__(self) -> int:
        return len(self.array)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Factor):
            return NotImplemented
        return (
            self.levels == other.levels
            and self.codes == other.codes
            and self.ordered == other.ordered
        )

    def __repr__(self) -> str:
        return f"Factor({self.to_pylist()}, levels={self.levels}, ordered={self.ordered})"

    def _recoded(self, new_levels: list, old_to_new: dict[int, int | None]) -> "Factor":
        codes = [None if c is None else old_to_new[c] for c in self.codes]
        return Factor.from_codes(codes, new_levels, ordered=self.ordered)

    def _reordered(self, order: list[int]) -> "Factor":
        """Reorder the levels, ``order`` lists the old codes in the new order."""
        levels = self.levels
        return self._recoded(
            [levels[code] for code in order],
            {old: new for new, old in enumerate(order)},
        )

    def _level_counts(self) -> list[int]:
        counts = Counter(c for c in self.codes if c is not None)
        return [counts.get(code, 0) for code in range(len(self.levels))]

    def count(self, sort: bool = False) -> pa.RecordBatch:
        """Count the values of each level, unused levels included.

        >>> factor(["b", "a", "b"], levels=["a", "b", "c"]).count().to_pydict()
        {'level': ['a', 'b', 'c'], 'n': [1, 2, 0]}
        """
        counts = list(zip(self.levels, self._level_counts()))
        if sort:
            counts.sort(key=lambda item: item[1], reverse=True)
        return pa.record_batch(
            {
                "level": pa.array([level for level, _ in counts], type=self.array.dictionary.type),
                "n": pa.array([n for _, n in counts], type=pa.int64()),
            }
        )

    def infreq(self) -> "Factor":
        """Order the levels by decreasing frequency.

        Useful for bar charts and tables, where the most
        common values should appear first. Levels with
        the same frequency keep their relative order.
        """
        counts = self._level_counts()
        return self._reordered(sorted(range(len(counts)), key=lambda c: -counts[c]))

    def inorder(self) -> "Factor":
        """Order the levels by their first appearance in the data."""
        order = list(dict.fromkeys(c for c in self.codes if c is not None))
        order += [c for c in range(len(self.levels)) if c not in order]
        return self._reordered(order)

    def rev(self) -> "Factor":
        """Reverse the order of the levels."""
        return self._reordered(list(reversed(range(len(self.levels)))))

    def relevel(self, *levels: Any, after: int = 0) -> "Factor":
        """Move some levels to a given position, by default the front.

        Commonly used to move levels like ``"Not applicable"``
        at the beginning together with the other non-answers.
        ``after`` is the number of remaining levels that
        should stay in front of the moved ones.
        """
        current = self.levels
        unknown = [level for level in levels if level not in current]
        if unknown:
            raise FactorError(f"Unknown levels {unknown}")
        moved = [current.index(level) for level in levels]
        rest = [code for code in range(len(current)) if code not in moved]
        after = min(max(after, 0), len(rest))
        return self._reordered(rest[:after] + moved + rest[after:])

    def reorder(
        self, by: Any, fun: str | Callable[[list], Any] = "median", desc: bool = False
    ) -> "Factor":
        """Order the levels by a summary of another variable.

        For each level the values of ``by`` on the rows
        having that level are summarised with ``fun``
        and the levels are sorted by the summary.
        A typical usage is ordering religions by the average
        hours of TV watched, so that a plot of the two
        variables shows a clear pattern.

        Levels with no values are placed last.

        >>> religion = factor(["Buddhism", "Catholic", "Buddhism", "None"])
        >>> religion.reorder([3.0, 2.0, 5.0, 1.0], fun="mean").levels
        ['None', 'Catholic', 'Buddhism']
        """
        summarise = SUMMARY_FUNCTIONS[fun] if isinstance(fun, str) else fun
        values = _as_array(by).to_pylist()
        if len(values) != len(self):
            raise FactorError(f"by has {len(values)} values, the factor has {len(self)}")

        groups: dict[int, list] = {}
        for code, value in zip(self.codes, values):
            if code is not None and value is not None:
                groups.setdefault(code, []).append(value)
        summaries = {code: summarise(group) for code, group in groups.items()}

        def sort_key(code: int) -> tuple:
            if code not in summaries:
                return (1, 0)
            return (0, -summaries[code] if desc else summaries[code])

        return self._reordered(sorted(range(len(self.levels)), key=sort_key))

    def reorder2(self, x: Any, y: Any, desc: bool = True) -> "Factor":
        """Order the levels by the ``y`` value found at the largest ``x``.

        Used when the factor colours lines of a plot, so that the
        levels order matches the order of the lines at their right end.
        """
        xs, ys = _as_array(x).to_pylist(), _as_array(y).to_pylist()
        if not len(xs) == len(ys) == len(self):
            raise FactorError("x and y must have the same length of the factor")

        last: dict[int, tuple] = {}
        for code, xv, yv in zip(self.codes, xs, ys):
            if code is None or xv is None:
                continue
            if code not in last or xv >= last[code][0]:
                last[code] = (xv, yv)

        def sort_key(code: int) -> tuple:
            if code not in last or last[code][1] is None:
                return (1, 0)
            value = last[code][1]
            return (0, -value if desc else value)

        return self._reordered(sorted(range(len(self.levels)), key=sort_key))

    def recode(self, **new_to_old: Any) -> "Factor":
        """Rename levels, the keyword is the new name and the value the old one.

        Assigning the same new name to multiple old levels,
        by passing a list of old levels, merges them::

            partyid.recode(**{
                "Republican, strong": "Strong republican",
                "Other": ["No answer", "Don't know", "Other party"],
            })

        Levels that are not mentioned are kept as they are.
        """
        renames: dict[Any, Any] = {}
        for new, olds in new_to_old.items():
            for old in [olds] if isinstance(olds, str) or not isinstance(olds, Iterable) else olds:
                renames[old] = new

        current = self.levels
        unknown = [old for old in renames if old not in current]
        if unknown:
            log.warning("Unknown levels in factor: %s", unknown)

        new_levels: list = []
        old_to_new: dict[int, int] = {}
        for code, level in enumerate(current):
            name = renames.get(level, level)
            if name not in new_levels:
                new_levels.append(name)
            old_to_new[code] = new_levels.index(name)
        return self._recoded(new_levels, old_to_new)

    def collapse(self, other_level: str | None = None, **new_to_olds: list) -> "Factor":
        """Collapse many levels into a few groups.

        Each keyword is the name of a new level and the value
        is the list of levels it groups together. When
        ``other_level`` is provided, all the levels that
        are not mentioned are grouped under it.
        """
        mentioned = {old for olds in new_to_olds.values() for old in olds}
        if other_level is not None:
            others = [level for level in self.levels if level not in mentioned]
            if others:
                new_to_olds = {**new_to_olds, other_level: others}
        return self.recode(**new_to_olds)

    def lump(
        self, n: int | None = None, prop: float | None = None, other_level: str = "Other"
    ) -> "Factor":
        """Lump together the least frequent levels.

        * With ``n``, the ``n`` most common levels are preserved
          (more than ``n`` when there are ties).
        * With ``prop``, the levels appearing in at least
          ``prop`` of the values are preserved.
        * With neither, the smallest levels are lumped
          while the lumped group remains the smallest one.

        The lumped level is always the last one and lumping
        happens only when at least two levels would be lumped,
        lumping a single level would just rename it.
        """
        if n is not None and prop is not None:
            raise FactorError("Provide only one of n and prop")
        counts = self._level_counts()
        total = sum(counts)
        by_frequency = sorted(range(len(counts)), key=lambda c: -counts[c])

        if n is not None:
            if n < len(counts):
                threshold = counts[by_frequency[n - 1]] if n > 0 else float("inf")
                keep = {c for c in by_frequency if counts[c] >= threshold}
            else:
                keep = set(by_frequency)
        elif prop is not None:
            keep = {c for c in by_frequency if total and counts[c] / total >= prop}
        else:
            keep = set(by_frequency)
            remaining = total
            for position, code in enumerate(by_frequency):
                remaining -= counts[code]
                if counts[code] > remaining:
                    keep = set(by_frequency[: position + 1])
                    break

        lumped = [level for code, level in enumerate(self.levels) if code not in keep]
        if len(lumped) < 2:
            return self
        return self.recode(**{other_level: lumped}).relevel(other_level, after=len(keep))

    def drop_unused(self) -> "Factor":
        """Remove the levels that don't appear in the data."""
        counts = self._level_counts()
        used = [code for code, n in enumerate(counts) if n]
        levels = self.levels
        return self._recoded(
            [levels[code] for code in used],
            {old: new for new, old in enumerate(used)},
        )

    def explicit_na(self, na_level: str = "(Missing)") -> "Factor":
        """Turn missing values into an explicit level, placed last."""
        if not self.array.null_count:
            return self
        levels = self.levels + [na_level]
        na_code = len(levels) - 1
        codes = [na_code if c is None else c for c in self.codes]
        return Factor.from_codes(codes, levels, ordered=self.ordered)

    def as_ordered(self) -> "Factor":
        """Levels order becomes meaningful for comparisons."""
        return Factor.from_codes(self.codes, self.levels, ordered=True)

    def as_unordered(self) -> "Factor":
        return Factor.from_codes(self.codes, self.levels, ordered=False)


class FactorExpression(Expression):
    """Convert a column to a factor while mutating data.

    >>> import pyarrow as pa
    >>> batch = pa.record_batch({"month": ["Dec", "Jan"]})
    >>> FactorExpression("month", levels=["Jan", "Dec"]).apply(batch).indices.to_pylist()
    [1, 0]
    """

    def __init__(self, column: str, levels: Iterable | None = None, ordered: bool = False) -> None:
        self.column = column
        self.levels = list(levels) if levels is not None else None
        self.ordered = ordered

    def __str__(self) -> str:
        return f"FactorExpression({self.column}, levels={self.levels}, ordered={self.ordered})"

    def apply(self, batch: pa.RecordBatch) -> pa.DictionaryArray:
        return factor(batch.column(self.column), self.levels, self.ordered).to_arrow()
