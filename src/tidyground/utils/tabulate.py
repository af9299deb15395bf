"""Format tabular data into text tables.

:func:`tabulate` takes a :class:`pyarrow.RecordBatch` (or Table) and formats
it into a text table for printing. It will truncate long strings,
format floats to 2 decimal places, print missing values as ``NA``
and limit the number of rows to display.

:func:`markdown_table` produces the same table using the
markdown pipe table syntax, used by documents rendered to markdown.

Example:

    >>> import pyarrow as pa
    >>> data = {
    ...     "country": ["Afghanistan", "Brazil", "China"],
    ...     "rate": [0.37, 2.19, None],
    ...     "year": [1999, 1999, 2000],
    ... }
    >>> table = pa.RecordBatch.from_pydict(data)
    >>> print(tabulate(table))
    country     | rate | year
    ----------- | ---- | ----
    Afghanistan | 0.37 | 1999
    Brazil      | 2.19 | 1999
    China       | NA   | 2000
"""

import datetime
from typing import Any

import pyarrow as pa

MISSING = "NA"


def tabulate(data: pa.RecordBatch | pa.Table, max_rows: int = 20) -> str:
    """Format a RecordBatch into a text table.

    Will produce a string like::

        country     | year | rate
        ----------- | ---- | ----
        Afghanistan | 1999 | 0.37
        Brazil      | 1999 | 2.19
    """
    cols, rows = format_rows(data, max_rows)
    colsizes = compute_max_colsize(cols, rows)
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if data.num_rows > max_rows:
        table += f"\n... and {data.num_rows - max_rows} more rows"
    return table


def markdown_table(data: pa.RecordBatch | pa.Table, max_rows: int = 20) -> str:
    """Format a RecordBatch as a markdown pipe table.

    >>> import pyarrow as pa
    >>> print(markdown_table(pa.record_batch({"a": [1, 2], "b": ["x", None]})))
    | a | b  |
    |---|----|
    | 1 | x  |
    | 2 | NA |
    """
    cols, rows = format_rows(data, max_rows)
    colsizes = compute_max_colsize(cols, rows)
    lines = ["| " + maketablerow(cols, colsizes=colsizes) + " |"]
    lines.append("|" + "|".join("-" * (size + 2) for size in colsizes) + "|")
    lines += ["| " + maketablerow(row, colsizes=colsizes) + " |" for row in rows]
    table = "\n".join(lines)
    if data.num_rows > max_rows:
        table += f"\n\n... and {data.num_rows - max_rows} more rows"
    return table


def format_rows(
    data: pa.RecordBatch | pa.Table, max_rows: int
) -> tuple[list[str], list[list[str]]]:
    """Column names and rows with all values formatted as text."""
    cols = data.column_names
    rows = [
        [format_value(row[c]) for c in cols]
        for row in data.slice(0, max_rows).to_pylist()
    ]
    return cols, rows


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    )


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    Floats are formatted to 2 decimal places, dates and times
    in ISO format, durations in seconds and long strings are truncated.
    """
    if v is None:
        return MISSING
    elif isinstance(v, bool):
        return "true" if v else "false"
    elif isinstance(v, float):
        return f"{v:.2f}"
    elif isinstance(v, (datetime.datetime, datetime.date, datetime.time)):
        return v.isoformat(sep=" ") if isinstance(v, datetime.datetime) else v.isoformat()
    elif isinstance(v, datetime.timedelta):
        return f"{v.total_seconds():g}s"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
