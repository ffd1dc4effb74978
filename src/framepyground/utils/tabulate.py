"""Format tabular data into a text table for print.

The `tabulate` function takes columns of values and formats them into a text table.
It will truncate long strings, format floats to 2 decimal places, and limit the number of rows to display.
The function is used to display Series and DataFrames.

Example:

    >>> data = {
    ...     "Product": ["Videogame", "Laptop", "Laptop"],
    ...     "Quantity": [8, 8, None],
    ...     "Price": [66.5, 38.72, 77.46],
    ... }
    >>> print(tabulate(data, index=[0, 1, 2]))
      | Product   | Quantity | Price
    - | --------- | -------- | -----
    0 | Videogame | 8        | 66.50
    1 | Laptop    | 8        | 38.72
    2 | Laptop    | null     | 77.46
"""

from typing import Any, Mapping, Sequence

from ..dtypes import is_null


def tabulate(
    columns: Mapping[str, Sequence[Any]],
    index: Sequence[Any] | None = None,
    max_rows: int = 20,
) -> str:
    """Format columns of values into a text table.

    When ``index`` is provided, the labels are printed
    as the first, unnamed, column.

    Will produce a string like::

          | Product   | Quantity | Price
        - | --------- | -------- | -----
        0 | Videogame | 8        | 66.50
        1 | Laptop    | 8        | 38.72
    """
    cols = list(columns)
    num_rows = len(columns[cols[0]]) if cols else len(index or ())
    shown = min(num_rows, max_rows)
    rows = [[format_value(columns[c][idx]) for c in cols] for idx in range(shown)]
    if index is not None:
        cols = [""] + cols
        rows = [[format_value(index[idx])] + row for idx, row in enumerate(rows)]

    colsizes = compute_max_colsize(cols, rows)
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if num_rows > max_rows:
        table += f"\n... and {num_rows - max_rows} more rows"
    return table


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx]), 1])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip()


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    This function will format floats to 2 decimal places,
    print missing values as ``null`` and truncate long strings.
    """
    if is_null(v):
        return "null"
    elif isinstance(v, float):
        return f"{v:.2f}"
    elif isinstance(v, bool):
        return "true" if v else "false"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
