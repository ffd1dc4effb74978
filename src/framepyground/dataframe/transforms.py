"""Conversions of whole Series.

Binning continuous values into intervals makes it possible
to group them, for example to count how many people
fall in each age range::

    >>> ages = Series([4, 17, 35, 62], name="age")
    >>> cut(ages, [0, 18, 65], labels=["minor", "adult"]).to_list()
    ['minor', 'minor', 'adult', 'adult']

When labels are not provided, the intervals themselves are used,
the first interval includes both edges while the following
ones only include their right edge::

    >>> cut(ages, [0, 18, 65]).to_list()
    ['[0, 18]', '[0, 18]', '(18, 65]', '(18, 65]']
"""

import math
from typing import Any, Iterable, Sequence

from ..dtypes import DType, coerce_value, is_null
from ..errors import BinningError, DTypeConversionError
from .series import Series

__all__ = ("cut", "to_datetime", "to_numeric")


def _number(value: Any) -> float | None:
    """Convert a value to a float, ``None`` when it's not a number."""
    if is_null(value):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return None if math.isnan(number) else number


def _format_edge(edge: float) -> str:
    if float(edge).is_integer():
        return str(int(edge))
    return repr(float(edge))


def bin_edges(values: Iterable[float], bins: int | Sequence[float]) -> list[float]:
    """Compute the edges of the bins.

    An integer number of bins splits the range of ``values``
    into intervals of equal width.

    >>> bin_edges([1, 5], 4)
    [1.0, 2.0, 3.0, 4.0, 5.0]
    """
    if isinstance(bins, int) and not isinstance(bins, bool):
        if bins <= 0:
            raise BinningError("Number of bins must be positive")
        values = list(values)
        low, high = min(values), max(values)
        step = (high - low) / bins
        return [low + i * step for i in range(bins + 1)]

    edges = [float(b) for b in bins]
    if len(edges) < 2:
        raise BinningError("Bins must have at least 2 edges")
    for previous, edge in zip(edges, edges[1:]):
        if edge <= previous:
            raise BinningError("Bins must be in ascending order")
    return edges


def cut(
    series: Series,
    bins: int | Sequence[float],
    labels: Sequence[str] | None = None,
) -> Series:
    """Assign each value to the bin it falls in.

    :param series: The values to bin.
    :param bins: The number of equal width bins, or the bin edges
                 in ascending order.
    :param labels: The label of each bin, by default the bin interval.
    :returns: A string Series named ``<name>_cut``, values outside
              of every bin or not numeric are null.
    """
    numbers = [_number(v) for v in series]
    present = [n for n in numbers if n is not None]

    if not present:
        if isinstance(bins, int) and not isinstance(bins, bool) and bins <= 0:
            raise BinningError("Number of bins must be positive")
        binned: list[str | None] = [None] * len(series)
    else:
        edges = bin_edges(present, bins)
        if labels is not None and len(labels) != len(edges) - 1:
            raise BinningError(
                f"Number of labels ({len(labels)}) must match number of bins ({len(edges) - 1})"
            )
        if labels is None:
            labels = [
                f"{'[' if i == 0 else '('}{_format_edge(low)}, {_format_edge(high)}]"
                for i, (low, high) in enumerate(zip(edges, edges[1:]))
            ]
        binned = [_find_bin(n, edges, labels) for n in numbers]

    return Series(
        binned,
        name=f"{series.name}_cut",
        dtype=DType.STRING,
        index=series.index,
        context=series.context,
    )


def _find_bin(
    number: float | None, edges: list[float], labels: Sequence[str]
) -> str | None:
    if number is None:
        return None
    for i, (low, high) in enumerate(zip(edges, edges[1:])):
        above_low = number >= low if i == 0 else number > low
        if above_low and number <= high:
            return labels[i]
    return None


def to_numeric(series: Series | Iterable[Any]) -> Series:
    """Convert values to floats, values that aren't numbers become null.

    >>> to_numeric(Series(["1", "2.5", "invalid", None], name="n")).to_list()
    [1.0, 2.5, nan, nan]
    """
    if not isinstance(series, Series):
        series = Series(list(series), name="numeric", dtype=DType.STRING)
    return Series(
        [_number(v) for v in series],
        name=series.name,
        dtype=DType.FLOAT64,
        index=series.index,
        context=series.context,
    )


def _datetime(value: Any) -> Any:
    """Convert a value to a datetime, ``None`` when it's not a date."""
    if isinstance(value, str):
        value = value.strip()
    try:
        return coerce_value(value, DType.DATETIME)
    except DTypeConversionError:
        return None


def to_datetime(series: Series | Iterable[Any]) -> Series:
    """Convert values to datetimes, values that aren't dates become null.

    Strings are parsed as ISO 8601 dates and numbers are
    milliseconds since the epoch.

    >>> to_datetime(Series(["2024-03-01", "invalid"], name="day")).to_list()
    [datetime.datetime(2024, 3, 1, 0, 0), None]
    """
    if not isinstance(series, Series):
        series = Series(list(series), name="datetime")
    return Series(
        [_datetime(v) for v in series],
        name=series.name,
        dtype=DType.DATETIME,
        index=series.index,
        context=series.context,
    )
