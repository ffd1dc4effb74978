"""Sorting of Series and DataFrame rows.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more columns.

Sorting never moves data around by itself, it computes
the permutation of row positions that would sort the data.
The permutation can then be used to take the rows
of a Series or of a whole DataFrame::

    >>> from framepyground.dataframe import Series
    >>> sort_indices(Series([3, 1, 4, 1, 5]))
    [1, 3, 0, 2, 4]

Sorting is stable: rows comparing equal keep their original
relative order, also when sorting in descending order.
Nulls are placed at the end or at the beginning regardless
of the sorting direction.
"""

import contextlib
from typing import Any, Self, Sequence

from ..dtypes import is_null
from ..errors import LengthMismatchError, UsageError
from .base import AcceleratedBackend, Operation
from .dispatch import ExecutionContext, register_storage

__all__ = ("SortKey", "sort_indices", "sort_indices_by", "sort_values")


class SortKey:
    """Makes rows sortable by Python functions on multiple columns.

    This implements the rich comparison methods to allow
    sorting of rows based on the values of the columns
    in the order they are provided.
    """

    __slots__ = ("values", "ascending", "nulls_last")

    def __init__(
        self, values: Sequence[Any], ascending: Sequence[bool], nulls_last: bool
    ) -> None:
        """
        :param values: The values of the row for each sorting column.
        :param ascending: Which of the values are compared for ascending order.
        :param nulls_last: If null values sort after all the others.
        """
        self.values = values
        self.ascending = ascending
        self.nulls_last = nulls_last

    def __lt__(self, other: Self) -> bool:
        for v1, v2, asc in zip(self.values, other.values, self.ascending):
            null1, null2 = is_null(v1), is_null(v2)
            if null1 and null2:
                continue
            if null1:
                return not self.nulls_last
            if null2:
                return self.nulls_last
            if v1 == v2:
                continue
            return v1 < v2 if asc else v1 > v2
        return False  # All keys are equal


def sort_indices(
    column: Any,
    ascending: bool = True,
    nulls_last: bool = True,
    context: ExecutionContext | None = None,
) -> list[int]:
    """Compute the permutation that sorts a Series.

    :param column: The Series to sort.
    :param ascending: Sort from the smallest to the biggest value.
    :param nulls_last: Place nulls after the other values instead of before them.
    :param context: Where to run the sorting, by default the context of the Series.
    """
    return sort_indices_by([column], [ascending], nulls_last, context)


def sort_indices_by(
    columns: Sequence[Any],
    ascending: bool | Sequence[bool] = True,
    nulls_last: bool = True,
    context: ExecutionContext | None = None,
) -> list[int]:
    """Compute the permutation that sorts rows by multiple Series.

    Rows are compared on the first Series, and only when
    they are equal the following Series are considered.

    >>> from framepyground.dataframe import Series
    >>> dept = Series([2, 1, 2, 1, 3, 2])
    >>> salary = Series([4, 3, 2, 5, 1, 6])
    >>> sort_indices_by([dept, salary], [True, False])
    [3, 1, 5, 0, 2, 4]

    :param columns: The Series to sort by, in order of priority.
    :param ascending: The sort direction, for all Series or for each of them.
    :param nulls_last: Place nulls after the other values instead of before them.
    :param context: Where to run the sorting, by default the context of the first Series.
    """
    if not columns:
        raise UsageError("At least one column is required for sorting")
    if isinstance(ascending, bool):
        ascending = [ascending] * len(columns)
    ascending = list(ascending)
    if len(ascending) != len(columns):
        raise UsageError("Columns and ascending must have the same length")

    num_rows = len(columns[0])
    for column in columns[1:]:
        if len(column) != num_rows:
            raise LengthMismatchError(
                f"Sorting columns must have the same length, got {len(column)} and {num_rows}"
            )

    context = context if context is not None else columns[0].context

    def accelerated(backend: AcceleratedBackend) -> list[int]:
        with contextlib.ExitStack() as stack:
            handles = [
                stack.enter_context(register_storage(backend, c.dtype, c.storage))
                for c in columns
            ]
            return backend.sort_indices(handles, ascending, nulls_last)

    def portable() -> list[int]:
        if len(columns) == 1:
            return _sort_single(columns[0].to_list(), ascending[0], nulls_last)
        rows = list(zip(*(c.to_list() for c in columns)))
        return sorted(
            range(num_rows), key=lambda pos: SortKey(rows[pos], ascending, nulls_last)
        )

    return context.run(
        Operation.SORT, [c.dtype for c in columns], num_rows, accelerated, portable
    )


def _sort_single(values: list[Any], ascending: bool, nulls_last: bool) -> list[int]:
    """Sort positions by a single list of values.

    Null values are set apart so that the remaining values
    can be sorted with their natural ordering.
    """
    present = [pos for pos, v in enumerate(values) if not is_null(v)]
    missing = [pos for pos, v in enumerate(values) if is_null(v)]
    # reverse keeps the sort stable, equal values retain their order.
    present.sort(key=values.__getitem__, reverse=not ascending)
    return present + missing if nulls_last else missing + present


def sort_values(
    column: Any,
    ascending: bool = True,
    nulls_last: bool = True,
    context: ExecutionContext | None = None,
) -> Any:
    """Sort a Series, carrying along its index labels.

    >>> from framepyground.dataframe import Series
    >>> sort_values(Series([3, 1, 4, 1, 5]), ascending=False).to_list()
    [5, 4, 3, 1, 1]
    """
    return column.take(sort_indices(column, ascending, nulls_last, context))
