"""Grouped Series and DataFrames.

Grouping a Series or a DataFrame doesn't compute anything
by itself, it partitions the rows and returns an object
that can then compute aggregations for each group::

    >>> from framepyground.dataframe import DataFrame
    >>> df = DataFrame({
    ...     "city": ["New York", "New York", "Los Angeles", "Los Angeles", "New York"],
    ...     "n_employees": [10, 15, 8, 12, 20],
    ... })
    >>> df.group_by("city").sum()
                | n_employees
    ----------- | -----------
    Los Angeles | 20.00
    New York    | 45.00
"""

import abc
from typing import TYPE_CHECKING, Any, Iterable

from ..compute import aggregate
from ..compute.base import AggFunc
from ..compute.grouping import GroupPartition
from ..dtypes import DType

if TYPE_CHECKING:
    from .dataframe import DataFrame
    from .series import Series


class _GroupBy(abc.ABC):
    """Operations shared by grouped Series and grouped DataFrames."""

    def __init__(self, partition: GroupPartition) -> None:
        self.partition = partition

    def __len__(self) -> int:
        return len(self.partition)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(groups={list(self.partition.keys)})"

    @property
    def keys(self) -> tuple[str, ...]:
        return self.partition.keys

    def groups(self) -> dict[str, list[int]]:
        """The positions of the rows of each group, indexed by key."""
        return self.partition.groups()

    @abc.abstractmethod
    def agg(self, spec: Any) -> Any:
        """Compute one or more aggregations for each group.

        Grouped Series and grouped DataFrames must implement this method,
        all the shortcut methods like :meth:`sum` rely on it.
        """
        ...

    def sum(self) -> Any:
        return self.agg(AggFunc.SUM)

    def mean(self) -> Any:
        return self.agg(AggFunc.MEAN)

    def count(self) -> Any:
        return self.agg(AggFunc.COUNT)

    def min(self) -> Any:
        return self.agg(AggFunc.MIN)

    def max(self) -> Any:
        return self.agg(AggFunc.MAX)

    def std(self) -> Any:
        return self.agg(AggFunc.STD)

    def var(self) -> Any:
        return self.agg(AggFunc.VAR)

    def first(self) -> Any:
        return self.agg(AggFunc.FIRST)

    def last(self) -> Any:
        return self.agg(AggFunc.LAST)


class SeriesGroupBy(_GroupBy):
    """A Series whose values were partitioned in groups.

    >>> from framepyground.dataframe import Series
    >>> grouped = Series([1, 2, 3, 4], name="n").group_by(["a", "b", "a", "b"])
    >>> grouped.groups()
    {'a': [0, 2], 'b': [1, 3]}
    >>> grouped.agg(["min", "max"]).to_dict()
    {'n_min': [1.0, 2.0], 'n_max': [3.0, 4.0]}
    """

    def __init__(self, series: "Series", partition: GroupPartition) -> None:
        """
        :param series: The Series that was grouped.
        :param partition: The groups of the Series values.
        """
        super().__init__(partition)
        self.series = series

    def get_group(self, key: str) -> "Series":
        """The values of one group, with their index labels."""
        return self.series.take(self.partition[key])

    def size(self) -> "Series":
        """Number of values in each group, nulls included."""
        return self.series.__class__(
            self.partition.sizes(),
            name=f"{self.series.name}_size",
            dtype=DType.INT32,
            index=self.partition.keys,
            context=self.series.context,
        )

    def agg(self, spec: AggFunc | str | Iterable[AggFunc | str]) -> Any:
        """Compute one or more aggregations for each group.

        A single aggregation returns a Series named ``<name>_<func>``,
        a list of aggregations returns a DataFrame with one
        such column for each of them.
        """
        if isinstance(spec, (str, AggFunc)):
            return aggregate.reduce(self.series, self.partition, spec)

        from .dataframe import DataFrame

        reduced = aggregate.multi_reduce(self.series, self.partition, spec)
        return DataFrame(
            {s.name: s for s in reduced.values()},
            index=self.partition.keys,
            context=self.series.context,
        )


class DataFrameGroupBy(_GroupBy):
    """A DataFrame whose rows were partitioned in groups.

    Aggregations are applied to all the columns
    that were not used as grouping keys.
    """

    def __init__(
        self,
        frame: "DataFrame",
        partition: GroupPartition,
        key_columns: Iterable[str] = (),
    ) -> None:
        """
        :param frame: The DataFrame that was grouped.
        :param partition: The groups of the DataFrame rows.
        :param key_columns: The columns used as grouping keys.
        """
        super().__init__(partition)
        self.frame = frame
        self.key_columns = tuple(key_columns)

    def __getitem__(self, column: str) -> SeriesGroupBy:
        """Select the grouped values of a single column."""
        return SeriesGroupBy(self.frame[column], self.partition)

    def get_group(self, key: str) -> "DataFrame":
        """The rows of one group, with their index labels."""
        return self.frame.take(self.partition[key])

    def size(self) -> "Series":
        """Number of rows in each group."""
        from .series import Series

        return Series(
            self.partition.sizes(),
            name="size",
            dtype=DType.INT32,
            index=self.partition.keys,
            context=self.frame.context,
        )

    def agg(self, spec: aggregate.AggSpec) -> "DataFrame":
        """Compute aggregations for each group.

        ``spec`` can be a single aggregation applied to every column,
        a list of aggregations applied to every column or
        a mapping from column names to aggregations.

        >>> from framepyground.dataframe import DataFrame
        >>> df = DataFrame({"k": ["a", "b", "a"], "x": [1, 2, 3], "y": [0.5, None, 1.5]})
        >>> df.group_by("k").agg({"x": ["sum", "count"], "y": "mean"}).to_dict()
        {'x_sum': [4.0, 2.0], 'x_count': [2, 1], 'y_mean': [1.0, nan]}
        """
        return aggregate.aggregate_table(
            self.frame, self.partition, spec, exclude=self.key_columns
        )
