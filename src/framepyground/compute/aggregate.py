"""Aggregations over Series and groups.

Frequently when analysing data it's necessary
to compute statistics like the min, max, average, etc...
of the values of a column, either over the whole
column or separately for each group of rows.

For example, given the following data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

We could group by city and compute the sum of the employees
to get::

    city, n_employees_sum
    Los Angeles, 20.0
    New York, 45.0

Numeric aggregations (sum, mean, count, min, max, std, var)
are computed on the accelerated backend when possible,
while positional ones (size, first, last) only depend on
where rows are and are always computed directly.

Only numeric values contribute to numeric aggregations:
nulls are skipped, and columns with a non numeric dtype
behave as if all their values were null.
"""

import abc
import contextlib
import math
from typing import Any, Iterable, Mapping, Sequence

from ..dtypes import DType, is_null
from ..errors import ColumnNotFoundError, LengthMismatchError
from .base import NUMERIC_AGGREGATIONS, AcceleratedBackend, AggFunc, Operation
from .dispatch import ExecutionContext, register_storage, register_values
from .grouping import GroupPartition

__all__ = (
    "Aggregation",
    "SumAggregation",
    "MeanAggregation",
    "CountAggregation",
    "SizeAggregation",
    "MinAggregation",
    "MaxAggregation",
    "VarAggregation",
    "StdAggregation",
    "FirstAggregation",
    "LastAggregation",
    "make_aggregation",
    "reduce_series",
    "reduce",
    "multi_reduce",
    "aggregate_table",
)

AggSpec = AggFunc | str | Sequence[AggFunc | str] | Mapping[str, Any]


def numeric_values(values: Iterable[Any]) -> list[int | float]:
    """Only the non null numbers in ``values``."""
    return [
        v
        for v in values
        if isinstance(v, (int, float)) and not isinstance(v, bool) and not is_null(v)
    ]


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation knows how to reduce the values
    of one group (or of a whole column) to a single value,
    and which dtype the reduced values have.
    """

    func: AggFunc

    def __init__(self, dtype: DType) -> None:
        """
        :param dtype: The dtype of the column being aggregated.
        """
        self.dtype = dtype

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.dtype.value})"

    __repr__ = __str__

    @property
    def result_dtype(self) -> DType:
        return DType.FLOAT64

    @abc.abstractmethod
    def compute(self, values: Sequence[Any]) -> Any:
        """Reduce the values of a group, nulls included, to a single value."""
        ...


class SimpleAggregation(Aggregation):
    """Provide a base implementation for aggregations of the numeric values.

    Simple aggregations ignore everything that is not a number
    and produce ``NaN`` when no number is left.
    """

    @abc.abstractmethod
    def _aggregate(self, numbers: list[int | float]) -> Any: ...

    def compute(self, values: Sequence[Any]) -> Any:
        numbers = numeric_values(values)
        if not numbers:
            return math.nan
        return self._aggregate(numbers)


class SumAggregation(Aggregation):
    """Compute the sum of the values, zero when there are none."""

    func = AggFunc.SUM

    def compute(self, values: Sequence[Any]) -> Any:
        total = sum(numeric_values(values))
        if self.dtype is DType.FLOAT64:
            return float(total)
        return total


class MeanAggregation(SimpleAggregation):
    """Compute the arithmetic mean of the values."""

    func = AggFunc.MEAN

    def _aggregate(self, numbers: list[int | float]) -> float:
        return sum(numbers) / len(numbers)


class MinAggregation(SimpleAggregation):
    """Compute the min of the values."""

    func = AggFunc.MIN

    def _aggregate(self, numbers: list[int | float]) -> Any:
        return min(numbers)


class MaxAggregation(SimpleAggregation):
    """Compute the max of the values."""

    func = AggFunc.MAX

    def _aggregate(self, numbers: list[int | float]) -> Any:
        return max(numbers)


class VarAggregation(Aggregation):
    """Compute the sample variance of the values.

    The variance is divided by ``N - 1``,
    so at least two values are required.
    """

    func = AggFunc.VAR

    def compute(self, values: Sequence[Any]) -> float:
        numbers = numeric_values(values)
        if len(numbers) < 2:
            return math.nan
        mean = sum(numbers) / len(numbers)
        return sum((n - mean) ** 2 for n in numbers) / (len(numbers) - 1)


class StdAggregation(VarAggregation):
    """Compute the sample standard deviation of the values."""

    func = AggFunc.STD

    def compute(self, values: Sequence[Any]) -> float:
        return math.sqrt(super().compute(values))


class CountAggregation(Aggregation):
    """Count the non null values."""

    func = AggFunc.COUNT

    @property
    def result_dtype(self) -> DType:
        return DType.INT32

    def compute(self, values: Sequence[Any]) -> int:
        return sum(1 for v in values if not is_null(v))


class SizeAggregation(CountAggregation):
    """Count the rows, nulls included."""

    func = AggFunc.SIZE

    def compute(self, values: Sequence[Any]) -> int:
        return len(values)


class FirstAggregation(Aggregation):
    """Take the first value, even when it's null."""

    func = AggFunc.FIRST

    @property
    def result_dtype(self) -> DType:
        return self.dtype

    def compute(self, values: Sequence[Any]) -> Any:
        return values[0] if values else None


class LastAggregation(FirstAggregation):
    """Take the last value, even when it's null."""

    func = AggFunc.LAST

    def compute(self, values: Sequence[Any]) -> Any:
        return values[-1] if values else None


AGGREGATIONS: dict[AggFunc, type[Aggregation]] = {
    cls.func: cls
    for cls in (
        SumAggregation,
        MeanAggregation,
        CountAggregation,
        SizeAggregation,
        MinAggregation,
        MaxAggregation,
        VarAggregation,
        StdAggregation,
        FirstAggregation,
        LastAggregation,
    )
}


def make_aggregation(func: AggFunc | str, dtype: DType) -> Aggregation:
    """Build the aggregation computing ``func`` on ``dtype`` values.

    >>> make_aggregation("mean", DType.INT32).compute([1, None, 2])
    1.5
    """
    return AGGREGATIONS[AggFunc.parse(func)](dtype)


def reduce_series(column: Any, func: AggFunc | str) -> Any:
    """Reduce a whole Series to a single value.

    >>> from framepyground.dataframe import Series
    >>> reduce_series(Series([1.0, float("nan"), 3.0, float("nan"), 5.0]), "mean")
    3.0
    """
    aggregation = make_aggregation(func, column.dtype)
    context: ExecutionContext = column.context

    def accelerated(backend: AcceleratedBackend) -> Any:
        with register_storage(backend, column.dtype, column.storage) as handle:
            return backend.reduce(handle, aggregation.func)

    def portable() -> Any:
        return aggregation.compute(column.to_list())

    if aggregation.func not in NUMERIC_AGGREGATIONS:
        return portable()
    return context.run(
        Operation.REDUCE, [column.dtype], len(column), accelerated, portable
    )


def reduce(
    column: Any,
    partition: GroupPartition,
    func: AggFunc | str,
    context: ExecutionContext | None = None,
) -> Any:
    """Reduce the values of each group of ``partition`` to a single value.

    The result is a Series named ``<name>_<func>``
    with one value for each group, indexed by the group keys.

    >>> from framepyground.compute.grouping import build_partition
    >>> from framepyground.dataframe import Series
    >>> values = Series([1, 2, 3, 4, 5], name="n")
    >>> result = reduce(values, build_partition(values, [0, 0, 1, 1, 2]), "sum")
    >>> result.name, result.index, result.to_list()
    ('n_sum', ('0', '1', '2'), [3.0, 7.0, 5.0])
    """
    func = AggFunc.parse(func)
    return multi_reduce(column, partition, [func], context)[func]


def multi_reduce(
    column: Any,
    partition: GroupPartition,
    funcs: Iterable[AggFunc | str],
    context: ExecutionContext | None = None,
) -> dict[AggFunc, Any]:
    """Compute multiple aggregations of the same column in one pass.

    All the numeric aggregations are handed over to the
    accelerated backend together, so that the column
    is registered only once.
    """
    context = context if context is not None else column.context
    funcs = list(dict.fromkeys(AggFunc.parse(f) for f in funcs))
    if partition.num_rows != len(column):
        raise LengthMismatchError(
            f"Partition was built for {partition.num_rows} rows, "
            f"Series has {len(column)}"
        )

    numeric = [f for f in funcs if f in NUMERIC_AGGREGATIONS]
    positional = [f for f in funcs if f not in NUMERIC_AGGREGATIONS]

    results: dict[AggFunc, list[Any]] = {}
    if numeric:
        results.update(
            context.run(
                Operation.GROUP_REDUCE,
                [column.dtype],
                len(column),
                accelerated=lambda backend: _accelerated_group_reduce(
                    backend, column, partition, numeric
                ),
                portable=lambda: _portable_group_reduce(column, partition, numeric),
            )
        )
    if positional:
        results.update(_portable_group_reduce(column, partition, positional))

    reduced = {}
    for func in funcs:
        aggregation = make_aggregation(func, column.dtype)
        reduced[func] = column.__class__(
            results[func],
            name=f"{column.name}_{func.value}",
            dtype=aggregation.result_dtype,
            index=partition.keys,
            context=context,
        )
    return reduced


def _portable_group_reduce(
    column: Any, partition: GroupPartition, funcs: list[AggFunc]
) -> dict[AggFunc, list[Any]]:
    values = column.to_list()
    aggregations = [make_aggregation(func, column.dtype) for func in funcs]
    results: dict[AggFunc, list[Any]] = {func: [] for func in funcs}
    for _, positions in partition:
        group_values = [values[p] for p in positions]
        for aggregation in aggregations:
            results[aggregation.func].append(aggregation.compute(group_values))
    return results


def _accelerated_group_reduce(
    backend: AcceleratedBackend,
    column: Any,
    partition: GroupPartition,
    funcs: list[AggFunc],
) -> dict[AggFunc, list[Any]]:
    with contextlib.ExitStack() as stack:
        values = stack.enter_context(
            register_storage(backend, column.dtype, column.storage)
        )
        codes = stack.enter_context(
            register_values(backend, DType.INT32, list(partition.codes))
        )
        handles = backend.group_reduce(values, codes, len(partition), funcs)
        for handle in handles.values():
            stack.enter_context(handle)
        return {func: backend.read(handle) for func, handle in handles.items()}


def aggregate_table(
    frame: Any,
    partition: GroupPartition,
    spec: AggSpec,
    context: ExecutionContext | None = None,
    exclude: Iterable[str] = (),
) -> Any:
    """Aggregate the columns of a DataFrame for each group.

    ``spec`` can be:

    - A single aggregation, applied to every column
      (apart from those in ``exclude``) and keeping the column names.
    - A list of aggregations, applied to every column
      and naming the results ``<column>_<func>``.
    - A mapping from column names to one or more aggregations,
      naming the results ``<column>_<func>``.

    The resulting DataFrame has one row for each group,
    indexed by the group keys.
    """
    context = context if context is not None else frame.context
    excluded = set(exclude)
    targets = [c for c in frame.columns if c not in excluded]

    result: dict[str, Any] = {}
    if isinstance(spec, (str, AggFunc)):
        func = AggFunc.parse(spec)
        for name in targets:
            result[name] = reduce(frame[name], partition, func, context).rename(name)
    else:
        if isinstance(spec, Mapping):
            plan = {name: _as_funcs(funcs) for name, funcs in spec.items()}
        else:
            plan = {name: _as_funcs(spec) for name in targets}
        for name, funcs in plan.items():
            if name not in frame.columns:
                raise ColumnNotFoundError(f"Column '{name}' not found")
            for series in multi_reduce(frame[name], partition, funcs, context).values():
                result[series.name] = series

    return frame.__class__(result, index=partition.keys, context=context)


def _as_funcs(funcs: Any) -> list[AggFunc]:
    if isinstance(funcs, (str, AggFunc)):
        return [AggFunc.parse(funcs)]
    return [AggFunc.parse(f) for f in funcs]
