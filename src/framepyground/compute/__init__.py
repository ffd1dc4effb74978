"""The FramePyground Compute Engine

The compute engine implements the algorithms behind the
operations of Series and DataFrames: partitioning rows in groups,
aggregating the values of each group, sorting rows by one or more
columns, and filtering rows through masks and membership tests.

Every numeric operation can run in two places:

* On the accelerated backend, which runs the native
  Apache Arrow compute kernels.
* In plain Python, the portable implementation,
  which is always available and gives the same results.

The :class:`~framepyground.compute.dispatch.ExecutionContext`
chooses between the two for each call, and falls back to the
portable implementation whenever the backend can't complete::

    Series --> ExecutionContext --(buffers, handles)--> ArrowBackend
                       |
                       +--> portable implementation

The operations are plain functions that receive Series and return
new Series, so they can be used directly:

>>> from framepyground.dataframe import Series
>>> from framepyground.compute import build_partition, reduce
>>> values = Series([10, 15, 8, 12, 20], name="n_employees")
>>> cities = ["New York", "New York", "Los Angeles", "Los Angeles", "New York"]
>>> reduce(values, build_partition(values, cities), "sum").to_list()
[20.0, 45.0]
"""

from .aggregate import (
    Aggregation,
    CountAggregation,
    FirstAggregation,
    LastAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    SizeAggregation,
    StdAggregation,
    SumAggregation,
    VarAggregation,
    aggregate_table,
    multi_reduce,
    reduce,
)
from .backend import ArrowBackend, OwnedHandle
from .base import AcceleratedBackend, AggFunc, BufferSpec, Operation
from .dispatch import ExecutionContext, Outcome, get_default_context
from .filtering import filter_values, isin
from .grouping import GroupPartition, build_partition
from .sorting import SortKey, sort_indices, sort_indices_by, sort_values

__all__ = (
    "AcceleratedBackend",
    "AggFunc",
    "Aggregation",
    "ArrowBackend",
    "BufferSpec",
    "CountAggregation",
    "ExecutionContext",
    "FirstAggregation",
    "GroupPartition",
    "LastAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "Operation",
    "Outcome",
    "OwnedHandle",
    "SizeAggregation",
    "SortKey",
    "StdAggregation",
    "SumAggregation",
    "VarAggregation",
    "aggregate_table",
    "build_partition",
    "filter_values",
    "get_default_context",
    "isin",
    "multi_reduce",
    "reduce",
    "sort_indices",
    "sort_indices_by",
    "sort_values",
)
