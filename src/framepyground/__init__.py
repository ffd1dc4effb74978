"""FramePyground

A labelled, columnar, in-memory data analysis library
built from scratch for learning and teaching purposes.

FramePyground provides Series and DataFrames that can be
filtered, sorted, grouped and aggregated, whose numeric
operations are accelerated by the Apache Arrow compute kernels
whenever possible, while a plain Python implementation
of every operation guarantees the same results everywhere.

The library is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Dataframe API, which provides the :class:`~framepyground.dataframe.Series`
  and :class:`~framepyground.dataframe.DataFrame` objects.
* The Compute Engine, in charge of grouping, aggregating, sorting
  and filtering the data, and of choosing where each operation runs.

>>> from framepyground import DataFrame
>>> df = DataFrame({"dept": [1, 1, 2], "salary": [3.0, 5.0, 4.0]})
>>> df.group_by("dept").mean().to_dict()
{'salary': [4.0, 4.0]}

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute, dataframe, errors
from .config import ExecutionConfig
from .dataframe import DataFrame, Series, cut, to_datetime, to_numeric
from .dtypes import DType

__all__ = (
    "compute",
    "dataframe",
    "errors",
    "DataFrame",
    "Series",
    "DType",
    "ExecutionConfig",
    "cut",
    "to_datetime",
    "to_numeric",
)
