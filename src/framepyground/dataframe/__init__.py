"""Dataframe library built on top of the framepyground compute engine.

A dataframe library is a tool designed to handle and manipulate structured data,
typically in the form of tables (i.e., rows and columns).
It allows users to explore data, apply transformations, and analyze it.

Dataframes provide an efficient way to perform operations such as filtering,
sorting, grouping and aggregation of datasets.

Dataframes are becoming a widespread and convenient
way to perform analyses on data, they are now as widespread
as SQL as a way to run queries on data. The most commonly
used ones are probably ``pandas`` and ``polars``.

This module implements the two objects such libraries are made of:

* :class:`Series`, a single column of values all of the same type,
  where each value is identified by a label.
* :class:`DataFrame`, a set of named Series sharing the same labels.

>>> df = DataFrame({"name": ["Ann", "Bob", "Cid"], "age": [31, 25, None]})
>>> df["age"].mean()
28.0
>>> df.sort_values("age", ascending=False).to_dict()
{'name': ['Ann', 'Bob', 'Cid'], 'age': [31, 25, None]}
"""

from .dataframe import DataFrame
from .groupby import DataFrameGroupBy, SeriesGroupBy
from .series import Series
from .transforms import cut, to_datetime, to_numeric

__all__ = (
    "DataFrame",
    "Series",
    "SeriesGroupBy",
    "DataFrameGroupBy",
    "cut",
    "to_datetime",
    "to_numeric",
)
