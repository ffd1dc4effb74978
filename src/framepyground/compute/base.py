"""Base classes and interfaces for the Compute Engine

This module defines the vocabulary shared by the engine components:
the aggregation functions that can be computed, the operations
that an accelerated backend can offer, the flat buffer description
used to hand data over to the backend, and the interface
that every accelerated backend must implement.
"""

import abc
import enum
from typing import TYPE_CHECKING, Any, NamedTuple

import pyarrow as pa

from ..dtypes import DType
from ..errors import UnsupportedAggregationError

if TYPE_CHECKING:
    from .backend import OwnedHandle


class AggFunc(enum.Enum):
    """Aggregation functions supported by grouping and reductions."""

    SUM = "sum"
    MEAN = "mean"
    COUNT = "count"
    SIZE = "size"
    MIN = "min"
    MAX = "max"
    STD = "std"
    VAR = "var"
    FIRST = "first"
    LAST = "last"

    @classmethod
    def parse(cls, value: "AggFunc | str") -> "AggFunc":
        """Resolve an aggregation function from its name.

        >>> AggFunc.parse("mean")
        <AggFunc.MEAN: 'mean'>
        >>> AggFunc.parse("median")
        Traceback (most recent call last):
            ...
        framepyground.errors.UnsupportedAggregationError: Unsupported aggregation function: 'median'
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedAggregationError(
                f"Unsupported aggregation function: {value!r}"
            ) from None


NUMERIC_AGGREGATIONS = frozenset(
    (
        AggFunc.SUM,
        AggFunc.MEAN,
        AggFunc.COUNT,
        AggFunc.MIN,
        AggFunc.MAX,
        AggFunc.STD,
        AggFunc.VAR,
    )
)
"""Aggregations that depend on the values and not only on row positions."""


class Operation(enum.Enum):
    """Operations an accelerated backend might be able to run."""

    REDUCE = "reduce"
    GROUP_REDUCE = "group_reduce"
    SORT = "sort"
    FILTER = "filter"
    ISIN = "isin"


class BufferSpec(NamedTuple):
    """Flat description of a column handed over to a backend.

    Only raw Arrow buffers cross the boundary with the backend,
    never Python objects, so that the backend can own a copy
    of the data in whatever form suits it.
    """

    dtype: DType
    length: int
    buffers: list[pa.Buffer | None]
    offset: int = 0

    @classmethod
    def from_arrow(cls, dtype: DType, array: pa.Array) -> "BufferSpec":
        """Describe an Arrow array as a set of buffers."""
        return cls(dtype, len(array), array.buffers(), array.offset)

    @classmethod
    def from_values(cls, dtype: DType, values: list[Any]) -> "BufferSpec":
        """Pack a list of Python values into buffers of ``dtype``."""
        return cls.from_arrow(dtype, pa.array(values, type=dtype.arrow_type))


class AcceleratedBackend(abc.ABC):
    """Interface of a backend able to run numeric operations natively.

    Data is handed over to the backend by registering it,
    which returns an :class:`~framepyground.compute.backend.OwnedHandle`
    identifying the copy owned by the backend. Operations receive
    handles and return either plain Python values or new handles
    for results that are themselves columns.

    Each method must raise :class:`~framepyground.errors.BackendError`
    when it can't complete, the execution context will then
    run the portable implementation of the same operation.
    """

    @abc.abstractmethod
    def supports(self, operation: Operation, dtype: DType) -> bool:
        """Probe if the backend can run ``operation`` on ``dtype`` data."""
        ...

    @abc.abstractmethod
    def register(self, spec: BufferSpec) -> "OwnedHandle":
        """Copy the described buffers into the backend and return their handle."""
        ...

    @abc.abstractmethod
    def free(self, handle_id: int) -> None:
        """Release the data identified by ``handle_id``.

        This is only meant to be invoked by
        :meth:`~framepyground.compute.backend.OwnedHandle.release`.
        """
        ...

    @abc.abstractmethod
    def read(self, handle: "OwnedHandle") -> list[Any]:
        """Copy the data of a handle back into a Python list."""
        ...

    @abc.abstractmethod
    def reduce(self, handle: "OwnedHandle", func: AggFunc) -> Any:
        """Reduce all the non-null values of a handle to a scalar."""
        ...

    @abc.abstractmethod
    def group_reduce(
        self,
        values: "OwnedHandle",
        codes: "OwnedHandle",
        num_groups: int,
        funcs: list[AggFunc],
    ) -> dict[AggFunc, "OwnedHandle"]:
        """Reduce values per group.

        ``codes`` holds, for each row, the ordinal of the group the row
        belongs to or ``-1`` for rows that are part of no group.
        Each returned handle contains ``num_groups`` results,
        one for each group ordinal.
        """
        ...

    @abc.abstractmethod
    def sort_indices(
        self, keys: list["OwnedHandle"], ascending: list[bool], nulls_last: bool
    ) -> list[int]:
        """Compute the stable permutation sorting rows by ``keys``."""
        ...

    @abc.abstractmethod
    def isin(
        self,
        values: "OwnedHandle",
        candidates: "OwnedHandle",
        tolerance: float | None,
        match_nulls: bool,
    ) -> list[bool]:
        """Compute the membership mask of ``values`` in ``candidates``.

        When ``tolerance`` is provided values are compared numerically
        and are members when they differ from a candidate by at most
        ``tolerance``, otherwise exact equality is used.
        """
        ...

    @abc.abstractmethod
    def filter(self, values: "OwnedHandle", mask: "OwnedHandle") -> "OwnedHandle":
        """Keep only the values where mask is true."""
        ...
