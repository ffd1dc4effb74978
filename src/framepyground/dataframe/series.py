"""The Series object: a single labelled column of values."""

import logging
from typing import Any, Callable, Iterable, Iterator, Self, Sequence

import pyarrow as pa

from ..compute import aggregate, filtering, sorting
from ..compute.dispatch import ExecutionContext, get_default_context
from ..compute.grouping import build_partition, format_key
from ..dtypes import DType, coerce_value, infer_arrow_dtype, infer_dtype, is_null
from ..errors import LengthMismatchError
from ..utils.tabulate import tabulate
from .groupby import SeriesGroupBy

logger = logging.getLogger(__name__)


def build_storage(
    values: Any, dtype: DType | str | None = None
) -> tuple[DType, pa.Array | tuple, tuple | None]:
    """Coerce values to a dtype and choose how to store them.

    Returns the dtype, the storage and the values as Python objects
    when they were already available.

    >>> build_storage([1, None])[1]
    (1, None)
    """
    if isinstance(values, pa.ChunkedArray):
        values = values.combine_chunks()
    if isinstance(values, pa.Array):
        dtype = DType.parse(dtype) if dtype is not None else infer_arrow_dtype(values)
        if values.type == dtype.arrow_type and values.null_count == 0:
            # Already dense, can be used without copying.
            return dtype, values, None
        values = values.to_pylist()

    values = list(values)
    dtype = DType.parse(dtype) if dtype is not None else infer_dtype(values)
    coerced = tuple(coerce_value(v, dtype) for v in values)

    if dtype is DType.FLOAT64 or not any(v is None for v in coerced):
        try:
            return dtype, pa.array(coerced, type=dtype.arrow_type), coerced
        except (pa.ArrowException, TypeError, ValueError, OverflowError) as e:
            logger.debug("Keeping %s values boxed: %s", dtype.value, e)
    return dtype, coerced, coerced


class Series:
    """One dimensional array of values with an associated index.

    The Series is the building block of the library, every column
    of a :class:`~framepyground.dataframe.DataFrame` is a Series.
    All values in a Series share the same :class:`~framepyground.dtypes.DType`
    and each of them has a label, which by default is its position:

    >>> s = Series([3, 1, None], name="n")
    >>> s.dtype, s.index
    (<DType.INT32: 'int32'>, (0, 1, 2))

    Series are immutable, all operations return a new Series.
    Values without nulls are stored as Arrow arrays that can be
    handed over to the accelerated backend as they are,
    while values with nulls are kept as a tuple of Python objects.
    Float values are always stored as Arrow arrays, as nulls
    are represented with ``NaN``.

    Each Series carries the :class:`~framepyground.compute.dispatch.ExecutionContext`
    that its operations run with, and passes it on to the
    Series derived from it.
    """

    def __init__(
        self,
        values: Iterable[Any] | pa.Array | pa.ChunkedArray = (),
        name: str = "",
        dtype: DType | str | None = None,
        index: Sequence[Any] | None = None,
        context: ExecutionContext | None = None,
    ) -> None:
        """
        :param values: The values, any iterable or an Arrow array.
        :param name: The name of the Series, used as column name by DataFrames.
        :param dtype: The dtype of the values, inferred when not provided.
        :param index: The label of each value, by default its position.
        :param context: How operations are executed, by default the context
                        created from the environment configuration.
        """
        if isinstance(values, Series):
            dtype = values.dtype if dtype is None else dtype
            index = values.index if index is None else index
            context = values.context if context is None else context
            values = values.to_list()

        self.name = name
        self.context = context if context is not None else get_default_context()
        self.dtype, self._storage, self._values = build_storage(values, dtype)

        if index is None:
            self.index = tuple(range(len(self._storage)))
        else:
            self.index = tuple(index)
            if len(self.index) != len(self._storage):
                raise LengthMismatchError(
                    f"Index length ({len(self.index)}) must match data length ({len(self._storage)})"
                )
        self._label_positions: dict[Any, int] | None = None

    def _derive(
        self,
        values: Iterable[Any],
        index: Sequence[Any] | None = None,
        name: str | None = None,
    ) -> Self:
        """Create a new Series with the same dtype and context."""
        return self.__class__(
            values,
            name=self.name if name is None else name,
            dtype=self.dtype,
            index=self.index if index is None else index,
            context=self.context,
        )

    @property
    def storage(self) -> pa.Array | tuple:
        """The stored values, an Arrow array when dense or a tuple when boxed."""
        return self._storage

    @property
    def is_dense(self) -> bool:
        return isinstance(self._storage, pa.Array)

    @property
    def values(self) -> tuple:
        if self._values is None:
            self._values = tuple(self._storage.to_pylist())
        return self._values

    @property
    def shape(self) -> tuple[int]:
        return (len(self),)

    def __len__(self) -> int:
        return len(self.index)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __repr__(self) -> str:
        table = tabulate({self.name: self.values}, index=self.index)
        return f"{table}\ndtype: {self.dtype.value}"

    def to_list(self) -> list[Any]:
        """The values as a list of Python objects.

        >>> Series([1.5, None]).to_list()
        [1.5, nan]
        """
        return list(self.values)

    def to_arrow(self) -> pa.Array:
        """The values as an Arrow array, with proper nulls."""
        if self.dtype is DType.FLOAT64:
            return pa.array(self.values, type=pa.float64(), from_pandas=True)
        if self.is_dense:
            return self._storage
        return pa.array(self.values, type=self.dtype.arrow_type)

    def rename(self, name: str) -> Self:
        return self._derive(self.values, name=name)

    def get(self, label: Any, default: Any = None) -> Any:
        """The value with the given index label.

        When multiple values share the label, the first one is returned.
        """
        position = self._position_of(label)
        if position is None:
            return default
        return self.values[position]

    def _position_of(self, label: Any) -> int | None:
        if self._label_positions is None:
            positions: dict[Any, int] = {}
            for position, item in enumerate(self.index):
                positions.setdefault(item, position)
            self._label_positions = positions
        return self._label_positions.get(label)

    def iloc(self, position: int) -> Any:
        """The value at the given position."""
        return self.values[position]

    def loc(self, labels: Iterable[Any]) -> Self:
        """The values with the given index labels.

        Labels not in the index are ignored.

        >>> Series([10, 20, 30], index=["a", "b", "c"]).loc(["c", "x", "a"]).to_list()
        [30, 10]
        """
        positions = [self._position_of(label) for label in labels]
        return self.take(p for p in positions if p is not None)

    def take(self, positions: Iterable[int]) -> Self:
        """The values at the given positions, with their labels."""
        positions = list(positions)
        values = self.values
        return self._derive(
            [values[p] for p in positions], index=[self.index[p] for p in positions]
        )

    def head(self, n: int = 5) -> Self:
        return self.take(range(min(n, len(self))))

    def tail(self, n: int = 5) -> Self:
        return self.take(range(max(len(self) - n, 0), len(self)))

    def filter(self, mask: Iterable[Any]) -> Self:
        """Keep only the values where ``mask`` is true.

        >>> Series([1, 2, 3, 4, 5]).filter([0, 1, 0, 1, 0]).to_list()
        [2, 4]
        """
        return filtering.filter_values(self, mask)

    def drop(self, labels: Any) -> Self:
        """Remove the values with the given index labels."""
        if not isinstance(labels, (list, tuple, set, frozenset)):
            labels = [labels]
        dropped = set(labels)
        return self.filter([label not in dropped for label in self.index])

    def isin(self, candidates: Iterable[Any], tolerance: float | None = None) -> Self:
        """Check which values are among ``candidates``.

        >>> Series([1, 2, 3], name="x").isin([2, 3]).to_list()
        [False, True, True]
        """
        return filtering.isin(self, candidates, tolerance)

    def isnull(self) -> Self:
        return self.__class__(
            [is_null(v) for v in self.values],
            name=f"{self.name}_isnull",
            dtype=DType.BOOL,
            index=self.index,
            context=self.context,
        )

    def notnull(self) -> Self:
        return self.__class__(
            [not is_null(v) for v in self.values],
            name=f"{self.name}_notnull",
            dtype=DType.BOOL,
            index=self.index,
            context=self.context,
        )

    def dropna(self) -> Self:
        return self.filter(self.notnull())

    def fillna(self, value: Any) -> Self:
        """Replace null values with ``value``."""
        return self._derive([value if is_null(v) else v for v in self.values])

    def unique(self) -> list[Any]:
        """Distinct values in order of appearance, nulls included once."""
        seen = set()
        result = []
        for value in self.values:
            key = None if is_null(value) else value
            if key not in seen:
                seen.add(key)
                result.append(value)
        return result

    def nunique(self, dropna: bool = True) -> int:
        """Number of distinct values.

        >>> Series([1, 2, 2, None]).nunique(), Series([1, 2, 2, None]).nunique(dropna=False)
        (2, 3)
        """
        return sum(1 for v in self.unique() if not (dropna and is_null(v)))

    @property
    def is_unique(self) -> bool:
        return self.nunique(dropna=False) == len(self)

    def value_counts(self) -> Self:
        """Count how many times each value appears.

        The result is indexed by the textual representation
        of the values, in order of first appearance.

        >>> counts = Series(["a", "b", "a"], name="letter").value_counts()
        >>> counts.name, counts.index, counts.to_list()
        ('letter_count', ('a', 'b'), [2, 1])
        """
        counts: dict[Any, int] = {}
        for value in self.values:
            key = None if is_null(value) else value
            counts[key] = counts.get(key, 0) + 1
        return self.__class__(
            list(counts.values()),
            name=f"{self.name}_count",
            dtype=DType.INT32,
            index=[format_key(key) for key in counts],
            context=self.context,
        )

    def sum(self) -> Any:
        return aggregate.reduce_series(self, "sum")

    def mean(self) -> float:
        return aggregate.reduce_series(self, "mean")

    def std(self) -> float:
        return aggregate.reduce_series(self, "std")

    def var(self) -> float:
        return aggregate.reduce_series(self, "var")

    def min(self) -> Any:
        return aggregate.reduce_series(self, "min")

    def max(self) -> Any:
        return aggregate.reduce_series(self, "max")

    def count(self) -> int:
        return aggregate.reduce_series(self, "count")

    def sort_indices(self, ascending: bool = True, nulls_last: bool = True) -> list[int]:
        """The positions that would sort the Series."""
        return sorting.sort_indices(self, ascending, nulls_last)

    def sort_values(self, ascending: bool = True, nulls_last: bool = True) -> Self:
        """Sort the values, carrying along their index labels.

        >>> s = Series([3.0, None, 1.0])
        >>> s.sort_values().index
        (2, 0, 1)
        >>> s.sort_values(ascending=False, nulls_last=False).to_list()
        [nan, 3.0, 1.0]
        """
        return sorting.sort_values(self, ascending, nulls_last)

    def sort_index(self, ascending: bool = True) -> Self:
        """Sort the values by their index labels."""
        labels = self.__class__(self.index, context=self.context)
        return self.take(sorting.sort_indices(labels, ascending))

    def reset_index(self) -> Self:
        """Replace the index with the positions of the values."""
        return self._derive(self.values, index=range(len(self)))

    def group_by(
        self,
        by: Sequence[Any] | Callable[[Any, int], Any] | None = None,
        dropna: bool = True,
        sort: bool = True,
    ) -> SeriesGroupBy:
        """Group the values to compute aggregations for each group.

        >>> s = Series([1, 2, 3, 4, 5], name="n")
        >>> s.group_by([0, 0, 1, 1, 2]).sum().to_list()
        [3.0, 7.0, 5.0]

        :param by: The key of each value, a function computing it from
                   the value and its position, or ``None`` to group by index label.
        :param dropna: Drop values whose key is null.
        :param sort: Sort groups by key, otherwise keep them in order of appearance.
        """
        return SeriesGroupBy(self, build_partition(self, by, dropna, sort))
