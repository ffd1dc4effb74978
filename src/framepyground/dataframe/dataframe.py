"""The DataFrame object itself."""

from typing import Any, Callable, Iterable, Mapping, Self, Sequence

import pyarrow as pa

from ..compute import aggregate, sorting
from ..compute.base import AggFunc
from ..compute.dispatch import ExecutionContext, get_default_context
from ..compute.filtering import mask_positions
from ..compute.grouping import build_partition
from ..dtypes import DType
from ..errors import ColumnNotFoundError, ConstructionError, LengthMismatchError
from ..utils.tabulate import tabulate
from .groupby import DataFrameGroupBy
from .series import Series


class DataFrame:
    """Data structure that handles data in rows and columns.

    The DataFrame object allows to represent in-memory data
    and perform transformations over it.

    A DataFrame is an ordered collection of named
    :class:`~framepyground.dataframe.Series`, the columns,
    that all share the same length and the same index:

    >>> df = DataFrame({"animal": ["Flamingo", "Horse"], "n_legs": [2, 4]}, index=["f", "h"])
    >>> df.shape
    (2, 2)
    >>> df
      | animal   | n_legs
    - | -------- | ------
    f | Flamingo | 2
    h | Horse    | 4

    Like Series, DataFrames are immutable and every
    transformation returns a new DataFrame.
    """

    def __init__(
        self,
        data: Mapping[str, Any] | Iterable[Series] | pa.Table | None = None,
        index: Sequence[Any] | None = None,
        columns: Sequence[str] | None = None,
        context: ExecutionContext | None = None,
    ) -> None:
        """
        :param data: The columns, as a mapping from names to values,
                     a list of named Series or a ``pyarrow.Table``.
        :param index: The label of each row, by default its position.
        :param columns: Which columns to keep, and in which order.
        :param context: How operations are executed, by default
                        the context of the first Series provided.
        """
        items = self._column_items(data)
        if columns is not None:
            available = dict(items)
            missing = [c for c in columns if c not in available]
            if missing:
                raise ColumnNotFoundError(f"Column '{missing[0]}' not found")
            items = [(c, available[c]) for c in columns]

        if context is None:
            context = next(
                (v.context for _, v in items if isinstance(v, Series)), None
            )
        self.context = context if context is not None else get_default_context()

        if index is not None:
            index = tuple(index)
            num_rows = len(index)
        else:
            num_rows = len(items[0][1]) if items else 0

        for name, values in items:
            if len(values) != num_rows:
                raise LengthMismatchError(
                    f"Column '{name}' has length {len(values)}, expected {num_rows}"
                )

        self.index = index if index is not None else tuple(range(num_rows))
        self._columns: dict[str, Series] = {
            name: Series(values, name=name, index=self.index, context=self.context)
            for name, values in items
        }

    @staticmethod
    def _column_items(data: Any) -> list[tuple[str, Any]]:
        if data is None:
            return []
        if isinstance(data, pa.Table):
            return list(zip(data.column_names, data.columns))
        if isinstance(data, Mapping):
            return list(data.items())

        items = []
        seen = set()
        for series in data:
            if not isinstance(series, Series):
                raise ConstructionError(
                    f"Expected a mapping or a list of Series, got {type(series).__name__}"
                )
            if series.name in seen:
                raise ConstructionError(f"Duplicate column '{series.name}'")
            seen.add(series.name)
            items.append((series.name, series))
        return items

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        index: Sequence[Any] | None = None,
        context: ExecutionContext | None = None,
    ) -> Self:
        """Create a DataFrame from a list of rows.

        Columns are collected in order of appearance,
        rows missing a column get a null.

        >>> DataFrame.from_records([{"a": 1}, {"a": 2, "b": "x"}]).to_dict()
        {'a': [1, 2], 'b': [None, 'x']}
        """
        records = list(records)
        names: dict[str, None] = {}
        for record in records:
            names.update(dict.fromkeys(record))
        return cls(
            {name: [record.get(name) for record in records] for name in names},
            index=index,
            context=context,
        )

    @classmethod
    def from_arrow(
        cls, table: pa.Table, context: ExecutionContext | None = None
    ) -> Self:
        """Create a DataFrame from the columns of a ``pyarrow.Table``."""
        return cls(table, context=context)

    def _derive(
        self, columns: Mapping[str, Any], index: Sequence[Any] | None = None
    ) -> Self:
        return self.__class__(
            columns,
            index=self.index if index is None else index,
            context=self.context,
        )

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def dtypes(self) -> dict[str, Any]:
        return {name: series.dtype for name, series in self._columns.items()}

    @property
    def shape(self) -> tuple[int, int]:
        return (len(self), len(self._columns))

    def __len__(self) -> int:
        return len(self.index)

    def __contains__(self, name: str) -> bool:
        return name in self._columns

    def __getitem__(self, key: str | Sequence[str]) -> Any:
        """Select a column as a Series, or multiple columns as a DataFrame."""
        if isinstance(key, str):
            try:
                return self._columns[key]
            except KeyError:
                raise ColumnNotFoundError(f"Column '{key}' not found") from None
        return self._derive({name: self[name] for name in key})

    def __repr__(self) -> str:
        return tabulate(
            {name: series.values for name, series in self._columns.items()},
            index=self.index,
        )

    def to_dict(self) -> dict[str, list[Any]]:
        """The values of each column, indexed by column name."""
        return {name: series.to_list() for name, series in self._columns.items()}

    def to_records(self) -> list[dict[str, Any]]:
        """The rows as dictionaries from column name to value."""
        columns = self.to_dict()
        return [
            {name: values[row] for name, values in columns.items()}
            for row in range(len(self))
        ]

    def to_arrow(self) -> pa.Table:
        """The columns as a ``pyarrow.Table``, the index is not included."""
        return pa.table(
            {name: series.to_arrow() for name, series in self._columns.items()}
        )

    def take(self, positions: Iterable[int]) -> Self:
        """The rows at the given positions, with their labels."""
        positions = list(positions)
        return self._derive(
            {name: series.take(positions) for name, series in self._columns.items()},
            index=[self.index[p] for p in positions],
        )

    def head(self, n: int = 5) -> Self:
        return self.take(range(min(n, len(self))))

    def tail(self, n: int = 5) -> Self:
        return self.take(range(max(len(self) - n, 0), len(self)))

    def filter(self, mask: Iterable[Any]) -> Self:
        """Keep only the rows where ``mask`` is true.

        >>> df = DataFrame({"x": [1, 2, 3], "y": ["a", "b", "c"]})
        >>> df.filter(df["x"].isin([1, 3])).to_dict()
        {'x': [1, 3], 'y': ['a', 'c']}
        """
        keep = mask_positions(mask, len(self))
        return self._derive(
            {name: series.filter(keep) for name, series in self._columns.items()},
            index=[label for label, k in zip(self.index, keep) if k],
        )

    def isin(self, candidates: Iterable[Any] | Mapping[str, Iterable[Any]]) -> Self:
        """Check which values are among ``candidates``.

        When ``candidates`` is a mapping, each column is checked
        against the candidates listed for it, and columns
        not in the mapping are entirely false.
        """
        if isinstance(candidates, Mapping):
            for name in candidates:
                if name not in self._columns:
                    raise ColumnNotFoundError(f"Column '{name}' not found")
            per_column = candidates
        else:
            candidates = list(candidates)
            per_column = {name: candidates for name in self._columns}
        return self._derive(
            {
                name: series.isin(per_column.get(name, ())).rename(name)
                for name, series in self._columns.items()
            }
        )

    def drop(self, columns: str | Iterable[str]) -> Self:
        """Remove one or more columns."""
        if isinstance(columns, str):
            columns = [columns]
        dropped = set(columns)
        for name in dropped:
            if name not in self._columns:
                raise ColumnNotFoundError(f"Column '{name}' not found")
        return self._derive(
            {n: s for n, s in self._columns.items() if n not in dropped}
        )

    def sort_indices(
        self,
        by: str | Sequence[str],
        ascending: bool | Sequence[bool] = True,
        nulls_last: bool = True,
    ) -> list[int]:
        """The positions of the rows sorted by the ``by`` columns."""
        if isinstance(by, str):
            by = [by]
        return sorting.sort_indices_by(
            [self[name] for name in by], ascending, nulls_last, self.context
        )

    def sort_values(
        self,
        by: str | Sequence[str],
        ascending: bool | Sequence[bool] = True,
        nulls_last: bool = True,
    ) -> Self:
        """Sort the rows by one or more columns.

        >>> df = DataFrame({"dept": [2, 1, 2, 1, 3, 2], "salary": [4, 3, 2, 5, 1, 6]})
        >>> df.sort_values(["dept", "salary"]).index
        (1, 3, 2, 0, 5, 4)

        :param by: The columns to sort by, in order of priority.
        :param ascending: The direction, for all columns or for each of them.
        :param nulls_last: Place nulls after the other values instead of before them.
        """
        return self.take(self.sort_indices(by, ascending, nulls_last))

    def group_by(
        self,
        by: str | Sequence[Any] | Callable[[dict[str, Any], int], Any],
        dropna: bool = True,
        sort: bool = True,
    ) -> DataFrameGroupBy:
        """Group the rows to compute aggregations for each group.

        :param by: A column name, a list of column names, a function
                   computing the key from the row and its position
                   or a key for each row.
        :param dropna: Drop rows whose key is null.
        :param sort: Sort groups by key, otherwise keep them in order of appearance.
        """
        partition = build_partition(self, by, dropna, sort)
        if isinstance(by, str):
            key_columns = [by]
        elif not callable(by) and all(
            isinstance(k, str) and k in self._columns for k in by
        ):
            key_columns = list(by)
        else:
            key_columns = []
        return DataFrameGroupBy(self, partition, key_columns)

    def agg(self, func: AggFunc | str) -> Series:
        """Reduce every column to a single value.

        >>> DataFrame({"a": [1, 2], "b": [3.5, None]}).agg("sum").to_list()
        [3.0, 3.5]
        """
        aggregation = aggregate.make_aggregation(func, DType.FLOAT64)
        values = [
            aggregate.reduce_series(series, aggregation.func)
            for series in self._columns.values()
        ]
        dtype = (
            None
            if aggregation.func in (AggFunc.FIRST, AggFunc.LAST)
            else aggregation.result_dtype
        )
        return Series(
            values,
            name=aggregation.func.value,
            dtype=dtype,
            index=self.columns,
            context=self.context,
        )
