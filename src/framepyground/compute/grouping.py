"""Partition rows into groups.

Before data can be aggregated, rows sharing the same key
have to be collected together. Given the data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

grouping by ``city`` leads to the partition::

    "Los Angeles" -> [2, 3]
    "New York"    -> [0, 1, 4]

where each group lists the positions of its rows, in the order
they appear in the data. The aggregation engine can then reduce
the values at those positions to a single value per group.

The keys of the groups are strings: the textual representation
of the key values, joined by ``|`` when grouping by multiple columns.
Groups are sorted by their key unless sorting is disabled,
in which case they are listed in the order they were first met.

>>> from framepyground.dataframe import Series
>>> partition = build_partition(Series([10, 15, 8]), ["b", "a", "b"])
>>> partition.keys
('a', 'b')
>>> partition.groups()
{'a': [1], 'b': [0, 2]}

Rows whose key is null are dropped, unless ``dropna=False``
is provided in which case they are collected in a ``"null"`` group.
When grouping by multiple columns, a null in any of them drops the row.
"""

from typing import Any, Callable, Iterator, Sequence

from ..dtypes import is_null
from ..errors import ColumnNotFoundError, GroupNotFoundError, LengthMismatchError, UsageError

NULL_KEY = "null"
KEY_SEPARATOR = "|"

KeySpec = str | Sequence[Any] | Callable[[Any, int], Any] | None


class GroupPartition:
    """Mapping from group keys to the positions of the rows in each group.

    Apart from the keys and positions, the partition also carries
    a code for every row of the grouped data: the ordinal of the group
    the row belongs to, or ``-1`` when the row was dropped.
    The codes are a fixed width representation of the grouping that
    can be handed over to the accelerated backend as is.
    """

    def __init__(
        self, keys: list[str], positions: list[list[int]], codes: list[int]
    ) -> None:
        """
        :param keys: The key of each group, in output order.
        :param positions: For each group, the positions of its rows.
        :param codes: For each row, the ordinal of its group or -1.
        """
        if len(keys) != len(positions):
            raise LengthMismatchError("Each group must have a list of positions")
        self.keys = tuple(keys)
        self.positions = tuple(tuple(p) for p in positions)
        self.codes = tuple(codes)

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[tuple[str, tuple[int, ...]]]:
        return zip(self.keys, self.positions)

    def __contains__(self, key: str) -> bool:
        return key in self.keys

    def __getitem__(self, key: str) -> tuple[int, ...]:
        try:
            return self.positions[self.keys.index(key)]
        except ValueError:
            raise GroupNotFoundError(f"Group '{key}' not found") from None

    def __repr__(self) -> str:
        return f"GroupPartition(groups={len(self)}, rows={len(self.codes)})"

    @property
    def num_rows(self) -> int:
        """Number of rows of the data that was grouped."""
        return len(self.codes)

    def groups(self) -> dict[str, list[int]]:
        """The partition as a dictionary of positions indexed by key."""
        return {key: list(positions) for key, positions in self}

    def sizes(self) -> list[int]:
        """Number of rows in each group."""
        return [len(positions) for positions in self.positions]


def format_key(value: Any) -> str:
    """Textual representation of a key value.

    Booleans are lowercase like ``null``, and floats
    without a fractional part print as integers,
    so that ``1`` and ``1.0`` fall in the same group.

    >>> format_key(True), format_key(2.0), format_key(2.5), format_key(None)
    ('true', '2', '2.5', 'null')
    """
    if is_null(value):
        return NULL_KEY
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_partition(
    source: Any, by: KeySpec = None, dropna: bool = True, sort: bool = True
) -> GroupPartition:
    """Group the rows of a Series or DataFrame.

    :param source: The :class:`~framepyground.dataframe.Series` or
                   :class:`~framepyground.dataframe.DataFrame` to group.
    :param by: What to group by. A column name or a list of column names
               (DataFrame only), a function invoked with each value (or row
               for DataFrames) and its position that returns the key,
               a sequence of keys as long as the data or ``None`` to group
               a Series by its own index.
    :param dropna: Drop rows with a null key instead of grouping them under ``"null"``.
    :param sort: Sort the groups by key, otherwise keep them in order of appearance.
    """
    row_keys = _row_keys(source, by)

    groups: dict[tuple[str, ...], list[int]] = {}
    row_groups: list[tuple[str, ...] | None] = []
    for position, components in enumerate(row_keys):
        if dropna and any(is_null(c) for c in components):
            row_groups.append(None)
            continue
        # Groups are identified by their components, so that
        # ("a|b", "c") and ("a", "b|c") remain two separate groups
        # even though they share the same textual key.
        identity = tuple(format_key(c) for c in components)
        groups.setdefault(identity, []).append(position)
        row_groups.append(identity)

    identities = list(groups)
    if sort:
        identities.sort(key=KEY_SEPARATOR.join)

    ordinals = {identity: ordinal for ordinal, identity in enumerate(identities)}
    codes = [-1 if identity is None else ordinals[identity] for identity in row_groups]
    return GroupPartition(
        [KEY_SEPARATOR.join(identity) for identity in identities],
        [groups[identity] for identity in identities],
        codes,
    )


def _is_frame(source: Any) -> bool:
    return hasattr(source, "columns")


def _row_keys(source: Any, by: KeySpec) -> list[tuple[Any, ...]]:
    """Compute the key components of each row."""
    num_rows = len(source)
    is_frame = _is_frame(source)

    if by is None:
        if is_frame:
            raise UsageError("DataFrames must be grouped by columns, a function or keys")
        return [(label,) for label in source.index]

    if callable(by):
        rows = source.to_records() if is_frame else source.to_list()
        return [(by(row, position),) for position, row in enumerate(rows)]

    if isinstance(by, str):
        if not is_frame:
            raise UsageError("A Series can only be grouped by its index, a function or keys")
        by = [by]

    keys = list(by)
    if is_frame and _names_columns(source, keys):
        columns = [source[name].to_list() for name in keys]
        return list(zip(*columns)) if columns else [() for _ in range(num_rows)]

    if len(keys) != num_rows:
        raise LengthMismatchError(
            f"Grouping keys length ({len(keys)}) must match data length ({num_rows})"
        )
    return [(key,) for key in keys]


def _names_columns(frame: Any, keys: list[Any]) -> bool:
    """Check if ``keys`` is a list of column names rather than row keys."""
    if not keys or not all(isinstance(k, str) for k in keys):
        return False
    missing = [k for k in keys if k not in frame.columns]
    if not missing:
        return True
    if len(keys) != len(frame):
        raise ColumnNotFoundError(f"Column '{missing[0]}' not found")
    return False
