"""Selection of rows based on masks and membership tests.

Filtering keeps only the values of a Series for which
a boolean mask is true::

    >>> from framepyground.dataframe import Series
    >>> filter_values(Series([1, 2, 3, 4, 5]), [0, 1, 0, 1, 0]).to_list()
    [2, 4]

The mask is usually computed by a membership test,
which checks which values are part of a set of candidates::

    >>> isin(Series([1.0, 2.5, 3.0], name="x"), [3, 1]).to_list()
    [True, False, True]

Numeric values are compared with an absolute tolerance,
so that values that only differ by rounding errors
are still considered equal.
"""

import bisect
import datetime
from typing import Any, Iterable

from ..dtypes import INT32_MAX, INT32_MIN, DType, is_null
from ..errors import LengthMismatchError
from .base import AcceleratedBackend, Operation
from .dispatch import ExecutionContext, register_storage, register_values

__all__ = ("filter_values", "isin", "mask_positions")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def mask_positions(mask: Iterable[Any], length: int) -> list[bool]:
    """Convert a mask to a list of booleans of ``length`` elements.

    Null elements of the mask are considered false.

    >>> mask_positions([1, None, True, 0], 4)
    [True, False, True, False]
    """
    keep = [not is_null(m) and bool(m) for m in mask]
    if len(keep) != length:
        raise LengthMismatchError(
            f"Mask length ({len(keep)}) must match data length ({length})"
        )
    return keep


def filter_values(
    column: Any, mask: Iterable[Any], context: ExecutionContext | None = None
) -> Any:
    """Keep the values of a Series where ``mask`` is true.

    The index labels of the kept values are preserved.

    :param column: The Series to filter.
    :param mask: The mask, a Series or any sequence as long as ``column``.
    :param context: Where to run the filtering, by default the context of the Series.
    """
    context = context if context is not None else column.context
    keep = mask_positions(mask, len(column))

    def accelerated(backend: AcceleratedBackend) -> list[Any]:
        with (
            register_storage(backend, column.dtype, column.storage) as values,
            register_values(backend, DType.BOOL, keep) as selection,
        ):
            with backend.filter(values, selection) as result:
                return backend.read(result)

    def portable() -> list[Any]:
        return [v for v, k in zip(column.to_list(), keep) if k]

    values = context.run(
        Operation.FILTER, [column.dtype], len(column), accelerated, portable
    )
    return column.__class__(
        values,
        name=column.name,
        dtype=column.dtype,
        index=[label for label, k in zip(column.index, keep) if k],
        context=context,
    )


def isin(
    column: Any,
    candidates: Iterable[Any],
    tolerance: float | None = None,
    context: ExecutionContext | None = None,
) -> Any:
    """Check which values of a Series are among ``candidates``.

    The result is a boolean Series named ``<name>_isin``
    with the same index as ``column``.

    Numeric values are members when they differ from a
    numeric candidate by at most ``tolerance``, other
    values must be exactly equal to a candidate of the same kind.
    Nulls are members only when a null is among the candidates.

    :param column: The Series whose values should be tested.
    :param candidates: The values to look for.
    :param tolerance: Absolute tolerance for numeric values, by default
                      the ``isin_tolerance`` of the execution configuration.
    :param context: Where to run the test, by default the context of the Series.
    """
    context = context if context is not None else column.context
    if tolerance is None:
        tolerance = context.config.isin_tolerance

    candidates = list(candidates)
    match_nulls = any(is_null(c) for c in candidates)
    accepted = [
        c for c in candidates if not is_null(c) and _compatible(c, column.dtype)
    ]

    if column.dtype.is_numeric:
        mask = _numeric_isin(column, accepted, tolerance, match_nulls, context)
    else:
        mask = _exact_isin(column, accepted, match_nulls, context)

    return column.__class__(
        mask,
        name=f"{column.name}_isin",
        dtype=DType.BOOL,
        index=column.index,
        context=context,
    )


def _compatible(candidate: Any, dtype: DType) -> bool:
    """Check if a candidate could ever be equal to values of ``dtype``."""
    if dtype.is_numeric:
        return _is_number(candidate)
    if dtype is DType.STRING:
        return isinstance(candidate, str)
    if dtype is DType.BOOL:
        return isinstance(candidate, bool)
    return isinstance(candidate, (datetime.datetime, datetime.date))


def _numeric_isin(
    column: Any,
    candidates: list[int | float],
    tolerance: float,
    match_nulls: bool,
    context: ExecutionContext,
) -> list[bool]:
    integral = all(
        isinstance(c, int) and INT32_MIN <= c <= INT32_MAX for c in candidates
    )
    candidates_dtype = (
        DType.INT32 if column.dtype is DType.INT32 and integral else DType.FLOAT64
    )

    def accelerated(backend: AcceleratedBackend) -> list[bool]:
        with (
            register_storage(backend, column.dtype, column.storage) as values,
            register_values(backend, candidates_dtype, candidates) as value_set,
        ):
            return backend.isin(values, value_set, tolerance, match_nulls)

    def portable() -> list[bool]:
        # Only the closest candidates on each side of a value
        # can be within tolerance if any candidate is.
        ordered = sorted(candidates)
        mask = []
        for value in column.to_list():
            if is_null(value):
                mask.append(match_nulls)
                continue
            at = bisect.bisect_left(ordered, value)
            closest = ordered[max(at - 1, 0) : at + 1]
            mask.append(
                any(value == c or abs(value - c) <= tolerance for c in closest)
            )
        return mask

    return context.run(
        Operation.ISIN,
        [column.dtype, candidates_dtype],
        len(column),
        accelerated,
        portable,
    )


def _exact_isin(
    column: Any, candidates: list[Any], match_nulls: bool, context: ExecutionContext
) -> list[bool]:
    def accelerated(backend: AcceleratedBackend) -> list[bool]:
        with (
            register_storage(backend, column.dtype, column.storage) as values,
            register_values(backend, column.dtype, candidates) as value_set,
        ):
            return backend.isin(values, value_set, None, match_nulls)

    def portable() -> list[bool]:
        value_set = set(candidates)
        return [
            match_nulls if is_null(value) else value in value_set
            for value in column.to_list()
        ]

    return context.run(
        Operation.ISIN, [column.dtype], len(column), accelerated, portable
    )
