"""Data types supported by Series and DataFrame columns.

Every :class:`~framepyground.dataframe.Series` has exactly one
:class:`DType`, decided when the Series is created and never changed.
The set of dtypes is closed, so code that needs to behave differently
for each dtype can match on the enum members and be sure to cover
every case.

When a dtype is not provided, it is inferred from the values:

>>> infer_dtype([1, 2, None])
<DType.INT32: 'int32'>
>>> infer_dtype([1.5, float("nan")])
<DType.FLOAT64: 'float64'>
>>> infer_dtype([1, "a"])
<DType.STRING: 'string'>

Nulls (``None`` and float ``NaN``) are skipped during inference,
and any disagreement between the remaining values collapses
the whole column to :attr:`DType.STRING`.
"""

import datetime
import enum
import logging
import math
from typing import Any, Iterable

import pyarrow as pa
import pyarrow.compute as pc
import pyarrow.types as patypes

from .errors import DTypeConversionError

logger = logging.getLogger(__name__)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

_EPOCH = datetime.datetime(1970, 1, 1)


class DType(enum.Enum):
    """Element type of a column."""

    INT32 = "int32"
    FLOAT64 = "float64"
    STRING = "string"
    BOOL = "bool"
    DATETIME = "datetime"

    @classmethod
    def parse(cls, value: "DType | str") -> "DType":
        """Resolve a dtype from its name.

        Unknown names resolve to :attr:`STRING` instead of failing,
        so that data coming from loosely typed sources can still
        be loaded.

        >>> DType.parse("float64")
        <DType.FLOAT64: 'float64'>
        >>> DType.parse("decimal")
        <DType.STRING: 'string'>
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.debug("Unknown dtype %r, falling back to string", value)
            return cls.STRING

    @property
    def is_numeric(self) -> bool:
        return self in (DType.INT32, DType.FLOAT64)

    @property
    def arrow_type(self) -> pa.DataType | None:
        """The Arrow type used for dense storage.

        ``None`` for :attr:`DATETIME`, where the timestamp unit
        and timezone are taken from the values themselves.
        """
        return _ARROW_TYPES[self]


def is_null(value: Any) -> bool:
    """Check if a value represents a missing element.

    >>> is_null(None), is_null(float("nan")), is_null(0)
    (True, True, False)
    """
    return value is None or (isinstance(value, float) and math.isnan(value))


def infer_value_dtype(value: Any) -> DType:
    """Infer the dtype of a single non-null value."""
    # bool must be checked first as it's a subclass of int.
    if isinstance(value, bool):
        return DType.BOOL
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return DType.INT32
        return DType.FLOAT64
    if isinstance(value, float):
        return DType.FLOAT64
    if isinstance(value, str):
        return DType.STRING
    if isinstance(value, (datetime.datetime, datetime.date)):
        return DType.DATETIME
    return DType.STRING


def infer_dtype(values: Iterable[Any]) -> DType:
    """Infer the dtype of a whole column."""
    inferred = None
    for value in values:
        if is_null(value):
            continue
        value_dtype = infer_value_dtype(value)
        if inferred is None:
            inferred = value_dtype
        elif value_dtype is not inferred:
            return DType.STRING
    return inferred or DType.STRING


def dtype_from_arrow(arrow_type: pa.DataType) -> DType:
    """Map an Arrow type to the closest dtype."""
    if patypes.is_boolean(arrow_type):
        return DType.BOOL
    if patypes.is_integer(arrow_type):
        return DType.INT32
    if patypes.is_floating(arrow_type) or patypes.is_decimal(arrow_type):
        return DType.FLOAT64
    if patypes.is_timestamp(arrow_type) or patypes.is_date(arrow_type):
        return DType.DATETIME
    return DType.STRING


def infer_arrow_dtype(array: pa.Array) -> DType:
    """Infer the dtype of the values of an Arrow array.

    Like :func:`infer_dtype`, integers that don't fit
    in 32 bits make the whole column :attr:`DType.FLOAT64`.

    >>> infer_arrow_dtype(pa.array([1, 2], type=pa.int64()))
    <DType.INT32: 'int32'>
    >>> infer_arrow_dtype(pa.array([2**40], type=pa.int64()))
    <DType.FLOAT64: 'float64'>
    """
    dtype = dtype_from_arrow(array.type)
    if dtype is DType.INT32 and array.type.bit_width >= 32:
        bounds = pc.min_max(array).as_py()
        if bounds["min"] is not None and (
            bounds["min"] < INT32_MIN or bounds["max"] > INT32_MAX
        ):
            return DType.FLOAT64
    return dtype


def coerce_value(value: Any, dtype: DType) -> Any:
    """Convert a value so that it can be stored in a column of ``dtype``.

    Nulls are returned as ``None``, except for :attr:`DType.FLOAT64`
    where they are represented by ``NaN``.

    >>> coerce_value("3", DType.INT32)
    3
    >>> coerce_value(None, DType.FLOAT64)
    nan
    """
    if is_null(value):
        return math.nan if dtype is DType.FLOAT64 else None

    try:
        return _COERCERS[dtype](value)
    except (TypeError, ValueError, OverflowError) as e:
        raise DTypeConversionError(
            f"Value {value!r} can't be stored as {dtype.value}: {e}"
        ) from e


def _coerce_int32(value: Any) -> int:
    converted = int(value)
    if not INT32_MIN <= converted <= INT32_MAX:
        raise OverflowError(f"{converted} doesn't fit in 32 bits")
    return converted


def _coerce_string(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
        raise ValueError("not a boolean literal")
    return bool(value)


def _coerce_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Numbers are milliseconds since the epoch.
        return _EPOCH + datetime.timedelta(milliseconds=value)
    raise TypeError(f"unsupported type {type(value).__name__}")


_ARROW_TYPES = {
    DType.INT32: pa.int32(),
    DType.FLOAT64: pa.float64(),
    DType.STRING: pa.string(),
    DType.BOOL: pa.bool_(),
    DType.DATETIME: None,
}

_COERCERS = {
    DType.INT32: _coerce_int32,
    DType.FLOAT64: float,
    DType.STRING: _coerce_string,
    DType.BOOL: _coerce_bool,
    DType.DATETIME: _coerce_datetime,
}
