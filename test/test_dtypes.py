import datetime
import math

import pyarrow as pa
import pytest

from framepyground.dtypes import (
    DType,
    coerce_value,
    dtype_from_arrow,
    infer_arrow_dtype,
    infer_dtype,
    is_null,
)
from framepyground.errors import ConstructionError, DTypeConversionError


@pytest.mark.parametrize(
    "values,expected",
    [
        ([1, 2, 3], DType.INT32),
        ([1, None, 3], DType.INT32),
        ([1.5, float("nan")], DType.FLOAT64),
        ([2**40], DType.FLOAT64),
        (["a", None], DType.STRING),
        ([True, False], DType.BOOL),
        ([datetime.datetime(2024, 1, 1), datetime.date(2024, 1, 2)], DType.DATETIME),
        ([1, "a"], DType.STRING),
        ([1, 1.5], DType.STRING),
        ([True, 1], DType.STRING),
        ([], DType.STRING),
        ([None, float("nan")], DType.STRING),
        ([object()], DType.STRING),
    ],
)
def test_infer_dtype(values, expected):
    assert infer_dtype(values) is expected


def test_parse_dtype():
    assert DType.parse("INT32") is DType.INT32
    assert DType.parse(DType.BOOL) is DType.BOOL
    assert DType.parse("decimal") is DType.STRING


def test_is_null():
    assert is_null(None)
    assert is_null(float("nan"))
    assert not is_null(0)
    assert not is_null("")
    assert not is_null(False)


@pytest.mark.parametrize(
    "arrow_type,expected",
    [
        (pa.int64(), DType.INT32),
        (pa.int8(), DType.INT32),
        (pa.float32(), DType.FLOAT64),
        (pa.bool_(), DType.BOOL),
        (pa.timestamp("ms"), DType.DATETIME),
        (pa.date32(), DType.DATETIME),
        (pa.large_string(), DType.STRING),
    ],
)
def test_dtype_from_arrow(arrow_type, expected):
    assert dtype_from_arrow(arrow_type) is expected


@pytest.mark.parametrize(
    "array,expected",
    [
        (pa.array([1, 2], type=pa.int64()), DType.INT32),
        (pa.array([2**40, None], type=pa.int64()), DType.FLOAT64),
        (pa.array([-(2**31) - 1], type=pa.int64()), DType.FLOAT64),
        (pa.array([2**32 - 1], type=pa.uint32()), DType.FLOAT64),
        (pa.array([255], type=pa.uint8()), DType.INT32),
        (pa.array([], type=pa.int64()), DType.INT32),
        (pa.array([None, None], type=pa.int64()), DType.INT32),
        (pa.array([2.5], type=pa.float32()), DType.FLOAT64),
    ],
)
def test_infer_arrow_dtype(array, expected):
    assert infer_arrow_dtype(array) is expected


def test_coerce_nulls():
    assert math.isnan(coerce_value(None, DType.FLOAT64))
    assert coerce_value(float("nan"), DType.INT32) is None
    assert coerce_value(None, DType.STRING) is None


def test_coerce_values():
    assert coerce_value("3", DType.INT32) == 3
    assert coerce_value(2, DType.FLOAT64) == 2.0
    assert coerce_value(5, DType.STRING) == "5"
    assert coerce_value("yes", DType.BOOL) is True
    assert coerce_value("0", DType.BOOL) is False
    assert coerce_value("2024-01-02", DType.DATETIME) == datetime.datetime(2024, 1, 2)
    assert coerce_value(datetime.date(2024, 1, 2), DType.DATETIME) == datetime.datetime(
        2024, 1, 2
    )
    assert coerce_value(86400000, DType.DATETIME) == datetime.datetime(1970, 1, 2)


@pytest.mark.parametrize(
    "value,dtype",
    [
        ("x", DType.INT32),
        (2**31, DType.INT32),
        ("maybe", DType.BOOL),
        ("not a date", DType.DATETIME),
        ([1], DType.DATETIME),
    ],
)
def test_coerce_invalid(value, dtype):
    with pytest.raises(DTypeConversionError):
        coerce_value(value, dtype)


def test_conversion_error_is_construction_error():
    with pytest.raises(ConstructionError):
        coerce_value("x", DType.FLOAT64)
