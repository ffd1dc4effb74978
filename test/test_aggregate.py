import math

import pytest

from framepyground.compute.aggregate import (
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
    make_aggregation,
    multi_reduce,
    reduce,
)
from framepyground.compute.base import AggFunc
from framepyground.compute.grouping import build_partition
from framepyground.dataframe import DataFrame, Series
from framepyground.dtypes import DType
from framepyground.errors import (
    ColumnNotFoundError,
    LengthMismatchError,
    UnsupportedAggregationError,
)

TEST_DATA = {
    "city": ["New York", "New York", "Los Angeles", "Los Angeles", "New York"],
    "shop": ["Shop A", "Shop B", "Shop A", "Shop A2", "Shop B"],
    "n_employees": [10, 15, 8, 12, 20],
}


@pytest.mark.parametrize(
    "aggregation,expected",
    [
        (SumAggregation(DType.INT32), 6),
        (MeanAggregation(DType.INT32), 2.0),
        (MinAggregation(DType.INT32), 1),
        (MaxAggregation(DType.INT32), 3),
        (VarAggregation(DType.INT32), 1.0),
        (StdAggregation(DType.INT32), 1.0),
        (CountAggregation(DType.INT32), 3),
        (SizeAggregation(DType.INT32), 4),
        (FirstAggregation(DType.INT32), 1),
        (LastAggregation(DType.INT32), 3),
    ],
)
def test_aggregation_compute(aggregation, expected):
    assert aggregation.compute([1, 2, None, 3]) == pytest.approx(expected)


def test_aggregations_without_values():
    assert SumAggregation(DType.FLOAT64).compute([]) == 0.0
    assert CountAggregation(DType.FLOAT64).compute([math.nan]) == 0
    assert math.isnan(MeanAggregation(DType.FLOAT64).compute([math.nan]))
    assert math.isnan(MinAggregation(DType.INT32).compute([None]))
    assert math.isnan(VarAggregation(DType.INT32).compute([1]))
    assert FirstAggregation(DType.STRING).compute([]) is None


def test_positional_aggregations_keep_nulls():
    assert FirstAggregation(DType.INT32).compute([None, 1]) is None
    assert LastAggregation(DType.INT32).compute([1, None]) is None


def test_aggregation_result_dtype():
    assert SumAggregation(DType.INT32).result_dtype is DType.FLOAT64
    assert CountAggregation(DType.STRING).result_dtype is DType.INT32
    assert FirstAggregation(DType.STRING).result_dtype is DType.STRING
    assert str(MeanAggregation(DType.INT32)) == "MeanAggregation(int32)"


def test_make_aggregation():
    assert isinstance(make_aggregation("sum", DType.INT32), SumAggregation)
    assert isinstance(make_aggregation(AggFunc.LAST, DType.INT32), LastAggregation)
    with pytest.raises(UnsupportedAggregationError):
        make_aggregation("median", DType.INT32)


def test_sum_by_key(context):
    values = Series([1, 2, 3, 4, 5], name="v", context=context)
    result = reduce(values, build_partition(values, [0, 0, 1, 1, 2]), "sum")
    assert result.name == "v_sum"
    assert result.dtype is DType.FLOAT64
    assert result.index == ("0", "1", "2")
    assert result.to_list() == [3.0, 7.0, 5.0]


def test_group_statistics(context):
    values = Series([1.0, 3.0, float("nan"), 2.0, 4.0, 6.0], name="v", context=context)
    partition = build_partition(values, ["a", "a", "a", "b", "b", "b"])
    result = multi_reduce(values, partition, ["count", "mean", "var", "std", "min"])
    assert result[AggFunc.COUNT].to_list() == [2, 3]
    assert result[AggFunc.COUNT].dtype is DType.INT32
    assert result[AggFunc.MEAN].to_list() == [2.0, 4.0]
    assert result[AggFunc.VAR].to_list() == pytest.approx([2.0, 4.0])
    assert result[AggFunc.STD].to_list() == pytest.approx([math.sqrt(2), 2.0])
    assert result[AggFunc.MIN].to_list() == [1.0, 2.0]


def test_group_without_values(context):
    values = Series([1.0, None, None], name="v", context=context)
    partition = build_partition(values, ["a", "b", "b"])
    result = multi_reduce(values, partition, ["sum", "mean", "count", "first"])
    assert result[AggFunc.SUM].to_list() == [1.0, 0.0]
    assert result[AggFunc.COUNT].to_list() == [1, 0]
    mean = result[AggFunc.MEAN].to_list()
    assert mean[0] == 1.0
    assert math.isnan(mean[1])
    assert math.isnan(result[AggFunc.FIRST].to_list()[1])


GROUPED_DATA = [
    ([1.0, None, 3.0, 4.0, None, 6.0], ["a", "a", "b", "b", "c", "a"], "float64"),
    ([2, None, 5, 7], ["x", "y", "x", "x"], "int32"),
    ([None, None], ["a", "b"], "float64"),
    ([], [], "float64"),
    ([7], ["a"], "int32"),
]


@pytest.mark.parametrize("data,keys,dtype", GROUPED_DATA)
def test_sum_is_count_times_mean(context, data, keys, dtype):
    values = Series(data, name="v", dtype=dtype, context=context)
    partition = build_partition(values, keys)
    result = multi_reduce(values, partition, ["sum", "mean", "count"])
    sums = result[AggFunc.SUM].to_list()
    means = result[AggFunc.MEAN].to_list()
    counts = result[AggFunc.COUNT].to_list()
    assert len(sums) == len(means) == len(counts) == len(partition)
    for total, mean, count in zip(sums, means, counts):
        if count == 0:
            assert total == 0.0
            assert math.isnan(mean)
        else:
            assert total == pytest.approx(count * mean)


@pytest.mark.parametrize("data,keys,dtype", GROUPED_DATA)
def test_sum_of_single_row_groups(context, data, keys, dtype):
    values = Series(data, name="v", dtype=dtype, context=context)
    # Zero padded keys sort in the same order as the rows.
    partition = build_partition(values, [f"{i:03d}" for i in range(len(data))])
    assert partition.sizes() == [1] * len(data)
    result = reduce(values, partition, "sum")
    assert result.index == partition.keys
    assert result.to_list() == [0.0 if v is None else float(v) for v in data]


def test_multi_reduce_deduplicates(context):
    values = Series([1, 2], name="v", context=context)
    partition = build_partition(values, ["a", "a"])
    result = multi_reduce(values, partition, ["sum", AggFunc.SUM, "last"])
    assert list(result) == [AggFunc.SUM, AggFunc.LAST]
    assert result[AggFunc.LAST].to_list() == [2]


def test_reduce_partition_mismatch():
    partition = build_partition(Series([1, 2, 3]), ["a", "b", "a"])
    with pytest.raises(LengthMismatchError):
        reduce(Series([1, 2]), partition, "sum")


def test_aggregate_table_single_function(context):
    df = DataFrame(TEST_DATA, context=context)
    result = aggregate_table(
        df, build_partition(df, "city"), "sum", exclude=["city"]
    )
    assert result.columns == ["shop", "n_employees"]
    assert result.index == ("Los Angeles", "New York")
    assert result["n_employees"].to_list() == [20.0, 45.0]


def test_aggregate_table_multiple_keys(context):
    df = DataFrame(TEST_DATA, context=context)
    partition = build_partition(df, ["city", "shop"])
    result = aggregate_table(df, partition, "sum", exclude=["city", "shop"])
    assert result.index == (
        "Los Angeles|Shop A",
        "Los Angeles|Shop A2",
        "New York|Shop A",
        "New York|Shop B",
    )
    assert result.to_dict() == {"n_employees": [8.0, 12.0, 10.0, 35.0]}


def test_aggregate_table_function_list(context):
    df = DataFrame(TEST_DATA, context=context)[["city", "n_employees"]]
    result = aggregate_table(
        df, build_partition(df, "city"), ["min", "max"], exclude=["city"]
    )
    assert result.to_dict() == {
        "n_employees_min": [8.0, 10.0],
        "n_employees_max": [12.0, 20.0],
    }


def test_aggregate_table_mapping(context):
    df = DataFrame(TEST_DATA, context=context)
    result = aggregate_table(
        df,
        build_partition(df, "city"),
        {"n_employees": ["mean", "count"], "shop": "first"},
    )
    assert result.columns == ["n_employees_mean", "n_employees_count", "shop_first"]
    assert result.to_dict() == {
        "n_employees_mean": [10.0, 15.0],
        "n_employees_count": [2, 3],
        "shop_first": ["Shop A", "Shop A"],
    }


def test_aggregate_table_unknown_column():
    df = DataFrame(TEST_DATA)
    with pytest.raises(ColumnNotFoundError):
        aggregate_table(df, build_partition(df, "city"), {"missing": "sum"})


def test_frame_agg(context):
    df = DataFrame({"a": [1, 2, None], "b": [0.5, 1.5, 2.5]}, context=context)
    total = df.agg("sum")
    assert total.name == "sum"
    assert total.index == ("a", "b")
    assert total.to_list() == [3.0, 4.5]

    count = df.agg("count")
    assert count.dtype is DType.INT32
    assert count.to_list() == [2, 3]

    assert DataFrame({"a": [1, 2], "b": [3, 4]}).agg("last").to_list() == [2, 4]
