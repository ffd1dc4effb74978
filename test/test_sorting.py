import pytest

from framepyground.compute.sorting import SortKey, sort_indices, sort_indices_by, sort_values
from framepyground.dataframe import DataFrame, Series
from framepyground.dtypes import is_null
from framepyground.errors import LengthMismatchError, UsageError


def test_sort_ascending(context):
    values = Series([3, 1, 4, 1, 5], context=context)
    assert sort_values(values).to_list() == [1, 1, 3, 4, 5]
    assert sort_indices(values) == [1, 3, 0, 2, 4]


def test_sort_descending(context):
    values = Series([3, 1, 4, 1, 5], context=context)
    assert sort_values(values, ascending=False).to_list() == [5, 4, 3, 1, 1]
    # Equal values keep their relative order in both directions.
    assert sort_indices(values, ascending=False) == [4, 2, 0, 1, 3]


def test_sort_keeps_labels(context):
    values = Series([2.5, 0.5, 1.5], index=["a", "b", "c"], context=context)
    result = values.sort_values()
    assert result.index == ("b", "c", "a")
    assert result.get("a") == 2.5


@pytest.mark.parametrize(
    "ascending,nulls_last,expected",
    [
        (True, True, [1, 3, 0, 2, 4]),
        (True, False, [2, 4, 1, 3, 0]),
        (False, True, [0, 1, 3, 2, 4]),
        (False, False, [2, 4, 0, 1, 3]),
    ],
)
def test_sort_nulls(context, ascending, nulls_last, expected):
    values = Series([3.0, 1.0, None, 1.0, float("nan")], context=context)
    assert sort_indices(values, ascending, nulls_last) == expected


def test_sort_boxed_integers(context):
    values = Series([2, None, 1], context=context)
    assert sort_indices(values) == [2, 0, 1]
    assert sort_indices(values, nulls_last=False) == [1, 2, 0]


def test_sort_strings(context):
    values = Series(["pear", "apple", None, "fig"], context=context)
    assert sort_values(values).to_list() == ["apple", "fig", "pear", None]
    assert sort_indices(values, ascending=False) == [0, 3, 1, 2]


def test_sort_bools(context):
    values = Series([True, False, True], context=context)
    assert sort_indices(values) == [1, 0, 2]


def test_sort_is_a_permutation(context):
    data = [5, 3, None, 9, 3, 1, None, 7, 0, 3]
    values = Series(data, context=context)
    indices = sort_indices(values)
    assert sorted(indices) == list(range(len(data)))
    present = [data[i] for i in indices if data[i] is not None]
    assert present == sorted(present)


@pytest.mark.parametrize(
    "data",
    [[3.0, None, 1.0, 3.0, None], [5, None, 2, 5], ["b", None, "a"], [], [7]],
)
@pytest.mark.parametrize("ascending", [True, False])
def test_sort_twice_changes_nothing(context, data, ascending):
    values = Series(data, context=context)
    once = values.sort_values(ascending=ascending)
    twice = once.sort_values(ascending=ascending)
    assert twice.index == once.index
    assert [None if is_null(v) else v for v in twice] == [
        None if is_null(v) else v for v in once
    ]


def test_sort_empty(context):
    assert sort_indices(Series([], dtype="int32", context=context)) == []


def test_sort_multiple_columns(context):
    dept = Series([2, 1, 2, 1, 3, 2], context=context)
    salary = Series([4, 3, 2, 5, 1, 6], context=context)
    assert sort_indices_by([dept, salary]) == [1, 3, 2, 0, 5, 4]
    assert sort_indices_by([dept, salary], [True, False]) == [3, 1, 5, 0, 2, 4]
    assert sort_indices_by([dept, salary], [False, True]) == [4, 2, 0, 5, 1, 3]


def test_sort_multiple_columns_with_nulls(context):
    first = Series([1, 1, None, 1], context=context)
    second = Series([2.0, None, 0.0, 1.0], context=context)
    assert sort_indices_by([first, second]) == [3, 0, 1, 2]
    assert sort_indices_by([first, second], nulls_last=False) == [2, 1, 3, 0]


def test_sort_mixed_dtypes(context):
    names = Series(["b", "a", "b", "a"], context=context)
    scores = Series([1, 2, 3, 4], context=context)
    assert sort_indices_by([names, scores], [True, False]) == [3, 1, 2, 0]


def test_sort_requires_columns():
    with pytest.raises(UsageError):
        sort_indices_by([])


def test_sort_direction_for_each_column():
    values = Series([1, 2])
    with pytest.raises(UsageError):
        sort_indices_by([values, values], [True])


def test_sort_columns_length_mismatch():
    with pytest.raises(LengthMismatchError):
        sort_indices_by([Series([1, 2]), Series([1])])


def test_sort_key():
    a = SortKey([1, "x"], [True, True], True)
    b = SortKey([1, "y"], [True, True], True)
    assert a < b
    assert not b < a

    null = SortKey([None], [True], True)
    value = SortKey([1], [True], True)
    assert value < null
    assert not null < null


def test_sort_frame(context):
    df = DataFrame(
        {"name": ["d", "b", "a", "c"], "age": [30, 25, 30, 25]}, context=context
    )
    result = df.sort_values(["age", "name"], ascending=[False, True])
    assert result.to_dict() == {"name": ["a", "d", "b", "c"], "age": [30, 30, 25, 25]}
    assert result.index == (2, 0, 1, 3)
    assert df.sort_values("name").index == (2, 1, 3, 0)


def test_sort_frame_unknown_column():
    df = DataFrame({"a": [1]})
    with pytest.raises(KeyError):
        df.sort_values("b")


def test_sort_index():
    values = Series([1, 2, 3], index=[3, 1, 2])
    assert values.sort_index().to_list() == [2, 3, 1]
