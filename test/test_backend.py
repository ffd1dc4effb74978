import math

import pyarrow as pa
import pytest

from framepyground.compute.backend import ArrowBackend, HandleArena, OwnedHandle
from framepyground.compute.base import AggFunc, BufferSpec, Operation
from framepyground.dtypes import DType
from framepyground.errors import BackendError, HandleReleasedError


@pytest.fixture
def backend():
    return ArrowBackend()


def register(backend, dtype, values):
    return backend.register(BufferSpec.from_values(dtype, values))


def test_register_and_read(backend):
    with register(backend, DType.INT32, [1, None, 3]) as handle:
        assert backend.live_handles == 1
        assert backend.read(handle) == [1, None, 3]
    assert backend.live_handles == 0


def test_register_float_nan_becomes_null(backend):
    with register(backend, DType.FLOAT64, [1.0, float("nan"), 3.0]) as handle:
        assert backend.read(handle) == [1.0, None, 3.0]


def test_register_sliced_array(backend):
    array = pa.array([1, 2, 3, 4], type=pa.int32()).slice(1, 2)
    with backend.register(BufferSpec.from_arrow(DType.INT32, array)) as handle:
        assert backend.read(handle) == [2, 3]


def test_register_unsupported_dtype(backend):
    spec = BufferSpec(DType.DATETIME, 0, [])
    with pytest.raises(BackendError):
        backend.register(spec)


def test_handle_release_once(backend):
    handle = register(backend, DType.INT32, [1])
    handle.release()
    handle.release()
    assert handle.released
    assert backend.live_handles == 0
    with pytest.raises(HandleReleasedError):
        handle.id


def test_handle_released_on_error(backend):
    with pytest.raises(RuntimeError):
        with register(backend, DType.INT32, [1]):
            raise RuntimeError("failure")
    assert backend.live_handles == 0


def test_handle_ids_are_never_reused(backend):
    first = register(backend, DType.INT32, [1])
    first_id = first.id
    first.release()
    with register(backend, DType.INT32, [1]) as second:
        assert second.id > first_id


def test_released_handle_is_unusable(backend):
    handle = register(backend, DType.INT32, [1, 2])
    handle.release()
    with pytest.raises(HandleReleasedError):
        backend.reduce(handle, AggFunc.SUM)


def test_handle_repr(backend):
    handle = register(backend, DType.INT32, [1])
    handle_id = handle.id
    assert repr(handle) == f"OwnedHandle({handle_id}, live)"
    handle.release()
    assert repr(handle) == f"OwnedHandle({handle_id}, released)"


def test_arena_unknown_handle():
    arena = HandleArena()
    with pytest.raises(BackendError):
        arena.get(42)
    with pytest.raises(BackendError):
        arena.remove(42)


def test_free_unknown_handle(backend):
    with pytest.raises(BackendError):
        OwnedHandle(backend, 1000).release()


def test_supports(backend):
    assert backend.supports(Operation.SORT, DType.FLOAT64)
    assert backend.supports(Operation.ISIN, DType.STRING)
    assert not backend.supports(Operation.SORT, DType.STRING)
    assert not backend.supports(Operation.REDUCE, DType.BOOL)
    assert not backend.supports(Operation.FILTER, DType.DATETIME)


@pytest.mark.parametrize(
    "func,expected",
    [
        (AggFunc.SUM, 6),
        (AggFunc.MEAN, 2.0),
        (AggFunc.COUNT, 3),
        (AggFunc.MIN, 1),
        (AggFunc.MAX, 3),
        (AggFunc.VAR, 1.0),
        (AggFunc.STD, 1.0),
    ],
)
def test_reduce(backend, func, expected):
    with register(backend, DType.INT32, [1, 2, None, 3]) as handle:
        assert backend.reduce(handle, func) == pytest.approx(expected)


def test_reduce_empty(backend):
    with register(backend, DType.FLOAT64, []) as handle:
        assert backend.reduce(handle, AggFunc.SUM) == 0
        assert backend.reduce(handle, AggFunc.COUNT) == 0
        assert math.isnan(backend.reduce(handle, AggFunc.MEAN))
        assert math.isnan(backend.reduce(handle, AggFunc.MIN))


def test_reduce_positional_not_supported(backend):
    with register(backend, DType.INT32, [1]) as handle:
        with pytest.raises(BackendError):
            backend.reduce(handle, AggFunc.FIRST)


def test_group_reduce(backend):
    with (
        register(backend, DType.FLOAT64, [1.0, 2.0, 3.0, float("nan"), 5.0]) as values,
        register(backend, DType.INT32, [0, 0, 1, 1, -1]) as codes,
    ):
        handles = backend.group_reduce(
            values, codes, 2, [AggFunc.SUM, AggFunc.COUNT, AggFunc.MEAN]
        )
        assert backend.read(handles[AggFunc.SUM]) == [3.0, 3.0]
        assert backend.read(handles[AggFunc.COUNT]) == [2, 1]
        assert backend.read(handles[AggFunc.MEAN]) == [1.5, 3.0]
        for handle in handles.values():
            handle.release()
    assert backend.live_handles == 0


def test_group_reduce_results_follow_group_ordinals(backend):
    with (
        register(backend, DType.INT32, [10, 20, 30]) as values,
        register(backend, DType.INT32, [2, 1, 0]) as codes,
    ):
        handles = backend.group_reduce(values, codes, 3, [AggFunc.MAX])
        with handles[AggFunc.MAX] as result:
            assert backend.read(result) == [30.0, 20.0, 10.0]


def test_group_reduce_unsupported(backend):
    with (
        register(backend, DType.INT32, [1]) as values,
        register(backend, DType.INT32, [0]) as codes,
    ):
        with pytest.raises(BackendError):
            backend.group_reduce(values, codes, 1, [AggFunc.LAST])
    assert backend.live_handles == 0


@pytest.mark.parametrize(
    "nulls_last,expected", [(True, [1, 3, 0, 2]), (False, [2, 1, 3, 0])]
)
def test_sort_indices(backend, nulls_last, expected):
    with register(backend, DType.FLOAT64, [3.0, 1.0, float("nan"), 1.0]) as keys:
        assert backend.sort_indices([keys], [True], nulls_last) == expected


def test_sort_indices_multiple_keys(backend):
    with (
        register(backend, DType.INT32, [2, 1, 2, 1, 3, 2]) as dept,
        register(backend, DType.INT32, [4, 3, 2, 5, 1, 6]) as salary,
    ):
        assert backend.sort_indices([dept, salary], [True, True], True) == [
            1,
            3,
            2,
            0,
            5,
            4,
        ]
        assert backend.sort_indices([dept, salary], [False, True], True) == [
            4,
            2,
            0,
            5,
            1,
            3,
        ]


def test_sort_indices_mismatched_directions(backend):
    with register(backend, DType.INT32, [1]) as keys:
        with pytest.raises(BackendError):
            backend.sort_indices([keys], [True, False], True)


def test_isin_exact(backend):
    with (
        register(backend, DType.STRING, ["a", "b", None]) as values,
        register(backend, DType.STRING, ["b"]) as candidates,
    ):
        assert backend.isin(values, candidates, None, False) == [False, True, False]
        assert backend.isin(values, candidates, None, True) == [False, True, True]


def test_isin_tolerance(backend):
    with (
        register(backend, DType.FLOAT64, [1.0, 1.05, 2.0, float("nan")]) as values,
        register(backend, DType.FLOAT64, [1.0]) as candidates,
    ):
        assert backend.isin(values, candidates, 0.1, False) == [True, True, False, False]
        assert backend.isin(values, candidates, 1e-9, False) == [
            True,
            False,
            False,
            False,
        ]


def test_filter(backend):
    with (
        register(backend, DType.INT32, [1, 2, 3]) as values,
        register(backend, DType.BOOL, [True, False, True]) as mask,
    ):
        with backend.filter(values, mask) as result:
            assert backend.read(result) == [1, 3]
    assert backend.live_handles == 0


def test_filter_length_mismatch(backend):
    with (
        register(backend, DType.INT32, [1, 2, 3]) as values,
        register(backend, DType.BOOL, [True]) as mask,
    ):
        with pytest.raises(BackendError):
            backend.filter(values, mask)
