"""Accelerated backend built on Arrow compute kernels.

The portable implementation of every operation runs as plain
Python code, which is easy to follow but slow on large columns.
The accelerated backend instead runs the same operations through
the native kernels of :mod:`pyarrow.compute`.

Data doesn't flow freely between the two worlds, it crosses the
boundary through a narrow interface:

1. The host registers a column, described as flat Arrow buffers
   (:class:`~framepyground.compute.base.BufferSpec`), and gets back
   an :class:`OwnedHandle`.
2. Operations are invoked passing handles, and return plain values
   or handles to new data living in the backend.
3. Result data is copied back into host owned Python objects
   and every handle is released.

>>> from framepyground.compute.base import BufferSpec
>>> from framepyground.dtypes import DType
>>> backend = ArrowBackend()
>>> with backend.register(BufferSpec.from_values(DType.FLOAT64, [1.0, 2.0, float("nan")])) as handle:
...     backend.reduce(handle, AggFunc.SUM)
3.0
>>> backend.live_handles
0

Handles are integers drawn from a counter that never goes back,
so a released handle can never be confused with a new one.
"""

import contextlib
import itertools
import logging
import math
import threading
from typing import Any, Iterator

import pyarrow as pa
import pyarrow.compute as pc

from ..dtypes import DType
from ..errors import BackendError, HandleReleasedError
from .base import AcceleratedBackend, AggFunc, BufferSpec, Operation

logger = logging.getLogger(__name__)


class OwnedHandle:
    """A handle to data registered in a backend, released exactly once.

    The handle is a context manager, leaving the ``with`` block
    releases the data on the backend whatever the reason
    the block was exited for::

        with backend.register(spec) as handle:
            backend.reduce(handle, AggFunc.SUM)

    Releasing more than once has no effect and trying to use
    the handle after it was released raises
    :class:`~framepyground.errors.HandleReleasedError`.
    """

    def __init__(self, backend: AcceleratedBackend, handle_id: int) -> None:
        """
        :param backend: The backend that owns the data.
        :param handle_id: The identifier of the data in the backend.
        """
        self._backend = backend
        self._id = handle_id
        self._released = False

    @property
    def id(self) -> int:
        """The identifier of the data in the backend."""
        if self._released:
            raise HandleReleasedError(f"Handle {self._id} was already released")
        return self._id

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Free the data on the backend, if not already done."""
        if self._released:
            return
        self._released = True
        self._backend.free(self._id)

    def __enter__(self) -> "OwnedHandle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"OwnedHandle({self._id}, {state})"


class HandleArena:
    """Storage of the data registered in a backend, indexed by handle id."""

    def __init__(self) -> None:
        self._entries: dict[int, pa.Array] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, data: pa.Array) -> int:
        with self._lock:
            handle_id = next(self._ids)
            self._entries[handle_id] = data
        logger.debug("Registered handle %d (%d rows)", handle_id, len(data))
        return handle_id

    def get(self, handle_id: int) -> pa.Array:
        try:
            return self._entries[handle_id]
        except KeyError:
            raise BackendError(f"Unknown handle {handle_id}") from None

    def remove(self, handle_id: int) -> None:
        with self._lock:
            if self._entries.pop(handle_id, None) is None:
                raise BackendError(f"Unknown handle {handle_id}")
        logger.debug("Released handle %d", handle_id)

    def __len__(self) -> int:
        return len(self._entries)


@contextlib.contextmanager
def native_errors(operation: str) -> Iterator[None]:
    """Convert failures of the Arrow kernels into BackendError."""
    try:
        yield
    except (pa.ArrowException, TypeError, ValueError, OverflowError, MemoryError) as e:
        raise BackendError(f"{operation} failed: {e}") from e


class ArrowBackend(AcceleratedBackend):
    """Run operations with :mod:`pyarrow.compute` kernels.

    Float columns represent nulls with ``NaN`` on the host side,
    while Arrow kernels expect proper nulls, so ``NaN`` values are
    converted to nulls when a float column is registered.
    """

    SUPPORTED_DTYPES = {
        Operation.REDUCE: frozenset((DType.INT32, DType.FLOAT64)),
        Operation.GROUP_REDUCE: frozenset((DType.INT32, DType.FLOAT64)),
        Operation.SORT: frozenset((DType.INT32, DType.FLOAT64)),
        Operation.FILTER: frozenset((DType.INT32, DType.FLOAT64)),
        Operation.ISIN: frozenset((DType.INT32, DType.FLOAT64, DType.STRING)),
    }

    # aggregation -> (arrow hash function, options)
    HASH_AGGREGATIONS = {
        AggFunc.SUM: ("sum", pc.ScalarAggregateOptions(skip_nulls=True, min_count=0)),
        AggFunc.MEAN: ("mean", pc.ScalarAggregateOptions(skip_nulls=True)),
        AggFunc.COUNT: ("count", pc.CountOptions(mode="only_valid")),
        AggFunc.MIN: ("min", pc.ScalarAggregateOptions(skip_nulls=True)),
        AggFunc.MAX: ("max", pc.ScalarAggregateOptions(skip_nulls=True)),
        AggFunc.STD: ("stddev", pc.VarianceOptions(ddof=1)),
        AggFunc.VAR: ("variance", pc.VarianceOptions(ddof=1)),
    }

    def __init__(self) -> None:
        self._arena = HandleArena()

    @property
    def live_handles(self) -> int:
        """How many handles are currently registered."""
        return len(self._arena)

    def supports(self, operation: Operation, dtype: DType) -> bool:
        return dtype in self.SUPPORTED_DTYPES.get(operation, ())

    def register(self, spec: BufferSpec) -> OwnedHandle:
        if spec.dtype.arrow_type is None:
            raise BackendError(f"Can't register {spec.dtype.value} data")
        with native_errors("register"):
            data = pa.Array.from_buffers(
                spec.dtype.arrow_type, spec.length, spec.buffers, offset=spec.offset
            )
            if spec.dtype is DType.FLOAT64:
                data = pc.if_else(
                    pc.is_nan(data), pa.scalar(None, type=pa.float64()), data
                )
        return OwnedHandle(self, self._arena.add(data))

    def free(self, handle_id: int) -> None:
        self._arena.remove(handle_id)

    def read(self, handle: OwnedHandle) -> list[Any]:
        return self._arena.get(handle.id).to_pylist()

    def reduce(self, handle: OwnedHandle, func: AggFunc) -> Any:
        data = self._arena.get(handle.id)
        with native_errors(f"reduce({func.value})"):
            if func is AggFunc.SUM:
                result = pc.sum(data, min_count=0)
            elif func is AggFunc.MEAN:
                result = pc.mean(data)
            elif func is AggFunc.COUNT:
                result = pc.count(data, mode="only_valid")
            elif func is AggFunc.MIN:
                result = pc.min(data)
            elif func is AggFunc.MAX:
                result = pc.max(data)
            elif func is AggFunc.STD:
                result = pc.stddev(data, ddof=1)
            elif func is AggFunc.VAR:
                result = pc.variance(data, ddof=1)
            else:
                raise BackendError(f"Reduction {func.value} is not supported")
            value = result.as_py()
        if value is None:
            return math.nan
        return value

    def group_reduce(
        self,
        values: OwnedHandle,
        codes: OwnedHandle,
        num_groups: int,
        funcs: list[AggFunc],
    ) -> dict[AggFunc, OwnedHandle]:
        unsupported = [f.value for f in funcs if f not in self.HASH_AGGREGATIONS]
        if unsupported:
            raise BackendError(f"Group reductions {unsupported} are not supported")

        data = self._arena.get(values.id)
        group_codes = self._arena.get(codes.id)
        with native_errors("group_reduce"):
            table = pa.table({"code": group_codes, "value": data})
            table = table.filter(pc.greater_equal(table["code"], 0))
            grouped = table.group_by("code", use_threads=False).aggregate(
                [("value", *self.HASH_AGGREGATIONS[func]) for func in funcs]
            )
            # Hash aggregation emits groups in encounter order,
            # so results must be moved back to their group ordinal.
            ordinals = grouped["code"].to_pylist()
            per_func = {}
            for func in funcs:
                function_name = self.HASH_AGGREGATIONS[func][0]
                if func is AggFunc.COUNT:
                    results: list[Any] = [0] * num_groups
                    result_type = pa.int64()
                else:
                    results = [None] * num_groups
                    result_type = pa.float64()
                for ordinal, value in zip(
                    ordinals, grouped[f"value_{function_name}"].to_pylist()
                ):
                    results[ordinal] = value
                per_func[func] = pa.array(results, type=result_type)

        # Handles registered so far must not outlive a failure.
        with contextlib.ExitStack() as stack:
            handles = {}
            for func, result in per_func.items():
                handle = OwnedHandle(self, self._arena.add(result))
                stack.callback(handle.release)
                handles[func] = handle
            stack.pop_all()
        return handles

    def sort_indices(
        self, keys: list[OwnedHandle], ascending: list[bool], nulls_last: bool
    ) -> list[int]:
        if len(keys) != len(ascending):
            raise BackendError("Sort keys and directions must have the same length")
        columns = {f"key{idx}": self._arena.get(h.id) for idx, h in enumerate(keys)}
        with native_errors("sort_indices"):
            indices = pc.sort_indices(
                pa.table(columns),
                sort_keys=[
                    (name, "ascending" if asc else "descending")
                    for name, asc in zip(columns, ascending)
                ],
                null_placement="at_end" if nulls_last else "at_start",
            )
            return indices.to_pylist()

    def isin(
        self,
        values: OwnedHandle,
        candidates: OwnedHandle,
        tolerance: float | None,
        match_nulls: bool,
    ) -> list[bool]:
        data = self._arena.get(values.id)
        value_set = self._arena.get(candidates.id).drop_null()
        with native_errors("isin"):
            exact = tolerance is None or (
                pa.types.is_integer(data.type)
                and pa.types.is_integer(value_set.type)
                and tolerance < 1
            )
            if exact:
                mask = pc.is_in(data, value_set=value_set, skip_nulls=True)
            else:
                as_float = data.cast(pa.float64())
                mask = pa.array([False] * len(data), type=pa.bool_())
                for candidate in value_set.cast(pa.float64()).to_pylist():
                    distance = pc.abs(pc.subtract(as_float, candidate))
                    # Infinities are only equal to themselves, their distance is NaN.
                    close = pc.or_(
                        pc.equal(as_float, candidate),
                        pc.less_equal(distance, tolerance),
                    )
                    mask = pc.or_(mask, close)
            mask = pc.fill_null(mask, False)
            if match_nulls:
                mask = pc.or_(mask, pc.is_null(data))
            return mask.to_pylist()

    def filter(self, values: OwnedHandle, mask: OwnedHandle) -> OwnedHandle:
        data = self._arena.get(values.id)
        selection = self._arena.get(mask.id)
        with native_errors("filter"):
            if len(selection) != len(data):
                raise ValueError("mask and data have different lengths")
            result = pc.filter(data, selection, null_selection_behavior="drop")
        return OwnedHandle(self, self._arena.add(result))
