"""Choose between the accelerated backend and the portable implementation.

Every operation that can be accelerated is implemented twice:
once for the :class:`~framepyground.compute.base.AcceleratedBackend`
and once in plain Python. The :class:`ExecutionContext` decides,
for each call, which of the two should run::

    context.run(
        Operation.SORT, [column.dtype], len(column),
        accelerated=lambda backend: ...,
        portable=lambda: ...,
    )

The accelerated implementation is only tried when the backend
declares to support the operation on the involved dtypes and the
data is big enough to be worth it. If the backend then fails,
the failure is logged and the portable implementation runs instead:
callers always get a result, and never see backend errors.

Contexts are plain values, multiple contexts with different
configurations or backends can coexist in the same process.
Each :class:`~framepyground.dataframe.Series` carries the context
it was created with, and propagates it to the Series derived from it.
"""

import logging
from typing import Any, Callable, Iterable, NamedTuple, TypeVar

import pyarrow as pa

from ..config import ExecutionConfig
from ..dtypes import DType
from ..errors import BackendError
from .backend import ArrowBackend, OwnedHandle
from .base import AcceleratedBackend, BufferSpec, Operation

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_BACKEND = object()


class Outcome(NamedTuple):
    """Result of an attempt to run an operation on the accelerated backend."""

    ok: bool
    value: Any = None


FAILED = Outcome(False)


class ExecutionContext:
    """Owns the accelerated backend and decides when to use it.

    >>> context = ExecutionContext.portable()
    >>> context.can_accelerate(Operation.SORT, [DType.FLOAT64], 10)
    False
    """

    def __init__(
        self,
        config: ExecutionConfig | None = None,
        backend: AcceleratedBackend | None | object = _DEFAULT_BACKEND,
    ) -> None:
        """
        :param config: How operations should be executed,
                       when omitted it's read from environment variables.
        :param backend: The accelerated backend, by default an
                        :class:`~framepyground.compute.backend.ArrowBackend`.
                        ``None`` means that only the portable implementation is available.
        """
        self.config = config if config is not None else ExecutionConfig.from_env()
        if backend is _DEFAULT_BACKEND:
            backend = ArrowBackend()
        self.backend: AcceleratedBackend | None = backend

    @classmethod
    def portable(cls) -> "ExecutionContext":
        """A context that never uses an accelerated backend."""
        return cls(ExecutionConfig(accelerated=False), backend=None)

    def __repr__(self) -> str:
        backend = type(self.backend).__name__ if self.backend is not None else None
        return f"ExecutionContext(backend={backend}, accelerated={self.config.accelerated})"

    def can_accelerate(
        self, operation: Operation, dtypes: Iterable[DType], length: int
    ) -> bool:
        """Check if ``operation`` should be attempted on the backend."""
        if not self.config.accelerated or self.backend is None:
            return False
        if length < self.config.min_accelerated_rows:
            return False
        for dtype in dtypes:
            if not self.backend.supports(operation, dtype):
                logger.debug(
                    "Backend doesn't support %s on %s data", operation.value, dtype.value
                )
                return False
        return True

    def attempt(
        self, operation: Operation, accelerated: Callable[[AcceleratedBackend], T]
    ) -> Outcome:
        """Run ``accelerated`` with the backend, reporting failures as an Outcome."""
        try:
            value = accelerated(self.backend)
        except BackendError as e:
            logger.warning(
                "Accelerated %s failed, using the portable implementation: %s",
                operation.value,
                e,
            )
            return FAILED
        return Outcome(True, value)

    def run(
        self,
        operation: Operation,
        dtypes: Iterable[DType],
        length: int,
        accelerated: Callable[[AcceleratedBackend], T],
        portable: Callable[[], T],
    ) -> T:
        """Run an operation on the best available implementation.

        The portable implementation is used when the backend
        is unavailable, doesn't support the operation, or fails.
        """
        if self.can_accelerate(operation, dtypes, length):
            outcome = self.attempt(operation, accelerated)
            if outcome.ok:
                return outcome.value
        return portable()


def register_storage(
    backend: AcceleratedBackend, dtype: DType, storage: pa.Array | tuple
) -> OwnedHandle:
    """Register the storage of a column in the backend.

    Dense storage is already made of Arrow buffers and is handed
    over as is, boxed storage is packed into buffers first.
    """
    if isinstance(storage, pa.Array):
        return backend.register(BufferSpec.from_arrow(dtype, storage))
    try:
        spec = BufferSpec.from_values(dtype, list(storage))
    except (pa.ArrowException, TypeError, ValueError, OverflowError) as e:
        raise BackendError(f"Can't pack {dtype.value} values into buffers: {e}") from e
    return backend.register(spec)


def register_values(
    backend: AcceleratedBackend, dtype: DType, values: list[Any]
) -> OwnedHandle:
    """Register a list of values, like masks or group codes, in the backend."""
    return register_storage(backend, dtype, tuple(values))


_default_context: ExecutionContext | None = None


def get_default_context() -> ExecutionContext:
    """The context used by Series and DataFrames created without one.

    It's built from the environment the first time it's requested.
    Pass an explicit context to Series and DataFrames to use
    a different configuration.
    """
    global _default_context
    if _default_context is None:
        _default_context = ExecutionContext()
    return _default_context
