"""Exceptions raised by FramePyground.

Errors are divided by who is expected to handle them:

* :class:`ConstructionError` is raised while building a
  :class:`~framepyground.dataframe.Series` or a
  :class:`~framepyground.dataframe.DataFrame` out of inconsistent data.
* :class:`UsageError` is raised when an operation is invoked with
  arguments that can't be satisfied, like a mask of the wrong size
  or an aggregation that doesn't exist.
* :class:`BackendError` is raised by the accelerated backend.
  It never reaches users of the library, the execution context
  catches it and runs the portable implementation instead.

Both construction and usage errors are subclasses of :class:`ValueError`
so that code written for generic validation errors keeps working.
"""


class ConstructionError(ValueError):
    """The provided data can't be used to build a Series or DataFrame."""


class UsageError(ValueError):
    """An operation was invoked with invalid arguments."""


class LengthMismatchError(ConstructionError, UsageError):
    """Two sequences that must be of the same length are not.

    Raised both at construction time (index and values of different length,
    columns of different length) and by operations like ``filter``
    when the mask doesn't match the data.
    """


class DTypeConversionError(ConstructionError):
    """A value can't be stored with the requested dtype."""


class UnsupportedAggregationError(UsageError):
    """The requested aggregation function is not known."""


class ColumnNotFoundError(UsageError, KeyError):
    """A column that doesn't exist was referenced."""

    def __str__(self) -> str:
        # KeyError would quote the message otherwise.
        return str(self.args[0]) if self.args else ""


class GroupNotFoundError(UsageError, KeyError):
    """A group key that doesn't exist was referenced."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class BinningError(UsageError):
    """Bins and labels provided for binning are inconsistent."""


class BackendError(RuntimeError):
    """The accelerated backend is unavailable or failed to run an operation."""


class HandleReleasedError(BackendError):
    """A handle was used after it had already been released."""
