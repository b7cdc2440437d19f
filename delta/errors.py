"""Exceptions raised by the delta history engine.

Every error is raised synchronously at the offending call and is never
retried inside the engine.  The scripting layer is expected to surface them
as user-visible script errors.  Numeric edge cases (division by zero, empty
reductions) are *not* errors; they propagate as NaN/inf.
"""

from __future__ import annotations


class DeltaError(Exception):
    """Base class for all history engine errors."""


class FeatureNameNotFound(DeltaError, LookupError):
    """A feature name was selected that the registry does not know."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Feature name '{name}' does not exist.")


class WindowOverflow(DeltaError, IndexError):
    """A millisecond window reaches further back than the history holds.

    Attributes
    ----------
    milliseconds : int
        The offending request.
    max_milliseconds : int
        The largest millisecond offset the history can address.
    history_size : int
        Capacity of the frame store, in frames.
    """

    def __init__(self, milliseconds: float, max_milliseconds: int, history_size: int, frame_offset: int) -> None:
        self.milliseconds = milliseconds
        self.max_milliseconds = max_milliseconds
        self.history_size = history_size
        self.frame_offset = frame_offset
        super().__init__(
            f"Offset cannot exceed the history's count, which is currently {history_size}, "
            f"and this is trying to access previous frame #{frame_offset} "
            f"({milliseconds} ms; maximum is {max_milliseconds} ms)."
        )


class WindowUnavailable(DeltaError, IndexError):
    """The frames a window needs were overwritten or have not been written yet."""


class NegativeOffset(DeltaError, ValueError):
    """A negative millisecond offset was requested."""

    def __init__(self, milliseconds: float) -> None:
        self.milliseconds = milliseconds
        super().__init__(f"Offset cannot be negative (got {milliseconds} ms).")


class EmptyEngine(DeltaError, RuntimeError):
    """A query was issued against a view with no backing history."""


class EmptySelection(DeltaError, ValueError):
    """A read was issued on a view before any feature was selected."""


class FrameShapeError(DeltaError, ValueError):
    """A submitted frame does not have one value per feature column."""
