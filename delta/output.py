"""Windowed query view over the feature history.

:class:`DeltaOutput` is what scripts see.  A view is anchored at one logical
frame (normally the newest), and scripts narrow it to one or more features
before calling a single read::

    view = manager.create_view()
    if view["load_icon"].max(500) > 0.9 and view["black_bar"].current < 0.1:
        ...

Selecting returns a *new* view carrying the selection, so a selected view can
be read any number of times and a selection can never leak into another
read.

Millisecond arguments are converted to frame offsets counted backwards from
the origin frame, using the manager's nominal frame rate::

    offset(ms) = max(1, round(frame_rate * ms / 1000))

Windows are half-open ``[start, end)`` offset ranges, so ``min(300)`` at
10 fps covers the origin frame and the two frames before it.

Values of paused features read as NaN.  NaN propagates through every
reduction, so any comparison a script makes against a paused feature is
false.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import EmptyEngine, EmptySelection, NegativeOffset, WindowOverflow
from .features import FeatureRegistry
from .frame_store import FrameStore


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass(frozen=True)
class DeltaOutput:
    """Read-only view of the history anchored at one frame.

    Parameters
    ----------
    history : FrameStore
        Store the view reads from.  ``None`` makes a blank view.
    features : FeatureRegistry
        Registry used to resolve names and pause deadlines.
    frame_rate : float
        Nominal frames per second used for millisecond conversion.
    default_offset : int
        Window length (ms) used when a caller passes a non-positive one.
    original_index : int
        Logical index of the origin frame.
    feature_indexes : Tuple[int, ...]
        Current selection.  Empty until the view is indexed.
    """

    history: Optional[FrameStore] = field(default=None, repr=False)
    features: Optional[FeatureRegistry] = field(default=None, repr=False)
    frame_rate: float = 0.0
    default_offset: int = 0
    original_index: int = 0
    feature_indexes: Tuple[int, ...] = ()

    # ------------------------------------------------------------------
    # Anchoring and conversion

    @property
    def is_blank(self) -> bool:
        return self.history is None or self.features is None

    @property
    def history_size(self) -> int:
        return self._require_history().capacity

    @property
    def frame_index(self) -> int:
        """Physical slot of the origin frame."""
        return self.original_index % self.history_size

    @property
    def max_milliseconds(self) -> int:
        """Largest millisecond offset the history can address."""
        return int(math.ceil((self.history_size - 1) / self.frame_rate * 1000))

    def _require_history(self) -> FrameStore:
        if self.history is None or self.features is None:
            raise EmptyEngine("No frame history is available yet.")
        return self.history

    def _selection(self) -> Tuple[int, ...]:
        self._require_history()
        if not self.feature_indexes:
            raise EmptySelection("Select at least one feature before reading.")
        return self.feature_indexes

    def frame_offset(self, milliseconds: float) -> int:
        """Convert a millisecond offset into a frame offset (at least 1).

        Raises
        ------
        NegativeOffset
            If ``milliseconds`` is negative.
        WindowOverflow
            If the offset reaches further back than the history holds.
        """
        history = self._require_history()
        if milliseconds < 0:
            raise NegativeOffset(milliseconds)
        offset = max(1, int(round(self.frame_rate * milliseconds / 1000.0)))
        max_ms = self.max_milliseconds
        if milliseconds > max_ms or offset > history.capacity - 1:
            raise WindowOverflow(milliseconds, max_ms, history.capacity, offset)
        return offset

    def frame_offsets(self, start_milliseconds: float, duration: float) -> Tuple[int, int]:
        """Resolve ``(start, duration)`` into a half-open offset range."""
        if start_milliseconds <= 0:
            start_offset = 0
            start_milliseconds = 0
        else:
            start_offset = self.frame_offset(start_milliseconds)

        if duration <= 0:
            end_offset = self.frame_offset(start_milliseconds + self.default_offset)
        else:
            end_offset = self.frame_offset(start_milliseconds + duration)
        return start_offset, end_offset

    def index_from_offset(self, offset: int) -> int:
        """Physical slot of the frame ``offset`` frames before the origin."""
        return (self.original_index - offset) % self.history_size

    # ------------------------------------------------------------------
    # Extraction

    def _read(self, offsets: Sequence[int], feature_indexes: Sequence[int]) -> np.ndarray:
        history = self._require_history()
        logical = self.original_index - np.asarray(offsets, dtype=np.int64)
        values, timestamps = history.read(logical, feature_indexes)
        origin = history.read_timestamp(self.original_index)
        deadlines = self.features.deadlines(feature_indexes)
        # Only pauses still running at the origin frame mask anything.
        active = origin < deadlines
        values[(timestamps[:, np.newaxis] < deadlines[np.newaxis, :]) & active[np.newaxis, :]] = np.nan
        return values

    def _window(self, start_milliseconds: float, duration: float) -> Optional[np.ndarray]:
        """Values for the window, shaped ``(frames, features)``; ``None`` if empty."""
        feature_indexes = self._selection()
        start_offset, end_offset = self.frame_offsets(start_milliseconds, duration)
        if end_offset <= start_offset:
            return None
        return self._read(np.arange(start_offset, end_offset), feature_indexes)

    def values(self, start_milliseconds: float = 0, end_milliseconds: Optional[float] = None) -> np.ndarray:
        """Flatten every selected feature over the window into one sequence.

        Rows are taken newest first; within a row, features follow the
        selection order.  An empty window yields a single NaN.
        """
        if end_milliseconds is None:
            start_milliseconds, end_milliseconds = 0, start_milliseconds
        window = self._window(start_milliseconds, end_milliseconds - start_milliseconds)
        if window is None:
            return np.array([np.nan])
        return window.ravel()

    def _value_at(self, offset: int) -> float:
        feature_index = self._selection()[0]
        return float(self._read([offset], [feature_index])[0, 0])

    # ------------------------------------------------------------------
    # Selection

    def __getitem__(self, key) -> "DeltaOutput":
        """Select features by index, by name(s), or re-anchor and select.

        ``view[2]``, ``view[0, 3]``, ``view["hp"]``, ``view["hp", "mp"]`` and
        ``view[frame, "hp", ...]`` are accepted.
        """
        self._require_history()
        if not isinstance(key, tuple):
            key = (key,)
        if not key:
            raise EmptySelection("An empty selection was given.")

        if all(_is_int(k) for k in key):
            indexes = tuple(self.features.check_index(k) for k in key)
            return replace(self, feature_indexes=indexes)
        if all(isinstance(k, str) for k in key):
            return replace(self, feature_indexes=self.features.resolve_many(key))
        if _is_int(key[0]) and len(key) > 1 and all(isinstance(k, str) for k in key[1:]):
            return replace(self, original_index=int(key[0]))[key[1:]]
        raise TypeError(f"Cannot select features with {key!r}")

    # ------------------------------------------------------------------
    # Script surface

    @property
    def current(self) -> float:
        """Value at the origin frame.  Uses the first selected feature only."""
        return self._value_at(0)

    def old(self, milliseconds: float = 0) -> float:
        """Value ``milliseconds`` before the origin.  First selected feature only."""
        if milliseconds <= 0:
            milliseconds = self.default_offset
        return self._value_at(self.frame_offset(milliseconds))

    def pause(self, milliseconds: float = 0) -> None:
        """Mask the selected features for ``milliseconds`` (forever if <= 0)."""
        feature_indexes = self._selection()
        origin = self.history.read_timestamp(self.original_index)
        until = origin + milliseconds / 1000.0 if milliseconds > 0 else math.inf
        for index in feature_indexes:
            self.features.pause(index, until)

    def resume(self, milliseconds: float = 0) -> None:
        """Unmask the selected features now, or ``milliseconds`` after the origin."""
        feature_indexes = self._selection()
        origin = self.history.read_timestamp(self.original_index)
        until = origin + milliseconds / 1000.0 if milliseconds > 0 else origin
        for index in feature_indexes:
            self.features.resume(index, until, origin)

    def pause_all(self) -> None:
        """Mask every registered feature until resumed."""
        self._require_history()
        for index in range(self.features.feature_count):
            self.features.pause(index, math.inf)

    @property
    def is_paused(self) -> bool:
        """True if any selected feature reads NaN at the origin frame."""
        row = self._read([0], self._selection())[0]
        return bool(np.isnan(row).any())

    def min(self, start_milliseconds: float = 0, end_milliseconds: Optional[float] = None) -> float:
        return float(np.min(self.values(start_milliseconds, end_milliseconds)))

    def max(self, start_milliseconds: float = 0, end_milliseconds: Optional[float] = None) -> float:
        return float(np.max(self.values(start_milliseconds, end_milliseconds)))

    def average(self, start_milliseconds: float = 0, end_milliseconds: Optional[float] = None) -> float:
        return float(np.mean(self.values(start_milliseconds, end_milliseconds)))

    def stdev(self, start_milliseconds: float = 0, end_milliseconds: Optional[float] = None) -> float:
        """Sample standard deviation; NaN for fewer than two samples."""
        pool = self.values(start_milliseconds, end_milliseconds)
        if pool.size < 2:
            return math.nan
        return float(np.std(pool, ddof=1))

    def delta(self, start_milliseconds: float = 0, end_milliseconds: Optional[float] = None) -> float:
        """Ratio of the value at ``start`` to the value ``end - start`` back.

        With one argument the ratio is current / old(ms).  First selected
        feature only.  Division by zero yields inf or NaN.
        """
        if end_milliseconds is None:
            start_milliseconds, end_milliseconds = 0, start_milliseconds
        if start_milliseconds <= 0:
            start = self.current
            start_milliseconds = 0
        else:
            start = self.old(start_milliseconds)
        end = self.old(end_milliseconds - start_milliseconds)
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.float64(start) / np.float64(end))

    def dupe_delta(self, milliseconds: float = 0) -> float:
        """``min(ms) / max(ms, 2 * ms)`` of the first selected feature."""
        single = self[self._selection()[0]]
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.float64(single.min(milliseconds)) / np.float64(single.max(milliseconds, milliseconds * 2)))

    def max_min(self, milliseconds: float = 0) -> float:
        """Largest of the selected features' window minimums."""
        window = self._window(0, milliseconds)
        if window is None:
            return math.nan
        return float(np.max(np.min(window, axis=0)))

    def min_max(self, milliseconds: float = 0) -> float:
        """Smallest of the selected features' window maximums."""
        window = self._window(0, milliseconds)
        if window is None:
            return math.nan
        return float(np.min(np.max(window, axis=0)))

    def max_min_inverse(self, milliseconds: float = 0) -> float:
        """Largest, over the window, of each frame's minimum across features."""
        window = self._window(0, milliseconds)
        if window is None:
            return math.nan
        return float(np.max(np.min(window, axis=1)))

    def min_max_inverse(self, milliseconds: float = 0) -> float:
        """Smallest, over the window, of each frame's maximum across features."""
        window = self._window(0, milliseconds)
        if window is None:
            return math.nan
        return float(np.min(np.max(window, axis=1)))


# Shared "no data yet" view.
BLANK = DeltaOutput()
