"""Circular buffer for per-frame feature vectors.

The :class:`FrameStore` keeps a fixed number of the most recent frames in
memory.  Each frame is one row of feature values (one float per feature
column) together with the timestamp at which the frame's sampling window
closed.  When the buffer is full the oldest row is overwritten in place.

Frames are addressed two ways:

* a *logical* index, the monotonically increasing number returned by
  :meth:`FrameStore.append`, and
* a *physical* slot, ``logical % capacity``, which is what :meth:`get` and
  item access take.

Appends and windowed reads share a short critical section, so a reader never
observes a partially written row.  :meth:`read` additionally snapshots the
write cursor and refuses logical indices that have already been overwritten
or have not been written yet.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import FrameShapeError, WindowUnavailable

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """One row of the history.

    Attributes
    ----------
    values : np.ndarray
        Feature values, one per column.  This is a copy; mutating it does
        not touch the store.
    end_timestamp : float
        Capture time (seconds) at which the frame's sampling window closed.
    """

    values: np.ndarray
    end_timestamp: float


class FrameStore:
    """A fixed-capacity ring buffer of feature rows and timestamps.

    Parameters
    ----------
    capacity : int
        Number of frames kept.  Immutable for the store's lifetime.
    feature_count : int
        Number of feature columns per frame.
    """

    def __init__(self, capacity: int, feature_count: int) -> None:
        if capacity < 2:
            raise ValueError(f"History capacity must be at least 2 frames, got {capacity}")
        if feature_count < 1:
            raise ValueError(f"A frame needs at least one feature column, got {feature_count}")
        self.capacity = int(capacity)
        self.feature_count = int(feature_count)
        # Unwritten slots read as NaN ("no data").
        self._values = np.full((self.capacity, self.feature_count), np.nan, dtype=np.float64)
        self._timestamps = np.full(self.capacity, np.nan, dtype=np.float64)
        self._next_index = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self.capacity

    @property
    def count(self) -> int:
        """Capacity of the store, in frames."""
        return self.capacity

    @property
    def next_index(self) -> int:
        """Logical index the next :meth:`append` will write."""
        return self._next_index

    @property
    def latest_index(self) -> int:
        """Logical index of the newest frame, or ``-1`` if nothing was written."""
        return self._next_index - 1

    def append(self, values: Sequence[float], end_timestamp: float) -> int:
        """Write one frame into the next slot and return its logical index.

        Raises
        ------
        FrameShapeError
            If ``values`` does not hold exactly one value per feature column.
        """
        row = np.asarray(values, dtype=np.float64)
        if row.shape != (self.feature_count,):
            raise FrameShapeError(
                f"Expected {self.feature_count} feature values per frame, got shape {row.shape}"
            )
        with self._lock:
            index = self._next_index
            slot = index % self.capacity
            self._values[slot] = row
            self._timestamps[slot] = float(end_timestamp)
            self._next_index = index + 1
        if index == 0:
            LOGGER.info("First frame stored (%d features, capacity %d)", self.feature_count, self.capacity)
        return index

    def get(self, frame_index: int, feature_index: Optional[int] = None):
        """Return a value or a whole :class:`Frame` from a physical slot.

        No index translation happens here; ``frame_index`` must already be
        wrapped into ``[0, capacity)``.
        """
        with self._lock:
            if feature_index is None:
                return Frame(
                    values=self._values[frame_index].copy(),
                    end_timestamp=float(self._timestamps[frame_index]),
                )
            return float(self._values[frame_index, feature_index])

    def __getitem__(self, key):
        if isinstance(key, tuple):
            return self.get(*key)
        return self.get(key)

    def latest(self) -> Optional[Frame]:
        """Return the newest frame, or ``None`` while the store is empty."""
        latest = self.latest_index
        if latest < 0:
            return None
        return self.get(latest % self.capacity)

    def _slots(self, logical_indices: np.ndarray) -> np.ndarray:
        # Caller holds the lock.
        oldest = self._next_index - self.capacity
        newest = self._next_index - 1
        if logical_indices.size and (logical_indices.min() < oldest or logical_indices.max() > newest):
            raise WindowUnavailable(
                f"Frames {int(logical_indices.min())}..{int(logical_indices.max())} are not retained; "
                f"history currently holds {oldest}..{newest}"
            )
        return np.mod(logical_indices, self.capacity)

    def read(
        self, logical_indices: Sequence[int], feature_indexes: Sequence[int]
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Copy a block of values addressed by logical frame index.

        Parameters
        ----------
        logical_indices : Sequence[int]
            Logical frame indices, in the order rows should be returned.
            Indices below zero are allowed as long as the store has not
            wrapped past them; they land on never-written slots and read NaN.
        feature_indexes : Sequence[int]
            Feature columns, in the order columns should be returned.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]
            ``(values, timestamps)`` where ``values`` has shape
            ``(len(logical_indices), len(feature_indexes))``.

        Raises
        ------
        WindowUnavailable
            If any requested frame was overwritten or not written yet.
        """
        logical = np.asarray(logical_indices, dtype=np.int64)
        columns = np.asarray(feature_indexes, dtype=np.intp)
        with self._lock:
            slots = self._slots(logical)
            values = self._values[np.ix_(slots, columns)]
            timestamps = self._timestamps[slots]
        return values, timestamps

    def read_timestamp(self, logical_index: int) -> float:
        """Return the end timestamp of one frame addressed by logical index."""
        with self._lock:
            slot = self._slots(np.asarray([logical_index], dtype=np.int64))[0]
            return float(self._timestamps[slot])
