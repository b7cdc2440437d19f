"""Feature registry with per-feature pause deadlines.

A profile compiles a fixed, ordered list of feature columns.  Each column has
a stable integer index and is reachable under its own name; a profile may
also declare *groups*, names that alias several columns at once (for
example every region that makes up a loading screen).

Each column carries exactly one "paused-until" deadline.  The registry does
not know whether a deadline came from a pause or a resume; the query view
masks a value to NaN whenever the frame it belongs to is older than the
column's deadline.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import FeatureNameNotFound

LOGGER = logging.getLogger(__name__)

# Deadline meaning "not paused".
NOT_PAUSED = -math.inf


class FeatureRegistry:
    """Maps feature names to column indices and tracks pause state.

    Parameters
    ----------
    feature_names : Sequence[str]
        One name per feature column, in column order.
    groups : Mapping[str, Iterable[Union[str, int]]], optional
        Extra names that expand to several columns.  Members may be column
        names, other group names declared earlier, or raw column indices.
    """

    def __init__(
        self,
        feature_names: Sequence[str],
        groups: Optional[Mapping[str, Iterable[Union[str, int]]]] = None,
    ) -> None:
        if not feature_names:
            raise ValueError("At least one feature is required")
        self.feature_names: Tuple[str, ...] = tuple(feature_names)
        self.index_names: Dict[str, Tuple[int, ...]] = {}
        for index, name in enumerate(self.feature_names):
            if name in self.index_names:
                raise ValueError(f"Duplicate feature name '{name}'")
            self.index_names[name] = (index,)
        for group, members in (groups or {}).items():
            if group in self.index_names:
                raise ValueError(f"Group name '{group}' clashes with an existing feature name")
            self.index_names[group] = self._expand(members)
        self._paused_until = np.full(len(self.feature_names), NOT_PAUSED, dtype=np.float64)
        self._lock = threading.Lock()

    def _expand(self, members: Iterable[Union[str, int]]) -> Tuple[int, ...]:
        indexes: List[int] = []
        for member in members:
            if isinstance(member, str):
                resolved: Sequence[int] = self.resolve(member)
            else:
                resolved = (self.check_index(member),)
            for index in resolved:
                if index not in indexes:
                    indexes.append(index)
        return tuple(indexes)

    @property
    def feature_count(self) -> int:
        return len(self.feature_names)

    def check_index(self, index: int) -> int:
        """Return ``index`` as an int if it names a feature column."""
        index = int(index)
        if not 0 <= index < self.feature_count:
            raise IndexError(f"Feature index {index} is out of range (0..{self.feature_count - 1})")
        return index

    def resolve(self, name: str) -> Tuple[int, ...]:
        """Return the column indices registered under ``name``."""
        try:
            return self.index_names[name]
        except KeyError:
            raise FeatureNameNotFound(name) from None

    def resolve_many(self, names: Iterable[str]) -> Tuple[int, ...]:
        """Expand several names, dropping duplicates and keeping first-seen order."""
        indexes: List[int] = []
        for name in names:
            for index in self.resolve(name):
                if index not in indexes:
                    indexes.append(index)
        return tuple(indexes)

    def pause(self, index: int, until: float) -> None:
        """Mask ``index`` until ``until`` (``math.inf`` for "until resumed").

        Overwrites any earlier deadline.
        """
        index = self.check_index(index)
        with self._lock:
            self._paused_until[index] = until
        LOGGER.debug("Paused feature %s until %s", self.feature_names[index], until)

    def resume(self, index: int, until: float, reference: float) -> None:
        """Unmask ``index``, either now or once ``until`` has passed.

        If ``until`` is not later than ``reference`` (the caller's notion of
        "now") the deadline is cleared; otherwise ``until`` is installed as
        the deadline, exactly as :meth:`pause` would.
        """
        index = self.check_index(index)
        with self._lock:
            self._paused_until[index] = NOT_PAUSED if until <= reference else until
        LOGGER.debug("Resumed feature %s (until=%s, reference=%s)", self.feature_names[index], until, reference)

    def paused_until(self, index: int) -> Optional[float]:
        """Return the deadline for ``index``, or ``None`` if it is not paused."""
        index = self.check_index(index)
        with self._lock:
            deadline = float(self._paused_until[index])
        return None if deadline == NOT_PAUSED else deadline

    def deadlines(self, indexes: Sequence[int]) -> np.ndarray:
        """Copy the deadlines of several columns (``-inf`` when not paused)."""
        with self._lock:
            return self._paused_until[np.asarray(indexes, dtype=np.intp)]

    def clear_pauses(self) -> None:
        with self._lock:
            self._paused_until[:] = NOT_PAUSED
