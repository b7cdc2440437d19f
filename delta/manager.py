"""History manager owning the frame store and feature registry.

The :class:`HistoryManager` is the only object the capture side and the
script side share.  Capture pushes one feature vector per frame through
:meth:`HistoryManager.submit_frame`; the script asks
:meth:`HistoryManager.create_view` for a :class:`~delta.output.DeltaOutput`
anchored at the newest frame and reads through it.

One manager lives for one profile/run.  Capacity, feature layout, frame
rate and default window are fixed at construction.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from .features import FeatureRegistry
from .frame_store import FrameStore
from .output import BLANK, DeltaOutput

LOGGER = logging.getLogger(__name__)


class HistoryManager:
    """Own the rolling feature history of one run.

    Parameters
    ----------
    features : FeatureRegistry
        Compiled feature layout of the profile.
    capacity : int
        Ring capacity in frames.
    frame_rate : float
        Nominal frames per second.  Used for millisecond conversion only;
        it need not match the real capture rate.
    default_offset : int, optional
        Window length in milliseconds used when a script passes none.
    """

    def __init__(
        self,
        features: FeatureRegistry,
        capacity: int,
        frame_rate: float,
        default_offset: int = 0,
    ) -> None:
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")
        self._features = features
        self._history = FrameStore(capacity=capacity, feature_count=features.feature_count)
        self._frame_rate = float(frame_rate)
        self._default_offset = int(default_offset)
        LOGGER.info(
            "History manager ready: %d features, %d frames at %.2f fps (%.0f ms), default window %d ms",
            features.feature_count,
            capacity,
            self._frame_rate,
            (capacity - 1) / self._frame_rate * 1000,
            self._default_offset,
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "HistoryManager":
        """Build a manager from the ``history``, ``features`` and ``groups`` config sections.

        ``features`` is a list of names or of mappings with a ``name`` key.
        """
        history_cfg = config.get("history", {})
        names = [f if isinstance(f, str) else f["name"] for f in config.get("features", [])]
        groups: Mapping[str, Iterable[Union[str, int]]] = config.get("groups") or {}
        return cls(
            features=FeatureRegistry(names, groups),
            capacity=history_cfg.get("capacity", 600),
            frame_rate=history_cfg.get("frame_rate", 60),
            default_offset=history_cfg.get("default_offset_ms", 0),
        )

    @property
    def history(self) -> FrameStore:
        return self._history

    @property
    def features(self) -> FeatureRegistry:
        return self._features

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    @property
    def default_offset(self) -> int:
        return self._default_offset

    @property
    def latest_index(self) -> int:
        """Logical index of the newest frame, ``-1`` before the first one."""
        return self._history.latest_index

    @property
    def is_blank(self) -> bool:
        """True until the first frame has been submitted."""
        return self._history.latest_index < 0

    def submit_frame(self, values: Sequence[float], timestamp: Optional[float] = None) -> int:
        """Append one frame's feature vector; return its logical index.

        ``timestamp`` defaults to the current wall-clock time.
        """
        if timestamp is None:
            timestamp = time.time()
        return self._history.append(values, timestamp)

    def create_view(self, origin: Optional[int] = None) -> DeltaOutput:
        """Return a view anchored at ``origin`` (default: the newest frame).

        A manager that has not received any frame returns the blank view,
        whose reads raise :class:`~delta.errors.EmptyEngine`.
        """
        if self.is_blank:
            return BLANK
        return DeltaOutput(
            history=self._history,
            features=self._features,
            frame_rate=self._frame_rate,
            default_offset=self._default_offset,
            original_index=self._history.latest_index if origin is None else int(origin),
        )

    def reset(self) -> None:
        """Discard all frames and pause deadlines, keeping the configuration."""
        self._history = FrameStore(capacity=self._history.capacity, feature_count=self._features.feature_count)
        self._features.clear_pauses()
        LOGGER.info("History reset")
