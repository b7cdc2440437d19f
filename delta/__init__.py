"""Rolling feature history and windowed queries for video auto-splitting.

The capture side pushes one feature vector per video frame into a
:class:`HistoryManager`; auto-splitter scripts read windowed statistics
(min/max/average/trend over the last N milliseconds) through the
:class:`DeltaOutput` views it hands out.
"""

from .errors import (  # noqa: F401
    DeltaError,
    EmptyEngine,
    EmptySelection,
    FeatureNameNotFound,
    FrameShapeError,
    NegativeOffset,
    WindowOverflow,
    WindowUnavailable,
)
from .features import FeatureRegistry  # noqa: F401
from .frame_store import Frame, FrameStore  # noqa: F401
from .manager import HistoryManager  # noqa: F401
from .output import BLANK, DeltaOutput  # noqa: F401
