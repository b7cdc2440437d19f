"""Turn a video frame into the fixed-length feature vector the history stores.

Each configured feature watches one rectangular region of the frame and
reports its mean brightness scaled to ``[0, 1]``.  The order of the vector
is the order of the ``features`` config list, which is also the column order
of the :class:`~delta.features.FeatureRegistry`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import cv2  # type: ignore
import numpy as np

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    """A named region of interest in pixel coordinates ``(x, y, w, h)``."""

    name: str
    bbox: Optional[Tuple[int, int, int, int]] = None


class FeatureExtractor:
    """Compute per-region mean brightness for every frame.

    Parameters
    ----------
    regions : List[Region]
        One region per feature column.  A region without ``bbox`` covers
        the whole frame.
    """

    def __init__(self, regions: List[Region]) -> None:
        if not regions:
            raise ValueError("At least one region is required")
        self.regions = list(regions)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FeatureExtractor":
        regions = []
        for entry in config.get("features", []):
            if isinstance(entry, str):
                regions.append(Region(name=entry))
            else:
                bbox = entry.get("region")
                regions.append(Region(name=entry["name"], bbox=tuple(bbox) if bbox else None))
        return cls(regions)

    @property
    def feature_names(self) -> List[str]:
        return [r.name for r in self.regions]

    def extract(self, image: np.ndarray) -> np.ndarray:
        """Return one value per region for ``image`` (BGR or greyscale)."""
        if image.ndim == 3:
            grey = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            grey = image
        height, width = grey.shape[:2]
        values = np.empty(len(self.regions), dtype=np.float64)
        for i, region in enumerate(self.regions):
            if region.bbox is None:
                patch = grey
            else:
                x, y, w, h = region.bbox
                patch = grey[max(0, y):min(height, y + h), max(0, x):min(width, x + w)]
            # A region entirely outside the frame has no data.
            values[i] = patch.mean() / 255.0 if patch.size else np.nan
        return values
