"""Video source wrapper feeding the capture pipeline.

:class:`CameraAdapter` hides ``cv2.VideoCapture`` behind a single
:meth:`~CameraAdapter.read` call.  A source can be a capture-card/webcam
index, a video file, or a stream URL.  Each read returns a
:class:`VideoFrame` stamped with the time it was grabbed; that stamp becomes
the frame's end timestamp in the history.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

import cv2  # type: ignore
import numpy as np

LOGGER = logging.getLogger(__name__)


@dataclass
class VideoFrame:
    timestamp: float
    image: np.ndarray


class CameraAdapter:
    """Wraps an OpenCV capture object.

    Parameters
    ----------
    source : Union[int, str]
        Device index (capture card, webcam) or a file path / URL.
    fps : float, optional
        If set, :meth:`read` sleeps so frames are delivered at roughly
        this rate.  Useful when replaying a recording.
    """

    def __init__(self, source: Union[int, str], fps: Optional[float] = None) -> None:
        self.source = source
        self.fps = fps
        self.cap: Optional[Any] = None
        self._frame_period = 1.0 / float(fps) if fps else None
        self._last_frame_time = 0.0
        self._open()

    def _open(self) -> None:
        self.cap = cv2.VideoCapture(self.source)
        if not self.cap.isOpened():
            LOGGER.error("Failed to open video source: %s", self.source)
            raise RuntimeError(f"Cannot open video source {self.source}")
        LOGGER.info("Opened video source %s", self.source)

    def read(self) -> Optional[VideoFrame]:
        """Grab one frame, or return ``None`` if the source had nothing."""
        if self.cap is None:
            return None
        if self._frame_period is not None:
            delay = self._frame_period - (time.time() - self._last_frame_time)
            if delay > 0:
                time.sleep(delay)
        ok, image = self.cap.read()
        self._last_frame_time = time.time()
        if not ok:
            LOGGER.warning("Failed to read frame from source %s", self.source)
            return None
        return VideoFrame(timestamp=self._last_frame_time, image=image)

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            LOGGER.info("Released video source %s", self.source)
