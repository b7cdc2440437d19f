"""Capture loop feeding the feature history.

The :class:`CapturePipeline` owns a :class:`CameraAdapter` and a
:class:`FeatureExtractor` and runs one worker thread that, for every frame,
extracts the feature vector and hands it to
:meth:`HistoryManager.submit_frame`.  It is the single writer of the
history; scripts read concurrently through views.

Capture health is exported with the Prometheus client and served by the
``/metrics`` route of the monitoring server.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

from prometheus_client import Counter, Gauge, Histogram

from delta.manager import HistoryManager

from .camera_adapter import CameraAdapter
from .feature_extractor import FeatureExtractor

LOGGER = logging.getLogger(__name__)

frames_submitted_counter = Counter(
    "vas_frames_submitted_total", "Total number of frames pushed into the feature history"
)
frames_dropped_counter = Counter(
    "vas_frames_dropped_total", "Frames the video source failed to deliver"
)
capture_latency_histogram = Histogram(
    "vas_capture_latency_seconds", "Time spent extracting and storing one frame"
)
capture_running_gauge = Gauge(
    "vas_capture_running", "Whether the capture pipeline is currently running"
)
latest_frame_gauge = Gauge(
    "vas_latest_frame_index", "Logical index of the newest frame in the history"
)


class CapturePipeline:
    """Read frames, extract features and submit them to the history.

    Parameters
    ----------
    config : Dict
        Configuration dictionary loaded from ``config.yaml``.
    manager : HistoryManager
        History the frames are written into.
    extractor : FeatureExtractor, optional
        Defaults to one built from the ``features`` config section.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        manager: HistoryManager,
        extractor: Optional[FeatureExtractor] = None,
    ) -> None:
        self.config = config
        self.manager = manager
        self.extractor = extractor or FeatureExtractor.from_config(config)
        if len(self.extractor.regions) != manager.features.feature_count:
            raise ValueError(
                f"Extractor yields {len(self.extractor.regions)} features but the history "
                f"expects {manager.features.feature_count}"
            )
        capture_cfg = config.get("capture", {})
        self.source = capture_cfg.get("source", 0)
        self.fps = capture_cfg.get("fps")
        self.retry_delay = capture_cfg.get("retry_delay_sec", 0.1)
        self.adapter: Optional[CameraAdapter] = None
        self.worker: Optional[threading.Thread] = None
        self.running = False
        self.frames_submitted = 0

    def start(self) -> None:
        """Open the video source and start the capture thread."""
        if self.running:
            return
        self.adapter = CameraAdapter(source=self.source, fps=self.fps)
        self.running = True
        capture_running_gauge.set(1)
        self.worker = threading.Thread(target=self._capture_loop, name="capture", daemon=True)
        self.worker.start()
        LOGGER.info("Capture pipeline started on source %s", self.source)

    def stop(self) -> None:
        """Stop the capture thread and release the video source."""
        self.running = False
        capture_running_gauge.set(0)
        if self.worker:
            self.worker.join(timeout=1.0)
            self.worker = None
        if self.adapter:
            self.adapter.release()
            self.adapter = None
        LOGGER.info("Capture pipeline stopped after %d frames", self.frames_submitted)

    def process_frame(self, image, timestamp: float) -> int:
        """Extract and store one frame; return its logical index."""
        start = time.perf_counter()
        values = self.extractor.extract(image)
        index = self.manager.submit_frame(values, timestamp)
        capture_latency_histogram.observe(time.perf_counter() - start)
        frames_submitted_counter.inc()
        latest_frame_gauge.set(index)
        self.frames_submitted += 1
        return index

    def _capture_loop(self) -> None:
        adapter = self.adapter
        while self.running and adapter is not None:
            video_frame = adapter.read()
            if video_frame is None:
                frames_dropped_counter.inc()
                time.sleep(self.retry_delay)
                continue
            try:
                self.process_frame(video_frame.image, video_frame.timestamp)
            except Exception:
                LOGGER.exception("Failed to store frame from %s; stopping capture", self.source)
                self.running = False
                capture_running_gauge.set(0)
