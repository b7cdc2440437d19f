"""Capture pipeline for the video auto-splitter.

The pipeline ties together the video source, the per-region feature
extractor and the feature history.  It provides the ``CapturePipeline``
class used by ``app.py`` and the monitoring server.
"""

from .camera_adapter import CameraAdapter, VideoFrame  # noqa: F401
from .capture_pipeline import CapturePipeline  # noqa: F401
from .feature_extractor import FeatureExtractor, Region  # noqa: F401
