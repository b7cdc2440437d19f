"""Monitoring UI package for the video auto-splitter.

This package contains the Flask application that exposes health probes,
Prometheus metrics and read-only views of the feature history.
"""

from .server import create_app  # noqa: F401
