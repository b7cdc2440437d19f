"""Flask monitoring server for the video auto-splitter.

This module exposes :func:`create_app`, which builds a small read-only Flask
application over a running :class:`HistoryManager` and (optionally) its
:class:`CapturePipeline`.  It is meant for profile authors: it shows which
features exist, which are paused, what the newest frame looks like and what
has been logged.  Scripts never go through it.

Routes
------
``/readyz``       configuration loaded
``/livez``        capture thread running (503 otherwise)
``/metrics``      Prometheus exposition
``/api/features`` feature names, column indices and pause deadlines
``/api/history``  capacity, frame rate, newest frame
``/api/log``      log history as plain text
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from delta import log
from delta.manager import HistoryManager
from pipeline import CapturePipeline


def _json_float(value: float) -> Optional[float]:
    # JSON has no NaN/inf.
    return value if math.isfinite(value) else None


def create_app(manager: HistoryManager, pipeline: Optional[CapturePipeline] = None) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    manager : HistoryManager
        History whose state is reported.
    pipeline : CapturePipeline, optional
        Capture pipeline used for the liveness probe.

    Returns
    -------
    Flask
        Configured Flask app ready to run.
    """
    app = Flask(__name__)

    @app.route("/readyz")
    def readyz() -> Tuple[str, int]:
        return ("OK", 200)

    @app.route("/livez")
    def livez() -> Tuple[str, int]:
        if pipeline is not None and pipeline.running:
            return ("OK", 200)
        return ("Service Unavailable", 503)

    @app.route("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), status=200, mimetype=CONTENT_TYPE_LATEST)

    @app.route("/api/features")
    def api_features() -> Tuple[Response, int, Dict[str, str]]:
        """Return every registered name with its column indices.

        ``paused_until`` is ``null`` when the column is live and ``"inf"``
        when it is paused until further notice.
        """
        registry = manager.features
        columns: List[Dict[str, Any]] = []
        for index, name in enumerate(registry.feature_names):
            deadline = registry.paused_until(index)
            if deadline is not None and math.isinf(deadline):
                deadline = "inf"
            columns.append({"index": index, "name": name, "paused_until": deadline})
        groups = {
            name: list(indexes)
            for name, indexes in registry.index_names.items()
            if name not in registry.feature_names
        }
        return jsonify({"features": columns, "groups": groups}), 200, {"Cache-Control": "no-cache"}

    @app.route("/api/history")
    def api_history() -> Tuple[Response, int, Dict[str, str]]:
        history = manager.history
        latest = history.latest()
        body: Dict[str, Any] = {
            "capacity": history.capacity,
            "frame_rate": manager.frame_rate,
            "default_offset_ms": manager.default_offset,
            "latest_index": manager.latest_index,
            "latest": None,
        }
        if latest is not None:
            body["latest"] = {
                "end_timestamp": latest.end_timestamp,
                "values": dict(zip(manager.features.feature_names, (_json_float(v) for v in latest.values.tolist()))),
            }
        return jsonify(body), 200, {"Cache-Control": "no-cache"}

    @app.route("/api/log")
    def api_log() -> Response:
        return Response(log.read_all(), status=200, mimetype="text/plain")

    return app
