"""Entry point for the video auto-splitter feature history.

This script reads the configuration file, builds the feature history,
starts the capture pipeline and the monitoring server, and runs until
interrupted.  Press Ctrl-C to stop.  The script layer that evaluates
auto-splitter profiles attaches to the same :class:`HistoryManager`
through :meth:`HistoryManager.create_view`.
"""

import argparse
import logging
import signal
import threading
import time
from typing import Any, Dict

import yaml  # type: ignore

from delta.log import configure_logging
from delta.manager import HistoryManager
from pipeline.capture_pipeline import CapturePipeline
from ui.server import create_app


def load_config(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def main() -> None:
    parser = argparse.ArgumentParser(description="Video auto-splitter feature history")
    parser.add_argument("--config", default="config.yaml", help="Path to configuration YAML file")
    parser.add_argument("--no-server", action="store_true", help="Do not start the monitoring server")
    args = parser.parse_args()
    config = load_config(args.config)
    configure_logging(config)
    logger = logging.getLogger(__name__)

    manager = HistoryManager.from_config(config)
    pipeline = CapturePipeline(config=config, manager=manager)
    pipeline.start()

    if not args.no_server:
        flask_app = create_app(manager, pipeline)
        host = config.get("server", {}).get("host", "127.0.0.1")
        port = config.get("server", {}).get("port", 5000)

        def _run_flask() -> None:
            flask_app.run(host=host, port=port, threaded=True, use_reloader=False)

        threading.Thread(target=_run_flask, daemon=True).start()
        logger.info("Monitoring server at http://%s:%s", host, port)

    stop_event = threading.Event()

    def _signal_handler(signum: int, frame: Any) -> None:
        logger.info("Received signal %s; shutting down...", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        while not stop_event.is_set() and pipeline.running:
            time.sleep(0.5)
    finally:
        pipeline.stop()
        logger.info("Stopped")


if __name__ == "__main__":
    main()
