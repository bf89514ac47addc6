"""Entrypoint for the Kasbah Guard local authority."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

import uvicorn

from kasbah_guard import __version__
from kasbah_guard.config import load_settings
from kasbah_guard.logging_utils import configure_logging
from kasbah_guard.transport.http_server import create_http_app


def run_entrypoint() -> None:
    """Start the authority and serve until the process is stopped."""
    settings = load_settings()
    configure_logging()
    logging.info("Initializing Kasbah Guard v%s", __version__)
    if settings.logging.file:
        logging.info("Log file configured at: %s", settings.logging.file)

    app = create_http_app(settings=settings)
    # Binding failure is fatal; uvicorn exits the process.
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
