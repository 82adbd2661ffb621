"""Centralised configuration for the ReplacePDF backend."""

from __future__ import annotations

import logging
import os
from pathlib import Path

# -- Static front end --
FRONTEND_DIR = Path(__file__).resolve().parent.parent / "frontend"

# -- Upload limits --
MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50 MB

# -- Undo / Redo --
MAX_UNDO = 20  # max snapshots kept per document

# -- Rendering --
DEFAULT_RENDER_SCALE = 1.5  # PNG render resolution multiplier

# -- Content stream editing --
TEXT_SHOW_OPERATOR = "Tj"
STREAM_ENCODING = "latin-1"  # byte-transparent bytes <-> str mapping

# -- Logging --
LOG_LEVEL = os.environ.get("REPLACEPDF_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the package logger (idempotent)."""
    logger = logging.getLogger("replacepdf")
    logger.setLevel(level or LOG_LEVEL)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
