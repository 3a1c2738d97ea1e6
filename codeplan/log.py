"""Logging setup shared by the dashboard and its helper programs.

The dashboard owns the terminal while it runs, so it logs to a file. The
helper programs log to stderr, which the dashboard discards but which is
visible when they are run by hand.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Attach one handler to the ``codeplan`` logger.

    Calling this again replaces the previous handler instead of stacking a
    second one.
    """
    root = logging.getLogger("codeplan")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
