"""Logging configuration"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once per process"""
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(getattr(handler, "_manifesto", False) for handler in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._manifesto = True
        root.addHandler(handler)

    # Quieter third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
