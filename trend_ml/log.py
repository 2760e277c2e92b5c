# trend_ml/log.py

from __future__ import annotations

import logging
import sys

# One line per record: time, level, module, message
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that flood INFO/DEBUG during forest training
QUIET_LOGGERS = ("joblib", "sklearn")


def configure_logging(level: str = "INFO") -> None:
    """
    Route trend_ml log records to stdout for scripts and the API.

    Library modules only call logging.getLogger(__name__); nothing is printed
    until this is called. Unknown level names fall back to INFO.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
