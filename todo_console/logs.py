from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Union

LOGGER_NAME = "todo_console"


def setup_logging(log_path: Union[str, os.PathLike], log_level: str = "ERROR") -> logging.Logger:
    """Attach a rotating file handler to the ``todo_console`` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    # Always reset handlers so --log-level reliably controls file output.
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    # logger stays at DEBUG; the handler filters by the requested level
    logger.setLevel(logging.DEBUG)
    directory = os.path.dirname(os.fspath(log_path))
    if directory and not os.path.isdir(directory):
        os.makedirs(directory, exist_ok=True)
    fh = RotatingFileHandler(log_path, maxBytes=2000000, backupCount=2, encoding="utf-8")
    lvl = getattr(logging, str(log_level or "").upper(), None)
    fh.setLevel(lvl if isinstance(lvl, int) else logging.ERROR)
    fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(fh)
    return logger
