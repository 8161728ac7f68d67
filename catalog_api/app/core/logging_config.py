"""
Logging setup for the catalog service.

``setup_logging`` attaches a console handler and, when ``LOG_FILE`` is
set, a file handler to the root logger.  The MongoDB driver logs every
command and heartbeat at DEBUG, so its loggers are held at WARNING
unless the service itself runs at a stricter level.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Driver loggers that flood the output at DEBUG.
NOISY_LOGGERS = ("pymongo", "pymongo.command", "pymongo.connection", "pymongo.serverSelection")


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    Parameters
    ----------
    level : str
        Level name for the service loggers, case insensitive.  Unknown
        names fall back to ``INFO``.
    logfile : Optional[str]
        File that receives a copy of the log.  Empty means console only.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    root = logging.getLogger()
    if root.handlers:
        # pytest or an earlier create_app call got here first
        return
    root.setLevel(numeric_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler()]
    if logfile:
        handlers.append(logging.FileHandler(Path(logfile).resolve(), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
